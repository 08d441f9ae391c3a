"""
Segmentation Algorithms

- WaveletSegmenter: multiscale Haar changepoints (default)
- CbsSegmenter: circular binary segmentation
- HmmSegmenter: joint multi-sample copy-number HMM
"""

from .base import BaseSegmenter, robust_noise_sd, noise_sd_from_differences
from .wavelets import (
    WaveletSegmenter,
    haar_coefficients,
    find_peaks,
    breakpoint_scores,
    confirmation_noise_sd,
)
from .cbs import CbsSegmenter, circular_statistics, two_sample_statistics
from .hmm import (
    HmmSegmenter,
    HmmModel,
    transition_matrix,
    joint_log_emissions,
    viterbi,
    forward_backward,
)

__all__ = [
    'BaseSegmenter',
    'robust_noise_sd',
    'noise_sd_from_differences',
    'WaveletSegmenter',
    'haar_coefficients',
    'find_peaks',
    'breakpoint_scores',
    'confirmation_noise_sd',
    'CbsSegmenter',
    'circular_statistics',
    'two_sample_statistics',
    'HmmSegmenter',
    'HmmModel',
    'transition_matrix',
    'joint_log_emissions',
    'viterbi',
    'forward_backward',
]
