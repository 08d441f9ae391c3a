"""
CNV Segmentation Package

Partition binned genomic signal into segments of consistent copy-number state
with multiscale Haar wavelets, circular binary segmentation or a joint
multi-sample HMM, followed by gap, exclusion and forced-interval
post-processing.
"""

from .models import (
    Bin,
    Interval,
    ChromosomeBins,
    BinSeries,
    IntervalSet,
    ExclusionMask,
    ForcedIntervals,
    SegmentationMethod,
    UndoMethod,
    WaveletParams,
    CbsParams,
    HmmParams,
    AlgorithmChoice,
    build_algorithm_choice,
    Segment,
    GenomeSegmentationResult,
)
from .validators import SegmentationError, ConfigurationError, DataError
from .segmenters import WaveletSegmenter, CbsSegmenter, HmmSegmenter
from .adjustments import SegmentPostProcessor
from .engine import SegmentationEngine
from .config import SegmentationConfig, InputConfig, OutputConfig, LoggingConfig
from .pipeline import PartitionPipeline
from .logger import get_logger, configure_logging_from_config

__version__ = "1.0.0"

__all__ = [
    # Models
    'Bin',
    'Interval',
    'ChromosomeBins',
    'BinSeries',
    'IntervalSet',
    'ExclusionMask',
    'ForcedIntervals',
    'SegmentationMethod',
    'UndoMethod',
    'WaveletParams',
    'CbsParams',
    'HmmParams',
    'AlgorithmChoice',
    'build_algorithm_choice',
    'Segment',
    'GenomeSegmentationResult',

    # Errors
    'SegmentationError',
    'ConfigurationError',
    'DataError',

    # Algorithms
    'WaveletSegmenter',
    'CbsSegmenter',
    'HmmSegmenter',
    'SegmentPostProcessor',
    'SegmentationEngine',

    # Workflow
    'SegmentationConfig',
    'InputConfig',
    'OutputConfig',
    'LoggingConfig',
    'PartitionPipeline',
    'get_logger',
    'configure_logging_from_config',
]
