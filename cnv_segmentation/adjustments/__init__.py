"""
Segment Adjustments Module

Algorithm-independent post-processing of raw segments:
- Max-gap splitting
- Exclusion masking
- Forced common-CNV intervals
"""

from .splitting import split_at_gaps, identify_gap_cuts
from .exclusion import apply_exclusion_mask, excluded_bin_mask, identify_exclusion_cuts
from .forced_intervals import apply_forced_intervals, forced_positions
from .postprocessor import SegmentPostProcessor
from .utils import (
    build_segment,
    segments_from_breakpoints,
    pieces_from_breakpoints,
    breakpoints_from_labels,
    summarize_signal,
    split_piece,
    dominant_copy_number,
)

__all__ = [
    # Splitting
    'split_at_gaps',
    'identify_gap_cuts',

    # Exclusion
    'apply_exclusion_mask',
    'excluded_bin_mask',
    'identify_exclusion_cuts',

    # Forced intervals
    'apply_forced_intervals',
    'forced_positions',

    # Post-processor
    'SegmentPostProcessor',

    # Utilities
    'build_segment',
    'segments_from_breakpoints',
    'pieces_from_breakpoints',
    'breakpoints_from_labels',
    'summarize_signal',
    'split_piece',
    'dominant_copy_number',
]
