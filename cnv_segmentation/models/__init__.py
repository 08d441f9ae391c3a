"""
Models for CNV Segmentation

- Genome containers (bins, intervals, per-sample series)
- Exclusion and forced-interval sets
- Algorithm parameters (pydantic, immutable)
- Segments and per-sample results (pydantic, immutable)
"""

from .genome import Bin, Interval, ChromosomeBins, BinSeries
from .intervals import IntervalSet, ExclusionMask, ForcedIntervals, merge_intervals
from .params import (
    SegmentationMethod,
    UndoMethod,
    WaveletParams,
    CbsParams,
    HmmParams,
    AlgorithmChoice,
    build_algorithm_choice,
    method_of,
    DEFAULT_ALPHA,
    DEFAULT_MAD_FACTOR,
    DEFAULT_MAX_INTER_BIN_DIST,
)
from .results import Segment, GenomeSegmentationResult

__all__ = [
    # Genome
    'Bin',
    'Interval',
    'ChromosomeBins',
    'BinSeries',

    # Interval sets
    'IntervalSet',
    'ExclusionMask',
    'ForcedIntervals',
    'merge_intervals',

    # Parameters
    'SegmentationMethod',
    'UndoMethod',
    'WaveletParams',
    'CbsParams',
    'HmmParams',
    'AlgorithmChoice',
    'build_algorithm_choice',
    'method_of',
    'DEFAULT_ALPHA',
    'DEFAULT_MAD_FACTOR',
    'DEFAULT_MAX_INTER_BIN_DIST',

    # Results
    'Segment',
    'GenomeSegmentationResult',
]
