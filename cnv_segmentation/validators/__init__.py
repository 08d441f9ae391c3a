"""
Input Validation Module for CNV Segmentation

This module provides the error taxonomy and the validation run before any
segmentation starts:
- Bin coordinates and ordering
- Interval sanity
- Per-algorithm sample counts
- Multi-sample bin alignment
"""

from .input_validator import (
    SegmentationError,
    ConfigurationError,
    DataError,
    validate_bin_coordinates,
    validate_interval,
    validate_sample_count,
    validate_sample_alignment,
)

__all__ = [
    'SegmentationError',
    'ConfigurationError',
    'DataError',
    'validate_bin_coordinates',
    'validate_interval',
    'validate_sample_count',
    'validate_sample_alignment',
]
