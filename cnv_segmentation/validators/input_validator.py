"""
Input Validation for Bin Series and Intervals

Provides the error taxonomy of the segmentation engine and the checks run
before any computation starts:
- Bin coordinate and ordering checks
- Interval sanity checks
- Multi-sample bin alignment (joint HMM decoding)
- Sample-count checks per algorithm

All errors include actionable guidance for fixing issues.
"""

import numpy as np
from typing import Optional, Sequence, TYPE_CHECKING
from ..logger import get_logger

if TYPE_CHECKING:
    from ..models.genome import BinSeries

logger = get_logger(__name__)


class SegmentationError(Exception):
    """
    Base exception for segmentation errors with actionable messages.

    Attributes:
        message: Human-readable error description
        field: Field or parameter that failed validation
        expected: Expected value or condition
        actual: Actual value that caused the error
        fix: Suggested fix for the issue
    """

    label = "SEGMENTATION ERROR"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
        fix: Optional[str] = None
    ):
        self.message = message
        self.field = field
        self.expected = expected
        self.actual = actual
        self.fix = fix

        parts = [f"[{self.label}] {message}"]
        if field:
            parts.append(f"  Field: {field}")
        if expected:
            parts.append(f"  Expected: {expected}")
        if actual:
            parts.append(f"  Actual: {actual}")
        if fix:
            parts.append(f"  Fix: {fix}")

        super().__init__("\n".join(parts))


class ConfigurationError(SegmentationError):
    """Invalid parameter or parameter combination, detected before computation."""

    label = "CONFIGURATION ERROR"


class DataError(SegmentationError):
    """Malformed or inconsistent input data."""

    label = "DATA ERROR"


def validate_bin_coordinates(
    chromosome: str,
    starts: np.ndarray,
    ends: np.ndarray,
    signal: np.ndarray,
    allow_nan: bool = True
) -> None:
    """
    Validate the column arrays of one chromosome's bins.

    Args:
        chromosome: Chromosome name (for error messages)
        starts: 0-based bin starts
        ends: Bin ends (exclusive)
        signal: Per-bin signal values
        allow_nan: Whether NaN signal values are accepted

    Raises:
        DataError: If lengths differ, a bin is empty, starts are not strictly
            increasing, bins overlap, or the signal is infinite

    Example:
        >>> validate_bin_coordinates('chr1', np.array([0, 1000]),
        ...                          np.array([1000, 2000]), np.array([1.0, 2.0]))
    """
    if not (len(starts) == len(ends) == len(signal)):
        raise DataError(
            f"Bin columns for {chromosome} have different lengths",
            field=chromosome,
            expected="equal lengths for start, end and signal",
            actual=f"{len(starts)}, {len(ends)}, {len(signal)}"
        )

    if len(starts) == 0:
        return

    bad = np.flatnonzero(starts >= ends)
    if len(bad):
        i = int(bad[0])
        raise DataError(
            f"Bin {i} on {chromosome} has start >= end",
            field=chromosome,
            expected="start < end",
            actual=f"start={int(starts[i])}, end={int(ends[i])}"
        )

    if np.any(starts < 0):
        raise DataError(
            f"Negative bin start on {chromosome}",
            field=chromosome,
            expected="0-based, non-negative starts"
        )

    unsorted = np.flatnonzero(np.diff(starts) <= 0)
    if len(unsorted):
        i = int(unsorted[0])
        raise DataError(
            f"Bins on {chromosome} are not sorted by start",
            field=chromosome,
            expected="strictly increasing start positions",
            actual=f"bin {i} starts at {int(starts[i])}, bin {i + 1} at {int(starts[i + 1])}",
            fix="Sort bins by (chromosome, start) before building the series"
        )

    overlapping = np.flatnonzero(ends[:-1] > starts[1:])
    if len(overlapping):
        i = int(overlapping[0])
        raise DataError(
            f"Bins {i} and {i + 1} on {chromosome} overlap",
            field=chromosome,
            expected="non-overlapping bins",
            actual=f"end={int(ends[i])} > next start={int(starts[i + 1])}"
        )

    if np.any(np.isinf(signal)):
        raise DataError(
            f"Signal on {chromosome} contains infinite values",
            field=chromosome,
            fix="Replace or drop infinite values before segmentation"
        )

    if not allow_nan and np.any(np.isnan(signal)):
        raise DataError(
            f"Signal on {chromosome} contains NaN values",
            field=chromosome,
            fix="Drop bins without signal before segmentation"
        )


def validate_interval(chromosome: str, start: int, end: int) -> None:
    """
    Validate a single genomic interval.

    Raises:
        DataError: If the interval is empty, reversed or negative
    """
    if start < 0 or start >= end:
        raise DataError(
            f"Invalid interval {chromosome}:{start}-{end}",
            field="interval",
            expected="0 <= start < end",
            actual=f"start={start}, end={end}"
        )


def validate_sample_count(
    method: str,
    n_series: int,
    sample_count: Optional[int] = None
) -> None:
    """
    Check the number of supplied series against the algorithm's requirements.

    Single-sample methods accept exactly one series; HMM needs at least two and
    its declared ``sample_count`` must match.

    Raises:
        ConfigurationError: On any mismatch
    """
    if method != 'HMM':
        if n_series != 1:
            raise ConfigurationError(
                f"Method {method} segments exactly one sample per call",
                field="series",
                expected="1 BinSeries",
                actual=f"{n_series} BinSeries",
                fix="Use run_samples() for independent samples, or method HMM for joint calling"
            )
        return

    if n_series < 2:
        raise ConfigurationError(
            "Method HMM only works for multi-sample input",
            field="series",
            expected="at least 2 BinSeries",
            actual=f"{n_series} BinSeries"
        )

    if sample_count is not None and sample_count != n_series:
        raise ConfigurationError(
            "HMM sample_count does not match the number of supplied samples",
            field="sample_count",
            expected=str(n_series),
            actual=str(sample_count)
        )


def validate_sample_alignment(series_list: Sequence['BinSeries']) -> None:
    """
    Ensure all series share the same chromosomes and bin coordinates.

    Joint decoding needs one emission vector per bin across every sample, so
    a bin present in one sample and absent in another is a configuration error.

    Raises:
        ConfigurationError: If chromosomes or coordinates differ
    """
    reference = series_list[0]
    ref_chroms = reference.chromosomes

    for other in series_list[1:]:
        if other.chromosomes != ref_chroms:
            raise ConfigurationError(
                f"Sample {other.sample_id} has different chromosomes than {reference.sample_id}",
                field="series",
                expected=", ".join(ref_chroms),
                actual=", ".join(other.chromosomes)
            )

        for chrom in ref_chroms:
            ref_bins = reference[chrom]
            bins = other[chrom]
            if (
                len(ref_bins) != len(bins)
                or not np.array_equal(ref_bins.starts, bins.starts)
                or not np.array_equal(ref_bins.ends, bins.ends)
            ):
                raise ConfigurationError(
                    f"Bins on {chrom} differ between {reference.sample_id} and {other.sample_id}",
                    field="series",
                    expected=f"{len(ref_bins)} identical bins",
                    actual=f"{len(bins)} bins",
                    fix="Bin all samples against the same reference bins"
                )
