"""
Multiscale Haar-Wavelet Segmentation

Changepoints are detected as peaks of stationary Haar coefficients at several
scales, thresholded against each scale's robust spread, unified finest-first
and finally confirmed against the chromosome's noise level.
"""

from typing import Any, Dict, List, Optional

import numpy as np
from scipy.stats import median_abs_deviation

from ..logger import get_logger
from ..models.genome import ChromosomeBins
from ..models.params import SegmentationMethod, WaveletParams
from .base import BaseSegmenter, robust_noise_sd

logger = get_logger(__name__)

# Coefficients at or below this fraction of the signal scale count as zero
_ZERO_TOLERANCE = 1e-9

# Lower bound of the confirmation noise level, as a fraction of the median |signal|
_NOISE_FLOOR_FRACTION = 0.05


def haar_coefficients(values: np.ndarray, half_window: int) -> np.ndarray:
    """
    Stationary Haar coefficients at every inner boundary.

    The coefficient at boundary ``k`` (between bins ``k-1`` and ``k``) is
    ``(mean(x[k:k+h]) - mean(x[k-h:k])) * sqrt(h/2)``; windows crossing a
    chromosome edge are mirrored.

    Args:
        values: Signal of one chromosome
        half_window: Half-window ``h`` in bins

    Returns:
        Array of length ``len(values) - 1``; entry ``k-1`` is boundary ``k``

    Example:
        >>> haar_coefficients(np.array([0.0, 0.0, 2.0, 2.0]), 1)
        array([0.        , 1.41421356, 0.        ])
    """
    n = len(values)
    h = int(half_window)
    padded = np.pad(values, h, mode='symmetric')
    cumulative = np.concatenate([[0.0], np.cumsum(padded)])

    k = np.arange(1, n)
    left = cumulative[k + h] - cumulative[k]
    right = cumulative[k + 2 * h] - cumulative[k + h]
    return (right - left) / h * np.sqrt(h / 2.0)


def find_peaks(coefficients: np.ndarray, threshold: float, tolerance: float) -> np.ndarray:
    """
    Boundaries whose coefficient is a signed local extremum above threshold.

    Positive coefficients must be local maxima and negative ones local minima,
    so the two edges of a one-bin spike are both found. On a plateau the first
    position wins.

    Returns:
        Boundary positions ``k`` (1-based, see ``haar_coefficients``)
    """
    if len(coefficients) == 0:
        return np.array([], dtype=np.int64)

    left = np.concatenate([[0.0], coefficients[:-1]])
    right = np.concatenate([coefficients[1:], [0.0]])
    positive = (coefficients > 0) & (coefficients > left) & (coefficients >= right)
    negative = (coefficients < 0) & (coefficients < left) & (coefficients <= right)

    magnitude = np.abs(coefficients)
    strong = (magnitude > threshold) & (magnitude > tolerance)
    return np.flatnonzero((positive | negative) & strong) + 1


def breakpoint_scores(values: np.ndarray, breakpoints: List[int], sigma: float, tolerance: float) -> np.ndarray:
    """
    Standardized mean shift across each breakpoint.

    Returns:
        Array of scores, one per breakpoint
    """
    bounds = np.concatenate([[0], breakpoints, [len(values)]]).astype(np.int64)
    cumulative = np.concatenate([[0.0], np.cumsum(values)])
    sizes = np.diff(bounds)
    means = (cumulative[bounds[1:]] - cumulative[bounds[:-1]]) / sizes

    shift = np.abs(np.diff(means))
    if sigma <= 0:
        return np.where(shift > tolerance, np.inf, 0.0)
    return shift / (sigma * np.sqrt(1.0 / sizes[:-1] + 1.0 / sizes[1:]))


def confirmation_noise_sd(values: np.ndarray) -> float:
    """
    Noise level used to score breakpoints.

    The robust first-difference estimate, floored at a small fraction of the
    chromosome's median absolute signal, so counts whose first differences
    are mostly zero still get a finite noise level.
    """
    values = np.asarray(values, dtype=np.float64)
    if len(values) == 0:
        return 0.0
    floor = _NOISE_FLOOR_FRACTION * float(np.median(np.abs(values)))
    return max(robust_noise_sd(values), floor)


class WaveletSegmenter(BaseSegmenter):
    """
    Haar-wavelet segmenter.

    Example:
        >>> segmenter = WaveletSegmenter(WaveletParams())
        >>> result = segmenter.run(series)
    """

    method = SegmentationMethod.WAVELETS

    def __init__(self, params: Optional[WaveletParams] = None):
        super().__init__(params or WaveletParams())

    def levels(self, n_bins: int) -> List[int]:
        """Half-windows of the levels whose support fits in the chromosome."""
        half_windows = []
        for level in range(1, self.params.max_level + 1):
            h = 2 ** (level - 1)
            if 2 * h > n_bins:
                break
            half_windows.append(h)
        return half_windows

    def candidate_breakpoints(self, values: np.ndarray, tolerance: float) -> List[int]:
        """
        Thresholded peaks of all levels, unified finest-first.

        A coarser level's peak is accepted only when no peak from a finer level
        lies within its half-window.
        """
        accepted: List[int] = []
        for h in self.levels(len(values)):
            coefficients = haar_coefficients(values, h)
            mad = median_abs_deviation(coefficients, scale='normal')
            threshold = self.params.threshold_factor * mad
            peaks = find_peaks(coefficients, threshold, tolerance)

            finer = np.array(accepted, dtype=np.int64)
            new = []
            for k in peaks:
                if len(finer) == 0 or np.min(np.abs(finer - k)) > h:
                    new.append(int(k))

            if self.verbosity >= 3:
                logger.debug(
                    f"    h={h}: threshold={threshold:.4g}, peaks={len(peaks)}, new={len(new)}"
                )
            accepted.extend(new)

        return sorted(accepted)

    def confirm_breakpoints(
        self,
        values: np.ndarray,
        breakpoints: List[int],
        tolerance: float
    ) -> List[int]:
        """
        Drop breakpoints whose mean shift is too weak for the noise level.

        The weakest failing breakpoint is removed first and scores are
        recomputed, so neighbouring segments are re-evaluated after each merge.
        """
        breakpoints = list(breakpoints)
        sigma = confirmation_noise_sd(values)
        required = self.params.required_score
        min_bins = self.params.min_segment_bins

        while breakpoints:
            scores = breakpoint_scores(values, breakpoints, sigma, tolerance)
            bounds = np.concatenate([[0], breakpoints, [len(values)]])
            sizes = np.diff(bounds)
            short = (sizes[:-1] < min_bins) | (sizes[1:] < min_bins)
            needed = np.where(short, 2.0 * required, required)

            with np.errstate(divide='ignore', invalid='ignore'):
                ratios = np.where(needed > 0, scores / needed, np.inf)

            weakest = int(np.argmin(ratios))
            if ratios[weakest] >= 1.0:
                break
            del breakpoints[weakest]

        return breakpoints

    def find_breakpoints(
        self,
        bins: ChromosomeBins,
        context: Optional[Dict[str, Any]] = None
    ) -> List[int]:
        values = bins.signal
        if len(values) < 2:
            return []

        tolerance = _ZERO_TOLERANCE * max(1.0, float(np.max(np.abs(values))))
        candidates = self.candidate_breakpoints(values, tolerance)
        confirmed = self.confirm_breakpoints(values, candidates, tolerance)

        if self.verbosity >= 3:
            logger.debug(
                f"  {bins.chromosome}: {len(candidates)} candidates, {len(confirmed)} confirmed"
            )
        return confirmed
