"""
Circular Binary Segmentation

Recursive search for the arc (contiguous sub-window) whose mean differs most
from the rest of its window, tested by permutation. The recursion is run as an
explicit work list. An optional undo pass removes weak splits afterwards.
"""

from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from ..logger import get_logger
from ..models.genome import BinSeries, ChromosomeBins
from ..models.params import CbsParams, SegmentationMethod, UndoMethod
from .base import BaseSegmenter, noise_sd_from_differences, robust_noise_sd

logger = get_logger(__name__)

# Permutations are drawn in batches; the significance decision is taken
# after each batch so hopeless windows stop early
_PERMUTATION_BATCH = 100


def circular_statistics(matrix: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Maximal circular t-like statistic of each row.

    For a row of ``n`` values, the centred cumulative sums ``S[0..n]`` are
    formed; the arc between ``argmin S`` and ``argmax S`` has length ``m`` and
    the statistic ``(S_max - S_min)^2 * n / (m * (n - m))``.

    Args:
        matrix: 2-D array, one window per row

    Returns:
        Tuple of (statistics, arc_starts, arc_ends), arcs as half-open
        position ranges within the row
    """
    n = matrix.shape[1]
    centred = matrix - matrix.mean(axis=1, keepdims=True)
    cumulative = np.concatenate(
        [np.zeros((matrix.shape[0], 1)), np.cumsum(centred, axis=1)], axis=1
    )
    i_min = np.argmin(cumulative, axis=1)
    i_max = np.argmax(cumulative, axis=1)
    rows = np.arange(matrix.shape[0])
    spread = cumulative[rows, i_max] - cumulative[rows, i_min]

    lo = np.minimum(i_min, i_max)
    hi = np.maximum(i_min, i_max)
    m = hi - lo
    valid = (m > 0) & (m < n)
    stats = np.zeros(matrix.shape[0])
    stats[valid] = spread[valid] ** 2 * n / (m[valid] * (n - m[valid]))
    return stats, lo, hi


def two_sample_statistics(matrix: np.ndarray, split: int) -> np.ndarray:
    """
    ``i(n-i)/n * (mean_left - mean_right)^2`` of each row split at ``split``.
    """
    n = matrix.shape[1]
    left = matrix[:, :split].mean(axis=1)
    right = matrix[:, split:].mean(axis=1)
    return split * (n - split) / n * (left - right) ** 2


class CbsSegmenter(BaseSegmenter):
    """
    Circular binary segmentation with a seeded permutation test.

    Every chromosome gets its own generator seeded with ``random_state``, so
    results do not depend on the order in which chromosomes are processed.

    Example:
        >>> segmenter = CbsSegmenter(CbsParams(alpha=0.01, undo_method='Prune'))
        >>> result = segmenter.run(series)
    """

    method = SegmentationMethod.CBS

    def __init__(self, params: Optional[CbsParams] = None):
        super().__init__(params or CbsParams())

    def genome_context(self, series: BinSeries) -> Dict[str, Any]:
        """Genome-wide noise level for SDUndo."""
        if self.params.undo_method != UndoMethod.SD_UNDO:
            return {}
        diffs = [np.diff(bins.signal) for bins in series if len(bins) > 1]
        if not diffs:
            return {'sigma_genome': 0.0}
        sigma = noise_sd_from_differences(np.concatenate(diffs))
        return {'sigma_genome': sigma}

    def _exceedances(
        self,
        values: np.ndarray,
        observed: float,
        statistic,
        alpha: float,
        rng: np.random.Generator
    ) -> bool:
        """
        True when too many permutations reach the observed statistic.

        Stops as soon as the count exceeds ``alpha * n_permutations``.
        """
        n_permutations = self.params.n_permutations
        limit = alpha * n_permutations
        # Tolerate rounding in the cumulative sums
        target = observed * (1.0 - 1e-12)
        count = 0
        drawn = 0
        while drawn < n_permutations:
            batch = min(_PERMUTATION_BATCH, n_permutations - drawn)
            shuffled = rng.permuted(np.tile(values, (batch, 1)), axis=1)
            count += int(np.sum(statistic(shuffled) >= target))
            drawn += batch
            if count > limit:
                return True
        return False

    def split_window(
        self,
        values: np.ndarray,
        rng: np.random.Generator
    ) -> Optional[Tuple[int, int]]:
        """
        Significant arc of one window, or None.

        Returns:
            Arc as (start, end) positions within the window, snapped to the
            window edges when closer than ``min_width``
        """
        n = len(values)
        min_width = self.params.min_width
        if n < 2 * min_width or np.ptp(values) == 0:
            return None

        stats, lo, hi = circular_statistics(values[np.newaxis, :])
        observed = float(stats[0])
        lo, hi = int(lo[0]), int(hi[0])
        if observed <= 0:
            return None

        if lo < min_width:
            lo = 0
        if n - hi < min_width:
            hi = n
        if hi - lo >= n or hi - lo < min_width:
            return None

        if self._exceedances(values, observed, lambda m: circular_statistics(m)[0],
                             self.params.alpha, rng):
            return None
        return lo, hi

    def segment_block(self, values: np.ndarray, rng: np.random.Generator) -> List[int]:
        """Breakpoints of one gap-free block by iterative CBS."""
        breakpoints = set()
        work = [(0, len(values))]
        while work:
            start, end = work.pop()
            arc = self.split_window(values[start:end], rng)
            if arc is None:
                continue
            lo, hi = start + arc[0], start + arc[1]
            for cut in (lo, hi):
                if start < cut < end:
                    breakpoints.add(cut)
            # Right-most child first so windows pop left to right
            for child in ((hi, end), (lo, hi), (start, lo)):
                if child[1] - child[0] > 0:
                    work.append(child)
        return sorted(breakpoints)

    def blocks(self, bins: ChromosomeBins) -> List[Tuple[int, int]]:
        """Gap-free blocks when a max inter-bin distance is configured."""
        max_dist = self.params.max_inter_bin_dist_in_segment
        if max_dist is None or max_dist < 0 or len(bins) < 2:
            return [(0, len(bins))]
        cuts = (np.flatnonzero(bins.gaps() > max_dist) + 1).tolist()
        bounds = [0] + cuts + [len(bins)]
        return list(zip(bounds[:-1], bounds[1:]))

    def prune(self, values: np.ndarray, breakpoints: List[int], rng: np.random.Generator) -> List[int]:
        """
        Re-test breakpoints left to right; failing ones are removed.

        Each breakpoint is tested inside the window from the previous kept
        breakpoint to the next breakpoint.
        """
        bounds = [0] + list(breakpoints) + [len(values)]
        kept = [0]
        for idx in range(1, len(bounds) - 1):
            start, cut, end = kept[-1], bounds[idx], bounds[idx + 1]
            window = values[start:end]
            split = cut - start
            if np.ptp(window) == 0:
                continue
            observed = float(two_sample_statistics(window[np.newaxis, :], split)[0])
            rejected = observed <= 0 or self._exceedances(
                window, observed, lambda m: two_sample_statistics(m, split),
                self.params.prune_alpha, rng
            )
            if not rejected:
                kept.append(cut)
        return kept[1:]

    def sd_undo(self, values: np.ndarray, breakpoints: List[int], sigma_genome: float) -> List[int]:
        """Merge neighbouring segments whose means differ by less than undo_sd sigmas."""
        breakpoints = list(breakpoints)
        threshold = self.params.undo_sd * sigma_genome
        cumulative = np.concatenate([[0.0], np.cumsum(values)])
        while breakpoints:
            bounds = np.array([0] + breakpoints + [len(values)])
            means = (cumulative[bounds[1:]] - cumulative[bounds[:-1]]) / np.diff(bounds)
            differences = np.abs(np.diff(means))
            closest = int(np.argmin(differences))
            if differences[closest] >= threshold:
                break
            del breakpoints[closest]
        return breakpoints

    def find_breakpoints(
        self,
        bins: ChromosomeBins,
        context: Optional[Dict[str, Any]] = None
    ) -> List[int]:
        context = context or {}
        values = bins.signal
        rng = np.random.default_rng(self.params.random_state)

        breakpoints: List[int] = []
        for start, end in self.blocks(bins):
            if start > 0:
                breakpoints.append(start)
            block = values[start:end]
            found = self.segment_block(block, rng)

            undo = self.params.undo_method
            if undo == UndoMethod.PRUNE:
                found = self.prune(block, found, rng)
            elif undo == UndoMethod.SD_UNDO:
                found = self.sd_undo(block, found, context.get('sigma_genome', robust_noise_sd(values)))

            breakpoints.extend(start + cut for cut in found)

        if self.verbosity >= 3:
            logger.debug(f"  {bins.chromosome}: {len(breakpoints)} CBS breakpoints")
        return sorted(breakpoints)
