"""
Interval Sets for Exclusion and Forced Inclusion

Both sets normalize their intervals per chromosome into a sorted union, which
is what every overlap query needs.
"""

from typing import Dict, Iterable, List, Tuple

import numpy as np

from .genome import Interval


def merge_intervals(intervals: Iterable[Interval]) -> Dict[str, List[Interval]]:
    """
    Merge overlapping intervals per chromosome; abutting intervals stay apart.

    Returns:
        Dictionary mapping chromosome to its sorted, disjoint intervals

    Example:
        >>> merged = merge_intervals([Interval('chr1', 0, 10), Interval('chr1', 5, 20)])
        >>> merged['chr1']
        [Interval(chromosome='chr1', start=0, end=20)]
    """
    by_chrom: Dict[str, List[Tuple[int, int]]] = {}
    for iv in intervals:
        by_chrom.setdefault(iv.chromosome, []).append((iv.start, iv.end))

    merged: Dict[str, List[Interval]] = {}
    for chrom, spans in by_chrom.items():
        spans.sort()
        out: List[List[int]] = []
        for start, end in spans:
            if out and start < out[-1][1]:
                out[-1][1] = max(out[-1][1], end)
            else:
                out.append([start, end])
        merged[chrom] = [Interval(chrom, s, e) for s, e in out]
    return merged


class IntervalSet:
    """Read-only set of genomic intervals with per-chromosome overlap queries."""

    def __init__(self, intervals: Iterable[Interval] = ()):
        self._intervals: Tuple[Interval, ...] = tuple(intervals)
        self._merged = merge_intervals(self._intervals)
        self._arrays = {
            chrom: (
                np.array([iv.start for iv in ivs], dtype=np.int64),
                np.array([iv.end for iv in ivs], dtype=np.int64),
            )
            for chrom, ivs in self._merged.items()
        }

    @classmethod
    def from_tuples(cls, spans: Iterable[Tuple[str, int, int]]):
        return cls(Interval(chrom, int(start), int(end)) for chrom, start, end in spans)

    @property
    def intervals(self) -> Tuple[Interval, ...]:
        """Intervals as supplied."""
        return self._intervals

    def __len__(self) -> int:
        return len(self._intervals)

    def __bool__(self) -> bool:
        return bool(self._intervals)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(n_intervals={len(self)})"

    def for_chromosome(self, chromosome: str) -> List[Interval]:
        """Sorted, disjoint intervals on one chromosome."""
        return list(self._merged.get(chromosome, []))

    def overlap_mask(self, chromosome: str, starts: np.ndarray, ends: np.ndarray) -> np.ndarray:
        """
        Flag bins overlapping any interval on the chromosome.

        Args:
            chromosome: Chromosome of the bins
            starts: Bin starts
            ends: Bin ends

        Returns:
            Boolean array, True where the bin overlaps an interval
        """
        starts = np.asarray(starts, dtype=np.int64)
        ends = np.asarray(ends, dtype=np.int64)
        if chromosome not in self._arrays or len(starts) == 0:
            return np.zeros(len(starts), dtype=bool)

        iv_starts, iv_ends = self._arrays[chromosome]
        # First interval ending after each bin start
        j = np.searchsorted(iv_ends, starts, side='right')
        valid = j < len(iv_starts)
        mask = np.zeros(len(starts), dtype=bool)
        mask[valid] = iv_starts[j[valid]] < ends[valid]
        return mask


class ExclusionMask(IntervalSet):
    """
    Regions no segment may span.

    Bins overlapping an excluded region are dropped before segmentation and
    segments are cut at the region's edges.
    """


class ForcedIntervals(IntervalSet):
    """
    Known recurrent CNV regions that must appear verbatim as segments.

    Overlapping intervals are merged into their union, since a
    single region can only be one segment.
    """
