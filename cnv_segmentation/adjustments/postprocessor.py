"""
Segment Post-Processor

Applies the algorithm-independent adjustments to raw segments, in order:

1. Max-gap splitting (when the threshold is non-negative)
2. Exclusion: drop excluded bins, cut around excluded regions
3. Forced intervals: emit each as its own segment

Summary statistics of every resulting segment are recomputed over exactly the
bins it contains.
"""

import numpy as np
from typing import Dict, List, Optional, Sequence, Tuple

from ..logger import get_logger
from ..models.genome import BinSeries, ChromosomeBins
from ..models.intervals import ExclusionMask, ForcedIntervals
from ..models.params import DEFAULT_MAX_INTER_BIN_DIST
from ..models.results import GenomeSegmentationResult, Segment
from .exclusion import apply_exclusion_mask
from .forced_intervals import apply_forced_intervals
from .splitting import split_at_gaps
from .utils import build_segment, dominant_copy_number

logger = get_logger(__name__)


class SegmentPostProcessor:
    """
    Stateless post-processing of raw segments against the full chromosome.

    Example:
        >>> processor = SegmentPostProcessor()
        >>> final = processor.apply(raw_segments, bins, max_inter_bin_dist=500)
    """

    def apply(
        self,
        raw_segments: Sequence[Segment],
        bins: ChromosomeBins,
        exclusion_mask: Optional[ExclusionMask] = None,
        forced_intervals: Optional[ForcedIntervals] = None,
        max_inter_bin_dist: int = DEFAULT_MAX_INTER_BIN_DIST
    ) -> Tuple[Segment, ...]:
        """
        Post-process the raw segments of one chromosome.

        Args:
            raw_segments: Segments produced by an algorithm (possibly on a
                filtered view of ``bins``)
            bins: Full, unfiltered chromosome bins
            exclusion_mask: Regions no segment may span
            forced_intervals: Regions emitted as their own segments
            max_inter_bin_dist: Gap threshold in bases; negative disables

        Returns:
            Final segments ordered by start
        """
        segments, _ = self.apply_with_log(
            raw_segments, bins, exclusion_mask, forced_intervals, max_inter_bin_dist
        )
        return segments

    def apply_with_log(
        self,
        raw_segments: Sequence[Segment],
        bins: ChromosomeBins,
        exclusion_mask: Optional[ExclusionMask] = None,
        forced_intervals: Optional[ForcedIntervals] = None,
        max_inter_bin_dist: int = DEFAULT_MAX_INTER_BIN_DIST
    ) -> Tuple[Tuple[Segment, ...], List[dict]]:
        """Same as ``apply`` but also returns the per-step log entries."""
        copy_numbers = np.full(len(bins), -1, dtype=np.int64)
        pieces = []
        for seg in raw_segments:
            positions = bins.positions_of(seg.bin_indices)
            pieces.append(positions)
            if seg.copy_number is not None:
                copy_numbers[positions] = seg.copy_number

        adjustment_log = []

        pieces, entry = split_at_gaps(pieces, bins, max_inter_bin_dist)
        adjustment_log.append(entry)

        pieces, entry = apply_exclusion_mask(pieces, bins, exclusion_mask)
        adjustment_log.append(entry)

        flagged, entry = apply_forced_intervals(
            [(piece, False) for piece in pieces],
            bins,
            forced_intervals,
            exclusion_mask=exclusion_mask,
            max_inter_bin_dist=max_inter_bin_dist
        )
        adjustment_log.append(entry)

        segments = tuple(
            build_segment(
                bins,
                piece,
                copy_number=dominant_copy_number(copy_numbers[piece]),
                forced=is_forced
            )
            for piece, is_forced in flagged
        )
        return segments, adjustment_log

    def apply_genome(
        self,
        raw: GenomeSegmentationResult,
        series: BinSeries,
        exclusion_mask: Optional[ExclusionMask] = None,
        forced_intervals: Optional[ForcedIntervals] = None,
        max_inter_bin_dist: int = DEFAULT_MAX_INTER_BIN_DIST
    ) -> GenomeSegmentationResult:
        """
        Post-process every chromosome of a raw result.

        Args:
            raw: Raw result of an algorithm
            series: Full, unfiltered series of the same sample

        Returns:
            New result with chromosomes in the series' order
        """
        segments_by_chromosome: Dict[str, Tuple[Segment, ...]] = {}
        for bins in series:
            segments_by_chromosome[bins.chromosome] = self.apply(
                raw.segments_by_chromosome.get(bins.chromosome, ()),
                bins,
                exclusion_mask,
                forced_intervals,
                max_inter_bin_dist
            )

        return GenomeSegmentationResult(
            sample_id=raw.sample_id,
            method=raw.method,
            segments_by_chromosome=segments_by_chromosome
        )
