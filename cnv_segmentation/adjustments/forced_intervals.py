"""
Forced Interval Functions

Known common CNV regions are emitted as their own segments: the bins of a
forced interval form one segment regardless of what the algorithm found, and
the segments it overlapped are trimmed to the bins outside it.
"""

import numpy as np
from typing import List, Optional, Tuple

from ..logger import get_logger
from ..models.genome import ChromosomeBins
from ..models.intervals import ExclusionMask, ForcedIntervals
from .exclusion import identify_exclusion_cuts
from .splitting import identify_gap_cuts
from .utils import split_piece

logger = get_logger(__name__)


def forced_positions(
    bins: ChromosomeBins,
    forced: ForcedIntervals
) -> List[np.ndarray]:
    """
    Bin positions covered by each forced interval on a chromosome.

    Overlapping forced intervals have already been merged into their union.
    Intervals touching no bin are skipped.

    Returns:
        One increasing position array per forced interval, in genome order
    """
    groups = []
    for interval in forced.for_chromosome(bins.chromosome):
        overlap = (bins.starts < interval.end) & (bins.ends > interval.start)
        positions = np.flatnonzero(overlap)
        if len(positions):
            groups.append(positions)
    return groups


def apply_forced_intervals(
    pieces: List[Tuple[np.ndarray, bool]],
    bins: ChromosomeBins,
    forced: Optional[ForcedIntervals],
    exclusion_mask: Optional[ExclusionMask] = None,
    max_inter_bin_dist: int = -1
) -> Tuple[List[Tuple[np.ndarray, bool]], dict]:
    """
    Replace the segmentation inside every forced interval by a forced segment.

    Cuts made by the max-gap and exclusion steps survive: a forced interval
    spanning such a cut yields one forced segment per side.

    Args:
        pieces: (positions, is_forced) pairs after gap and exclusion splitting
        bins: Full chromosome bins
        forced: Forced intervals (None or empty is a no-op)
        exclusion_mask: Exclusion mask used for the hard cuts
        max_inter_bin_dist: Gap threshold used for the hard cuts; negative
            disables

    Returns:
        Tuple of (pieces sorted by first position, log_entry)

    Example:
        >>> forced = ForcedIntervals([Interval('chr1', 2000, 5000)])
        >>> pieces, log = apply_forced_intervals([(np.arange(10), False)], bins, forced)
        >>> [(p.tolist(), f) for p, f in pieces]
        [([0, 1], False), ([2, 3, 4], True), ([5, 6, 7, 8, 9], False)]
    """
    log_entry = {
        'step': 'forced_intervals',
        'chromosome': bins.chromosome,
        'n_forced_segments': 0,
        'n_trimmed_segments': 0,
    }

    if not forced:
        return list(pieces), log_entry

    result = list(pieces)
    for group in forced_positions(bins, forced):
        lo, hi = group[0], group[-1]

        trimmed = []
        covered = []
        for piece, is_forced in result:
            if piece[-1] < lo or piece[0] > hi:
                trimmed.append((piece, is_forced))
                continue
            inside = (piece >= lo) & (piece <= hi)
            covered.append(piece[inside])
            left = piece[piece < lo]
            right = piece[piece > hi]
            if len(left):
                trimmed.append((left, is_forced))
            if len(right):
                trimmed.append((right, is_forced))
            log_entry['n_trimmed_segments'] += 1

        if not covered:
            continue

        # Only bins that survived earlier steps can join the forced segment
        members = np.unique(np.concatenate(covered))
        cuts = identify_exclusion_cuts(bins, members, exclusion_mask)
        if max_inter_bin_dist >= 0:
            cuts |= identify_gap_cuts(bins, members, max_inter_bin_dist)
        for run in split_piece(members, cuts):
            trimmed.append((run, True))
            log_entry['n_forced_segments'] += 1

        result = trimmed

    result.sort(key=lambda item: int(item[0][0]))

    if log_entry['n_forced_segments']:
        logger.debug(
            f"{bins.chromosome}: emitted {log_entry['n_forced_segments']} forced segments"
        )

    return result, log_entry
