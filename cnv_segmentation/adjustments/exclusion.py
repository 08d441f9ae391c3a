"""
Exclusion Mask Functions

Bins overlapping an excluded region never belong to a segment, and no
segment may span an excluded region, including one lying entirely in the gap
between two bins.
"""

import numpy as np
from typing import List, Optional, Tuple

from ..logger import get_logger
from ..models.genome import ChromosomeBins
from ..models.intervals import ExclusionMask
from .utils import split_piece

logger = get_logger(__name__)


def excluded_bin_mask(bins: ChromosomeBins, mask: Optional[ExclusionMask]) -> np.ndarray:
    """
    Flag bins overlapping any excluded region.

    Returns:
        Boolean array over ``bins``
    """
    if not mask:
        return np.zeros(len(bins), dtype=bool)
    return mask.overlap_mask(bins.chromosome, bins.starts, bins.ends)


def identify_exclusion_cuts(
    bins: ChromosomeBins,
    piece: np.ndarray,
    mask: Optional[ExclusionMask]
) -> np.ndarray:
    """
    Flag consecutive pairs of a piece that must not share a segment.

    A pair is cut when bins were dropped between them or when an excluded
    region lies in the gap separating them.

    Returns:
        Boolean array of length ``len(piece) - 1``
    """
    if len(piece) < 2:
        return np.zeros(0, dtype=bool)

    cuts = np.diff(piece) > 1
    if mask:
        gap_starts = bins.ends[piece[:-1]]
        gap_ends = bins.starts[piece[1:]]
        open_gap = gap_ends > gap_starts
        if np.any(open_gap):
            spans = mask.overlap_mask(bins.chromosome, gap_starts[open_gap], gap_ends[open_gap])
            cuts[np.flatnonzero(open_gap)[spans]] = True
    return cuts


def apply_exclusion_mask(
    pieces: List[np.ndarray],
    bins: ChromosomeBins,
    mask: Optional[ExclusionMask]
) -> Tuple[List[np.ndarray], dict]:
    """
    Drop excluded bins and split segments around excluded regions.

    Args:
        pieces: Segments as increasing position arrays
        bins: Full chromosome bins
        mask: Exclusion mask (None disables bin dropping; gaps between
            non-adjacent positions are still cut)

    Returns:
        Tuple of (pieces, log_entry)

    Example:
        >>> mask = ExclusionMask([Interval('chr1', 4000, 5000)])
        >>> pieces, log = apply_exclusion_mask([np.arange(10)], bins, mask)
        >>> [p.tolist() for p in pieces]
        [[0, 1, 2, 3], [5, 6, 7, 8, 9]]
    """
    excluded = excluded_bin_mask(bins, mask)
    log_entry = {
        'step': 'exclusion',
        'chromosome': bins.chromosome,
        'n_excluded_bins': int(np.sum(excluded)),
        'n_splits': 0,
    }

    result = []
    for piece in pieces:
        kept = piece[~excluded[piece]]
        if len(kept) == 0:
            continue
        cuts = identify_exclusion_cuts(bins, kept, mask)
        log_entry['n_splits'] += int(np.sum(cuts))
        result.extend(split_piece(kept, cuts))

    if log_entry['n_excluded_bins']:
        logger.debug(
            f"{bins.chromosome}: dropped {log_entry['n_excluded_bins']} excluded bins, "
            f"{log_entry['n_splits']} cuts"
        )

    return result, log_entry
