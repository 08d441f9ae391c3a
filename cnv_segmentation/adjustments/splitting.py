"""
Segment Splitting Functions

Functions for cutting segments wherever consecutive bins are further apart
than the allowed inter-bin distance.
"""

import numpy as np
from typing import List, Tuple

from ..logger import get_logger
from ..models.genome import ChromosomeBins
from .utils import split_piece

logger = get_logger(__name__)


def identify_gap_cuts(
    bins: ChromosomeBins,
    piece: np.ndarray,
    max_inter_bin_dist: int
) -> np.ndarray:
    """
    Flag consecutive bin pairs of a piece separated by more than the threshold.

    Args:
        bins: Chromosome bins
        piece: Increasing bin positions of one segment
        max_inter_bin_dist: Maximum allowed distance between a bin's end and
            the next bin's start

    Returns:
        Boolean array of length ``len(piece) - 1``

    Example:
        >>> bins = ChromosomeBins('chr1', [0, 1000, 50000], [1000, 2000, 51000], [1, 1, 1])
        >>> identify_gap_cuts(bins, np.array([0, 1, 2]), 500)
        array([False,  True])
    """
    if len(piece) < 2:
        return np.zeros(0, dtype=bool)
    distances = bins.starts[piece[1:]] - bins.ends[piece[:-1]]
    return distances > max_inter_bin_dist


def split_at_gaps(
    pieces: List[np.ndarray],
    bins: ChromosomeBins,
    max_inter_bin_dist: int
) -> Tuple[List[np.ndarray], dict]:
    """
    Split every piece at gaps exceeding ``max_inter_bin_dist``.

    A negative threshold disables splitting entirely, so arbitrarily large
    gaps may remain inside a segment.

    Args:
        pieces: Segments as increasing position arrays
        bins: Chromosome bins
        max_inter_bin_dist: Threshold in bases; negative disables

    Returns:
        Tuple of (pieces, log_entry)
    """
    log_entry = {
        'step': 'max_gap_split',
        'chromosome': bins.chromosome,
        'max_inter_bin_dist': int(max_inter_bin_dist),
        'n_splits': 0,
    }

    if max_inter_bin_dist < 0:
        return list(pieces), log_entry

    result = []
    for piece in pieces:
        cuts = identify_gap_cuts(bins, piece, max_inter_bin_dist)
        log_entry['n_splits'] += int(np.sum(cuts))
        result.extend(split_piece(piece, cuts))

    if log_entry['n_splits']:
        logger.debug(
            f"{bins.chromosome}: split {log_entry['n_splits']} segments at gaps "
            f"> {max_inter_bin_dist} bp"
        )

    return result, log_entry
