"""
Utility Functions for Segment Adjustments

Pure helpers shared by the segmenters and the post-processing steps. Segments
are handled internally as "pieces": increasing arrays of bin positions in the
chromosome they belong to.
"""

import numpy as np
from typing import List, Optional, Sequence, Tuple

from ..models.genome import ChromosomeBins
from ..models.results import Segment


def summarize_signal(values: np.ndarray) -> Tuple[float, float]:
    """
    Summary statistics of a segment's signal.

    Returns:
        Tuple of (median, mean)

    Example:
        >>> summarize_signal(np.array([1.0, 2.0, 9.0]))
        (2.0, 4.0)
    """
    return float(np.median(values)), float(np.mean(values))


def pieces_from_breakpoints(n_bins: int, breakpoints: Sequence[int]) -> List[np.ndarray]:
    """
    Cut positions 0..n_bins-1 at the given breakpoints.

    A breakpoint ``k`` starts a new piece at position ``k``.

    Example:
        >>> [p.tolist() for p in pieces_from_breakpoints(5, [2])]
        [[0, 1], [2, 3, 4]]
    """
    if n_bins == 0:
        return []
    cuts = sorted({int(k) for k in breakpoints if 0 < k < n_bins})
    return np.split(np.arange(n_bins, dtype=np.int64), cuts)


def breakpoints_from_labels(labels: np.ndarray) -> List[int]:
    """
    Positions where a label sequence changes value.

    Example:
        >>> breakpoints_from_labels(np.array([0, 0, 2, 2, 1]))
        [2, 4]
    """
    labels = np.asarray(labels)
    return (np.flatnonzero(labels[1:] != labels[:-1]) + 1).tolist()


def split_piece(piece: np.ndarray, cut_after: np.ndarray) -> List[np.ndarray]:
    """
    Split a piece after every element flagged in ``cut_after``.

    Args:
        piece: Positions of one piece
        cut_after: Boolean array of length ``len(piece) - 1``; True between
            element ``i`` and ``i + 1`` means the piece is cut there

    Returns:
        Non-empty sub-pieces in order
    """
    if len(piece) <= 1:
        return [piece] if len(piece) else []
    cut_idx = np.flatnonzero(cut_after) + 1
    return [p for p in np.split(piece, cut_idx) if len(p)]


def dominant_copy_number(copy_numbers: np.ndarray) -> Optional[int]:
    """
    Most frequent copy number among bins; smallest wins ties, -1 means unknown.
    """
    known = copy_numbers[copy_numbers >= 0]
    if len(known) == 0:
        return None
    return int(np.argmax(np.bincount(known)))


def build_segment(
    bins: ChromosomeBins,
    positions: np.ndarray,
    copy_number: Optional[int] = None,
    forced: bool = False
) -> Segment:
    """
    Build a Segment from positions in a chromosome view.

    The summary is recomputed over exactly the given bins.

    Args:
        bins: Chromosome bins (full or filtered view)
        positions: Increasing positions into ``bins``
        copy_number: Optional decoded state
        forced: Whether the segment comes from a forced interval

    Returns:
        Segment spanning the first bin's start to the last bin's end
    """
    positions = np.asarray(positions, dtype=np.int64)
    median, mean = summarize_signal(bins.signal[positions])
    return Segment(
        chromosome=bins.chromosome,
        start=int(bins.starts[positions[0]]),
        end=int(bins.ends[positions[-1]]),
        bin_indices=tuple(int(i) for i in bins.indices[positions]),
        median=median,
        mean=mean,
        copy_number=copy_number,
        forced=forced
    )


def segments_from_breakpoints(
    bins: ChromosomeBins,
    breakpoints: Sequence[int],
    states: Optional[np.ndarray] = None
) -> List[Segment]:
    """
    Turn breakpoints over a chromosome view into Segments.

    Args:
        bins: Chromosome view the breakpoints refer to
        breakpoints: Positions starting a new segment
        states: Optional per-position state (copied onto each segment)

    Returns:
        Segments in position order
    """
    segments = []
    for piece in pieces_from_breakpoints(len(bins), breakpoints):
        copy_number = int(states[piece[0]]) if states is not None else None
        segments.append(build_segment(bins, piece, copy_number=copy_number))
    return segments
