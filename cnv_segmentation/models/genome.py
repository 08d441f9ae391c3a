"""
Genome Bin Models

Column-oriented containers for binned signal. Every segmenter consumes
ChromosomeBins arrays rather than per-bin objects; Bin records exist for
building a series from already-parsed input.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional

import numpy as np
import pandas as pd

from ..validators.input_validator import DataError, validate_bin_coordinates, validate_interval


@dataclass(frozen=True)
class Bin:
    """One genomic bin with its aggregated signal."""

    chromosome: str
    start: int
    end: int
    signal: float

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise DataError(
                f"Bin {self.chromosome}:{self.start}-{self.end} has start >= end",
                field="bin",
                expected="start < end"
            )


@dataclass(frozen=True)
class Interval:
    """Half-open genomic interval [start, end)."""

    chromosome: str
    start: int
    end: int

    def __post_init__(self) -> None:
        validate_interval(self.chromosome, self.start, self.end)

    @property
    def length(self) -> int:
        return self.end - self.start

    def overlaps(self, chromosome: str, start: int, end: int) -> bool:
        return self.chromosome == chromosome and self.start < end and start < self.end


def _readonly(values: np.ndarray) -> np.ndarray:
    values.setflags(write=False)
    return values


class ChromosomeBins:
    """
    Ordered bins of a single chromosome.

    ``indices`` holds each bin's position in the full chromosome, so a filtered
    view (e.g. after dropping excluded bins) still reports original bin indices.

    Example:
        >>> bins = ChromosomeBins('chr1', [0, 1000], [1000, 2000], [1.0, 1.2])
        >>> len(bins)
        2
    """

    def __init__(
        self,
        chromosome: str,
        starts: Iterable[int],
        ends: Iterable[int],
        signal: Iterable[float],
        indices: Optional[Iterable[int]] = None,
        validate: bool = True
    ):
        self.chromosome = str(chromosome)
        self.starts = _readonly(np.array(starts, dtype=np.int64))
        self.ends = _readonly(np.array(ends, dtype=np.int64))
        self.signal = _readonly(np.array(signal, dtype=np.float64))

        if indices is None:
            self.indices = _readonly(np.arange(len(self.starts), dtype=np.int64))
        else:
            self.indices = _readonly(np.array(indices, dtype=np.int64))

        if validate:
            validate_bin_coordinates(
                self.chromosome, self.starts, self.ends, self.signal, allow_nan=False
            )
            if len(self.indices) != len(self.starts):
                raise DataError(
                    f"Index column for {self.chromosome} has the wrong length",
                    field=self.chromosome,
                    expected=str(len(self.starts)),
                    actual=str(len(self.indices))
                )

    def __len__(self) -> int:
        return len(self.starts)

    def __repr__(self) -> str:
        return f"ChromosomeBins({self.chromosome!r}, n_bins={len(self)})"

    def subset(self, mask: np.ndarray) -> 'ChromosomeBins':
        """Return the bins selected by a boolean mask, keeping original indices."""
        return ChromosomeBins(
            self.chromosome,
            self.starts[mask],
            self.ends[mask],
            self.signal[mask],
            indices=self.indices[mask],
            validate=False
        )

    def take(self, positions: np.ndarray) -> 'ChromosomeBins':
        """Return the bins at the given positions of this view."""
        return ChromosomeBins(
            self.chromosome,
            self.starts[positions],
            self.ends[positions],
            self.signal[positions],
            indices=self.indices[positions],
            validate=False
        )

    def positions_of(self, bin_indices: Iterable[int]) -> np.ndarray:
        """Map original bin indices to positions in this view."""
        return np.searchsorted(self.indices, np.asarray(list(bin_indices), dtype=np.int64))

    def gaps(self) -> np.ndarray:
        """Distance between each bin's end and the next bin's start."""
        return self.starts[1:] - self.ends[:-1]

    def to_bins(self) -> List[Bin]:
        return [
            Bin(self.chromosome, int(s), int(e), float(v))
            for s, e, v in zip(self.starts, self.ends, self.signal)
        ]


class BinSeries:
    """
    Per-sample binned signal, one ChromosomeBins per chromosome.

    Chromosomes keep their input order, which is also the order of every
    result produced from this series.

    Example:
        >>> series = BinSeries.from_bins('sample1', [
        ...     Bin('chr1', 0, 1000, 1.0),
        ...     Bin('chr1', 1000, 2000, 1.1),
        ... ])
        >>> series.chromosomes
        ['chr1']
    """

    def __init__(self, sample_id: str, chromosomes: Dict[str, ChromosomeBins]):
        self.sample_id = str(sample_id)
        self._chromosomes = dict(chromosomes)

    @classmethod
    def from_bins(cls, sample_id: str, bins: Iterable[Bin]) -> 'BinSeries':
        """
        Build a series from bin records grouped by chromosome.

        Raises:
            DataError: If a chromosome's bins are not contiguous in the input,
                or any chromosome fails coordinate validation
        """
        columns: Dict[str, List[list]] = {}
        previous = None

        for b in bins:
            if b.chromosome != previous:
                if b.chromosome in columns:
                    raise DataError(
                        f"Bins for {b.chromosome} are not contiguous in the input",
                        field="bins",
                        expected="all bins of a chromosome in one block",
                        fix="Sort records by chromosome and start"
                    )
                columns[b.chromosome] = [[], [], []]
                previous = b.chromosome
            cols = columns[b.chromosome]
            cols[0].append(b.start)
            cols[1].append(b.end)
            cols[2].append(b.signal)

        return cls(sample_id, {
            chrom: ChromosomeBins(chrom, cols[0], cols[1], cols[2])
            for chrom, cols in columns.items()
        })

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        sample_id: str,
        chrom_col: str = 'chrom',
        start_col: str = 'start',
        end_col: str = 'end',
        signal_col: str = 'signal'
    ) -> 'BinSeries':
        """
        Build a series from a DataFrame with one row per bin.

        Raises:
            DataError: If required columns are missing or bins are malformed
        """
        missing = [c for c in (chrom_col, start_col, end_col, signal_col) if c not in df.columns]
        if missing:
            raise DataError(
                "Bin table is missing required columns",
                field="columns",
                expected=f"{chrom_col}, {start_col}, {end_col}, {signal_col}",
                actual=", ".join(map(str, df.columns))
            )

        chroms = df[chrom_col].astype(str).to_numpy()
        # Block boundaries in input order; a chromosome may appear only once
        change = np.flatnonzero(chroms[1:] != chroms[:-1]) + 1
        block_starts = np.concatenate([[0], change]) if len(chroms) else np.array([], dtype=int)
        block_ends = np.concatenate([change, [len(chroms)]]) if len(chroms) else np.array([], dtype=int)

        starts = df[start_col].to_numpy(dtype=np.int64)
        ends = df[end_col].to_numpy(dtype=np.int64)
        signal = df[signal_col].to_numpy(dtype=np.float64)

        chromosomes: Dict[str, ChromosomeBins] = {}
        for lo, hi in zip(block_starts, block_ends):
            chrom = chroms[lo]
            if chrom in chromosomes:
                raise DataError(
                    f"Bins for {chrom} are not contiguous in the input",
                    field=chrom_col,
                    fix="Sort rows by chromosome and start"
                )
            chromosomes[chrom] = ChromosomeBins(chrom, starts[lo:hi], ends[lo:hi], signal[lo:hi])

        return cls(sample_id, chromosomes)

    @property
    def chromosomes(self) -> List[str]:
        return list(self._chromosomes)

    @property
    def n_bins(self) -> int:
        return sum(len(b) for b in self._chromosomes.values())

    def __getitem__(self, chromosome: str) -> ChromosomeBins:
        return self._chromosomes[chromosome]

    def __contains__(self, chromosome: str) -> bool:
        return chromosome in self._chromosomes

    def __iter__(self) -> Iterator[ChromosomeBins]:
        return iter(self._chromosomes.values())

    def __len__(self) -> int:
        return len(self._chromosomes)

    def __repr__(self) -> str:
        return f"BinSeries({self.sample_id!r}, chromosomes={len(self)}, n_bins={self.n_bins})"

    def genome_signal(self) -> np.ndarray:
        """All signal values concatenated in chromosome order."""
        if not self._chromosomes:
            return np.array([], dtype=np.float64)
        return np.concatenate([b.signal for b in self._chromosomes.values()])

    def to_dataframe(self) -> pd.DataFrame:
        frames = [
            pd.DataFrame({
                'chrom': b.chromosome,
                'start': b.starts,
                'end': b.ends,
                'signal': b.signal,
            })
            for b in self._chromosomes.values()
        ]
        if not frames:
            return pd.DataFrame(columns=['chrom', 'start', 'end', 'signal'])
        return pd.concat(frames, ignore_index=True)
