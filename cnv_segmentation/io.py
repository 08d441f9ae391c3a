"""
File Adapters

Readers for bin-count tables and BED intervals, writers for partitioned bins
and segment tables. These sit outside the segmentation core, which only ever
sees in-memory BinSeries and interval sets.
"""

import gzip
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
import pandas as pd

from .logger import get_logger
from .models.genome import BinSeries, Interval
from .models.results import GenomeSegmentationResult
from .validators.input_validator import DataError

logger = get_logger(__name__)

PathLike = Union[str, Path]

BIN_COLUMNS = ['chrom', 'start', 'end', 'signal']


def sample_id_from_path(path: PathLike) -> str:
    """
    Sample name derived from a file name.

    Example:
        >>> sample_id_from_path('/data/NA12878.binned.tsv.gz')
        'NA12878.binned'
    """
    name = Path(path).name
    if name.endswith('.gz'):
        name = name[:-3]
    return Path(name).stem


def read_bin_counts(path: PathLike, sample_id: Optional[str] = None) -> BinSeries:
    """
    Read a tab-separated bin table: ``chr start end signal``.

    Lines starting with ``#`` are ignored and gzip compression is detected
    from the extension. Extra columns are ignored. Rows whose signal is
    missing or not finite are dropped with a warning.

    Args:
        path: Path to the table
        sample_id: Sample name (derived from the file name when omitted)

    Returns:
        BinSeries in file order

    Raises:
        DataError: If the file is missing, malformed or its bins are unsorted
    """
    path = Path(path)
    if not path.exists():
        raise DataError(
            f"Bin file not found: {path}",
            field="bin_files",
            fix="Check the input path"
        )

    try:
        df = pd.read_csv(
            path,
            sep='\t',
            header=None,
            comment='#',
            usecols=[0, 1, 2, 3],
            names=BIN_COLUMNS,
            dtype={'chrom': str},
        )
    except (ValueError, pd.errors.ParserError) as exc:
        raise DataError(
            f"Could not parse bin file {path}: {exc}",
            field="bin_files",
            expected="tab-separated chr, start, end, signal columns"
        ) from exc

    df['signal'] = pd.to_numeric(df['signal'], errors='coerce')
    invalid = ~np.isfinite(df['signal'].to_numpy(dtype=np.float64))
    if invalid.any():
        logger.warning(f"{path.name}: dropping {int(invalid.sum())} bins without a finite signal")
        df = df.loc[~invalid].reset_index(drop=True)

    for column in ('start', 'end'):
        df[column] = pd.to_numeric(df[column], errors='coerce')
    if df[['start', 'end']].isna().any().any():
        raise DataError(
            f"Bin file {path} has rows without coordinates",
            field="bin_files",
            expected="integer start and end on every row"
        )

    series = BinSeries.from_dataframe(df, sample_id or sample_id_from_path(path))
    logger.info(f"Loaded {series.n_bins:,} bins on {len(series)} chromosomes from {path.name}")
    return series


def _open_text(path: Path):
    if path.suffix == '.gz':
        return gzip.open(path, 'rt')
    return open(path, 'r')


def read_bed_intervals(path: PathLike) -> List[Interval]:
    """
    Read the first three columns of a BED file.

    ``track``, ``browser`` and ``#`` lines and blank lines are skipped.

    Raises:
        DataError: If the file is missing or a line is malformed
    """
    path = Path(path)
    if not path.exists():
        raise DataError(
            f"BED file not found: {path}",
            field="bed",
            fix="Check the interval file path"
        )

    intervals = []
    with _open_text(path) as handle:
        for line_number, line in enumerate(handle, start=1):
            line = line.strip()
            if not line or line.startswith(('#', 'track', 'browser')):
                continue
            fields = line.split('\t')
            if len(fields) < 3:
                raise DataError(
                    f"{path.name}:{line_number}: expected at least 3 columns",
                    field="bed",
                    actual=line
                )
            try:
                start, end = int(fields[1]), int(fields[2])
            except ValueError as exc:
                raise DataError(
                    f"{path.name}:{line_number}: start and end must be integers",
                    field="bed",
                    actual=line
                ) from exc
            intervals.append(Interval(fields[0], start, end))

    logger.info(f"Loaded {len(intervals)} intervals from {path.name}")
    return intervals


def partitioned_frame(series: BinSeries, result: GenomeSegmentationResult) -> pd.DataFrame:
    """
    One row per segmented bin with its segment id.

    Segment ids count from 0 across the genome in output order. Bins that
    belong to no segment (excluded bins) are omitted.
    """
    frames = []
    segment_id = 0
    for chrom in result.chromosomes:
        bins = series[chrom]
        for segment in result.segments_by_chromosome[chrom]:
            positions = bins.positions_of(segment.bin_indices)
            frames.append(pd.DataFrame({
                'chrom': chrom,
                'start': bins.starts[positions],
                'end': bins.ends[positions],
                'signal': bins.signal[positions],
                'segment': segment_id,
            }))
            segment_id += 1

    if not frames:
        return pd.DataFrame(columns=BIN_COLUMNS + ['segment'])
    return pd.concat(frames, ignore_index=True)


def write_partitioned(path: PathLike, series: BinSeries, result: GenomeSegmentationResult) -> Path:
    """
    Write ``chr start end signal segment`` lines, one per segmented bin.

    Returns:
        Path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = partitioned_frame(series, result)
    frame.to_csv(path, sep='\t', header=False, index=False)
    logger.info(f"Wrote {len(frame):,} partitioned bins to {path}")
    return path


def write_segments(path: PathLike, result: GenomeSegmentationResult) -> Path:
    """
    Write one line per segment with a header row.

    Returns:
        Path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    result.to_dataframe().to_csv(path, sep='\t', index=False)
    logger.info(f"Wrote {result.n_segments} segments to {path}")
    return path
