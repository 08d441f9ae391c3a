"""
Unit Tests for Genome, Interval and Result Models

Tests cover:
- Bin and Interval records
- ChromosomeBins views and original indices
- BinSeries construction from records and DataFrames
- Interval set merging and overlap queries
- Segment and GenomeSegmentationResult invariants
"""

import pytest
import numpy as np
import pandas as pd
from pydantic import ValidationError

from cnv_segmentation.models import (
    Bin,
    Interval,
    ChromosomeBins,
    BinSeries,
    ExclusionMask,
    ForcedIntervals,
    merge_intervals,
    Segment,
    GenomeSegmentationResult,
    SegmentationMethod,
)
from cnv_segmentation.validators import DataError


@pytest.mark.unit
class TestRecords:
    """Test Bin and Interval."""

    def test_bin_requires_positive_length(self):
        with pytest.raises(DataError):
            Bin('chr1', 100, 100, 1.0)

    def test_interval_overlap(self):
        """Test half-open overlap semantics."""
        interval = Interval('chr1', 1000, 2000)

        assert interval.length == 1000
        assert interval.overlaps('chr1', 1500, 2500)
        assert not interval.overlaps('chr1', 2000, 3000)
        assert not interval.overlaps('chr2', 1500, 2500)

    def test_interval_rejects_empty(self):
        with pytest.raises(DataError):
            Interval('chr1', 10, 5)


@pytest.mark.unit
class TestChromosomeBins:
    """Test the column-oriented chromosome container."""

    def test_arrays_are_read_only(self, make_chromosome):
        bins = make_chromosome([1.0, 2.0, 3.0])

        with pytest.raises(ValueError):
            bins.signal[0] = 10.0

    def test_subset_keeps_original_indices(self, make_chromosome):
        """Test a filtered view reports the original bin indices."""
        bins = make_chromosome([1.0, 2.0, 3.0, 4.0])
        view = bins.subset(np.array([True, False, True, True]))

        assert len(view) == 3
        assert view.indices.tolist() == [0, 2, 3]
        assert view.positions_of([2, 3]).tolist() == [1, 2]

    def test_gaps(self, make_chromosome):
        bins = make_chromosome([1.0, 1.0, 1.0], starts=[0, 1000, 5000])
        assert bins.gaps().tolist() == [0, 3000]

    def test_rejects_nan_signal(self):
        with pytest.raises(DataError, match="NaN"):
            ChromosomeBins('chr1', [0], [1000], [np.nan])

    def test_to_bins(self, make_chromosome):
        bins = make_chromosome([2.5])
        assert bins.to_bins() == [Bin('chr1', 0, 1000, 2.5)]


@pytest.mark.unit
class TestBinSeries:
    """Test BinSeries construction."""

    def test_from_bins_keeps_chromosome_order(self):
        series = BinSeries.from_bins('s1', [
            Bin('chr2', 0, 1000, 1.0),
            Bin('chr2', 1000, 2000, 1.0),
            Bin('chr1', 0, 1000, 2.0),
        ])

        assert series.chromosomes == ['chr2', 'chr1']
        assert series.n_bins == 3
        assert 'chr1' in series
        assert series.genome_signal().tolist() == [1.0, 1.0, 2.0]

    def test_from_bins_rejects_split_chromosome(self):
        """Test a chromosome appearing in two separate blocks."""
        with pytest.raises(DataError, match="not contiguous"):
            BinSeries.from_bins('s1', [
                Bin('chr1', 0, 1000, 1.0),
                Bin('chr2', 0, 1000, 1.0),
                Bin('chr1', 1000, 2000, 1.0),
            ])

    def test_from_bins_rejects_unsorted(self):
        with pytest.raises(DataError, match="not sorted"):
            BinSeries.from_bins('s1', [
                Bin('chr1', 1000, 2000, 1.0),
                Bin('chr1', 0, 1000, 1.0),
            ])

    def test_from_dataframe(self):
        df = pd.DataFrame({
            'chrom': ['chr1', 'chr1', 'chrX'],
            'start': [0, 1000, 0],
            'end': [1000, 2000, 1000],
            'signal': [1.0, 2.0, 3.0],
        })

        series = BinSeries.from_dataframe(df, 'sampleA')

        assert series.sample_id == 'sampleA'
        assert series.chromosomes == ['chr1', 'chrX']
        assert series['chr1'].signal.tolist() == [1.0, 2.0]
        pd.testing.assert_frame_equal(series.to_dataframe(), df, check_dtype=False)

    def test_from_dataframe_missing_column(self):
        df = pd.DataFrame({'chrom': ['chr1'], 'start': [0], 'end': [10]})
        with pytest.raises(DataError, match="missing required columns"):
            BinSeries.from_dataframe(df, 's1')


@pytest.mark.unit
class TestIntervalSets:
    """Test interval merging and overlap masks."""

    def test_merge_overlapping(self):
        merged = merge_intervals([
            Interval('chr1', 5000, 8000),
            Interval('chr1', 0, 1000),
            Interval('chr1', 500, 2000),
        ])

        assert merged['chr1'] == [Interval('chr1', 0, 2000), Interval('chr1', 5000, 8000)]

    def test_abutting_intervals_stay_apart(self):
        merged = merge_intervals([Interval('chr1', 0, 1000), Interval('chr1', 1000, 2000)])
        assert len(merged['chr1']) == 2

    def test_overlap_mask(self):
        """Test bins overlapping any excluded region are flagged."""
        mask = ExclusionMask([Interval('chr1', 1500, 2500), Interval('chr1', 7000, 7001)])
        starts = np.array([0, 1000, 2000, 3000, 6000, 7000])
        ends = starts + 1000

        flagged = mask.overlap_mask('chr1', starts, ends)

        assert flagged.tolist() == [False, True, True, False, False, True]
        assert not mask.overlap_mask('chr2', starts, ends).any()

    def test_interval_set_basics(self):
        forced = ForcedIntervals.from_tuples([('chr1', 0, 100), ('chr1', 50, 150)])

        assert len(forced) == 2
        assert bool(forced)
        assert not ForcedIntervals()
        assert forced.for_chromosome('chr1') == [Interval('chr1', 0, 150)]
        assert forced.for_chromosome('chr9') == []


@pytest.mark.unit
class TestResults:
    """Test Segment and GenomeSegmentationResult."""

    def _segment(self, start, end, indices, chromosome='chr1'):
        return Segment(
            chromosome=chromosome, start=start, end=end,
            bin_indices=indices, median=1.0, mean=1.0
        )

    def test_segment_properties(self):
        seg = self._segment(0, 4000, (0, 1, 2, 3))

        assert seg.n_bins == 4
        assert seg.copy_number is None
        assert not seg.forced
        assert "chr1:0-4000" in seg.get_summary()

    def test_segment_is_frozen(self):
        seg = self._segment(0, 1000, (0,))
        with pytest.raises(ValidationError):
            seg.start = 5

    def test_segment_rejects_unordered_indices(self):
        with pytest.raises(ValidationError):
            self._segment(0, 2000, (1, 0))

    def test_result_rejects_overlap(self):
        with pytest.raises(ValidationError):
            GenomeSegmentationResult(
                sample_id='s1',
                method=SegmentationMethod.CBS,
                segments_by_chromosome={'chr1': (
                    self._segment(0, 2000, (0, 1)),
                    self._segment(1000, 3000, (1, 2)),
                )}
            )

    def test_result_helpers(self):
        result = GenomeSegmentationResult(
            sample_id='s1',
            method=SegmentationMethod.WAVELETS,
            segments_by_chromosome={
                'chr1': (self._segment(0, 2000, (0, 1)), self._segment(2000, 3000, (2,))),
                'chr2': (self._segment(0, 1000, (0,), chromosome='chr2'),),
            }
        )

        assert result.n_segments == 3
        assert result.chromosomes == ['chr1', 'chr2']
        assert result.boundaries('chr1') == [(0, 2000), (2000, 3000)]
        assert result.boundaries('chrY') == []

        df = result.to_dataframe()
        assert df['chrom'].tolist() == ['chr1', 'chr1', 'chr2']
        assert df['n_bins'].tolist() == [2, 1, 1]
        assert "Segments: 3" in result.get_summary()
