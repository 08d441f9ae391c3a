"""
Tests for the Segmentation Engine

Tests cover:
- Reference scenarios (step signal, max-gap split, exclusion edges)
- Result invariants (ordering, coverage of non-excluded bins)
- Dispatch errors and sample-count checks
- Parallel fan-out and error propagation
- Forced-interval and max-gap precedence
- Joint HMM runs through the engine
"""

import pytest
import numpy as np
import pandas as pd

from cnv_segmentation import SegmentationEngine
from cnv_segmentation.adjustments import SegmentPostProcessor
from cnv_segmentation.models import (
    BinSeries,
    CbsParams,
    ExclusionMask,
    ForcedIntervals,
    HmmParams,
    Interval,
    SegmentationMethod,
    WaveletParams,
)
from cnv_segmentation.validators import ConfigurationError, DataError


class FailingPostProcessor(SegmentPostProcessor):
    """Post-processor that fails on one chromosome."""

    def __init__(self, failing_chromosome):
        self.failing_chromosome = failing_chromosome

    def apply(self, raw_segments, bins, *args, **kwargs):
        if bins.chromosome == self.failing_chromosome:
            raise DataError(f"cannot post-process {bins.chromosome}")
        return super().apply(raw_segments, bins, *args, **kwargs)


@pytest.fixture
def multi_chromosome_series(make_series, three_level_signal, step_signal):
    """Three chromosomes with different structure."""
    return make_series({
        'chr1': three_level_signal,
        'chr2': step_signal,
        'chr3': [2.0] * 12,
    })


@pytest.mark.integration
class TestReferenceScenarios:
    """Test the reference scenarios end to end."""

    def test_step_signal(self, step_series):
        result = SegmentationEngine().run(step_series, WaveletParams())[0]

        assert result.boundaries('chr1') == [(0, 4000), (4000, 9000), (9000, 10000)]
        segments = result.segments_by_chromosome['chr1']
        assert [s.bin_indices for s in segments] == [(0, 1, 2, 3), (4, 5, 6, 7, 8), (9,)]
        assert [s.median for s in segments] == [1.0, 5.0, 1.0]

    def test_max_gap_split(self, make_chromosome, step_signal):
        """Test a large gap splits segments regardless of signal."""
        starts = [0, 1000, 2000, 3000, 4000, 5000, 6000, 7000, 8000, 50000]
        series = BinSeries('sample1', {'chr1': make_chromosome(step_signal, starts=starts)})
        engine = SegmentationEngine(max_inter_bin_dist_in_segment=500)

        result = engine.run(series, WaveletParams())[0]

        assert result.boundaries('chr1') == [(0, 4000), (4000, 9000), (50000, 51000)]

    def test_gap_split_on_flat_signal(self, gapped_series):
        engine = SegmentationEngine(max_inter_bin_dist_in_segment=500)
        result = engine.run(gapped_series, WaveletParams())[0]

        assert result.boundaries('chr1') == [(0, 9000), (50000, 51000)]

    def test_exclusion_edges(self, step_series, exclusion_mask):
        """Test the excluded bin is dropped and boundaries fall on its edges."""
        result = SegmentationEngine().run(step_series, WaveletParams(), exclusion_mask=exclusion_mask)[0]

        assert result.boundaries('chr1') == [(0, 4000), (5000, 9000), (9000, 10000)]
        indices = [i for s in result.segments for i in s.bin_indices]
        assert 4 not in indices

    def test_forced_interval(self, flat_series, forced_intervals):
        result = SegmentationEngine().run(
            flat_series, WaveletParams(), forced_intervals=forced_intervals
        )[0]

        assert [(s.start, s.end, s.forced) for s in result.segments] == [
            (0, 2000, False), (2000, 5000, True), (5000, 10000, False)
        ]

    def test_forced_interval_with_cbs(self, flat_series, forced_intervals):
        result = SegmentationEngine().run(
            flat_series, CbsParams(), forced_intervals=forced_intervals
        )[0]

        assert [(s.start, s.end, s.forced) for s in result.segments] == [
            (0, 2000, False), (2000, 5000, True), (5000, 10000, False)
        ]

    def test_forced_interval_off_bin_edges(self, flat_series):
        """Test an interval inside bins snaps to the edges of the bins it overlaps."""
        forced = ForcedIntervals([Interval('chr1', 2500, 6500)])

        result = SegmentationEngine().run(flat_series, WaveletParams(), forced_intervals=forced)[0]

        assert [(s.start, s.end, s.forced) for s in result.segments] == [
            (0, 2000, False), (2000, 7000, True), (7000, 10000, False)
        ]
        assert result.segments[1].bin_indices == (2, 3, 4, 5, 6)


@pytest.mark.integration
class TestResultInvariants:
    """Test properties every result must satisfy."""

    @pytest.mark.parametrize("choice", [WaveletParams(), CbsParams(alpha=0.001)])
    def test_coverage_and_order(self, multi_chromosome_series, choice):
        mask = ExclusionMask([Interval('chr1', 55000, 58000), Interval('chr2', 4000, 5000)])

        result = SegmentationEngine().run(multi_chromosome_series, choice, exclusion_mask=mask)[0]

        assert result.chromosomes == ['chr1', 'chr2', 'chr3']
        for bins in multi_chromosome_series:
            segments = result.segments_by_chromosome[bins.chromosome]
            starts = [s.start for s in segments]
            assert starts == sorted(starts)
            for left, right in zip(segments, segments[1:]):
                assert left.end <= right.start

            excluded = mask.overlap_mask(bins.chromosome, bins.starts, bins.ends)
            covered = [i for s in segments for i in s.bin_indices]
            assert covered == np.flatnonzero(~excluded).tolist()

    def test_deterministic(self, multi_chromosome_series):
        engine = SegmentationEngine()
        first = engine.run(multi_chromosome_series, CbsParams())[0]
        second = engine.run(multi_chromosome_series, CbsParams())[0]

        pd.testing.assert_frame_equal(first.to_dataframe(), second.to_dataframe())

    def test_fully_excluded_chromosome(self, make_series):
        series = make_series({'chr1': [1.0] * 10, 'chr2': [1.0] * 3})
        mask = ExclusionMask([Interval('chr2', 0, 3000)])

        result = SegmentationEngine().run(series, WaveletParams(), exclusion_mask=mask)[0]

        assert result.segments_by_chromosome['chr2'] == ()
        assert result.boundaries('chr1') == [(0, 10000)]


@pytest.mark.unit
class TestDispatchErrors:
    """Test errors raised before any computation."""

    def test_unknown_choice(self, step_series):
        with pytest.raises(DataError, match="Unsupported algorithm choice"):
            SegmentationEngine().run(step_series, {'method': 'Wavelets'})

    def test_single_sample_method_with_two_series(self, step_series, flat_series):
        with pytest.raises(ConfigurationError, match="exactly one sample"):
            SegmentationEngine().run([step_series, flat_series], WaveletParams())

    def test_hmm_with_one_series(self, step_series):
        with pytest.raises(ConfigurationError):
            SegmentationEngine().run([step_series], HmmParams(sample_count=2))

    def test_invalid_n_jobs(self):
        with pytest.raises(ConfigurationError, match="n_jobs"):
            SegmentationEngine(n_jobs=0)

    def test_run_samples_rejects_hmm(self, hmm_samples):
        with pytest.raises(ConfigurationError, match="jointly"):
            SegmentationEngine().run_samples(hmm_samples, HmmParams(sample_count=2))


@pytest.mark.unit
class TestParallelFanOut:
    """Test the per-chromosome thread pool."""

    def test_same_result_as_serial(self, multi_chromosome_series):
        serial = SegmentationEngine(n_jobs=1).run(multi_chromosome_series, WaveletParams())[0]
        parallel = SegmentationEngine(n_jobs=3).run(multi_chromosome_series, WaveletParams())[0]

        assert parallel.chromosomes == serial.chromosomes
        pd.testing.assert_frame_equal(parallel.to_dataframe(), serial.to_dataframe())

    def test_cbs_parallel_matches_serial(self, multi_chromosome_series):
        choice = CbsParams(random_state=5)
        serial = SegmentationEngine(n_jobs=1).run(multi_chromosome_series, choice)[0]
        parallel = SegmentationEngine(n_jobs=2).run(multi_chromosome_series, choice)[0]

        pd.testing.assert_frame_equal(parallel.to_dataframe(), serial.to_dataframe())

    @pytest.mark.parametrize("n_jobs", [1, 2])
    def test_failure_propagates(self, multi_chromosome_series, n_jobs):
        engine = SegmentationEngine(n_jobs=n_jobs, post_processor=FailingPostProcessor('chr2'))

        with pytest.raises(DataError, match="cannot post-process chr2"):
            engine.run(multi_chromosome_series, WaveletParams())


@pytest.mark.unit
class TestPrecedence:
    """Test which settings win when given twice."""

    def test_explicit_forced_intervals_win(self, flat_series):
        from_params = ForcedIntervals([Interval('chr1', 0, 2000)])
        explicit = ForcedIntervals([Interval('chr1', 6000, 8000)])

        result = SegmentationEngine().run(
            flat_series, WaveletParams(forced_intervals=from_params), forced_intervals=explicit
        )[0]

        assert [(s.start, s.end) for s in result.segments if s.forced] == [(6000, 8000)]

    def test_params_forced_intervals_used(self, flat_series):
        forced = ForcedIntervals([Interval('chr1', 0, 2000)])
        result = SegmentationEngine().run(flat_series, WaveletParams(forced_intervals=forced))[0]

        assert [(s.start, s.end) for s in result.segments if s.forced] == [(0, 2000)]

    def test_cbs_max_gap_overrides_engine(self, gapped_series):
        engine = SegmentationEngine(max_inter_bin_dist_in_segment=-1)

        split = engine.run(gapped_series, CbsParams(max_inter_bin_dist_in_segment=500))[0]
        unsplit = engine.run(gapped_series, CbsParams())[0]

        assert split.boundaries('chr1') == [(0, 9000), (50000, 51000)]
        assert unsplit.boundaries('chr1') == [(0, 51000)]


@pytest.mark.integration
class TestMultiSample:
    """Test run_samples and joint HMM runs."""

    def test_run_samples(self, step_series, flat_series):
        results = SegmentationEngine().run_samples([step_series, flat_series], WaveletParams())

        assert len(results) == 2
        assert results[0].n_segments == 3
        assert results[1].n_segments == 1

    def test_hmm_shared_boundaries(self, hmm_samples):
        results = SegmentationEngine(n_jobs=2).run(hmm_samples, HmmParams(sample_count=2))

        assert [r.method for r in results] == [SegmentationMethod.HMM] * 2
        assert results[0].boundaries('chr1') == results[1].boundaries('chr1')
        assert results[0].boundaries('chr1') == [(0, 30000), (30000, 50000), (50000, 80000)]

    def test_hmm_with_exclusion(self, hmm_samples):
        mask = ExclusionMask([Interval('chr1', 0, 5000)])

        results = SegmentationEngine().run(hmm_samples, HmmParams(sample_count=2), exclusion_mask=mask)

        for result in results:
            assert result.boundaries('chr1') == [(5000, 30000), (30000, 50000), (50000, 80000)]
            assert [s.copy_number for s in result.segments_by_chromosome['chr1']] == [2, 3, 2]
