"""
Unit Tests for Haar-Wavelet Segmentation

Tests cover:
- Stationary Haar coefficients and edge mirroring
- Signed peak detection
- Breakpoint scoring and confirmation
- End-to-end breakpoints on reference signals
"""

import pytest
import numpy as np

from cnv_segmentation.models import WaveletParams, SegmentationMethod
from cnv_segmentation.segmenters import (
    WaveletSegmenter,
    haar_coefficients,
    find_peaks,
    breakpoint_scores,
    confirmation_noise_sd,
)


@pytest.mark.unit
class TestHaarCoefficients:
    """Test haar_coefficients."""

    def test_single_step(self):
        coefs = haar_coefficients(np.array([0.0, 0.0, 2.0, 2.0]), 1)
        np.testing.assert_allclose(coefs, [0.0, np.sqrt(2.0), 0.0])

    def test_constant_signal_is_zero(self):
        coefs = haar_coefficients(np.full(16, 3.0), 4)

        assert len(coefs) == 15
        np.testing.assert_allclose(coefs, 0.0, atol=1e-12)

    def test_sign_follows_direction(self):
        """Test a drop gives a negative coefficient."""
        coefs = haar_coefficients(np.array([5.0, 5.0, 1.0, 1.0]), 1)
        assert coefs[1] < 0


@pytest.mark.unit
class TestFindPeaks:
    """Test find_peaks."""

    def test_positive_and_negative_extrema(self):
        coefs = np.array([0.0, 0.0, 3.0, -3.0, 0.0])
        assert find_peaks(coefs, threshold=1.0, tolerance=1e-9).tolist() == [3, 4]

    def test_threshold(self):
        coefs = np.array([0.0, 0.5, 0.0, 2.0, 0.0])
        assert find_peaks(coefs, threshold=1.0, tolerance=1e-9).tolist() == [4]

    def test_plateau_keeps_first(self):
        coefs = np.array([0.0, 2.0, 2.0, 0.0])
        assert find_peaks(coefs, threshold=1.0, tolerance=1e-9).tolist() == [2]

    def test_empty(self):
        assert len(find_peaks(np.array([]), 1.0, 1e-9)) == 0


@pytest.mark.unit
class TestBreakpointScores:
    """Test breakpoint_scores."""

    def test_standardized_shift(self):
        values = np.array([0.0] * 4 + [2.0] * 4)
        scores = breakpoint_scores(values, [4], sigma=1.0, tolerance=1e-9)
        assert scores[0] == pytest.approx(2.0 / np.sqrt(0.5))

    def test_zero_sigma(self):
        """Test a noiseless shift scores infinite and no shift scores zero."""
        values = np.array([1.0, 1.0, 3.0, 3.0, 3.0])
        scores = breakpoint_scores(values, [2, 3], sigma=0.0, tolerance=1e-9)

        assert np.isinf(scores[0])
        assert scores[1] == 0.0


@pytest.mark.unit
class TestWaveletSegmenter:
    """Test WaveletSegmenter breakpoints and segments."""

    def test_default_params(self):
        segmenter = WaveletSegmenter()

        assert segmenter.method == SegmentationMethod.WAVELETS
        assert isinstance(segmenter.params, WaveletParams)

    def test_levels_fit_chromosome(self):
        segmenter = WaveletSegmenter(WaveletParams(max_level=5))

        assert segmenter.levels(10) == [1, 2, 4]
        assert segmenter.levels(100) == [1, 2, 4, 8, 16]
        assert segmenter.levels(1) == []

    def test_step_signal(self, make_chromosome, step_signal):
        """Test the ten-bin step gives breakpoints at both level changes."""
        bins = make_chromosome(step_signal)
        assert WaveletSegmenter().find_breakpoints(bins) == [4, 9]

    def test_spike(self, make_chromosome):
        """Test a single-bin spike is isolated."""
        bins = make_chromosome([0.0] * 10 + [5.0] + [0.0] * 10)
        assert WaveletSegmenter().find_breakpoints(bins) == [10, 11]

    def test_noisy_three_levels(self, make_chromosome, three_level_signal):
        bins = make_chromosome(three_level_signal)
        assert WaveletSegmenter().find_breakpoints(bins) == [40, 80]

    def test_constant_signal(self, make_chromosome):
        bins = make_chromosome([2.0] * 30)
        assert WaveletSegmenter().find_breakpoints(bins) == []

    def test_single_bin(self, make_chromosome):
        assert WaveletSegmenter().find_breakpoints(make_chromosome([1.0])) == []

    def test_confirmation_drops_weak_breakpoint(self):
        """Test a breakpoint inside a flat region is removed."""
        rng = np.random.default_rng(3)
        values = np.array([0.0] * 10 + [4.0] * 10) + rng.normal(0.0, 0.1, size=20)
        segmenter = WaveletSegmenter()

        confirmed = segmenter.confirm_breakpoints(values, [5, 10], tolerance=1e-9)

        assert confirmed == [10]

    def test_single_bin_blip_in_counts(self, make_chromosome):
        """Test a one-bin shift on noiseless counts is not kept as a segment."""
        values = [10.0] * 60
        values[30] = 11.0

        assert WaveletSegmenter().find_breakpoints(make_chromosome(values)) == []

    def test_confirmation_noise_floor(self):
        values = np.array([10.0] * 59 + [11.0])
        assert confirmation_noise_sd(values) == pytest.approx(0.5)

    def test_confirmation_noise_floor_zero_signal(self):
        values = np.array([0.0] * 10 + [5.0] + [0.0] * 10)
        assert confirmation_noise_sd(values) == 0.0

    def test_germline_keeps_fewer_breakpoints(self, make_chromosome):
        """Test a shift scoring between the somatic and germline requirements."""
        bins = make_chromosome([10.0] * 30 + [10.6] * 30)

        somatic = WaveletSegmenter(WaveletParams()).find_breakpoints(bins)
        germline = WaveletSegmenter(WaveletParams(is_germline=True)).find_breakpoints(bins)

        assert somatic == [30]
        assert germline == []

    def test_germline_never_adds_breakpoints(self, make_chromosome, three_level_signal, step_signal):
        for signal in (three_level_signal, step_signal):
            bins = make_chromosome(signal)
            somatic = WaveletSegmenter(WaveletParams()).find_breakpoints(bins)
            germline = WaveletSegmenter(WaveletParams(is_germline=True)).find_breakpoints(bins)
            assert len(germline) <= len(somatic)

    def test_two_bin_chromosome_is_decomposed(self, make_chromosome):
        """Test the finest scale (two bins) is the smallest chromosome decomposed."""
        assert WaveletSegmenter().find_breakpoints(make_chromosome([1.0, 9.0])) == [1]

    def test_run_builds_segments(self, step_series):
        """Test run returns one result with segments covering all bins."""
        result = WaveletSegmenter().run(step_series)

        assert result.method == SegmentationMethod.WAVELETS
        assert result.boundaries('chr1') == [(0, 4000), (4000, 9000), (9000, 10000)]
        segments = result.segments_by_chromosome['chr1']
        assert segments[1].median == 5.0
        assert [s.n_bins for s in segments] == [4, 5, 1]
