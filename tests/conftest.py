"""
Shared Test Fixtures and Configuration for the CNV Segmentation Test Suite

This module provides reusable fixtures for:
- Bin series builders (single chromosome, multi-chromosome, gapped)
- Reference step signals used across segmenter and engine tests
- Interval sets
- File fixtures for the I/O and pipeline tests

Usage:
    pytest automatically discovers fixtures from conftest.py
    Any test can use these fixtures by including them as function parameters
"""

import pytest
import numpy as np
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from cnv_segmentation.models.genome import BinSeries, ChromosomeBins, Interval
from cnv_segmentation.models.intervals import ExclusionMask, ForcedIntervals


# ==============================================================================
# PYTEST CONFIGURATION
# ==============================================================================

def pytest_configure(config):
    """Register custom markers for test organization."""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual functions/classes"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for workflows"
    )
    config.addinivalue_line(
        "markers", "edge_case: Tests for edge cases and boundary conditions"
    )
    config.addinivalue_line(
        "markers", "slow: Slow-running tests (>1 second)"
    )


# ==============================================================================
# RANDOM SEED FIXTURES
# ==============================================================================

@pytest.fixture(scope="session")
def random_seed():
    """Global random seed for reproducible tests."""
    return 42


@pytest.fixture(autouse=True)
def set_random_seed(random_seed):
    """Automatically set random seed before each test."""
    np.random.seed(random_seed)


# ==============================================================================
# SERIES BUILDERS
# ==============================================================================

def build_chromosome(
    signal: Sequence[float],
    chromosome: str = 'chr1',
    bin_size: int = 1000,
    starts: Optional[Sequence[int]] = None
) -> ChromosomeBins:
    """Contiguous bins of ``bin_size`` unless explicit starts are given."""
    signal = np.asarray(signal, dtype=float)
    if starts is None:
        starts = np.arange(len(signal)) * bin_size
    starts = np.asarray(starts, dtype=np.int64)
    return ChromosomeBins(chromosome, starts, starts + bin_size, signal)


def build_series(
    signals: Dict[str, Sequence[float]],
    sample_id: str = 'sample1',
    bin_size: int = 1000
) -> BinSeries:
    """Series with one chromosome per entry, in dict order."""
    return BinSeries(sample_id, {
        chrom: build_chromosome(values, chrom, bin_size)
        for chrom, values in signals.items()
    })


@pytest.fixture
def make_series():
    """Factory fixture: make_series({'chr1': [...]}, sample_id='s')."""
    return build_series


@pytest.fixture
def make_chromosome():
    """Factory fixture for a single ChromosomeBins."""
    return build_chromosome


# ==============================================================================
# REFERENCE SIGNALS
# ==============================================================================

@pytest.fixture
def step_signal() -> List[float]:
    """Ten bins: four at 1, five at 5, one at 1."""
    return [1, 1, 1, 1, 5, 5, 5, 5, 5, 1]


@pytest.fixture
def step_series(step_signal) -> BinSeries:
    """The ten-bin step signal on chr1 with 1 kb contiguous bins."""
    return build_series({'chr1': step_signal})


@pytest.fixture
def flat_series() -> BinSeries:
    """Ten contiguous bins of constant signal on chr1."""
    return build_series({'chr1': [1.0] * 10})


@pytest.fixture
def gapped_series() -> BinSeries:
    """Ten constant bins on chr1; the last bin sits at 50 kb after a large gap."""
    starts = [0, 1000, 2000, 3000, 4000, 5000, 6000, 7000, 8000, 50000]
    bins = build_chromosome([1.0] * 10, 'chr1', starts=starts)
    return BinSeries('sample1', {'chr1': bins})


@pytest.fixture
def three_level_signal() -> np.ndarray:
    """120 bins at levels 1, 2, 1 (40 bins each) with small Gaussian noise."""
    rng = np.random.default_rng(0)
    levels = np.repeat([1.0, 2.0, 1.0], 40)
    return levels + rng.normal(0.0, 0.05, size=len(levels))


@pytest.fixture
def cbs_signal() -> np.ndarray:
    """60 bins at levels 0, 5, 0 (20 bins each) with unit-half noise."""
    rng = np.random.default_rng(1)
    levels = np.repeat([0.0, 5.0, 0.0], 20)
    return levels + rng.normal(0.0, 0.5, size=len(levels))


@pytest.fixture
def hmm_samples() -> List[BinSeries]:
    """
    Two aligned samples with a shared single-copy gain on chr1 bins 30-49.

    Sample A has a diploid level of 100, sample B of 200; chr2 is diploid.
    """
    rng = np.random.default_rng(7)
    samples = []
    for sample_id, baseline in (('sampleA', 100.0), ('sampleB', 200.0)):
        chr1 = np.full(80, baseline)
        chr1[30:50] = baseline * 1.5
        chr2 = np.full(40, baseline)
        noise_sd = 0.03 * baseline
        samples.append(build_series({
            'chr1': chr1 + rng.normal(0.0, noise_sd, size=80),
            'chr2': chr2 + rng.normal(0.0, noise_sd, size=40),
        }, sample_id=sample_id))
    return samples


# ==============================================================================
# INTERVAL FIXTURES
# ==============================================================================

@pytest.fixture
def exclusion_mask() -> ExclusionMask:
    """Excludes chr1:4000-5000 (exactly bin 4 of 1 kb bins)."""
    return ExclusionMask([Interval('chr1', 4000, 5000)])


@pytest.fixture
def forced_intervals() -> ForcedIntervals:
    """Forces chr1:2000-5000 (bins 2-4 of 1 kb bins)."""
    return ForcedIntervals([Interval('chr1', 2000, 5000)])


# ==============================================================================
# FILE FIXTURES
# ==============================================================================

def write_bin_table(path: Path, rows, header: bool = True) -> Path:
    """Write a tab-separated bin table with an optional comment header."""
    lines = ["#chr\tstart\tend\tsignal"] if header else []
    lines.extend("\t".join(str(v) for v in row) for row in rows)
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def step_bin_file(tmp_path, step_signal) -> Path:
    """The ten-bin step signal as a bin table on disk."""
    rows = [('chr1', i * 1000, (i + 1) * 1000, v) for i, v in enumerate(step_signal)]
    return write_bin_table(tmp_path / "sample1.binned.tsv", rows)

