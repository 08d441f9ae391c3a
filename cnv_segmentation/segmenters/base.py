"""
Segmenter Base Class

Single-sample segmenters implement ``find_breakpoints`` for one chromosome;
the base class turns breakpoints into Segments and assembles the per-sample
result. Genome-wide quantities (e.g. a noise level shared by all chromosomes)
are computed once in ``genome_context`` and handed to every chromosome.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import numpy as np
from scipy.stats import median_abs_deviation

from ..logger import get_logger
from ..models.genome import BinSeries, ChromosomeBins
from ..models.params import SegmentationMethod
from ..models.results import GenomeSegmentationResult, Segment
from ..adjustments.utils import segments_from_breakpoints

logger = get_logger(__name__)


def robust_noise_sd(values: np.ndarray) -> float:
    """
    Robust noise level of a signal from its first differences.

    Differencing removes the piecewise-constant mean, so the normal-scaled MAD
    of the differences divided by sqrt(2) estimates the per-bin noise even in
    the presence of copy-number changes.

    Returns:
        Noise standard deviation (0.0 for fewer than 2 values)
    """
    values = np.asarray(values, dtype=np.float64)
    if len(values) < 2:
        return 0.0
    return noise_sd_from_differences(np.diff(values))


def noise_sd_from_differences(differences: np.ndarray) -> float:
    """Noise standard deviation from already computed first differences."""
    if len(differences) == 0:
        return 0.0
    return float(median_abs_deviation(differences, scale='normal') / np.sqrt(2.0))


class BaseSegmenter(ABC):
    """
    Base class for single-sample segmenters.

    Subclasses set ``method`` and implement ``find_breakpoints``.
    """

    method: SegmentationMethod

    def __init__(self, params):
        self.params = params

    @property
    def verbosity(self) -> int:
        return self.params.verbosity

    def genome_context(self, series: BinSeries) -> Dict[str, Any]:
        """Genome-wide quantities shared by all chromosomes (none by default)."""
        return {}

    @abstractmethod
    def find_breakpoints(
        self,
        bins: ChromosomeBins,
        context: Optional[Dict[str, Any]] = None
    ) -> List[int]:
        """
        Positions in ``bins`` where a new segment starts.

        Args:
            bins: Chromosome view, excluded bins already removed
            context: Result of ``genome_context`` for the owning series

        Returns:
            Sorted positions in ``1..len(bins)-1``
        """

    def segment_chromosome(
        self,
        bins: ChromosomeBins,
        context: Optional[Dict[str, Any]] = None
    ) -> List[Segment]:
        """Raw segments of one chromosome."""
        if len(bins) == 0:
            return []
        breakpoints = self.find_breakpoints(bins, context or {})
        segments = segments_from_breakpoints(bins, breakpoints)
        if self.verbosity >= 2:
            logger.info(f"  {bins.chromosome}: {len(bins)} bins -> {len(segments)} segments")
        return segments

    def run(self, series: BinSeries) -> GenomeSegmentationResult:
        """
        Segment every chromosome of one sample.

        No post-processing is applied; see SegmentationEngine for the full
        pipeline.
        """
        if self.verbosity >= 1:
            logger.info(
                f"{self.method.value} segmentation of {series.sample_id} "
                f"({len(series)} chromosomes, {series.n_bins} bins)"
            )

        context = self.genome_context(series)
        segments_by_chromosome = {
            bins.chromosome: tuple(self.segment_chromosome(bins, context))
            for bins in series
        }

        return GenomeSegmentationResult(
            sample_id=series.sample_id,
            method=self.method,
            segments_by_chromosome=segments_by_chromosome
        )
