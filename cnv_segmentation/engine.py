"""
Segmentation Engine

Facade over the three segmenters and the post-processor. The algorithm choice
is dispatched exactly once per call; everything downstream of the dispatch is
shared: excluded bins are removed before the algorithm sees the signal, raw
segments are post-processed against the full chromosome, and chromosomes may
be fanned out over a thread pool.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .logger import get_logger
from .models.genome import BinSeries
from .models.intervals import ExclusionMask, ForcedIntervals
from .models.params import (
    DEFAULT_MAX_INTER_BIN_DIST,
    CbsParams,
    HmmParams,
    SegmentationMethod,
    method_of,
)
from .models.results import GenomeSegmentationResult, Segment
from .adjustments.exclusion import excluded_bin_mask
from .adjustments.postprocessor import SegmentPostProcessor
from .segmenters.cbs import CbsSegmenter
from .segmenters.hmm import HmmSegmenter
from .segmenters.wavelets import WaveletSegmenter
from .validators.input_validator import ConfigurationError, validate_sample_count

logger = get_logger(__name__)

SeriesInput = Union[BinSeries, Sequence[BinSeries]]


class SegmentationEngine:
    """
    Run a segmentation algorithm end to end.

    The engine keeps no state between calls; each ``run`` builds fresh
    results from read-only inputs.

    Example:
        >>> engine = SegmentationEngine(max_inter_bin_dist_in_segment=1_000_000)
        >>> results = engine.run(series, WaveletParams())
        >>> results[0].n_segments
        3
    """

    def __init__(
        self,
        max_inter_bin_dist_in_segment: int = DEFAULT_MAX_INTER_BIN_DIST,
        n_jobs: int = 1,
        post_processor: Optional[SegmentPostProcessor] = None
    ):
        """
        Initialize engine.

        Args:
            max_inter_bin_dist_in_segment: Post-processing gap threshold in
                bases; negative disables gap splitting
            n_jobs: Worker threads for the per-chromosome fan-out
            post_processor: Post-processor (a default one when omitted)
        """
        if n_jobs < 1:
            raise ConfigurationError(
                "n_jobs must be at least 1",
                field="n_jobs",
                actual=str(n_jobs)
            )
        self.max_inter_bin_dist_in_segment = max_inter_bin_dist_in_segment
        self.n_jobs = n_jobs
        self.post_processor = post_processor or SegmentPostProcessor()

    def run(
        self,
        series: SeriesInput,
        choice,
        exclusion_mask: Optional[ExclusionMask] = None,
        forced_intervals: Optional[ForcedIntervals] = None
    ) -> List[GenomeSegmentationResult]:
        """
        Segment one sample (Wavelets, CBS) or several jointly (HMM).

        Args:
            series: A BinSeries or a list of them
            choice: WaveletParams, CbsParams or HmmParams
            exclusion_mask: Regions no segment may span
            forced_intervals: Common CNV regions; overrides the params' own

        Returns:
            One result per input sample, in input order

        Raises:
            DataError: If ``choice`` is not an algorithm parameter model, or
                the input bins are malformed
            ConfigurationError: On a sample count the algorithm cannot handle,
                or unaligned HMM samples
        """
        method = method_of(choice)
        series_list = [series] if isinstance(series, BinSeries) else list(series)
        sample_count = choice.sample_count if isinstance(choice, HmmParams) else None
        validate_sample_count(method.value, len(series_list), sample_count)

        forced = self._forced_intervals(choice, forced_intervals)
        max_gap = self._max_gap(choice)

        if choice.verbosity >= 1:
            logger.info(
                f"Running {method.value} on {len(series_list)} sample(s), "
                f"max gap {max_gap}, n_jobs={self.n_jobs}"
            )

        if method == SegmentationMethod.HMM:
            results = self._run_joint(series_list, choice, exclusion_mask, forced, max_gap)
        else:
            results = [self._run_single(series_list[0], choice, exclusion_mask, forced, max_gap)]

        if choice.verbosity >= 1:
            for result in results:
                logger.info(f"{result.sample_id}: {result.n_segments} segments")
        return results

    def run_samples(
        self,
        series_list: Sequence[BinSeries],
        choice,
        exclusion_mask: Optional[ExclusionMask] = None,
        forced_intervals: Optional[ForcedIntervals] = None
    ) -> List[GenomeSegmentationResult]:
        """
        Segment several samples independently with a single-sample algorithm.

        Raises:
            ConfigurationError: If ``choice`` is HMM (use ``run`` instead)
        """
        if method_of(choice) == SegmentationMethod.HMM:
            raise ConfigurationError(
                "run_samples segments samples independently; HMM decodes them jointly",
                field="choice",
                fix="Call run() with the list of samples"
            )
        results = []
        for series in series_list:
            results.extend(self.run(series, choice, exclusion_mask, forced_intervals))
        return results

    def _forced_intervals(self, choice, explicit: Optional[ForcedIntervals]) -> Optional[ForcedIntervals]:
        if explicit is not None:
            return explicit
        return getattr(choice, 'forced_intervals', None)

    def _max_gap(self, choice) -> int:
        if isinstance(choice, CbsParams) and choice.max_inter_bin_dist_in_segment is not None:
            return choice.max_inter_bin_dist_in_segment
        return self.max_inter_bin_dist_in_segment

    @staticmethod
    def filter_excluded(series: BinSeries, exclusion_mask: Optional[ExclusionMask]) -> BinSeries:
        """
        View of a series without the bins overlapping excluded regions.

        Remaining bins keep their original indices.
        """
        if not exclusion_mask:
            return series
        return BinSeries(series.sample_id, {
            bins.chromosome: bins.subset(~excluded_bin_mask(bins, exclusion_mask))
            for bins in series
        })

    def _map_chromosomes(self, chromosomes: List[str], unit: Callable[[str], Any]) -> Dict[str, Any]:
        """
        Apply ``unit`` to every chromosome, in parallel when ``n_jobs > 1``.

        Every unit runs to completion; the first failure in chromosome order is
        then raised and no partial output is returned.
        """
        if self.n_jobs == 1 or len(chromosomes) < 2:
            return {chrom: unit(chrom) for chrom in chromosomes}

        outcomes: Dict[str, Tuple[bool, Any]] = {}
        with ThreadPoolExecutor(max_workers=self.n_jobs) as executor:
            futures = {chrom: executor.submit(unit, chrom) for chrom in chromosomes}
            for chrom, future in futures.items():
                error = future.exception()
                outcomes[chrom] = (False, error) if error is not None else (True, future.result())

        for chrom in chromosomes:
            ok, value = outcomes[chrom]
            if not ok:
                logger.error(f"Segmentation of {chrom} failed: {value}")
                raise value
        return {chrom: outcomes[chrom][1] for chrom in chromosomes}

    def _run_single(
        self,
        series: BinSeries,
        choice,
        exclusion_mask: Optional[ExclusionMask],
        forced: Optional[ForcedIntervals],
        max_gap: int
    ) -> GenomeSegmentationResult:
        if isinstance(choice, CbsParams):
            segmenter = CbsSegmenter(choice)
        else:
            segmenter = WaveletSegmenter(choice)

        filtered = self.filter_excluded(series, exclusion_mask)
        context = segmenter.genome_context(filtered)

        def unit(chrom: str) -> Tuple[Segment, ...]:
            raw = segmenter.segment_chromosome(filtered[chrom], context)
            return self.post_processor.apply(
                raw, series[chrom], exclusion_mask, forced, max_gap
            )

        segments = self._map_chromosomes(series.chromosomes, unit)
        return GenomeSegmentationResult(
            sample_id=series.sample_id,
            method=segmenter.method,
            segments_by_chromosome=segments
        )

    def _run_joint(
        self,
        series_list: List[BinSeries],
        choice: HmmParams,
        exclusion_mask: Optional[ExclusionMask],
        forced: Optional[ForcedIntervals],
        max_gap: int
    ) -> List[GenomeSegmentationResult]:
        segmenter = HmmSegmenter(choice)
        segmenter.validate(series_list)

        filtered = [self.filter_excluded(series, exclusion_mask) for series in series_list]
        model = segmenter.fit(filtered)

        def unit(chrom: str) -> List[Tuple[Segment, ...]]:
            decoded = segmenter.decode_chromosome(model, [f[chrom] for f in filtered])
            return [
                self.post_processor.apply(raw, series[chrom], exclusion_mask, forced, max_gap)
                for raw, series in zip(decoded, series_list)
            ]

        per_chromosome = self._map_chromosomes(series_list[0].chromosomes, unit)
        return [
            GenomeSegmentationResult(
                sample_id=series.sample_id,
                method=SegmentationMethod.HMM,
                segments_by_chromosome={
                    chrom: per_chromosome[chrom][i] for chrom in series.chromosomes
                }
            )
            for i, series in enumerate(series_list)
        ]
