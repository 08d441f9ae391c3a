"""
Partitioning Pipeline Orchestrator

Runs one configured partitioning job: load bin tables and interval files,
segment, and write the partitioned outputs.
"""

from pathlib import Path
from typing import Dict, List, Optional

from .config import SegmentationConfig
from .engine import SegmentationEngine
from .io import read_bed_intervals, read_bin_counts, write_partitioned, write_segments
from .logger import get_logger
from .models.genome import BinSeries
from .models.intervals import ExclusionMask, ForcedIntervals
from .models.results import GenomeSegmentationResult
from .validators.input_validator import ConfigurationError

# Module-level logger
logger = get_logger(__name__)


class PartitionPipeline:
    """
    Orchestrates a partitioning run from files to files.

    Example:
        >>> config = SegmentationConfig.from_yaml('partition.yaml')
        >>> pipeline = PartitionPipeline(config)
        >>> outputs = pipeline.run_all()
    """

    def __init__(self, config: SegmentationConfig):
        """
        Initialize pipeline with configuration.

        Raises:
            ConfigurationError: If the configuration does not validate
        """
        issues = config.validate()
        if issues:
            raise ConfigurationError(
                "Invalid partitioning configuration",
                field="config",
                actual="; ".join(issues)
            )

        self.config = config
        self.verbose = config.verbose

        self.series: List[BinSeries] = []
        self.exclusion_mask: Optional[ExclusionMask] = None
        self.forced_intervals: Optional[ForcedIntervals] = None
        self.results: List[GenomeSegmentationResult] = []

        self.state = {
            'inputs_loaded': False,
            'segmented': False,
            'exported': False
        }

        if self.verbose:
            logger.info(self.config.summary())

    def load_inputs(self) -> None:
        """Read bin tables and the optional BED files once."""
        if self.state['inputs_loaded']:
            return

        inputs = self.config.inputs
        sample_ids = inputs.sample_ids or [None] * len(inputs.bin_files)
        self.series = [
            read_bin_counts(path, sample_id)
            for path, sample_id in zip(inputs.bin_files, sample_ids)
        ]

        if inputs.exclusion_bed:
            self.exclusion_mask = ExclusionMask(read_bed_intervals(inputs.exclusion_bed))
        if inputs.common_cnvs_bed:
            self.forced_intervals = ForcedIntervals(read_bed_intervals(inputs.common_cnvs_bed))

        self.state['inputs_loaded'] = True

        if self.verbose:
            logger.info(f"[OK] Loaded {len(self.series)} sample(s)")
            for series in self.series:
                logger.info(f"     {series.sample_id}: {series.n_bins:,} bins, {len(series)} chromosomes")

    def segment(self) -> List[GenomeSegmentationResult]:
        """Run the configured algorithm over the loaded samples."""
        if not self.state['inputs_loaded']:
            self.load_inputs()

        engine = SegmentationEngine(
            max_inter_bin_dist_in_segment=self.config.max_inter_bin_dist_in_segment,
            n_jobs=self.config.n_jobs
        )
        # CbsParams has no forced_intervals field; pass them to the engine
        choice = self.config.build_algorithm_choice()
        self.results = engine.run(
            self.series if len(self.series) > 1 else self.series[0],
            choice,
            exclusion_mask=self.exclusion_mask,
            forced_intervals=self.forced_intervals
        )
        self.state['segmented'] = True

        if self.verbose:
            for result in self.results:
                logger.info(result.get_summary())
        return self.results

    def export_results(self) -> Dict[str, Path]:
        """
        Write one partitioned file per sample and optional segment tables.

        Returns:
            Mapping of output label to written path
        """
        if not self.state['segmented']:
            self.segment()

        written: Dict[str, Path] = {}
        for series, result, path in zip(self.series, self.results, self.config.output.output_files):
            written[f"{result.sample_id}.partitioned"] = write_partitioned(path, series, result)
            if self.config.output.segments_dir:
                target = Path(self.config.output.segments_dir) / f"{result.sample_id}.segments.tsv"
                written[f"{result.sample_id}.segments"] = write_segments(target, result)

        self.state['exported'] = True
        if self.verbose:
            logger.info(f"[OK] Wrote {len(written)} file(s)")
        return written

    def run_all(self) -> Dict[str, Path]:
        """Load, segment and export in one call."""
        self.load_inputs()
        self.segment()
        return self.export_results()
