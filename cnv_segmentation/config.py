"""
Partitioning Run Configuration

Unified configuration for one partitioning run: inputs, outputs, algorithm
choice and parameters, post-processing settings and logging.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional
from pathlib import Path
import yaml

from .models.params import (
    DEFAULT_MAX_INTER_BIN_DIST,
    SegmentationMethod,
    build_algorithm_choice as _build_choice,
)
from .models.intervals import ForcedIntervals
from .validators.input_validator import ConfigurationError, SegmentationError

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


@dataclass
class InputConfig:
    """Input bin tables and interval files."""

    bin_files: List[str]
    sample_ids: Optional[List[str]] = None  # Defaults to the file names
    exclusion_bed: Optional[str] = None  # Regions no segment may span
    common_cnvs_bed: Optional[str] = None  # Forced common CNV intervals

    def validate(self) -> List[str]:
        """Validate input configuration."""
        issues = []

        if not self.bin_files:
            issues.append("At least one bin file is required")

        for path in self.bin_files:
            if not Path(path).exists():
                issues.append(f"Bin file not found: {path}")

        if self.sample_ids is not None and len(self.sample_ids) != len(self.bin_files):
            issues.append(
                f"sample_ids has {len(self.sample_ids)} entries for {len(self.bin_files)} bin files"
            )

        for label, path in (('exclusion_bed', self.exclusion_bed), ('common_cnvs_bed', self.common_cnvs_bed)):
            if path is not None and not Path(path).exists():
                issues.append(f"{label} not found: {path}")

        return issues


@dataclass
class OutputConfig:
    """Partitioned output files, one per input sample."""

    output_files: List[str]
    segments_dir: Optional[str] = None  # Also write one segment table per sample

    def validate(self) -> List[str]:
        issues = []
        if not self.output_files:
            issues.append("At least one output file is required")
        if len(set(self.output_files)) != len(self.output_files):
            issues.append("Output files must be distinct")
        return issues


@dataclass
class LoggingConfig:
    """Logging level and optional log file."""

    level: str = 'INFO'
    log_file: Optional[str] = None

    def validate(self) -> List[str]:
        if self.level.upper() not in VALID_LOG_LEVELS:
            return [f"Invalid log level '{self.level}'. Valid levels: {VALID_LOG_LEVELS}"]
        return []


@dataclass
class SegmentationConfig:
    """
    Master configuration of a partitioning run.

    Example:
        >>> config = SegmentationConfig(
        ...     inputs=InputConfig(bin_files=['sample.binned.tsv.gz']),
        ...     output=OutputConfig(output_files=['sample.partitioned.tsv']),
        ...     method='CBS',
        ...     params={'alpha': 0.01, 'undo_method': 'Prune'}
        ... )
        >>> config.to_yaml('partition.yaml')
    """

    inputs: InputConfig
    output: OutputConfig
    method: str = SegmentationMethod.WAVELETS.value
    params: Dict[str, Any] = field(default_factory=dict)

    # Post-processing
    max_inter_bin_dist_in_segment: int = DEFAULT_MAX_INTER_BIN_DIST
    n_jobs: int = 1

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    verbose: bool = True

    # Metadata
    name: Optional[str] = None
    description: Optional[str] = None

    def validate(self) -> List[str]:
        """
        Validate entire configuration.

        Returns:
            List of validation error messages (empty if all valid)
        """
        issues = []

        issues.extend(self.inputs.validate())
        issues.extend(self.output.validate())
        issues.extend(self.logging.validate())

        try:
            method = SegmentationMethod.parse(self.method)
        except SegmentationError as exc:
            issues.append(str(exc).splitlines()[0])
            return issues

        n_inputs = len(self.inputs.bin_files)
        n_outputs = len(self.output.output_files)

        if method == SegmentationMethod.HMM:
            if n_inputs < 2:
                issues.append("Method HMM only works for multi-sample input")
        else:
            if n_outputs > 1:
                issues.append(f"Method {method.value} only works with a single output file")
            if n_inputs > 1:
                issues.append(f"Method {method.value} segments a single input file")

        if n_inputs != n_outputs:
            issues.append(f"{n_inputs} bin files but {n_outputs} output files")

        if self.n_jobs < 1:
            issues.append("n_jobs must be at least 1")

        try:
            self.build_algorithm_choice()
        except SegmentationError as exc:
            issues.append(str(exc).splitlines()[0])
        except (TypeError, ValueError) as exc:
            issues.append(f"Invalid {method.value} parameters: {exc}")

        return issues

    def build_algorithm_choice(self, forced_intervals: Optional[ForcedIntervals] = None):
        """
        Parameter model of the configured algorithm.

        HMM's ``sample_count`` defaults to the number of bin files. Forced
        intervals, when given, are attached to algorithms that accept them.
        """
        method = SegmentationMethod.parse(self.method)
        params = dict(self.params)

        if method == SegmentationMethod.HMM:
            params.setdefault('sample_count', len(self.inputs.bin_files))
        if forced_intervals is not None and method != SegmentationMethod.CBS:
            params['forced_intervals'] = forced_intervals

        return _build_choice(method, **params)

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return {
            'inputs': asdict(self.inputs),
            'output': asdict(self.output),
            'method': self.method,
            'params': dict(self.params),
            'max_inter_bin_dist_in_segment': self.max_inter_bin_dist_in_segment,
            'n_jobs': self.n_jobs,
            'logging': asdict(self.logging),
            'verbose': self.verbose,
            'name': self.name,
            'description': self.description
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'SegmentationConfig':
        """
        Create from dictionary.

        Raises:
            ConfigurationError: If required sections are missing or malformed
        """
        try:
            return cls(
                inputs=InputConfig(**data['inputs']),
                output=OutputConfig(**data['output']),
                method=data.get('method', SegmentationMethod.WAVELETS.value),
                params=dict(data.get('params') or {}),
                max_inter_bin_dist_in_segment=data.get(
                    'max_inter_bin_dist_in_segment', DEFAULT_MAX_INTER_BIN_DIST
                ),
                n_jobs=data.get('n_jobs', 1),
                logging=LoggingConfig(**(data.get('logging') or {})),
                verbose=data.get('verbose', True),
                name=data.get('name'),
                description=data.get('description')
            )
        except (KeyError, TypeError) as exc:
            raise ConfigurationError(
                f"Malformed configuration: {exc}",
                field="config",
                expected="'inputs' and 'output' sections with known keys"
            ) from exc

    def to_yaml(self, filepath: str) -> None:
        """
        Export configuration to YAML file.

        Args:
            filepath: Path to save YAML file
        """
        Path(filepath).parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml(cls, filepath: str) -> 'SegmentationConfig':
        """
        Load configuration from YAML file.

        Raises:
            ConfigurationError: If the file is missing or not a YAML mapping
        """
        path = Path(filepath)
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {filepath}",
                field="config",
                fix="Check the --config path"
            )

        with open(path, 'r') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigurationError(
                    f"Invalid YAML in {filepath}: {exc}",
                    field="config"
                ) from exc

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file {filepath} does not contain a mapping",
                field="config",
                actual=type(data).__name__
            )

        return cls.from_dict(data)

    def summary(self) -> str:
        """
        Get human-readable summary of configuration.

        Returns:
            Formatted string describing the configuration
        """
        lines = [
            "=" * 70,
            "PARTITIONING CONFIGURATION SUMMARY",
            "=" * 70,
        ]

        if self.name:
            lines.extend(["", f"Name: {self.name}"])
        if self.description:
            lines.extend(["", f"Description: {self.description}"])

        params = ", ".join(f"{k}={v}" for k, v in self.params.items()) or "defaults"
        lines.extend([
            "",
            "INPUTS:",
            f"  Bin files: {', '.join(self.inputs.bin_files)}",
            f"  Exclusion BED: {self.inputs.exclusion_bed or 'none'}",
            f"  Common CNVs BED: {self.inputs.common_cnvs_bed or 'none'}",
            "",
            "ALGORITHM:",
            f"  Method: {self.method}",
            f"  Parameters: {params}",
            f"  Max inter-bin distance in segment: {self.max_inter_bin_dist_in_segment:,}",
            f"  Worker threads: {self.n_jobs}",
            "",
            "OUTPUT:",
            f"  Partitioned files: {', '.join(self.output.output_files)}",
            f"  Segment tables: {self.output.segments_dir or 'not written'}",
            "=" * 70
        ])

        return "\n".join(lines)
