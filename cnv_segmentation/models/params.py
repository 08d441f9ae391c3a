"""
Pydantic Models for Segmentation Parameters

One immutable parameter model per algorithm. The three models form the tagged
variant ``AlgorithmChoice``, discriminated on their ``method`` field, which the
engine dispatches on exactly once.

Out-of-range values raise ConfigurationError directly from the validators so
callers see the same error type as for other configuration problems.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Annotated, Any, Literal, Optional, Union
from enum import Enum

from .intervals import ForcedIntervals
from ..validators.input_validator import ConfigurationError, DataError


DEFAULT_MAD_FACTOR = 2.0
DEFAULT_ALPHA = 0.01
DEFAULT_MAX_INTER_BIN_DIST = 1_000_000
DEFAULT_VERBOSITY = 2

# Germline samples carry no subclonal structure: demand stronger evidence
GERMLINE_THRESHOLD_MULTIPLIER = 1.5


class SegmentationMethod(str, Enum):
    """Available segmentation algorithms."""
    WAVELETS = "Wavelets"
    CBS = "CBS"
    HMM = "HMM"

    @classmethod
    def parse(cls, value: Any) -> 'SegmentationMethod':
        """
        Parse a method name case-insensitively.

        Raises:
            DataError: If the value names no known method
        """
        if isinstance(value, cls):
            return value
        for member in cls:
            if str(value).strip().lower() == member.value.lower():
                return member
        raise DataError(
            f"Unsupported segmentation method: {value!r}",
            field="method",
            expected=", ".join(m.value for m in cls)
        )


class UndoMethod(str, Enum):
    """Post-split merging pass for CBS."""
    NONE = "None"
    PRUNE = "Prune"
    SD_UNDO = "SDUndo"

    @classmethod
    def parse(cls, value: Any) -> 'UndoMethod':
        """
        Parse an undo method name case-insensitively; ``None`` means no merging.

        Raises:
            DataError: If the value names no known undo method
        """
        if value is None:
            return cls.NONE
        if isinstance(value, cls):
            return value
        for member in cls:
            if str(value).strip().lower() == member.value.lower():
                return member
        raise DataError(
            f"Unsupported undo method: {value!r}",
            field="undo_method",
            expected=", ".join(m.value for m in cls)
        )


class _SegmenterParams(BaseModel):
    """Fields shared by every algorithm."""

    verbosity: int = Field(
        default=DEFAULT_VERBOSITY,
        description="0 silent, 1 summary lines, 2 per-chromosome detail"
    )

    class Config:
        """Pydantic configuration."""
        frozen = True
        extra = "forbid"
        arbitrary_types_allowed = True

    @field_validator('verbosity')
    @classmethod
    def validate_verbosity(cls, v):
        if v < 0:
            raise ConfigurationError(
                "verbosity must be non-negative",
                field="verbosity",
                actual=str(v)
            )
        return v


class WaveletParams(_SegmenterParams):
    """
    Parameters for multiscale Haar-wavelet segmentation.

    Example:
        >>> params = WaveletParams(mad_factor=2.5, is_germline=True)
        >>> params.threshold_factor
        3.75
    """
    method: Literal['Wavelets'] = 'Wavelets'

    is_germline: bool = Field(
        default=False,
        description="Germline input: fewer, more confident breakpoints"
    )

    forced_intervals: Optional[ForcedIntervals] = Field(
        default=None,
        description="Common CNV regions forced into the output"
    )

    mad_factor: float = Field(
        default=DEFAULT_MAD_FACTOR,
        description="Coefficient threshold in units of each scale's MAD"
    )

    max_level: int = Field(
        default=5,
        description="Coarsest Haar level (half-window 2**(level-1) bins)"
    )

    min_segment_bins: int = Field(
        default=3,
        description="Segments shorter than this need twice the breakpoint score"
    )

    min_breakpoint_score: float = Field(
        default=4.0,
        description="Standardized mean shift a breakpoint must reach to be kept"
    )

    @field_validator('mad_factor')
    @classmethod
    def validate_mad_factor(cls, v):
        if not v > 0:
            raise ConfigurationError(
                "mad_factor must be positive",
                field="mad_factor",
                expected="> 0",
                actual=str(v)
            )
        return v

    @field_validator('max_level', 'min_segment_bins')
    @classmethod
    def validate_positive_int(cls, v, info):
        if v < 1:
            raise ConfigurationError(
                f"{info.field_name} must be at least 1",
                field=info.field_name,
                actual=str(v)
            )
        return v

    @field_validator('min_breakpoint_score')
    @classmethod
    def validate_score(cls, v):
        if v < 0:
            raise ConfigurationError(
                "min_breakpoint_score must be non-negative",
                field="min_breakpoint_score",
                actual=str(v)
            )
        return v

    @property
    def threshold_factor(self) -> float:
        """MAD multiplier after the germline adjustment."""
        if self.is_germline:
            return self.mad_factor * GERMLINE_THRESHOLD_MULTIPLIER
        return self.mad_factor

    @property
    def required_score(self) -> float:
        """Breakpoint confirmation score after the germline adjustment."""
        if self.is_germline:
            return self.min_breakpoint_score * GERMLINE_THRESHOLD_MULTIPLIER
        return self.min_breakpoint_score

    def get_summary(self) -> str:
        return (
            f"Wavelets: mad_factor={self.mad_factor}, germline={self.is_germline}, "
            f"levels=1..{self.max_level}, min_segment_bins={self.min_segment_bins}"
        )


class CbsParams(_SegmenterParams):
    """
    Parameters for circular binary segmentation.

    Example:
        >>> params = CbsParams(alpha=0.01, undo_method='SDUndo')
        >>> params.undo_method
        <UndoMethod.SD_UNDO: 'SDUndo'>
    """
    method: Literal['CBS'] = 'CBS'

    alpha: float = Field(
        default=DEFAULT_ALPHA,
        description="Significance level of the permutation test"
    )

    undo_method: UndoMethod = Field(
        default=UndoMethod.NONE,
        description="Merging pass applied after the recursive split"
    )

    max_inter_bin_dist_in_segment: Optional[int] = Field(
        default=None,
        description="Segment gap-free blocks separately; negative disables"
    )

    n_permutations: int = Field(
        default=1000,
        description="Permutations per significance test"
    )

    min_width: int = Field(
        default=2,
        description="Minimum number of bins on each side of a split"
    )

    random_state: int = Field(
        default=42,
        description="Seed of the permutation generator"
    )

    prune_alpha: float = Field(
        default=0.05,
        description="Significance level of the Prune re-test"
    )

    undo_sd: float = Field(
        default=3.0,
        description="SDUndo merge threshold in genome-wide standard deviations"
    )

    @field_validator('undo_method', mode='before')
    @classmethod
    def parse_undo_method(cls, v):
        return UndoMethod.parse(v)

    @field_validator('alpha', 'prune_alpha')
    @classmethod
    def validate_alpha(cls, v, info):
        if not (0 < v < 1):
            raise ConfigurationError(
                f"{info.field_name} must lie strictly between 0 and 1",
                field=info.field_name,
                expected="0 < value < 1",
                actual=str(v)
            )
        return v

    @field_validator('n_permutations', 'min_width')
    @classmethod
    def validate_positive_int(cls, v, info):
        if v < 1:
            raise ConfigurationError(
                f"{info.field_name} must be at least 1",
                field=info.field_name,
                actual=str(v)
            )
        return v

    @field_validator('undo_sd')
    @classmethod
    def validate_undo_sd(cls, v):
        if v < 0:
            raise ConfigurationError(
                "undo_sd must be non-negative",
                field="undo_sd",
                actual=str(v)
            )
        return v

    def get_summary(self) -> str:
        return (
            f"CBS: alpha={self.alpha}, undo={self.undo_method.value}, "
            f"permutations={self.n_permutations}, seed={self.random_state}"
        )


class HmmParams(_SegmenterParams):
    """
    Parameters for joint multi-sample HMM segmentation.

    Example:
        >>> params = HmmParams(sample_count=3)
        >>> params.n_states
        6
    """
    method: Literal['HMM'] = 'HMM'

    sample_count: int = Field(
        description="Number of samples decoded jointly (at least 2)"
    )

    forced_intervals: Optional[ForcedIntervals] = Field(
        default=None,
        description="Common CNV regions forced into the output"
    )

    max_copy_number: int = Field(
        default=5,
        description="Hidden states are copy numbers 0..max_copy_number"
    )

    ploidy: int = Field(
        default=2,
        description="Copy number of the median signal level"
    )

    self_transition: float = Field(
        default=0.995,
        description="Probability of staying in the same state between adjacent bins"
    )

    baum_welch_iterations: int = Field(
        default=3,
        description="EM refinement rounds of state means and spreads"
    )

    min_sd_fraction: float = Field(
        default=0.05,
        description="Emission sd floor as a fraction of the sample median"
    )

    @field_validator('sample_count')
    @classmethod
    def validate_sample_count(cls, v):
        if v < 2:
            raise ConfigurationError(
                "HMM segmentation requires at least two samples",
                field="sample_count",
                expected=">= 2",
                actual=str(v)
            )
        return v

    @field_validator('max_copy_number', 'ploidy')
    @classmethod
    def validate_positive_int(cls, v, info):
        if v < 1:
            raise ConfigurationError(
                f"{info.field_name} must be at least 1",
                field=info.field_name,
                actual=str(v)
            )
        return v

    @field_validator('self_transition')
    @classmethod
    def validate_self_transition(cls, v):
        if not (0 < v < 1):
            raise ConfigurationError(
                "self_transition must lie strictly between 0 and 1",
                field="self_transition",
                actual=str(v)
            )
        return v

    @field_validator('baum_welch_iterations')
    @classmethod
    def validate_iterations(cls, v):
        if v < 0:
            raise ConfigurationError(
                "baum_welch_iterations must be non-negative",
                field="baum_welch_iterations",
                actual=str(v)
            )
        return v

    @field_validator('min_sd_fraction')
    @classmethod
    def validate_sd_fraction(cls, v):
        if not v > 0:
            raise ConfigurationError(
                "min_sd_fraction must be positive",
                field="min_sd_fraction",
                actual=str(v)
            )
        return v

    @property
    def n_states(self) -> int:
        return self.max_copy_number + 1

    def get_summary(self) -> str:
        return (
            f"HMM: samples={self.sample_count}, states=0..{self.max_copy_number}, "
            f"self_transition={self.self_transition}"
        )


AlgorithmChoice = Annotated[
    Union[WaveletParams, CbsParams, HmmParams],
    Field(discriminator='method')
]

_PARAMS_BY_METHOD = {
    SegmentationMethod.WAVELETS: WaveletParams,
    SegmentationMethod.CBS: CbsParams,
    SegmentationMethod.HMM: HmmParams,
}


def build_algorithm_choice(method: Any, /, **params) -> Union[WaveletParams, CbsParams, HmmParams]:
    """
    Build the parameter model for a method name.

    Example:
        >>> choice = build_algorithm_choice('cbs', alpha=0.05)
        >>> type(choice).__name__
        'CbsParams'
    """
    parsed = SegmentationMethod.parse(method)
    params.pop('method', None)
    return _PARAMS_BY_METHOD[parsed](**params)


def method_of(choice: Any) -> SegmentationMethod:
    """
    Method tag of a parameter model.

    Raises:
        DataError: If the object is not one of the algorithm parameter models
    """
    if isinstance(choice, (WaveletParams, CbsParams, HmmParams)):
        return SegmentationMethod(choice.method)
    raise DataError(
        f"Unsupported algorithm choice: {type(choice).__name__}",
        field="choice",
        expected="WaveletParams, CbsParams or HmmParams"
    )
