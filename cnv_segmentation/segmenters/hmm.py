"""
Joint Multi-Sample HMM Segmentation

Hidden states are integer copy numbers 0..max_copy_number. Each sample has
its own Gaussian emission per state; the samples' log-densities are summed
into one joint emission, so a single Viterbi path per chromosome defines
boundaries shared by all samples.
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence

import numpy as np
from scipy.special import logsumexp
from scipy.stats import median_abs_deviation, norm

from ..logger import get_logger
from ..models.genome import BinSeries, ChromosomeBins
from ..models.params import HmmParams, SegmentationMethod
from ..models.results import GenomeSegmentationResult, Segment
from ..validators.input_validator import validate_sample_alignment, validate_sample_count
from ..adjustments.utils import breakpoints_from_labels, segments_from_breakpoints

logger = get_logger(__name__)

# Absolute floor of the emission sd, for samples whose signal is all zero
_MIN_ABSOLUTE_SD = 1e-6

# Minimum posterior mass (in bins) for a state's mean to be re-estimated
_MIN_STATE_MASS = 1.0


@dataclass
class HmmModel:
    """Fitted emission and transition parameters."""

    means: np.ndarray          # (n_samples, n_states)
    sds: np.ndarray            # (n_samples,)
    sd_floors: np.ndarray      # (n_samples,)
    log_transition: np.ndarray  # (n_states, n_states)
    log_start: np.ndarray      # (n_states,)

    @property
    def n_states(self) -> int:
        return self.log_transition.shape[0]


def transition_matrix(n_states: int, self_transition: float) -> np.ndarray:
    """
    Log transition matrix: ``log(p)`` on the diagonal, the rest shared evenly.

    Example:
        >>> np.exp(transition_matrix(3, 0.9)).round(2)
        array([[0.9 , 0.05, 0.05],
               [0.05, 0.9 , 0.05],
               [0.05, 0.05, 0.9 ]])
    """
    off = (1.0 - self_transition) / (n_states - 1)
    matrix = np.full((n_states, n_states), off)
    np.fill_diagonal(matrix, self_transition)
    return np.log(matrix)


def joint_log_emissions(signal: np.ndarray, model: HmmModel) -> np.ndarray:
    """
    Joint log-emission of every bin and state.

    Args:
        signal: (n_samples, n_bins) signal of one chromosome

    Returns:
        (n_bins, n_states) array; rows with no finite entry are all zero
    """
    per_sample = norm.logpdf(
        signal[:, :, np.newaxis],
        loc=model.means[:, np.newaxis, :],
        scale=model.sds[:, np.newaxis, np.newaxis]
    )
    emissions = per_sample.sum(axis=0)
    uninformative = ~np.any(np.isfinite(emissions), axis=1)
    emissions[uninformative] = 0.0
    # Remaining -inf entries are impossible states, keep them finite for logsumexp
    emissions[~np.isfinite(emissions)] = -1e300
    return emissions


def forward_backward(emissions: np.ndarray, model: HmmModel):
    """
    Posterior state probabilities in log space.

    Returns:
        Tuple of (log_posteriors (n_bins, n_states), log_likelihood)
    """
    n_bins, n_states = emissions.shape
    log_alpha = np.empty((n_bins, n_states))
    log_beta = np.zeros((n_bins, n_states))

    log_alpha[0] = model.log_start + emissions[0]
    for t in range(1, n_bins):
        log_alpha[t] = logsumexp(
            log_alpha[t - 1][:, np.newaxis] + model.log_transition, axis=0
        ) + emissions[t]

    for t in range(n_bins - 2, -1, -1):
        log_beta[t] = logsumexp(
            model.log_transition + (emissions[t + 1] + log_beta[t + 1])[np.newaxis, :],
            axis=1
        )

    log_likelihood = float(logsumexp(log_alpha[-1]))
    return log_alpha + log_beta - log_likelihood, log_likelihood


def viterbi(emissions: np.ndarray, model: HmmModel) -> np.ndarray:
    """
    Most likely state path; ties resolve to the lowest state.

    Returns:
        (n_bins,) array of state indices
    """
    n_bins, n_states = emissions.shape
    backpointers = np.zeros((n_bins, n_states), dtype=np.int64)
    score = model.log_start + emissions[0]

    for t in range(1, n_bins):
        candidates = score[:, np.newaxis] + model.log_transition
        backpointers[t] = np.argmax(candidates, axis=0)
        score = candidates[backpointers[t], np.arange(n_states)] + emissions[t]

    path = np.empty(n_bins, dtype=np.int64)
    path[-1] = int(np.argmax(score))
    for t in range(n_bins - 1, 0, -1):
        path[t - 1] = backpointers[t, path[t]]
    return path


class HmmSegmenter:
    """
    Joint HMM segmenter over several aligned samples.

    Example:
        >>> segmenter = HmmSegmenter(HmmParams(sample_count=2))
        >>> results = segmenter.run([series_a, series_b])
        >>> results[0].boundaries('chr1') == results[1].boundaries('chr1')
        True
    """

    method = SegmentationMethod.HMM

    def __init__(self, params: HmmParams):
        self.params = params

    @property
    def verbosity(self) -> int:
        return self.params.verbosity

    def validate(self, series_list: Sequence[BinSeries]) -> None:
        """
        Raises:
            ConfigurationError: On a sample-count mismatch or unaligned bins
        """
        validate_sample_count(self.method.value, len(series_list), self.params.sample_count)
        validate_sample_alignment(series_list)

    def initial_model(self, series_list: Sequence[BinSeries]) -> HmmModel:
        """Emission parameters from each sample's genome-wide median and MAD."""
        n_states = self.params.n_states
        copy_numbers = np.arange(n_states, dtype=np.float64)

        means, sds, floors = [], [], []
        for series in series_list:
            signal = series.genome_signal()
            baseline = float(np.median(signal)) if len(signal) else 0.0
            if baseline <= 0:
                # Non-positive baselines fall back to the typical magnitude
                baseline = float(np.median(np.abs(signal))) if len(signal) else 0.0
            if baseline <= 0:
                baseline = 1.0

            floor = max(self.params.min_sd_fraction * baseline, _MIN_ABSOLUTE_SD)
            spread = float(median_abs_deviation(signal, scale='normal')) if len(signal) else 0.0

            means.append(baseline * copy_numbers / self.params.ploidy)
            sds.append(max(spread, floor))
            floors.append(floor)

        return HmmModel(
            means=np.array(means),
            sds=np.array(sds),
            sd_floors=np.array(floors),
            log_transition=transition_matrix(n_states, self.params.self_transition),
            log_start=np.full(n_states, -np.log(n_states))
        )

    def _chromosome_signal(self, series_list: Sequence[BinSeries], chromosome: str) -> np.ndarray:
        return np.vstack([series[chromosome].signal for series in series_list])

    def baum_welch_step(self, series_list: Sequence[BinSeries], model: HmmModel):
        """
        One EM round over all chromosomes.

        Per-sample state means are re-estimated where a state holds posterior
        mass; an update breaking the increasing order of means is discarded.
        Sds are pooled over states and kept above their floor.

        Returns:
            Tuple of (updated model, total log-likelihood)
        """
        n_samples = len(series_list)
        n_states = model.n_states
        weight = np.zeros(n_states)
        weighted_sum = np.zeros((n_samples, n_states))
        weighted_sq = np.zeros((n_samples, n_states))
        total_bins = 0
        total_log_likelihood = 0.0

        for chromosome in series_list[0].chromosomes:
            signal = self._chromosome_signal(series_list, chromosome)
            if signal.shape[1] == 0:
                continue
            log_posteriors, log_likelihood = forward_backward(
                joint_log_emissions(signal, model), model
            )
            posteriors = np.exp(log_posteriors)
            weight += posteriors.sum(axis=0)
            weighted_sum += signal @ posteriors
            weighted_sq += (signal ** 2) @ posteriors
            total_bins += signal.shape[1]
            total_log_likelihood += log_likelihood

        if total_bins == 0:
            return model, total_log_likelihood

        means = model.means.copy()
        has_mass = weight >= _MIN_STATE_MASS
        for s in range(n_samples):
            updated = means[s].copy()
            updated[has_mass] = weighted_sum[s, has_mass] / weight[has_mass]
            if np.all(np.diff(updated) > 0):
                means[s] = updated

        # Pooled within-state variance around the new means
        variance = (
            weighted_sq - 2 * means * weighted_sum + means ** 2 * weight[np.newaxis, :]
        ).sum(axis=1) / total_bins
        sds = np.maximum(np.sqrt(np.maximum(variance, 0.0)), model.sd_floors)

        refined = HmmModel(
            means=means,
            sds=sds,
            sd_floors=model.sd_floors,
            log_transition=model.log_transition,
            log_start=model.log_start
        )
        return refined, total_log_likelihood

    def fit(self, series_list: Sequence[BinSeries]) -> HmmModel:
        """
        Initial parameters refined by ``baum_welch_iterations`` EM rounds.

        Raises:
            ConfigurationError: On a sample-count mismatch or unaligned bins
        """
        self.validate(series_list)
        model = self.initial_model(series_list)
        for iteration in range(self.params.baum_welch_iterations):
            model, log_likelihood = self.baum_welch_step(series_list, model)
            if self.verbosity >= 2:
                logger.info(f"  Baum-Welch round {iteration + 1}: log-likelihood={log_likelihood:.2f}")
        return model

    def decode_chromosome(
        self,
        model: HmmModel,
        chromosome_bins: Sequence[ChromosomeBins]
    ) -> List[List[Segment]]:
        """
        Decode one chromosome jointly.

        Args:
            model: Fitted model
            chromosome_bins: The chromosome's bins, one entry per sample

        Returns:
            Raw segments per sample, sharing boundaries
        """
        if len(chromosome_bins[0]) == 0:
            return [[] for _ in chromosome_bins]

        signal = np.vstack([bins.signal for bins in chromosome_bins])
        states = viterbi(joint_log_emissions(signal, model), model)
        breakpoints = breakpoints_from_labels(states)

        if self.verbosity >= 2:
            logger.info(
                f"  {chromosome_bins[0].chromosome}: {signal.shape[1]} bins -> "
                f"{len(breakpoints) + 1} segments"
            )

        return [segments_from_breakpoints(bins, breakpoints, states) for bins in chromosome_bins]

    def run(self, series_list: Sequence[BinSeries]) -> List[GenomeSegmentationResult]:
        """
        Segment all samples jointly.

        Returns:
            One result per sample in input order

        Raises:
            ConfigurationError: On a sample-count mismatch or unaligned bins
        """
        if self.verbosity >= 1:
            logger.info(f"HMM segmentation of {len(series_list)} samples")

        model = self.fit(series_list)
        per_sample: List[Dict[str, tuple]] = [{} for _ in series_list]
        for chromosome in series_list[0].chromosomes:
            decoded = self.decode_chromosome(model, [s[chromosome] for s in series_list])
            for sample_segments, segments in zip(per_sample, decoded):
                sample_segments[chromosome] = tuple(segments)

        return [
            GenomeSegmentationResult(
                sample_id=series.sample_id,
                method=self.method,
                segments_by_chromosome=segments
            )
            for series, segments in zip(series_list, per_sample)
        ]
