"""
Pydantic Models for Segmentation Results

Type-safe, immutable result objects handed back to the caller for
serialization.
"""

from pydantic import BaseModel, Field, model_validator
from typing import Dict, List, Optional, Tuple
import pandas as pd

from .params import SegmentationMethod


class Segment(BaseModel):
    """
    A run of consecutive bins sharing one copy-number state.

    Example:
        >>> seg = Segment(
        ...     chromosome='chr1', start=0, end=4000,
        ...     bin_indices=(0, 1, 2, 3), median=1.0, mean=1.0
        ... )
        >>> seg.n_bins
        4
    """
    chromosome: str = Field(description="Chromosome name")
    start: int = Field(ge=0, description="Start of the first bin (0-based)")
    end: int = Field(description="End of the last bin")
    bin_indices: Tuple[int, ...] = Field(
        description="Original indices of the bins in this segment, increasing"
    )
    median: float = Field(description="Median signal over the segment's bins")
    mean: float = Field(description="Mean signal over the segment's bins")
    copy_number: Optional[int] = Field(
        default=None,
        description="Decoded copy-number state (HMM only)"
    )
    forced: bool = Field(
        default=False,
        description="Segment produced from a forced interval"
    )

    class Config:
        frozen = True

    @model_validator(mode='after')
    def validate_extent(self):
        """Ensure a non-empty extent and increasing bin indices."""
        if self.start >= self.end:
            raise ValueError(f"Segment start ({self.start}) must be < end ({self.end})")
        if not self.bin_indices:
            raise ValueError("Segment must contain at least one bin")
        if any(b <= a for a, b in zip(self.bin_indices, self.bin_indices[1:])):
            raise ValueError("Segment bin_indices must be strictly increasing")
        return self

    @property
    def n_bins(self) -> int:
        return len(self.bin_indices)

    def get_summary(self) -> str:
        """Get human-readable summary."""
        cn = f", CN={self.copy_number}" if self.copy_number is not None else ""
        return (
            f"{self.chromosome}:{self.start}-{self.end} "
            f"({self.n_bins} bins, median={self.median:.4g}{cn})"
        )


class GenomeSegmentationResult(BaseModel):
    """
    Segments of one sample, grouped per chromosome in input order.

    Example:
        >>> result.segments_by_chromosome['chr1'][0].start
        0
        >>> result.to_dataframe().columns.tolist()[:3]
        ['chrom', 'start', 'end']
    """
    sample_id: str = Field(description="Sample the segments belong to")
    method: SegmentationMethod = Field(description="Algorithm that produced the segments")
    segments_by_chromosome: Dict[str, Tuple[Segment, ...]] = Field(
        default_factory=dict,
        description="Ordered segments per chromosome, chromosomes in input order"
    )

    class Config:
        frozen = True

    @model_validator(mode='after')
    def validate_ordering(self):
        """Segments are ordered by start and do not overlap."""
        for chrom, segments in self.segments_by_chromosome.items():
            for left, right in zip(segments, segments[1:]):
                if right.start < left.end:
                    raise ValueError(
                        f"Segments on {chrom} overlap or are unordered: "
                        f"{left.start}-{left.end} then {right.start}-{right.end}"
                    )
            for seg in segments:
                if seg.chromosome != chrom:
                    raise ValueError(f"Segment on {seg.chromosome} filed under {chrom}")
        return self

    @property
    def chromosomes(self) -> List[str]:
        return list(self.segments_by_chromosome)

    @property
    def segments(self) -> List[Segment]:
        """All segments, concatenated in input chromosome order."""
        return [seg for segs in self.segments_by_chromosome.values() for seg in segs]

    @property
    def n_segments(self) -> int:
        return sum(len(segs) for segs in self.segments_by_chromosome.values())

    def boundaries(self, chromosome: str) -> List[Tuple[int, int]]:
        """(start, end) of every segment on a chromosome."""
        return [(seg.start, seg.end) for seg in self.segments_by_chromosome.get(chromosome, ())]

    def to_dataframe(self) -> pd.DataFrame:
        """One row per segment."""
        rows = [
            {
                'chrom': seg.chromosome,
                'start': seg.start,
                'end': seg.end,
                'n_bins': seg.n_bins,
                'median': seg.median,
                'mean': seg.mean,
                'copy_number': seg.copy_number,
                'forced': seg.forced,
            }
            for seg in self.segments
        ]
        return pd.DataFrame(
            rows,
            columns=['chrom', 'start', 'end', 'n_bins', 'median', 'mean', 'copy_number', 'forced']
        )

    def get_summary(self) -> str:
        """
        Get human-readable summary of the segmentation.

        Returns:
            Formatted string with per-chromosome segment counts
        """
        lines = [
            f"Segmentation of {self.sample_id} ({self.method.value})",
            "=" * 60,
            f"Segments: {self.n_segments}",
        ]
        for chrom, segs in self.segments_by_chromosome.items():
            n_bins = sum(seg.n_bins for seg in segs)
            lines.append(f"  {chrom}: {len(segs)} segments over {n_bins} bins")
        return "\n".join(lines)
