"""
Partition Binned Signal into Copy-Number Segments

Usage:
    python run_segmentation.py -i sample.binned.tsv.gz -o sample.partitioned.tsv
    python run_segmentation.py -i s.tsv -o s.out -m CBS -a 0.01 -s Prune
    python run_segmentation.py -i a.tsv -i b.tsv -o a.out -o b.out -m HMM
    python run_segmentation.py --config partition.yaml
"""

import argparse
import sys

from cnv_segmentation import (
    PartitionPipeline,
    SegmentationConfig,
    InputConfig,
    OutputConfig,
    SegmentationError,
    configure_logging_from_config,
)
from cnv_segmentation.models.params import (
    DEFAULT_ALPHA,
    DEFAULT_MAD_FACTOR,
    DEFAULT_MAX_INTER_BIN_DIST,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Partition binned read-depth signal into copy-number segments"
    )
    parser.add_argument('--config', help="YAML configuration (other options are ignored)")
    parser.add_argument('-i', '--infile', action='append', default=[],
                        help="input bin table: chr, start, end, signal (repeat for HMM)")
    parser.add_argument('-o', '--outfile', action='append', default=[],
                        help="partitioned output file (one per input)")
    parser.add_argument('-m', '--method', default='Wavelets',
                        help="segmentation method (Wavelets/CBS/HMM). Default: Wavelets")
    parser.add_argument('-a', '--alpha', type=float, default=DEFAULT_ALPHA,
                        help=f"alpha parameter to CBS. Default: {DEFAULT_ALPHA}")
    parser.add_argument('-s', '--split', default='None',
                        help="CBS undo method (None/Prune/SDUndo). Default: None")
    parser.add_argument('-f', '--madFactor', dest='mad_factor', type=float, default=DEFAULT_MAD_FACTOR,
                        help=f"MAD factor to Wavelets. Default: {DEFAULT_MAD_FACTOR}")
    parser.add_argument('-b', '--bedfile', help="BED file of regions no segment may span")
    parser.add_argument('-c', '--commoncnvs',
                        help="BED file of common CNVs always included as segments")
    parser.add_argument('-g', '--germline', action='store_true',
                        help="input represents a germline genome")
    parser.add_argument('-d', '--maxInterBinDistInSegment', dest='max_gap', type=int,
                        default=DEFAULT_MAX_INTER_BIN_DIST,
                        help="maximum distance between adjacent bins in a segment "
                             f"(negative turns splitting off). Default: {DEFAULT_MAX_INTER_BIN_DIST}")
    parser.add_argument('-j', '--jobs', type=int, default=1,
                        help="worker threads for per-chromosome processing")
    parser.add_argument('-q', '--quiet', action='store_true', help="suppress console output")
    return parser


def config_from_args(args: argparse.Namespace) -> SegmentationConfig:
    """Translate command-line options into a SegmentationConfig."""
    method = args.method.strip().lower()
    if method == 'cbs':
        params = {'alpha': args.alpha, 'undo_method': args.split}
    elif method == 'hmm':
        params = {}
    else:
        params = {'mad_factor': args.mad_factor, 'is_germline': args.germline}

    return SegmentationConfig(
        inputs=InputConfig(
            bin_files=args.infile,
            exclusion_bed=args.bedfile,
            common_cnvs_bed=args.commoncnvs
        ),
        output=OutputConfig(output_files=args.outfile),
        method=args.method,
        params=params,
        max_inter_bin_dist_in_segment=args.max_gap,
        n_jobs=args.jobs,
        verbose=not args.quiet
    )


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.config is None and (not args.infile or not args.outfile):
        parser.error("at least one --infile and one --outfile are required without --config")

    try:
        config = SegmentationConfig.from_yaml(args.config) if args.config else config_from_args(args)
        configure_logging_from_config(config)
        pipeline = PartitionPipeline(config)
        written = pipeline.run_all()
    except SegmentationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    if config.verbose:
        for label, path in written.items():
            print(f"  - {label}: {path}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
