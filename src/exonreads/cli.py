import argparse
import os

from .count import count_reads
from .exonreadsClasses import FilterConfig
from .flags import parse_flag
from .scan import MODES
from .viewer import view_bam_head


def _config_from_args(args) -> FilterConfig:
    return FilterConfig(
        min_mapping_quality=args.min_mapq,
        required_flags=args.required_flag,
        filtered_flags=args.filtered_flag,
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Sanity check: print the first N records with their filter status
    if args.cmd in ["view", "head"]:
        return view_bam_head(args.bams, n=args.num, region=args.region, config=_config_from_args(args))

    # Count mapped / exon / unmapped reads
    elif args.cmd == "count":
        for path in (args.bam, args.gtf):
            if not os.path.exists(path):
                parser.error(f"file `{path}` not found")
        if args.jobs is not None and args.jobs < 1:
            parser.error("--jobs must be >= 1")
        return count_reads(
            bam_path=args.bam,
            gtf_path=args.gtf,
            config=_config_from_args(args),
            mode=args.mode,
            jobs=args.jobs,
            executor=args.executor,
            log_level=args.log_level,
            log_reads=args.log_reads,
        )
    else:
        parser.error("Unknown command")

    return 2


def _add_filter_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "-q", "--min-mapq",
        dest="min_mapq",
        type=int,
        default=35,
        help="Minimum mapping quality for a read to be accepted (default 35)."
    )
    p.add_argument(
        "-f", "--required-flag",
        dest="required_flag",
        type=parse_flag,
        default=0x3,
        help="Only accept reads with all of these FLAG bits set; decimal or 0x-hex (default 3)."
    )
    p.add_argument(
        "-F", "--filtered-flag",
        dest="filtered_flag",
        type=parse_flag,
        default=0xB00,
        help="Reject reads with any of these FLAG bits set; decimal or 0x-hex (default 2816)."
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="exonreads",
        description="Count reads overlapping exons in a coordinate-sorted, indexed BAM."
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # Sanity checking of BAM files
    t = sub.add_parser(
        "view",
        aliases=["head"],
        help="Print first N records from each BAM with CIGAR footprint and filter status."
    )
    t.add_argument(
        "bams",
        nargs="+",
        help="One or more BAM files (glob patterns allowed)."
    )
    t.add_argument(
        "-n", "--num",
        type=int,
        default=10,
        help="Number of records per BAM."
    )
    t.add_argument(
        "-r", "--region",
        help="Optional region like 'chr1:1000-2000' (needs a .bai index)."
    )
    _add_filter_args(t)

    c = sub.add_parser(
        "count",
        help="Count mapped, exon-overlapping and unmapped reads, each split into accepted/rejected."
    )
    c.add_argument(
        "-b", "--bam",
        required=True,
        help="Coordinate-sorted BAM with a .bai index."
    )
    c.add_argument(
        "-g", "--gtf",
        required=True,
        help="GTF annotation (.gtf or .gtf.gz); rows with feature type 'exon' are used."
    )
    _add_filter_args(c)
    c.add_argument(
        "--mode",
        choices=list(MODES),
        default="records",
        help="'records' counts every alignment record (default); 'reads' counts distinct read names "
             "(name plus /1 or /2 mate suffix) per chromosome."
    )
    c.add_argument(
        "-j", "--jobs",
        type=int,
        default=None,
        help="Number of parallel chromosome workers (default: number of CPUs)."
    )
    c.add_argument(
        "--executor",
        choices=["process", "thread"],
        default="process",
        help="Worker pool type (default: process)."
    )
    # Debugging assistance
    c.add_argument(
        "--log-level",
        default="INFO",
        choices=["ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging verbosity (default: INFO)."
    )
    c.add_argument(
        "--log-reads",
        type=int,
        default=0,
        help="When DEBUG, log details for the first N records per chromosome (default: 0)."
    )
    return p

if __name__ == "__main__":
    raise SystemExit(main())
