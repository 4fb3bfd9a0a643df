from __future__ import annotations

import logging
import os
import sys
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List, Optional

import psutil

from .bamsource import BamSource, decode_record, read_name_with_mate
from .classify import classify, is_always_excluded, unmapped_config, validate_config
from .errors import AggregationError, ExonReadsError, InvalidInputError, RecordDecodeError
from .exonreadsClasses import CountReport, FilterConfig, Outcome, Region, ScanResult, Tally
from .gtf import load_exon_regions
from .regions import normalize_regions
from .scan import check_mode, scan_chromosome

logger = logging.getLogger(__name__)

EXECUTORS = {"process": ProcessPoolExecutor, "thread": ThreadPoolExecutor}


def _make_logger(level: str) -> logging.Logger:
    lvl = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger("exonreads")
    # Configure once
    if not root.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("[%(asctime)s] [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        handler.setFormatter(fmt)
        root.addHandler(handler)
    root.setLevel(lvl)
    return root


def _get_memory_usage() -> float:
    process = psutil.Process(os.getpid())
    return process.memory_info().rss / 1024 / 1024  # MB


def _worker_count(jobs: Optional[int], n_tasks: int) -> int:
    if jobs is None:
        jobs = psutil.cpu_count(logical=True) or 1
    if jobs < 1:
        raise InvalidInputError(f"Number of jobs must be >= 1, got {jobs}")
    return max(1, min(jobs, n_tasks))


def _count_chromosome(
    source,
    chrom: str,
    regions: List[Region],
    config: FilterConfig,
    mode: str,
    log_reads: int,
) -> ScanResult:
    # Each task owns its handle; never share one across tasks
    handle = source.open()
    try:
        return scan_chromosome(
            chrom, regions, source.fetch(handle, chrom), config, mode=mode, log_reads=log_reads
        )
    finally:
        handle.close()


def aggregate(
    config: FilterConfig,
    grouped_regions: Dict[str, List[Region]],
    source,
    *,
    jobs: Optional[int] = None,
    executor: str = "process",
    mode: str = "records",
    log_reads: int = 0,
) -> ScanResult:
    """
    Scan every chromosome in `grouped_regions` concurrently and sum the tallies.

    The first task failure aborts the run with AggregationError; tallies from
    tasks that already finished are dropped.
    """
    check_mode(mode)
    pool_cls = EXECUTORS.get(executor)
    if pool_cls is None:
        raise InvalidInputError(f"Unknown executor '{executor}' (expected one of {', '.join(EXECUTORS)})")

    chroms = sorted(grouped_regions)
    n_workers = _worker_count(jobs, len(chroms))
    logger.info(f"Counting reads on {len(chroms)} chromosomes with {n_workers} {executor} worker(s)")

    total = ScanResult()
    with pool_cls(max_workers=n_workers) as pool:
        futures = {
            pool.submit(_count_chromosome, source, chrom, grouped_regions[chrom], config, mode, log_reads): chrom
            for chrom in chroms
        }
        try:
            for fut in as_completed(futures):
                chrom = futures[fut]
                try:
                    res = fut.result()
                except Exception as e:
                    raise AggregationError(chrom, e) from e
                m_acc, m_rej, e_acc, e_rej = res.as_tuple()
                logger.info(
                    f"Done {chrom}: mapped accepted={m_acc} rejected={m_rej}, "
                    f"exon accepted={e_acc} rejected={e_rej}"
                )
                total = total + res
        except AggregationError:
            # Pending tasks are not started; running ones finish and are discarded
            pool.shutdown(wait=True, cancel_futures=True)
            raise
    return total


def tally_unmapped(base_config: FilterConfig, source, *, mode: str = "records") -> Tally:
    """One pass over the unplaced-unmapped records with the derived unmapped policy."""
    check_mode(mode)
    config = unmapped_config(base_config)
    logger.debug(
        f"Unmapped policy: required={config.required_flags:#x}, filtered={config.filtered_flags:#x}"
    )
    tally = Tally()
    accepted_names = set()
    rejected_names = set()

    handle = source.open()
    try:
        for index, aln in enumerate(source.unmapped(handle)):
            try:
                rec = decode_record(aln, None, index)
            except RecordDecodeError as e:
                logger.warning(str(e))
                continue
            if is_always_excluded(rec.flag):
                continue
            outcome = classify(rec.mapq, rec.flag, config)
            if mode == "reads":
                name = read_name_with_mate(rec)
                (accepted_names if outcome is Outcome.ACCEPT else rejected_names).add(name)
            else:
                tally.add(outcome)
    finally:
        handle.close()

    if mode == "reads":
        tally = Tally(len(accepted_names), len(rejected_names - accepted_names))
    return tally


def count_exon_reads(
    config: FilterConfig,
    grouped_regions: Dict[str, List[Region]],
    source,
    *,
    jobs: Optional[int] = None,
    executor: str = "process",
    mode: str = "records",
    log_reads: int = 0,
) -> CountReport:
    """Mapped, exon-overlapping and unmapped tallies for a whole BAM."""
    validate_config(config)
    scanned = aggregate(
        config, grouped_regions, source, jobs=jobs, executor=executor, mode=mode, log_reads=log_reads
    )
    unmapped = tally_unmapped(config, source, mode=mode)
    return CountReport(mapped=scanned.mapped, exon=scanned.exon, unmapped=unmapped)


def format_report(report: CountReport) -> str:
    lines = [
        f"{report.mapped.accepted} total mapped reads",
        f"{report.exon.accepted} exon mapped reads",
        f"{report.unmapped.accepted} unmapped reads",
        "category\taccepted\trejected",
    ]
    for name in ("mapped", "exon", "unmapped"):
        t: Tally = getattr(report, name)
        lines.append(f"{name}\t{t.accepted}\t{t.rejected}")
    return "\n".join(lines)


def count_reads(
    bam_path: str | Path,
    gtf_path: str | Path,
    *,
    config: FilterConfig = FilterConfig(),
    mode: str = "records",
    jobs: Optional[int] = None,
    executor: str = "process",
    log_level: str = "INFO",
    log_reads: int = 0,
) -> int:
    """
    Load exons from the GTF, count the BAM against them and print the report.
    Returns a process exit code.
    """
    logger = _make_logger(log_level)
    logger.debug(f"Python version: {sys.version}")
    logger.debug(f"Starting memory: {_get_memory_usage():.1f} MB")
    logger.info(
        f"BAM={bam_path}, GTF={gtf_path}, min_mapq={config.min_mapping_quality}, "
        f"required={config.required_flags:#x}, filtered={config.filtered_flags:#x}, mode={mode}"
    )

    try:
        validate_config(config)
        check_mode(mode)
        source = BamSource(str(bam_path))
        chroms = source.references()

        logger.info(f"Reading GTF file: {gtf_path}")
        regions = load_exon_regions(gtf_path)
        grouped = normalize_regions(regions, chroms)

        if logger.isEnabledFor(logging.DEBUG):
            gtf_contigs = {r.chrom for r in regions}
            only_gtf = sorted(gtf_contigs - set(chroms))
            only_bam = sorted(set(chroms) - gtf_contigs)
            logger.debug(f"Contigs in GTF not in BAM (first 20): {only_gtf[:20]}")
            logger.debug(f"Contigs in BAM not in GTF (first 20): {only_bam[:20]}")

        n_regions = sum(len(v) for v in grouped.values())
        logger.info(f"Counting {n_regions} exon regions on {len(grouped)} chromosomes")

        report = count_exon_reads(
            config, grouped, source, jobs=jobs, executor=executor, mode=mode, log_reads=log_reads
        )
    except InvalidInputError as e:
        logger.error(str(e))
        return 2
    except ExonReadsError as e:
        logger.error(str(e))
        return 1

    print(format_report(report))
    logger.debug(f"Final memory usage: {_get_memory_usage():.1f} MB")
    return 0
