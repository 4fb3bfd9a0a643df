from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Set

from .bamsource import decode_record, read_name_with_mate
from .cigar import cigar_to_string, overlaps, reference_end
from .classify import classify, is_always_excluded
from .errors import InvalidInputError, RecordDecodeError
from .exonreadsClasses import FilterConfig, Outcome, Region, ScanResult, Tally

logger = logging.getLogger(__name__)

MODES = ("records", "reads")


class _ReadNameTally:
    """Distinct read names per outcome; a name seen accepted is not also counted rejected."""

    def __init__(self):
        self.accepted: Set[str] = set()
        self.rejected: Set[str] = set()

    def add(self, name: str, outcome: Outcome) -> None:
        if outcome is Outcome.ACCEPT:
            self.accepted.add(name)
        else:
            self.rejected.add(name)

    def to_tally(self) -> Tally:
        return Tally(len(self.accepted), len(self.rejected - self.accepted))


def check_mode(mode: str) -> str:
    if mode not in MODES:
        raise InvalidInputError(f"Unknown counting mode '{mode}' (expected one of {', '.join(MODES)})")
    return mode


def scan_chromosome(
    chrom: str,
    regions: List[Region],
    records: Iterable,
    config: FilterConfig,
    *,
    mode: str = "records",
    log_reads: int = 0,
) -> ScanResult:
    """
    Count one chromosome's records as mapped and exon-overlapping, each split
    into accepted/rejected.

    `records` must come in non-decreasing position order (a coordinate-sorted
    fetch) and `regions` must be merged and sorted by start; the region cursor
    only ever moves forward.
    """
    check_mode(mode)
    by_name = mode == "reads"
    result = ScanResult()
    mapped_names = _ReadNameTally()
    exon_names = _ReadNameTally()

    cursor = 0
    n_regions = len(regions)
    n_seen = 0
    n_excluded = 0
    n_bad = 0
    reads_logged = 0

    for index, aln in enumerate(records):
        n_seen += 1
        try:
            rec = decode_record(aln, chrom, index)
        except RecordDecodeError as e:
            n_bad += 1
            logger.warning(str(e))
            continue

        if is_always_excluded(rec.flag):
            n_excluded += 1
            continue

        outcome = classify(rec.mapq, rec.flag, config)
        name = read_name_with_mate(rec) if by_name else None
        if by_name:
            mapped_names.add(name, outcome)
        else:
            result.mapped.add(outcome)

        while cursor < n_regions and regions[cursor].end <= rec.pos:
            cursor += 1

        hit: Optional[Region] = None
        if cursor < n_regions:
            end = reference_end(rec.pos, rec.cigar)
            probe = cursor
            while probe < n_regions and regions[probe].start <= end:
                region = regions[probe]
                if overlaps(rec.pos, rec.cigar, region.start, region.end):
                    hit = region
                    break
                probe += 1
        if hit is not None:
            if by_name:
                exon_names.add(name, outcome)
            else:
                result.exon.add(outcome)

        if log_reads and reads_logged < log_reads and logger.isEnabledFor(logging.DEBUG):
            reads_logged += 1
            logger.debug(
                f"{rec.qname}: {chrom}:{rec.pos}-{reference_end(rec.pos, rec.cigar)} "
                f"cigar={cigar_to_string(rec.cigar)} mapq={rec.mapq} flag={rec.flag} "
                f"{outcome.value} exon={'%d-%d' % (hit.start, hit.end) if hit else 'none'}"
            )

    if by_name:
        result = ScanResult(mapped_names.to_tally(), exon_names.to_tally())

    logger.debug(
        f"{chrom}: records={n_seen}, excluded={n_excluded}, undecodable={n_bad}, "
        f"regions={n_regions}, cursor_end={cursor}"
    )
    return result
