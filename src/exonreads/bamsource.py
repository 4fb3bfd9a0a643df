from __future__ import annotations

import itertools
import os
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

import bamnostic as bn

from .cigar import normalize_cigar
from .errors import ChromosomeError, InvalidInputError, RecordDecodeError, SourceOpenError
from .exonreadsClasses import AlignmentData
from .flags import SamFlag


def _first_attr(aln, names):
    for attr in names:
        v = getattr(aln, attr, None)
        if v is not None:
            return v
    raise AttributeError(f"record has none of {names}")


def _get_read_name(aln) -> Optional[str]:
    # Different libs/files expose different attributes
    for attr in ("query_name", "qname", "read_name"):
        v = getattr(aln, attr, None)
        if v:
            return v
    return None


def _get_flag(aln) -> int:
    for attr in ("flag", "flags"):
        v = getattr(aln, attr, None)
        if v is not None:
            return int(v)
    raise AttributeError("record has no flag field")


def _get_cigar(aln):
    for attr in ("cigartuples", "cigar", "cigarstring"):
        v = getattr(aln, attr, None)
        if v is not None:
            return v
    return None


def _get_ref_id(aln) -> int:
    for attr in ("refID", "reference_id", "tid"):
        v = getattr(aln, attr, None)
        if v is not None:
            return int(v)
    # Fall back to the unmapped bit when no reference id is exposed
    return -1 if _get_flag(aln) & SamFlag.UNMAPPED else 0


def decode_record(aln, chrom: Optional[str] = None, index: int = 0) -> AlignmentData:
    """Pull position, MAPQ, flag, CIGAR and name out of a bamnostic record."""
    try:
        return AlignmentData(
            pos=int(_first_attr(aln, ("pos", "reference_start"))),
            mapq=int(_first_attr(aln, ("mapq", "mapping_quality"))),
            flag=_get_flag(aln),
            cigar=normalize_cigar(_get_cigar(aln)),
            qname=_get_read_name(aln),
        )
    except (AttributeError, TypeError, ValueError, KeyError) as e:
        raise RecordDecodeError(chrom, index, e) from e


def read_name_with_mate(data: AlignmentData) -> str:
    name = data.qname or ""
    if data.flag & SamFlag.READ1:
        return name + "/1"
    if data.flag & SamFlag.READ2:
        return name + "/2"
    return name


_REGION_RE = re.compile(r"^(?P<chrom>[^:]+)(?::(?P<start>[\d,]+)(?:-(?P<end>[\d,]+))?)?$")


def parse_region(region: str) -> Tuple[str, int, Optional[int]]:
    """'chr1:1,000-2,000' -> ('chr1', 999, 2000); a missing end runs to the contig end."""
    m = _REGION_RE.match(region.strip())
    if not m:
        raise InvalidInputError(f"Malformed region: {region!r}")
    start = int(m.group("start").replace(",", "")) - 1 if m.group("start") else 0
    end = int(m.group("end").replace(",", "")) if m.group("end") else None
    if start < 0 or (end is not None and end <= start):
        raise InvalidInputError(f"Malformed region: {region!r}")
    return m.group("chrom"), start, end


def _index_candidates(path: str) -> List[str]:
    return [path + ".bai", os.path.splitext(path)[0] + ".bai"]


@dataclass(frozen=True)
class BamSource:
    """
    A coordinate-sorted, indexed BAM. Holds only the path, so it can be sent
    to worker processes; every caller opens its own handle.
    """
    path: str

    def open(self):
        try:
            return bn.AlignmentFile(str(self.path), "rb")
        except Exception as e:
            raise SourceOpenError(str(self.path), e) from e

    def references(self) -> List[str]:
        handle = self.open()
        try:
            return list(getattr(handle, "references", []))
        finally:
            handle.close()

    def has_index(self) -> bool:
        return any(os.path.exists(p) for p in _index_candidates(str(self.path)))

    def fetch(self, handle, chrom: str, start: int = 0, stop: Optional[int] = None) -> Iterator:
        """
        Records placed on `chrom` (optionally within [start, stop)), in
        reference position order.

        bamnostic's fetch is lazy and rejects open-ended regions, so the contig
        is resolved against the header here and the first record is read up
        front; lookup failures surface as ChromosomeError from this call.
        """
        if not self.has_index():
            raise SourceOpenError(
                str(self.path), FileNotFoundError(f"no BAM index (.bai) next to {self.path}")
            )
        lengths = dict(zip(handle.references, handle.lengths))
        if chrom not in lengths:
            raise ChromosomeError(chrom, KeyError(f"not in BAM header (first refs: {list(lengths)[:5]})"))
        if stop is None:
            stop = lengths[chrom]
        try:
            it = iter(handle.fetch(chrom, start, stop))
            first = next(it)
        except StopIteration:
            return iter(())
        except (KeyError, ValueError) as e:
            raise ChromosomeError(chrom, e) from e
        return itertools.chain([first], it)

    def fetch_region(self, handle, region: str) -> Iterator:
        """Records in a samtools-style region: 'chr1', 'chr1:1000' or 'chr1:1,000-2,000' (1-based)."""
        chrom, start, stop = parse_region(region)
        return self.fetch(handle, chrom, start, stop)

    def unmapped(self, handle) -> Iterator:
        """Unplaced records (no reference id). These sort last in the file."""
        for aln in handle:
            try:
                ref_id = _get_ref_id(aln)
            except AttributeError:
                # Undecodable; let the tally log and skip it
                yield aln
                continue
            if ref_id < 0:
                yield aln
