from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


# Genomic interval, 0-based half-open [start, end)
@dataclass(frozen=True, order=True)
class Region:
    chrom: str
    start: int
    end: int

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Region start > end: {self.chrom}:{self.start}-{self.end}")


@dataclass(frozen=True)
class FilterConfig:
    """Mapping-quality and flag policy deciding whether a record is accepted."""
    min_mapping_quality: int = 35
    required_flags: int = 0x3
    filtered_flags: int = 0xB00


class Outcome(Enum):
    ACCEPT = "accept"
    REJECT = "reject"


@dataclass
class Tally:
    accepted: int = 0
    rejected: int = 0

    def add(self, outcome: Outcome) -> None:
        if outcome is Outcome.ACCEPT:
            self.accepted += 1
        else:
            self.rejected += 1

    def __add__(self, other: "Tally") -> "Tally":
        return Tally(self.accepted + other.accepted, self.rejected + other.rejected)


@dataclass
class ScanResult:
    """Four-way tally from one chromosome (or the sum over many)."""
    mapped: Tally = field(default_factory=Tally)
    exon: Tally = field(default_factory=Tally)

    def __add__(self, other: "ScanResult") -> "ScanResult":
        return ScanResult(self.mapped + other.mapped, self.exon + other.exon)

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.mapped.accepted, self.mapped.rejected, self.exon.accepted, self.exon.rejected)


# Just the fields the counting needs, decoded once per record
@dataclass
class AlignmentData:
    __slots__ = ('pos', 'mapq', 'flag', 'cigar', 'qname')
    pos: int
    mapq: int
    flag: int
    cigar: List[Tuple[int, int]]
    qname: Optional[str]


@dataclass
class CountReport:
    """Whole-genome tallies for the three reported categories."""
    mapped: Tally
    exon: Tally
    unmapped: Tally
