from __future__ import annotations

from enum import IntFlag


class SamFlag(IntFlag):
    """Bits of the SAM FLAG field."""
    PAIRED = 0x1
    PROPER_PAIR = 0x2
    UNMAPPED = 0x4
    MATE_UNMAPPED = 0x8
    REVERSE = 0x10
    MATE_REVERSE = 0x20
    READ1 = 0x40
    READ2 = 0x80
    SECONDARY = 0x100
    QC_FAIL = 0x200
    DUPLICATE = 0x400
    SUPPLEMENTARY = 0x800


# Never counted in any tally, whatever the filter configuration says
ALWAYS_EXCLUDE = SamFlag.SECONDARY | SamFlag.SUPPLEMENTARY | SamFlag.QC_FAIL

# Bits that describe where/how a record mapped; meaningless for unmapped reads
MAPPING_RELATED = (
    SamFlag.PROPER_PAIR
    | SamFlag.UNMAPPED
    | SamFlag.MATE_UNMAPPED
    | SamFlag.REVERSE
    | SamFlag.MATE_REVERSE
    | SamFlag.SECONDARY
    | SamFlag.SUPPLEMENTARY
)

FLAG_MASK = 0xFFFF


def parse_flag(value: str) -> int:
    """Parse a flag mask given as decimal ('2816') or hex ('0xB00')."""
    return int(value, 0)
