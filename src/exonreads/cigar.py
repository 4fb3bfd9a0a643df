from __future__ import annotations

import re
from enum import IntEnum
from typing import Iterable, List, Sequence, Tuple, Union


class CigarOp(IntEnum):
    """CIGAR operations with their BAM numeric codes."""
    MATCH = 0       # M
    INS = 1         # I
    DEL = 2         # D
    REF_SKIP = 3    # N
    SOFT_CLIP = 4   # S
    HARD_CLIP = 5   # H
    PAD = 6         # P
    EQUAL = 7       # =
    DIFF = 8        # X


_OP_CHARS = "MIDNSHP=X"
_CIGAR_RE = re.compile(r"(\d+)([MIDNSHP=X])")

MATCH_OPS = frozenset({CigarOp.MATCH, CigarOp.EQUAL, CigarOp.DIFF})
REF_CONSUMING_OPS = MATCH_OPS | {CigarOp.DEL, CigarOp.REF_SKIP}

CigarOps = Sequence[Tuple[int, int]]


def _to_op(op: Union[int, str]) -> CigarOp:
    if isinstance(op, str):
        idx = _OP_CHARS.find(op)
        if len(op) != 1 or idx < 0:
            raise ValueError(f"Unknown CIGAR operation: {op!r}")
        return CigarOp(idx)
    return CigarOp(op)


def parse_cigar_string(cigar: str) -> List[Tuple[int, int]]:
    """'10M50N10M' -> [(0, 10), (3, 50), (0, 10)]. '*' is an empty CIGAR."""
    if cigar in ("", "*"):
        return []
    ops = [(int(CigarOp(_OP_CHARS.index(op))), int(n)) for n, op in _CIGAR_RE.findall(cigar)]
    if "".join(f"{n}{_OP_CHARS[op]}" for op, n in ops) != cigar:
        raise ValueError(f"Invalid CIGAR string: {cigar!r}")
    return ops


def normalize_cigar(ops: Union[str, Iterable[Tuple[Union[int, str], int]], None]) -> List[Tuple[int, int]]:
    """Accept a CIGAR string or (op, length) pairs with numeric or character ops."""
    if ops is None:
        return []
    if isinstance(ops, str):
        return parse_cigar_string(ops)
    out: List[Tuple[int, int]] = []
    for op, length in ops:
        length = int(length)
        if length < 0:
            raise ValueError(f"Negative CIGAR length: {length}")
        out.append((int(_to_op(op)), length))
    return out


def reference_end(pos: int, cigar: CigarOps) -> int:
    """Half-open end of the alignment's reference footprint."""
    end = pos
    for op, length in cigar:
        if op in REF_CONSUMING_OPS:
            end += length
    return end


def overlaps(pos: int, cigar: CigarOps, start: int, end: int) -> bool:
    """
    True if any aligned (M/=/X) block intersects [start, end).

    Deletions and reference skips move along the reference but are not
    sequenced bases, so they never count as overlap on their own. Insertions,
    clips and padding do not touch the reference at all.
    """
    ref = pos
    for op, length in cigar:
        if op in MATCH_OPS:
            if ref < end and ref + length > start:
                return True
            ref += length
        elif op == CigarOp.DEL or op == CigarOp.REF_SKIP:
            ref += length
    return False


def cigar_to_string(cigar: CigarOps) -> str:
    if not cigar:
        return "*"
    return "".join(f"{length}{_OP_CHARS[op]}" for op, length in cigar)
