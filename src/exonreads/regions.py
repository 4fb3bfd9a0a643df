from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .errors import InvalidInputError
from .exonreadsClasses import Region

logger = logging.getLogger(__name__)


def sort_regions(regions: Iterable[Region]) -> List[Region]:
    return sorted(regions, key=lambda r: (r.chrom, r.start, r.end))


def merge_regions(regions: List[Region]) -> List[Region]:
    """
    Collapse overlapping or touching regions on the same chromosome.
    Input must already be sorted (see sort_regions).
    """
    if not regions:
        raise InvalidInputError("Cannot merge an empty region list (no exon regions loaded?)")

    merged: List[Region] = []
    cur_chrom, cur_start, cur_end = regions[0].chrom, regions[0].start, regions[0].end
    for r in regions[1:]:
        if r.chrom == cur_chrom and r.start <= cur_end:
            cur_end = max(cur_end, r.end)
        else:
            merged.append(Region(cur_chrom, cur_start, cur_end))
            cur_chrom, cur_start, cur_end = r.chrom, r.start, r.end
    merged.append(Region(cur_chrom, cur_start, cur_end))
    return merged


def group_by_chromosome(
    regions: Iterable[Region],
    chromosomes: Optional[Iterable[str]] = None,
) -> Dict[str, List[Region]]:
    """
    chrom -> regions sorted by start. Every name in `chromosomes` (typically the
    BAM header references) gets an entry, empty if it has no regions.
    """
    grouped: Dict[str, List[Region]] = {}
    for r in regions:
        grouped.setdefault(r.chrom, []).append(r)
    for chrom_regions in grouped.values():
        chrom_regions.sort(key=lambda r: r.start)
    if chromosomes is not None:
        for chrom in chromosomes:
            grouped.setdefault(chrom, [])
    return grouped


def normalize_regions(
    regions: Iterable[Region],
    chromosomes: Optional[Iterable[str]] = None,
) -> Dict[str, List[Region]]:
    """Sort, merge and group in one go."""
    merged = merge_regions(sort_regions(regions))
    grouped = group_by_chromosome(merged, chromosomes)
    if logger.isEnabledFor(logging.DEBUG):
        n_empty = sum(1 for v in grouped.values() if not v)
        logger.debug(f"Normalized to {len(merged)} regions on {len(grouped)} chromosomes ({n_empty} without regions)")
    return grouped
