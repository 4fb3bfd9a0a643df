from __future__ import annotations

import gzip
import logging
from pathlib import Path
from typing import List, TextIO

from .exonreadsClasses import Region
from .regions import sort_regions

logger = logging.getLogger(__name__)


def _open_text_auto(path: str | Path, mode: str = "rt") -> TextIO:
    p = Path(path)
    if p.suffix.lower() == ".gz":
        return gzip.open(p, mode, encoding="utf-8", errors="replace")
    return open(p, mode, encoding="utf-8", errors="replace")


def load_exon_regions(gtf_path: str | Path, feature: str = "exon") -> List[Region]:
    """
    Read `feature` rows of a GTF (.gtf or .gtf.gz) as 0-based half-open regions,
    sorted by chromosome, start and end.
    """
    regions: List[Region] = []
    bad_rows = 0

    with _open_text_auto(gtf_path) as fh:
        for line in fh:
            if not line.strip() or line.startswith("#"):
                continue
            cols = line.rstrip("\n").split("\t")
            if len(cols) < 9 or cols[2] != feature:
                continue
            try:
                # GTF is 1-based inclusive
                regions.append(Region(cols[0], int(cols[3]) - 1, int(cols[4])))
            except ValueError:
                bad_rows += 1

    if bad_rows:
        logger.warning(f"{gtf_path}: skipped {bad_rows} {feature} rows with invalid coordinates")
    logger.info(f"GTF loaded: {len(regions)} {feature} regions")
    return sort_regions(regions)
