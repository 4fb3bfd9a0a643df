from __future__ import annotations

import glob
import os
from typing import List

from .bamsource import BamSource, decode_record
from .cigar import cigar_to_string, reference_end
from .classify import classify, is_always_excluded
from .errors import ChromosomeError, InvalidInputError, RecordDecodeError, SourceOpenError
from .exonreadsClasses import FilterConfig


def _expand_bam_patterns(bams: List[str]) -> List[str]:
    """Expand glob patterns (sample*.bam) cross-platform; keep order; de-dupe."""
    seen = set()
    out: List[str] = []
    for pat in bams:
        matches = glob.glob(pat) if any(ch in pat for ch in "*?[]") else ([pat] if os.path.exists(pat) else [])
        if not matches:
            print(f"[WARNING] No BAMs matched: {pat}")
        for m in sorted(matches):
            if m not in seen:
                seen.add(m)
                out.append(m)
    return out


def view_bam_head(
    bams: List[str],
    n: int = 10,
    region: str | None = None,
    config: FilterConfig = FilterConfig(),
) -> int:
    """
    Print the first N records from each BAM with their CIGAR footprint and
    how the filter would treat them.

    Output is TSV: read_name, locus (1-based), CIGAR, MAPQ, FLAG, status
    where status is accept, reject or excluded (secondary/supplementary/QC-fail).
    """
    bam_paths = _expand_bam_patterns(bams)
    if not bam_paths:
        print("[ERROR] No BAM files found.")
        return 1

    for bam in bam_paths:
        source = BamSource(bam)
        try:
            bf = source.open()
        except SourceOpenError as e:
            print(f"[ERROR] {e}")
            return 1

        print(f"== {bam} ==")

        try:
            if region:
                if not source.has_index():
                    print(f"[ERROR] Region queries require an index (.bai). Not found next to {bam}.")
                    return 2
                try:
                    it = source.fetch_region(bf, region)
                except (ChromosomeError, InvalidInputError) as e:
                    print(f"[ERROR] Could not resolve region '{region}': {e}. "
                          f"Check contig names via bf.references.")
                    return 2
            else:
                it = iter(bf)

            printed = 0
            for index, aln in enumerate(it):
                try:
                    rec = decode_record(aln, region, index)
                except RecordDecodeError as e:
                    print(f"[WARNING] {e}")
                    continue

                if is_always_excluded(rec.flag):
                    status = "excluded"
                else:
                    status = classify(rec.mapq, rec.flag, config).value
                rname = getattr(aln, "reference_name", None) or "*"
                end = reference_end(rec.pos, rec.cigar)
                print(
                    f"{rec.qname or 'NA'}\t{rname}:{rec.pos + 1}-{end}\t{cigar_to_string(rec.cigar)}"
                    f"\tMAPQ={rec.mapq}\tFLAG={rec.flag}\t{status}"
                )

                printed += 1
                if printed >= n:
                    break

            if printed == 0:
                print("[info] No reads found.")
        finally:
            bf.close()

    return 0
