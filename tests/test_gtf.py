import gzip
import logging

from exonreads.exonreadsClasses import Region
from exonreads.gtf import load_exon_regions

GTF = (
    "#!genome-build GRCh38\n"
    "chr2\tensembl\tgene\t1\t1000\t.\t+\t.\tgene_id \"g2\";\n"
    "chr2\tensembl\texon\t11\t20\t.\t+\t.\tgene_id \"g2\";\n"
    "chr1\tensembl\texon\t151\t300\t.\t-\t.\tgene_id \"g1\";\n"
    "chr1\tensembl\texon\t101\t200\t.\t-\t.\tgene_id \"g1\";\n"
    "chr1\tensembl\tCDS\t120\t180\t.\t-\t0\tgene_id \"g1\";\n"
    "\n"
    "chr1\tensembl\texon\n"
)


def test_load_exon_regions_converts_and_sorts(tmp_path):
    p = tmp_path / "genes.gtf"
    p.write_text(GTF)
    assert load_exon_regions(p) == [
        Region("chr1", 100, 200),
        Region("chr1", 150, 300),
        Region("chr2", 10, 20),
    ]


def test_load_exon_regions_gzip(tmp_path):
    p = tmp_path / "genes.gtf.gz"
    with gzip.open(p, "wt", encoding="utf-8") as fh:
        fh.write(GTF)
    assert len(load_exon_regions(p)) == 3


def test_bad_coordinates_are_skipped_with_warning(tmp_path, caplog):
    p = tmp_path / "bad.gtf"
    p.write_text(
        "chr1\tx\texon\tabc\t20\t.\t+\t.\t.\n"
        "chr1\tx\texon\t50\t10\t.\t+\t.\t.\n"
        "chr1\tx\texon\t1\t10\t.\t+\t.\t.\n"
    )
    with caplog.at_level(logging.WARNING, logger="exonreads"):
        regions = load_exon_regions(p)
    assert regions == [Region("chr1", 0, 10)]
    assert any("skipped 2 exon rows" in r.getMessage() for r in caplog.records)


def test_other_feature_type(tmp_path):
    p = tmp_path / "genes.gtf"
    p.write_text(GTF)
    assert load_exon_regions(p, feature="CDS") == [Region("chr1", 119, 180)]
