"""Count reads overlapping annotated exons in a BAM file."""

__version__ = "0.1.0"
