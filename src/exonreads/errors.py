from __future__ import annotations

from typing import Optional


class ExonReadsError(RuntimeError):
    pass


class InvalidInputError(ExonReadsError):
    pass


class SourceOpenError(ExonReadsError):
    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        super().__init__(f"Could not open BAM: {path}: {cause}")

    def __reduce__(self):
        return (self.__class__, (self.path, self.cause))


class ChromosomeError(ExonReadsError):
    def __init__(self, chrom: str, cause: Optional[BaseException] = None):
        self.chrom = chrom
        self.cause = cause
        super().__init__(f"Could not resolve chromosome '{chrom}' in BAM header: {cause}")

    def __reduce__(self):
        return (self.__class__, (self.chrom, self.cause))


class RecordDecodeError(ExonReadsError):
    def __init__(self, chrom: Optional[str], index: int, cause: Optional[BaseException] = None):
        self.chrom = chrom
        self.index = index
        self.cause = cause
        super().__init__(f"Could not decode record #{index} on {chrom or '*'}: {cause}")

    def __reduce__(self):
        return (self.__class__, (self.chrom, self.index, self.cause))


class AggregationError(ExonReadsError):
    """First fatal error from a per-chromosome task; sibling results are dropped."""

    def __init__(self, chrom: str, cause: BaseException):
        self.chrom = chrom
        self.cause = cause
        super().__init__(f"Counting failed on chromosome '{chrom}': {cause}")

    def __reduce__(self):
        return (self.__class__, (self.chrom, self.cause))
