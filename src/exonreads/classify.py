from __future__ import annotations

from dataclasses import replace

from .errors import InvalidInputError
from .exonreadsClasses import FilterConfig, Outcome
from .flags import ALWAYS_EXCLUDE, FLAG_MASK, MAPPING_RELATED, SamFlag


def classify(mapq: int, flag: int, config: FilterConfig) -> Outcome:
    if mapq < config.min_mapping_quality:
        return Outcome.REJECT
    if flag & config.required_flags != config.required_flags or flag & config.filtered_flags != 0:
        return Outcome.REJECT
    return Outcome.ACCEPT


def is_always_excluded(flag: int) -> bool:
    """Secondary, supplementary and QC-failed records are never counted."""
    return flag & ALWAYS_EXCLUDE != 0


def validate_config(config: FilterConfig) -> FilterConfig:
    if not 0 <= config.min_mapping_quality <= 255:
        raise InvalidInputError(f"Minimum mapping quality must be within 0..255, got {config.min_mapping_quality}")
    for name in ("required_flags", "filtered_flags"):
        value = getattr(config, name)
        if not 0 <= value <= FLAG_MASK:
            raise InvalidInputError(f"{name} must be within 0..{FLAG_MASK:#x}, got {value}")
    both = config.required_flags & config.filtered_flags
    if both:
        raise InvalidInputError(f"Flag bits {both:#x} are both required and filtered; no read could pass")
    return config


def unmapped_config(base: FilterConfig) -> FilterConfig:
    """
    Policy for the unmapped tally: no MAPQ threshold, the unmapped bit is
    required instead of proper pairing, and no mapping-related bit is filtered.
    """
    required = (base.required_flags & ~int(SamFlag.PROPER_PAIR)) | int(SamFlag.UNMAPPED)
    filtered = base.filtered_flags & ~int(MAPPING_RELATED)
    return replace(
        base,
        min_mapping_quality=0,
        required_flags=required & FLAG_MASK,
        filtered_flags=filtered & FLAG_MASK,
    )
