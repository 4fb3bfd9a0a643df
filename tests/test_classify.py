import itertools

import pytest

from exonreads.classify import classify, is_always_excluded, unmapped_config, validate_config
from exonreads.errors import InvalidInputError
from exonreads.exonreadsClasses import FilterConfig, Outcome
from exonreads.flags import ALWAYS_EXCLUDE, MAPPING_RELATED, SamFlag, parse_flag


def test_default_config_matches_command_line_defaults():
    config = FilterConfig()
    assert config.min_mapping_quality == 35
    assert config.required_flags == 3
    assert config.filtered_flags == 2816


def test_classify_matches_formula_over_grid():
    configs = [FilterConfig(), FilterConfig(0, 0, 0), FilterConfig(10, 0x41, 0x400)]
    mapqs = [-1, 0, 9, 10, 35, 255, 1000]
    flags = [0, 0x1, 0x3, 0x41, 0x43, 0x403, 0x903, 0xFFF, -1]
    for config, mapq, flag in itertools.product(configs, mapqs, flags):
        expected = (
            mapq >= config.min_mapping_quality
            and flag & config.required_flags == config.required_flags
            and flag & config.filtered_flags == 0
        )
        assert (classify(mapq, flag, config) is Outcome.ACCEPT) == expected, (config, mapq, flag)


def test_classify_rejects_low_mapq():
    assert classify(34, 0x3, FilterConfig()) is Outcome.REJECT
    assert classify(35, 0x3, FilterConfig()) is Outcome.ACCEPT


def test_classify_rejects_missing_required_or_filtered_bits():
    config = FilterConfig()
    assert classify(60, 0x1, config) is Outcome.REJECT
    assert classify(60, 0x3 | SamFlag.QC_FAIL, config) is Outcome.REJECT
    assert classify(60, 0x3 | SamFlag.DUPLICATE, config) is Outcome.ACCEPT


def test_always_excluded():
    assert is_always_excluded(SamFlag.SECONDARY)
    assert is_always_excluded(SamFlag.SUPPLEMENTARY | SamFlag.PAIRED)
    assert is_always_excluded(SamFlag.QC_FAIL)
    assert not is_always_excluded(SamFlag.DUPLICATE | SamFlag.PAIRED | SamFlag.PROPER_PAIR)
    assert int(ALWAYS_EXCLUDE) == 0xB00


def test_unmapped_config_from_defaults():
    derived = unmapped_config(FilterConfig())
    assert derived.min_mapping_quality == 0
    assert derived.required_flags == SamFlag.PAIRED | SamFlag.UNMAPPED
    assert derived.filtered_flags == SamFlag.QC_FAIL


def test_unmapped_config_clears_all_mapping_bits():
    base = FilterConfig(20, 0x2, 0xFFFF)
    derived = unmapped_config(base)
    assert derived.required_flags == SamFlag.UNMAPPED
    assert derived.filtered_flags & MAPPING_RELATED == 0
    assert derived.filtered_flags & SamFlag.DUPLICATE
    # base is untouched
    assert base.min_mapping_quality == 20


def test_unmapped_config_accepts_unmapped_pair_member():
    derived = unmapped_config(FilterConfig())
    flag = SamFlag.PAIRED | SamFlag.UNMAPPED | SamFlag.MATE_UNMAPPED | SamFlag.READ1
    assert classify(0, flag, derived) is Outcome.ACCEPT


@pytest.mark.parametrize("config", [
    FilterConfig(min_mapping_quality=256),
    FilterConfig(min_mapping_quality=-1),
    FilterConfig(required_flags=0x10000),
    FilterConfig(filtered_flags=-1),
    FilterConfig(required_flags=0x4, filtered_flags=0x4),
])
def test_validate_config_rejects(config):
    with pytest.raises(InvalidInputError):
        validate_config(config)


def test_validate_config_accepts_defaults():
    assert validate_config(FilterConfig()) == FilterConfig()


def test_parse_flag():
    assert parse_flag("2816") == 2816
    assert parse_flag("0xB00") == 2816
