import os
from dataclasses import replace

import pytest

from csvjson.cache import CachePathsConfig
from csvjson.config import ConvertConfig


def test_defaults() -> None:
    config = ConvertConfig()
    assert config.has_header is False
    assert config.buffer_size == 4096
    assert config.lazy_quotes is False
    assert config.delimiter == ","
    assert config.max_parallelism == (os.cpu_count() or 1)
    assert config.min_bytes_per_unit == 512
    assert config.channel_size == 256
    assert config.scratch == "auto"
    assert config.scratch_dir == CachePathsConfig().scratch_root


def test_variants_are_derived_with_replace() -> None:
    config = replace(ConvertConfig(), has_header=True, delimiter="\t")
    assert config.has_header
    assert config.delimiter == "\t"


@pytest.mark.parametrize(
    "overrides",
    [
        {"delimiter": ";;"},
        {"delimiter": ""},
        {"delimiter": '"'},
        {"delimiter": "\n"},
        {"buffer_size": 0},
        {"channel_size": -1},
        {"spill_threshold": 0},
        {"encoding": "no-such-codec"},
        {"scratch": "cloud"},
    ],
)
def test_invalid_options_are_rejected(overrides: dict) -> None:
    with pytest.raises(ValueError):  # noqa: PT011
        ConvertConfig(**overrides)


def test_parallelism_settings_are_left_to_the_planner() -> None:
    config = ConvertConfig(max_parallelism=0, min_bytes_per_unit=-5)
    assert config.max_parallelism == 0
