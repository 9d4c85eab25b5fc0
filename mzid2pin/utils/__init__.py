"""mzid2pin utility functions."""

from mzid2pin.utils.config_formatter import ConfigFormatter
from mzid2pin.utils.config_path import (
    get_config_dir,
    get_primary_config_dir,
)

__all__ = [
    "ConfigFormatter",
    "get_config_dir",
    "get_primary_config_dir",
]
