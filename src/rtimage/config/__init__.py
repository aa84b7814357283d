"""Configuration parsing modules for rtimage."""

from .ini_parser import CONFIG_FILE_NAME, RtImageConfig
from .link_config import LinkConfiguration, ResourceSpec
from .timestamps import parse_output_timestamp

__all__ = [
    "CONFIG_FILE_NAME",
    "RtImageConfig",
    "LinkConfiguration",
    "ResourceSpec",
    "parse_output_timestamp",
]
