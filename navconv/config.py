"""
navconv — Format configuration

Settings handed to every format at construction time. Defaults match the
values the converter has always used; NAVCONV_* environment variables can
override them for a whole process.
"""

from __future__ import annotations
import os
from dataclasses import dataclass, fields, replace


def _env_flag(value: str) -> bool:
    return value not in ("0", "false", "False", "no", "")


@dataclass(frozen=True)
class FormatConfig:
    """Per-format write and naming options."""
    max_route_name_length: int = 64
    reuse_read_objects_for_writing: bool = True
    split_name_and_desc: bool = True
    write_name: bool = True
    write_elevation: bool = True
    write_time: bool = True
    write_speed: bool = True
    write_heading: bool = True
    write_accuracy: bool = True

    def with_options(self, **changes) -> FormatConfig:
        return replace(self, **changes)

    @classmethod
    def from_env(cls, prefix: str = "NAVCONV_") -> FormatConfig:
        """Build a config from NAVCONV_MAX_ROUTE_NAME_LENGTH, NAVCONV_WRITE_TIME, ..."""
        values = {}
        for f in fields(cls):
            raw = os.getenv(prefix + f.name.upper())
            if raw is None:
                continue
            if f.type in ("int", int):
                try:
                    values[f.name] = int(raw)
                except ValueError:
                    continue
            else:
                values[f.name] = _env_flag(raw)
        return cls(**values)


DEFAULT_CONFIG = FormatConfig()
