"""
navconv — Error types

Every failure raised by a parse or write call derives from NavigationError,
which is a ValueError so callers catching ValueError keep working.
"""

from __future__ import annotations
from typing import Iterable, Optional


class NavigationError(ValueError):
    """Base class for all navconv failures."""


class UnsupportedFormatError(NavigationError):
    """No registered format accepted the input."""

    def __init__(self, attempted: Iterable[str], source: Optional[str] = None):
        self.attempted = list(attempted)
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"Unsupported format{where}\n"
                         f"Tried: {', '.join(self.attempted) or '(none)'}")


class MalformedRecordError(NavigationError):
    """A format accepted the document but one record failed to parse."""

    def __init__(self, format_name: str, line_number: Optional[int], record: str, reason: str = ""):
        self.format_name = format_name
        self.line_number = line_number
        self.record = record
        where = f" at line {line_number}" if line_number is not None else ""
        detail = f": {reason}" if reason else ""
        super().__init__(f"{format_name}: malformed record{where} '{record}'{detail}")


class UnrepresentableCharacteristicsError(NavigationError):
    """A write asked a format for a route kind it cannot represent."""

    def __init__(self, format_name: str, characteristics):
        self.format_name = format_name
        self.characteristics = characteristics
        super().__init__(f"{format_name} cannot write {characteristics.value} data")


class EncodingError(NavigationError):
    """The declared text encoding cannot decode the input."""

    def __init__(self, encoding: str, cause: Exception):
        self.encoding = encoding
        super().__init__(f"Cannot decode input as {encoding}: {cause}")
