"""
navconv — Comment packing

Many formats have a single free-text slot per position where others have a
name and a description. These helpers pack both into one comment and split
them apart again. The split is on the first ';', so a comment that contains
a semicolon of its own does not survive a pack/unpack cycle unchanged.
"""

from __future__ import annotations
import re
from typing import List, Optional


def trim(text: Optional[str], length: Optional[int] = None) -> Optional[str]:
    """Strip whitespace, cut to `length`; blank text becomes None."""
    if text is None:
        return None
    text = text.strip()
    if not text:
        return None
    if length is not None and len(text) > length:
        text = text[:length].rstrip()
    return text


def _trim_line_feeds(text: str) -> str:
    return text.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")


def as_comment(name: Optional[str], description: Optional[str]) -> Optional[str]:
    """Pack a name and a description into one comment."""
    if name is None and description is None:
        return None
    if description is None:
        return _trim_line_feeds(name)
    if name is None or description.startswith(name):
        return _trim_line_feeds(description)
    if name.startswith(description) or name.endswith(description):
        return _trim_line_feeds(name)
    return _trim_line_feeds(f"{name}; {description}")


def as_name(comment: Optional[str]) -> Optional[str]:
    """The part of a packed comment before the first ';'."""
    if comment is None:
        return None
    return trim(comment.split(";", 1)[0])


def as_desc(comment: Optional[str], default: Optional[str] = None) -> Optional[str]:
    """The part of a packed comment after the first ';', else `default`."""
    if comment is not None and ";" in comment:
        return trim(comment.split(";", 1)[1])
    return default.strip() if default is not None else None


def as_description(text: Optional[str]) -> Optional[List[str]]:
    """Split a route description on commas and line breaks."""
    if not text:
        return None
    parts = [part.strip() for part in re.split(r"[,\n]", text)]
    parts = [part for part in parts if part]
    return parts or None


def format_description(description: Optional[List[str]]) -> Optional[str]:
    if not description:
        return None
    return ",".join(description)


def escape(text: Optional[str], separator: str, replacement: str) -> Optional[str]:
    if text is None:
        return None
    return _trim_line_feeds(text).replace(separator, replacement)


def to_mixed_case(text: Optional[str]) -> Optional[str]:
    """'BAD URACH-NORD' -> 'Bad Urach-Nord'; text that is not all upper case is kept."""
    if text is None or text.upper() != text:
        return text
    tokens = re.split(r"([ -])", text)
    return "".join(t[0].upper() + t[1:].lower() if len(t) > 1 else t for t in tokens)
