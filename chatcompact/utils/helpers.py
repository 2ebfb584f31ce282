"""Filesystem helpers shared across chatcompact."""

import re

_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def safe_filename(name: str) -> str:
    """Replace characters that are unsafe in file names with underscores."""
    cleaned = _UNSAFE_CHARS.sub("_", name).strip()
    if cleaned in ("", ".", ".."):
        return "_"
    return cleaned
