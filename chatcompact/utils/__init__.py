"""Utility helpers."""

from chatcompact.utils.helpers import safe_filename

__all__ = ["safe_filename"]
