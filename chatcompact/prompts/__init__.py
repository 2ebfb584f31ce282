"""Prompt text used by chatcompact."""
