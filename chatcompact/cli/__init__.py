"""CLI module for chatcompact."""
