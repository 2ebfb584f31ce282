"""
chatcompact - rolling conversation summaries for LLM chat history
"""

__version__ = "0.1.0"
__logo__ = "🗜️"
