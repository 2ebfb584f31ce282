"""
Entry point for running chatcompact as a module: python -m chatcompact
"""

from chatcompact.cli.commands import app

if __name__ == "__main__":
    app()
