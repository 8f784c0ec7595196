"""Static site generator for Markdown memos."""

__version__ = "0.1.0"
