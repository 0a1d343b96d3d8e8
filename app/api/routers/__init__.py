"""
API route handlers.
"""

from . import imports, tags

__all__ = ["imports", "tags"]
