"""
Google Search Console Module - verified sites and search performance.
"""

from practice_connect.environments.google.search_console.client import SearchConsoleClient

__all__ = ["SearchConsoleClient"]
