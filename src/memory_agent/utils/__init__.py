"""Utility functions for URLs and timestamps."""

from memory_agent.utils.dates import parse_timestamp, utcnow
from memory_agent.utils.urls import normalize_url

__all__ = [
    "normalize_url",
    "parse_timestamp",
    "utcnow",
]
