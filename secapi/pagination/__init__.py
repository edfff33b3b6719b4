"""Pagination over query API results."""

from .fulltext import FulltextResults
from .page import LazyPager, Page, PageFetcher

__all__ = [
    "Page",
    "PageFetcher",
    "LazyPager",
    "FulltextResults",
]
