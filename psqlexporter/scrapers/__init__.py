"""Scraper contract, registry and built-in scrapers."""

from .builtin import builtin_scrapers
from .registry import ScraperRegistry
from .types import ScrapeHandler, Scraper, ScraperDescriptor, ScraperError

__all__ = [
    "ScrapeHandler",
    "Scraper",
    "ScraperDescriptor",
    "ScraperError",
    "ScraperRegistry",
    "builtin_scrapers",
]
