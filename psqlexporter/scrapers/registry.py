"""Ordered registry of scrapers supplied by the caller."""

from __future__ import annotations

from typing import Iterable

from psqlexporter.version import UNKNOWN_VERSION

from .types import Scraper


class ScraperRegistry:
    """Keeps scrapers in registration order with unique names."""

    def __init__(self, scrapers: Iterable[Scraper] = ()) -> None:
        self._scrapers: dict[str, Scraper] = {}
        self.register_many(scrapers)

    def register(self, scraper: Scraper) -> None:
        """Register a scraper; names must be unique."""

        if not scraper.name:
            raise ValueError("Scraper is missing a name")
        if not callable(getattr(scraper, "scrape", None)):
            raise ValueError(f"Scraper '{scraper.name}' is missing a scrape operation")
        if scraper.name in self._scrapers:
            raise ValueError(f"Scraper '{scraper.name}' is already registered")
        self._scrapers[scraper.name] = scraper

    def register_many(self, scrapers: Iterable[Scraper]) -> None:
        for scraper in scrapers:
            self.register(scraper)

    def list_scrapers(self) -> list[Scraper]:
        """Return the known scrapers."""

        return list(self._scrapers.values())

    def eligible(self, level: float) -> list[Scraper]:
        """Scrapers whose minimum version does not exceed ``level``."""

        if level >= UNKNOWN_VERSION:
            return self.list_scrapers()
        return [scraper for scraper in self._scrapers.values() if scraper.min_version <= level]

    def __len__(self) -> int:
        return len(self._scrapers)

    def __contains__(self, name: object) -> bool:
        return name in self._scrapers
