"""PostgreSQL metrics exporter built around a per-cycle scrape orchestrator."""

__version__ = "0.1.0"
