"""Exporter configuration loading helpers."""

from __future__ import annotations

from pathlib import Path

import tomllib

from pydantic import BaseModel, Field, ValidationError

from .custom_query import CustomQuery

CONFIG_FILE = Path("/etc/psqlexporter/config.toml")
DEFAULT_DSN = "postgresql://postgres@localhost:5432/postgres?sslmode=disable"


class CustomQueryConfig(BaseModel):
    """Custom query entry stored as ``[[queries]]`` in config.toml."""

    metric: str
    sql: str
    values: list[str]
    labels: list[str] = Field(default_factory=list)
    help: str = ""
    timeout: float | None = None

    def to_query(self) -> CustomQuery:
        return CustomQuery(
            metric=self.metric,
            sql=self.sql,
            values=tuple(self.values),
            labels=tuple(self.labels),
            help=self.help,
            timeout=self.timeout,
        )


class ExporterConfig(BaseModel):
    """Shape of the exporter configuration file."""

    dsn: str = DEFAULT_DSN
    namespace: str = "pg"
    lock_wait_timeout: int = Field(default=2, ge=0)
    log_slow_filter: bool = False
    scrape_timeout: float | None = Field(default=None, gt=0)
    connect_timeout: float = Field(default=5.0, gt=0)
    listen_address: str = "0.0.0.0"
    port: int = 9187
    log_level: str = "INFO"
    scrapers: dict[str, bool] = Field(default_factory=dict)
    queries: list[CustomQueryConfig] = Field(default_factory=list)

    def scraper_filters(self) -> tuple[set[str] | None, set[str]]:
        """Return allow/block lists for scraper enablement."""

        allowed = {name for name, flag in self.scrapers.items() if flag}
        disabled = {name for name, flag in self.scrapers.items() if not flag}
        allowlist: set[str] | None = allowed or None
        return allowlist, disabled

    def is_scraper_enabled(self, name: str) -> bool:
        allowlist, disabled = self.scraper_filters()
        if allowlist is not None:
            return name in allowlist
        return name not in disabled

    def custom_queries(self) -> tuple[CustomQuery, ...]:
        return tuple(entry.to_query() for entry in self.queries)

    def with_overrides(self, **updates: object) -> ExporterConfig:
        """Return a copy with the non-None updates applied (CLI flags)."""

        changes = {key: value for key, value in updates.items() if value is not None}
        return self.model_copy(update=changes)


def save_config(config: ExporterConfig, path: Path | None = None) -> Path:
    """Persist configuration to disk as TOML; return the written path."""

    target = path or CONFIG_FILE
    target.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [
        f"dsn = {_quote(config.dsn)}",
        f"namespace = {_quote(config.namespace)}",
        f"lock_wait_timeout = {config.lock_wait_timeout}",
        f"log_slow_filter = {str(config.log_slow_filter).lower()}",
        f"connect_timeout = {config.connect_timeout}",
        f"listen_address = {_quote(config.listen_address)}",
        f"port = {config.port}",
        f"log_level = {_quote(config.log_level)}",
    ]
    if config.scrape_timeout is not None:
        lines.append(f"scrape_timeout = {config.scrape_timeout}")
    if config.scrapers:
        lines.append("")
        lines.append("[scrapers]")
        for name in sorted(config.scrapers):
            flag = "true" if config.scrapers[name] else "false"
            lines.append(f"{name} = {flag}")
    for query in config.queries:
        lines.append("")
        lines.append("[[queries]]")
        lines.append(f"metric = {_quote(query.metric)}")
        lines.append(f"sql = {_quote(query.sql)}")
        lines.append(f"values = [{', '.join(_quote(value) for value in query.values)}]")
        if query.labels:
            lines.append(f"labels = [{', '.join(_quote(label) for label in query.labels)}]")
        if query.help:
            lines.append(f"help = {_quote(query.help)}")
        if query.timeout is not None:
            lines.append(f"timeout = {query.timeout}")
    target.write_text("\n".join(lines) + "\n")
    return target


def load_config(path: Path | None = None) -> ExporterConfig:
    """Load configuration from disk; fall back to defaults if missing or invalid."""

    try:
        data = _read_config_file(path or CONFIG_FILE)
    except FileNotFoundError:
        return ExporterConfig()
    except (tomllib.TOMLDecodeError, OSError):
        return ExporterConfig()
    try:
        return ExporterConfig(**data)
    except ValidationError:
        return ExporterConfig()


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def _read_config_file(path: Path) -> dict[str, object]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    if not isinstance(raw, dict):
        return data
    for key, value in raw.items():
        if key in ExporterConfig.model_fields:
            data[key] = value
    scrapers = raw.get("scrapers")
    if isinstance(scrapers, dict):
        data["scrapers"] = {str(name): bool(enabled) for name, enabled in scrapers.items()}
    queries = raw.get("queries")
    if isinstance(queries, list):
        data["queries"] = [query for query in queries if isinstance(query, dict)]
    return data


__all__ = ["CONFIG_FILE", "CustomQueryConfig", "ExporterConfig", "load_config", "save_config"]
