"""Database configuration for ``CookshareAsync``."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_URL = "sqlite+aiosqlite://"


@dataclass
class DatabaseConfig:
    """How ``CookshareAsync`` builds its engine and sessions."""

    url: str = DEFAULT_URL
    """SQLAlchemy async URL, e.g. ``postgresql+asyncpg://user@host/db``."""

    echo: bool = False
    """Log every SQL statement through the ``sqlalchemy.engine`` logger."""

    enforce_foreign_keys: bool = True
    """Switch on ``PRAGMA foreign_keys`` for SQLite connections."""

    expire_on_commit: bool = False
    """Passed to ``async_sessionmaker``; views are built before commit either way."""

    def __post_init__(self) -> None:
        self.url = self.url.strip()
        if not self.url:
            raise ValueError("Database url must not be empty")
        if "+" not in self.url.split("://", 1)[0]:
            raise ValueError(
                f"Database url {self.url!r} must name an async driver, "
                "e.g. sqlite+aiosqlite:// or postgresql+asyncpg://"
            )
