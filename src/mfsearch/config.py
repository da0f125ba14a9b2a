"""Application configuration defaults."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Mapping

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_EMBEDDING_URL = "https://api.openai.com/v1"
DEFAULT_LOCAL_MODEL = "sentence-transformers/all-mpnet-base-v2"


def _get_default_db_path() -> Path:
    """Get the default database path based on execution context."""
    user_db = Path.home() / ".local" / "share" / "mfsearch" / "mfsearch.db"

    if getattr(sys, "frozen", False):
        return user_db

    # When running from source, prefer local data/ if it exists
    local_db = Path("data/mfsearch.db")
    if local_db.exists():
        return local_db

    return user_db


@dataclass(slots=True)
class AppConfig:
    db_path: Path | None = None
    embedding_provider: Literal["openai", "local"] = "openai"
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_url: str = DEFAULT_EMBEDDING_URL
    embedding_api_key: str | None = None
    embedding_timeout: float = 15.0
    max_query_chars: int = 500
    safe_chunk_chars: int = 70_000

    def __post_init__(self) -> None:
        if self.db_path is None:
            self.db_path = _get_default_db_path()

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.db_path is None:
            self.db_path = _get_default_db_path()
        if Path(self.db_path).is_absolute() or base_dir is None:
            return Path(self.db_path)
        return base_dir / self.db_path

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        """Build a config from ``MFSEARCH_*`` variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        provider = env.get("MFSEARCH_EMBEDDING_PROVIDER", "openai").strip().lower()
        if provider not in ("openai", "local"):
            raise ValueError(f"Unknown embedding provider: {provider}")

        default_model = DEFAULT_LOCAL_MODEL if provider == "local" else DEFAULT_EMBEDDING_MODEL
        db = env.get("MFSEARCH_DB")
        timeout = env.get("MFSEARCH_EMBEDDING_TIMEOUT")
        return cls(
            db_path=Path(db) if db else None,
            embedding_provider=provider,  # type: ignore[arg-type]
            embedding_model=env.get("MFSEARCH_EMBEDDING_MODEL") or default_model,
            embedding_url=env.get("MFSEARCH_EMBEDDING_URL") or DEFAULT_EMBEDDING_URL,
            embedding_api_key=(
                env.get("MFSEARCH_EMBEDDING_API_KEY") or env.get("OPENAI_API_KEY") or None
            ),
            embedding_timeout=float(timeout) if timeout else 15.0,
        )
