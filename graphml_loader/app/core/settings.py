from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

StoreBackend = Literal["sqlite", "json", "neo4j"]
SourceFormatName = Literal["NEO4J", "TINKERPOP"]
ActionName = Literal["CREATE", "APPEND", "REPLACE", "TRUNCATE"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="GRAPHML_", extra="ignore")

    # Backend
    store_backend: StoreBackend = "sqlite"

    # Paths
    # defaulted to relative paths from this file if not set in env
    sqlite_path: Path = Path(__file__).resolve().parents[2] / "data" / "graphs.sqlite"
    out_dir: Path = Path(__file__).resolve().parents[2] / "data" / "out"

    # Neo4j
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: str = "password"
    neo4j_database: Optional[str] = None

    # Run defaults (overridden per run by ImportOptions)
    default_action: ActionName = "CREATE"
    default_format: SourceFormatName = "TINKERPOP"
    default_batch_size: int = 0

    log_level: str = "INFO"

    def ensure_out_dirs(self) -> None:
        # Only create directories for file-backed stores
        if self.store_backend == "json":
            self.out_dir.mkdir(parents=True, exist_ok=True)
        elif self.store_backend == "sqlite":
            self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)


def get_settings() -> Settings:
    return Settings()
