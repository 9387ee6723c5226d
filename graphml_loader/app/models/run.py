from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from graphml_loader.app.core.errors import ConfigurationError

# -------------------------------------------------------------------------
# Common Types
# -------------------------------------------------------------------------

Action = Literal["CREATE", "APPEND", "REPLACE", "TRUNCATE"]
SourceFormat = Literal["NEO4J", "TINKERPOP"]


class ImportOptions(BaseModel):
    """
    Run parameters of one import. Built by the CLI (or by callers directly).
    """
    filename: Path
    # becomes part of table names, so restricted to identifier characters
    graph_name: str = Field(pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")
    action: Action = "CREATE"
    source_format: SourceFormat = "TINKERPOP"

    # 0 = commit only once at the end
    batch_size: int = Field(default=0, ge=0)
    skip_items: int = Field(default=0, ge=0)
    # 0 = read until the end of the file
    num_items: int = Field(default=0, ge=0)

    build_topology: bool = True
    post_load: bool = True
    uppercase: bool = True
    strict_booleans: bool = False

    @field_validator("action", "source_format", mode="before")
    @classmethod
    def _upper(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v

    @property
    def storage_graph_name(self) -> str:
        return self.graph_name.upper()

    @classmethod
    def build(cls, **params: object) -> "ImportOptions":
        try:
            return cls(**params)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigurationError(f"invalid run parameters: {problems}") from e


class ImportSummary(BaseModel):
    graph_name: str
    vertices: int = 0
    edges: int = 0
    skipped: int = 0
    commits: int = 0
    load_seconds: float = 0.0
    finish_seconds: float = 0.0
    total_seconds: float = 0.0
