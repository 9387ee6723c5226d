from __future__ import annotations

from typing import Any, Dict, Optional


class GraphImportError(Exception):
    """Base class for every failure that aborts an import run."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = {k: v for k, v in context.items() if v is not None}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class ConfigurationError(GraphImportError):
    pass


class LifecycleError(GraphImportError):
    pass


class GraphExistsError(LifecycleError):
    pass


class GraphNotFoundError(LifecycleError):
    pass


class GraphMLParseError(GraphImportError):
    pass


class CastError(GraphMLParseError):
    pass


class StorageError(GraphImportError):
    def __init__(self, message: str, code: Optional[Any] = None, **context: Any):
        super().__init__(message, code=code, **context)
        self.code = code
