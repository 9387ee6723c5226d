from graphml_loader.app.core.errors import (
    CastError,
    ConfigurationError,
    GraphExistsError,
    GraphImportError,
    GraphMLParseError,
    GraphNotFoundError,
    StorageError,
)
from graphml_loader.app.core.settings import Settings
from graphml_loader.app.models.run import ImportOptions, ImportSummary
from graphml_loader.app.services.pipeline import ImportPipeline, import_graphml

__all__ = [
    "CastError",
    "ConfigurationError",
    "GraphExistsError",
    "GraphImportError",
    "GraphMLParseError",
    "GraphNotFoundError",
    "ImportOptions",
    "ImportPipeline",
    "ImportSummary",
    "Settings",
    "StorageError",
    "import_graphml",
]
