from __future__ import annotations

from graphml_loader.app.core.settings import Settings
from graphml_loader.app.services.stores.base import GraphStore


def create_store(settings: Settings) -> GraphStore:
    settings.ensure_out_dirs()

    if settings.store_backend == "json":
        from graphml_loader.app.services.stores.json_store import JsonGraphStore
        return JsonGraphStore(settings.out_dir)

    if settings.store_backend == "neo4j":
        from graphml_loader.app.services.stores.neo4j_store import Neo4jGraphStore
        return Neo4jGraphStore(
            uri=settings.neo4j_uri,
            user=settings.neo4j_user,
            password=settings.neo4j_password,
            database=settings.neo4j_database,
        )

    from graphml_loader.app.services.stores.sqlite_store import SqliteGraphStore
    return SqliteGraphStore(settings.sqlite_path)
