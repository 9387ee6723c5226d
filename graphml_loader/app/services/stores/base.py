from __future__ import annotations
from typing import List

from graphml_loader.app.models.graph import EdgeRow, VertexRow


class GraphStore:
    """Storage collaborator of an import run.

    Lifecycle calls (create/clear/drop, topology build) are committed by the
    store itself. Row inserts only become durable on ``commit``; ``rollback``
    discards everything inserted since the previous commit.
    """

    name = "abstract"

    def close(self) -> None:
        pass

    def graph_exists(self, graph: str) -> bool:
        raise NotImplementedError

    def create_graph(self, graph: str) -> None:
        raise NotImplementedError

    def clear_graph(self, graph: str) -> None:
        raise NotImplementedError

    def drop_graph(self, graph: str) -> None:
        """Drop the graph; a missing graph is not an error."""
        raise NotImplementedError

    def insert_vertex_rows(self, graph: str, rows: List[VertexRow]) -> None:
        raise NotImplementedError

    def insert_edge_rows(self, graph: str, rows: List[EdgeRow]) -> None:
        raise NotImplementedError

    def commit(self) -> None:
        raise NotImplementedError

    def rollback(self) -> None:
        raise NotImplementedError

    def build_topology_and_indexes(self, graph: str, full_topology: bool = True) -> None:
        raise NotImplementedError
