from __future__ import annotations

import json
import logging
import shutil
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from graphml_loader.app.core.errors import StorageError
from graphml_loader.app.models.graph import EdgeRow, VertexRow
from graphml_loader.app.services.stores.base import GraphStore

logger = logging.getLogger(__name__)


def jsonencoder(o: Any) -> Any:
    if isinstance(o, datetime):
        return o.isoformat()
    return str(o)


def jsonl_append(path: Path, objs: List[Dict[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        for obj in objs:
            f.write(json.dumps(obj, default=jsonencoder) + "\n")


def jsonl_read(path: Path) -> Iterator[Dict[str, Any]]:
    if not path.exists():
        return
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            if line.strip():
                yield json.loads(line)


class JsonGraphStore(GraphStore):
    """
    JSON-lines rendition of the row layout, one directory per graph:
    meta.json, vertices.jsonl, edges.jsonl and, after the load, vertex_index.json
    and topology.jsonl. Rows stay in memory until commit appends them.
    """

    name = "json"

    def __init__(self, out_dir: Path):
        self.out_dir = Path(out_dir)
        self._pending_vertices: Dict[str, List[Dict[str, Any]]] = {}
        self._pending_edges: Dict[str, List[Dict[str, Any]]] = {}

    def graph_dir(self, graph: str) -> Path:
        return self.out_dir / graph

    def vertices_path(self, graph: str) -> Path:
        return self.graph_dir(graph) / "vertices.jsonl"

    def edges_path(self, graph: str) -> Path:
        return self.graph_dir(graph) / "edges.jsonl"

    def close(self) -> None:
        self._pending_vertices.clear()
        self._pending_edges.clear()

    def graph_exists(self, graph: str) -> bool:
        return (self.graph_dir(graph) / "meta.json").exists()

    def create_graph(self, graph: str) -> None:
        try:
            gdir = self.graph_dir(graph)
            gdir.mkdir(parents=True, exist_ok=True)
            (gdir / "meta.json").write_text(json.dumps({
                "graph": graph,
                "created_at": datetime.now(timezone.utc),
            }, default=jsonencoder), encoding="utf-8")
            self.vertices_path(graph).touch()
            self.edges_path(graph).touch()
        except OSError as e:
            raise StorageError(f"create graph failed: {e}", code=e.errno, graph=graph) from e

    def clear_graph(self, graph: str) -> None:
        try:
            self.vertices_path(graph).write_text("", encoding="utf-8")
            self.edges_path(graph).write_text("", encoding="utf-8")
            for derived in ("vertex_index.json", "topology.jsonl"):
                (self.graph_dir(graph) / derived).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"clear graph failed: {e}", code=e.errno, graph=graph) from e

    def drop_graph(self, graph: str) -> None:
        gdir = self.graph_dir(graph)
        if gdir.exists():
            try:
                shutil.rmtree(gdir)
            except OSError as e:
                raise StorageError(f"drop graph failed: {e}", code=e.errno, graph=graph) from e

    def insert_vertex_rows(self, graph: str, rows: List[VertexRow]) -> None:
        self._pending_vertices.setdefault(graph, []).extend(asdict(r) for r in rows)

    def insert_edge_rows(self, graph: str, rows: List[EdgeRow]) -> None:
        self._pending_edges.setdefault(graph, []).extend(asdict(r) for r in rows)

    def commit(self) -> None:
        """Append all pending rows; on failure every file is cut back to its prior length."""
        targets = [(self.vertices_path(g), rows) for g, rows in self._pending_vertices.items() if rows]
        targets += [(self.edges_path(g), rows) for g, rows in self._pending_edges.items() if rows]

        sizes: Dict[Path, Optional[int]] = {}
        try:
            for path, rows in targets:
                if path not in sizes:
                    sizes[path] = path.stat().st_size if path.is_file() else None
                jsonl_append(path, rows)
        except OSError as e:
            self._restore(sizes)
            raise StorageError(f"commit failed: {e}", code=e.errno) from e
        self._pending_vertices.clear()
        self._pending_edges.clear()

    def _restore(self, sizes: Dict[Path, Optional[int]]) -> None:
        for path, size in sizes.items():
            try:
                if size is None:
                    path.unlink(missing_ok=True)
                else:
                    with open(path, "r+b") as f:
                        f.truncate(size)
            except OSError as e:
                logger.error("Could not restore %s after a failed commit: %s", path, e)

    def rollback(self) -> None:
        self._pending_vertices.clear()
        self._pending_edges.clear()

    def build_topology_and_indexes(self, graph: str, full_topology: bool = True) -> None:
        gdir = self.graph_dir(graph)
        try:
            index: Dict[str, str] = {}
            for row in jsonl_read(self.vertices_path(graph)):
                index.setdefault(str(row["vid"]), row["label"])
            (gdir / "vertex_index.json").write_text(json.dumps(index), encoding="utf-8")

            if full_topology:
                seen = set()
                topology = []
                for row in jsonl_read(self.edges_path(graph)):
                    if row["eid"] in seen:
                        continue
                    seen.add(row["eid"])
                    topology.append({k: row[k] for k in ("eid", "svid", "dvid", "label")})
                topo_path = gdir / "topology.jsonl"
                topo_path.write_text("", encoding="utf-8")
                jsonl_append(topo_path, topology)
        except OSError as e:
            raise StorageError(f"index build failed: {e}", code=e.errno, graph=graph) from e
