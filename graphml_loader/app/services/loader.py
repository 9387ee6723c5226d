from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, List

from graphml_loader.app.models.graph import BatchCounters, EdgeRecord, EdgeRow, VertexRecord, VertexRow
from graphml_loader.app.services.schema.casting import canonical_text, numeric_column
from graphml_loader.app.services.schema.registry import KeyRegistry
from graphml_loader.app.services.stores.base import GraphStore

logger = logging.getLogger(__name__)


def rate(items: int, seconds: float) -> float:
    return items / seconds if seconds > 0 else 0.0


class BatchLoader:
    """
    Turns completed vertex/edge records into storage rows and commits them in
    batches.

    With ``batch_size`` N > 0 a commit happens whenever the number of records
    written so far is a multiple of N; ``final_commit`` always commits once
    more at the end of the stream. With N = 0 only the final commit happens.
    """

    def __init__(
        self,
        store: GraphStore,
        graph: str,
        registry: KeyRegistry,
        batch_size: int = 0,
        uppercase: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.graph = graph
        self.registry = registry
        self.batch_size = batch_size
        self.uppercase = uppercase
        self.clock = clock

        self.counters = BatchCounters()
        self._vertex_rows: List[VertexRow] = []
        self._edge_rows: List[EdgeRow] = []
        self.started = self.previous = clock()

    def reset_timers(self) -> None:
        self.started = self.previous = self.clock()

    # ---------- expansion ----------

    def _name(self, s: str) -> str:
        return s.upper() if self.uppercase else s

    def vertex_rows(self, record: VertexRecord) -> List[VertexRow]:
        label = self._name(record.label)
        if not record.properties:
            return [VertexRow(record.vertex_id, label, None, None, None, None)]
        rows = []
        for key, value in record.properties.items():
            ptype = self.registry.resolve_type(key)
            rows.append(VertexRow(
                vid=record.vertex_id,
                label=label,
                key=self._name(key),
                type_code=int(ptype),
                value=canonical_text(value),
                number=numeric_column(ptype, value),
            ))
        return rows

    def edge_rows(self, record: EdgeRecord) -> List[EdgeRow]:
        label = self._name(record.label)
        if not record.properties:
            return [EdgeRow(
                record.edge_id, record.source_id, record.destination_id, label, None, None, None, None
            )]
        rows = []
        for key, value in record.properties.items():
            ptype = self.registry.resolve_type(key)
            rows.append(EdgeRow(
                eid=record.edge_id,
                svid=record.source_id,
                dvid=record.destination_id,
                label=label,
                key=self._name(key),
                type_code=int(ptype),
                value=canonical_text(value),
                number=numeric_column(ptype, value),
            ))
        return rows

    # ---------- emission ----------

    def emit_vertex(self, record: VertexRecord) -> None:
        self._vertex_rows.extend(self.vertex_rows(record))
        self.counters.vertices += 1
        self.counters.pending += 1

    def emit_edge(self, record: EdgeRecord) -> None:
        self._edge_rows.extend(self.edge_rows(record))
        self.counters.edges += 1
        self.counters.pending += 1

    def commit_if_due(self) -> bool:
        if self.batch_size > 0 and self.counters.total > 0 and self.counters.total % self.batch_size == 0:
            self._commit()
            return True
        return False

    def final_commit(self) -> None:
        self._commit()

    def _commit(self) -> None:
        vertex_rows, self._vertex_rows = self._vertex_rows, []
        edge_rows, self._edge_rows = self._edge_rows, []
        # both batches go out together, even when one of them is empty
        self.store.insert_vertex_rows(self.graph, vertex_rows)
        self.store.insert_edge_rows(self.graph, edge_rows)
        self.store.commit()

        now = self.clock()
        window, total = now - self.previous, now - self.started
        logger.info(
            "%s: %d vertices, %d edges inserted in %d ms (%.1f per second) accumulated: %d ms (%.1f per second)",
            datetime.now(timezone.utc).isoformat(timespec="seconds"),
            self.counters.vertices,
            self.counters.edges,
            window * 1000,
            rate(self.counters.pending, window),
            total * 1000,
            rate(self.counters.total, total),
        )
        self.counters.commits += 1
        self.counters.pending = 0
        self.previous = now
