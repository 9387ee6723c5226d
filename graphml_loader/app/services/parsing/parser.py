from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, Optional, Tuple, TYPE_CHECKING

from graphml_loader.app.core.errors import CastError, GraphMLParseError
from graphml_loader.app.models.graph import PropertyType
from graphml_loader.app.services.parsing.accumulator import ElementAccumulator
from graphml_loader.app.services.parsing.events import XmlEvent
from graphml_loader.app.services.parsing.formats import FormatConvention
from graphml_loader.app.services.schema.casting import TypeCaster
from graphml_loader.app.services.schema.registry import KeyRegistry

if TYPE_CHECKING:
    from graphml_loader.app.services.loader import BatchLoader

logger = logging.getLogger(__name__)


class ParserState(Enum):
    IDLE = "idle"
    IN_VERTEX = "in_vertex"
    IN_EDGE = "in_edge"


@dataclass
class ParseStats:
    vertices: int = 0
    edges: int = 0
    skipped: int = 0
    keys: int = 0
    limit_reached: bool = False

    @property
    def emitted(self) -> int:
        return self.vertices + self.edges


Handler = Callable[[XmlEvent], None]


class StreamingGraphParser:
    """
    Single pass state machine over GraphML start/end events.

    States are IDLE, IN_VERTEX and IN_EDGE; vertices and edges never nest. Every
    event is routed through a table keyed by (state, kind, tag); entries with
    state None apply in any state. Completed elements go to the loader unless
    they fall inside the skip window, and the run stops once ``num_items``
    elements have been emitted.
    """

    def __init__(
        self,
        registry: KeyRegistry,
        caster: TypeCaster,
        convention: FormatConvention,
        loader: "BatchLoader",
        skip_items: int = 0,
        num_items: int = 0,
    ):
        self.registry = registry
        self.caster = caster
        self.convention = convention
        self.loader = loader
        self.skip_items = skip_items
        self.num_items = num_items

        self.state = ParserState.IDLE
        self.stats = ParseStats()
        self._current: Optional[ElementAccumulator] = None
        self._data_open = False
        self._data_key: Optional[str] = None
        self._skip_remaining = skip_items
        self._done = False

        S = ParserState
        self._handlers: Dict[Tuple[Optional[ParserState], str, str], Handler] = {
            (None, "start", "key"): self._on_key,
            (S.IDLE, "start", "node"): self._on_node_start,
            (S.IN_VERTEX, "end", "node"): self._on_node_end,
            (S.IDLE, "start", "edge"): self._on_edge_start,
            (S.IN_EDGE, "end", "edge"): self._on_edge_end,
            (S.IN_VERTEX, "start", "data"): self._on_data_start,
            (S.IN_EDGE, "start", "data"): self._on_data_start,
            (S.IN_VERTEX, "end", "data"): self._on_data_end,
            (S.IN_EDGE, "end", "data"): self._on_data_end,
            (S.IDLE, "start", "data"): self._on_graph_data_start,
            (S.IDLE, "end", "data"): self._on_graph_data_end,
        }

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def run(self, events: Iterable[XmlEvent]) -> ParseStats:
        if self.skip_items > 0:
            logger.info("Skipping %d items ...", self.skip_items)
        for event in events:
            self.feed(event)
            if self._done:
                break
        return self.stats

    def feed(self, event: XmlEvent) -> None:
        if self._data_open and event.kind == "start":
            raise GraphMLParseError(
                f"unexpected <{event.tag}> inside <data>", key=self._data_key, line=event.line,
            )
        handler = self._handlers.get((self.state, event.kind, event.tag)) or self._handlers.get(
            (None, event.kind, event.tag)
        )
        if handler is not None:
            handler(event)
        elif event.kind == "start" and event.tag in ("node", "edge"):
            raise GraphMLParseError(
                f"<{event.tag}> nested inside another element",
                state=self.state.value, element_id=self._current_id(), line=event.line,
            )

    @property
    def finished(self) -> bool:
        return self._done

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _on_key(self, event: XmlEvent) -> None:
        key_id = event.attrs.get("id")
        if not key_id:
            raise GraphMLParseError("<key> without 'id' attribute", line=event.line)
        self.registry.register(
            key_id,
            event.attrs.get("attr.name"),
            PropertyType.from_token(event.attrs.get("attr.type")),
            event.attrs.get("for"),
        )
        self.stats.keys += 1

    def _on_node_start(self, event: XmlEvent) -> None:
        vid = self._decode(event, "node", "id")
        self._current = ElementAccumulator("vertex", vid)
        self.state = ParserState.IN_VERTEX

    def _on_edge_start(self, event: XmlEvent) -> None:
        eid = self._decode(event, "edge", "id")
        svid = self._decode(event, "edge", "source")
        dvid = self._decode(event, "edge", "target")
        self._current = ElementAccumulator("edge", eid, svid, dvid)
        self.state = ParserState.IN_EDGE

    def _on_node_end(self, event: XmlEvent) -> None:
        self._complete(self._open_element(event))

    def _on_edge_end(self, event: XmlEvent) -> None:
        self._complete(self._open_element(event))

    def _on_data_start(self, event: XmlEvent) -> None:
        key = event.attrs.get("key")
        if key is None:
            raise GraphMLParseError(
                "<data> without 'key' attribute", element_id=self._current_id(), line=event.line,
            )
        self._data_open = True
        self._data_key = key

    def _on_data_end(self, event: XmlEvent) -> None:
        if not self._data_open:
            raise GraphMLParseError(
                "</data> without a matching <data>", element_id=self._current_id(), line=event.line,
            )
        key, text = self._data_key, event.text or ""
        self._data_open = False
        self._data_key = None
        acc = self._open_element(event)

        if key == self.convention.label_key(acc.kind):
            if acc.kind == "vertex":
                acc.set_label(self.convention.vertex_label(text, acc.element_id))
            else:
                acc.set_label(self.convention.edge_label(text))
            return

        declared = self.registry.resolve_type(key)
        try:
            value = self.caster.cast(declared, text, key=key)
        except CastError as e:
            e.context.setdefault("element", acc.kind)
            e.context.setdefault("element_id", acc.element_id)
            e.context.setdefault("property", self.registry.display_name(key))
            if event.line is not None:
                e.context.setdefault("line", event.line)
            raise
        acc.set_property(key, value)

    def _on_graph_data_start(self, event: XmlEvent) -> None:
        self._data_open = True
        self._data_key = event.attrs.get("key")

    def _on_graph_data_end(self, event: XmlEvent) -> None:
        logger.debug("Ignoring graph-level data key=%s", self._data_key)
        self._data_open = False
        self._data_key = None

    # ------------------------------------------------------------------
    # Element completion
    # ------------------------------------------------------------------

    def _complete(self, acc: ElementAccumulator) -> None:
        self._current = None
        self.state = ParserState.IDLE

        if self._skip_remaining > 0:
            self._skip_remaining -= 1
            self.stats.skipped += 1
            if self._skip_remaining == 0:
                logger.info("... done skipping")
                self.loader.reset_timers()
            return

        if acc.kind == "vertex":
            self.loader.emit_vertex(acc.to_vertex())
            self.stats.vertices += 1
        else:
            self.loader.emit_edge(acc.to_edge())
            self.stats.edges += 1
        self.loader.commit_if_due()

        if self.num_items > 0 and self.stats.emitted >= self.num_items:
            logger.info("Item limit of %d reached", self.num_items)
            self.stats.limit_reached = True
            self._done = True

    def _decode(self, event: XmlEvent, element: str, attribute: str) -> int:
        try:
            return self.convention.decode_id(event.attrs.get(attribute), element, attribute)
        except GraphMLParseError as e:
            if event.line is not None:
                e.context.setdefault("line", event.line)
            raise

    def _open_element(self, event: XmlEvent) -> ElementAccumulator:
        if self._current is None:
            raise GraphMLParseError(f"</{event.tag}> without an open node or edge", line=event.line)
        return self._current

    def _current_id(self) -> Optional[int]:
        return self._current.element_id if self._current else None
