from __future__ import annotations
from typing import Dict, Literal, Optional

from graphml_loader.app.core.errors import GraphMLParseError
from graphml_loader.app.models.graph import (
    DEFAULT_EDGE_LABEL,
    DEFAULT_VERTEX_LABEL,
    EdgeRecord,
    TypedValue,
    VertexRecord,
)

ElementKind = Literal["vertex", "edge"]


class ElementAccumulator:
    """Collects the label and properties of the <node> or <edge> being parsed."""

    def __init__(
        self,
        kind: ElementKind,
        element_id: int,
        source_id: Optional[int] = None,
        destination_id: Optional[int] = None,
    ):
        self.kind = kind
        self.element_id = element_id
        self.source_id = source_id
        self.destination_id = destination_id
        self.label: Optional[str] = None
        # insertion ordered; a repeated key keeps its first position, last value
        self.properties: Dict[str, TypedValue] = {}

    def set_label(self, label: str) -> None:
        self.label = label

    def set_property(self, key: str, value: TypedValue) -> None:
        self.properties[key] = value

    def to_vertex(self) -> VertexRecord:
        return VertexRecord(
            vertex_id=self.element_id,
            label=self.label if self.label is not None else DEFAULT_VERTEX_LABEL,
            properties=dict(self.properties),
        )

    def to_edge(self) -> EdgeRecord:
        if self.source_id is None or self.destination_id is None:
            raise GraphMLParseError("edge without source or target", element_id=self.element_id)
        return EdgeRecord(
            edge_id=self.element_id,
            source_id=self.source_id,
            destination_id=self.destination_id,
            label=self.label if self.label is not None else DEFAULT_EDGE_LABEL,
            properties=dict(self.properties),
        )
