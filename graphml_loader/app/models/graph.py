from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

TypedValue = Union[str, int, float, bool]

DEFAULT_VERTEX_LABEL = "vertex"
DEFAULT_EDGE_LABEL = "edge"


class PropertyType(int, Enum):
    # values are the type codes of the relational property-graph layout
    STRING = 1
    INT = 2
    FLOAT = 3
    DOUBLE = 4
    BOOLEAN = 6
    LONG = 7

    @property
    def is_numeric(self) -> bool:
        return self in (PropertyType.INT, PropertyType.FLOAT, PropertyType.DOUBLE, PropertyType.LONG)

    @classmethod
    def from_token(cls, token: Optional[str]) -> "PropertyType":
        """Map a GraphML ``attr.type`` token; absent or unknown tokens are strings."""
        if token is None:
            return cls.STRING
        return _TYPE_TOKENS.get(token.strip().lower(), cls.STRING)


_TYPE_TOKENS: Dict[str, PropertyType] = {
    "string": PropertyType.STRING,
    "int": PropertyType.INT,
    "integer": PropertyType.INT,
    "float": PropertyType.FLOAT,
    "double": PropertyType.DOUBLE,
    "boolean": PropertyType.BOOLEAN,
    "long": PropertyType.LONG,
}


@dataclass(frozen=True)
class KeyDeclaration:
    key_id: str
    display_name: str
    declared_type: PropertyType = PropertyType.STRING
    # "node", "edge", "all" or None; informational only
    domain: Optional[str] = None


@dataclass
class VertexRecord:
    vertex_id: int
    label: str = DEFAULT_VERTEX_LABEL
    properties: Dict[str, TypedValue] = field(default_factory=dict)


@dataclass
class EdgeRecord:
    edge_id: int
    source_id: int
    destination_id: int
    label: str = DEFAULT_EDGE_LABEL
    properties: Dict[str, TypedValue] = field(default_factory=dict)


@dataclass(frozen=True)
class VertexRow:
    vid: int
    label: str
    key: Optional[str]
    type_code: Optional[int]
    value: Optional[str]
    number: Optional[Union[int, float]] = None

    @property
    def is_placeholder(self) -> bool:
        return self.key is None


@dataclass(frozen=True)
class EdgeRow:
    eid: int
    svid: int
    dvid: int
    label: str
    key: Optional[str]
    type_code: Optional[int]
    value: Optional[str]
    number: Optional[Union[int, float]] = None

    @property
    def is_placeholder(self) -> bool:
        return self.key is None


@dataclass
class BatchCounters:
    vertices: int = 0
    edges: int = 0
    # items emitted since the previous commit
    pending: int = 0
    commits: int = 0

    @property
    def total(self) -> int:
        return self.vertices + self.edges


def row_typed_value(type_code: Optional[int], value: Optional[str], number: Any) -> Any:
    """Rebuild the typed value of a stored row (used by stores that keep native types)."""
    if type_code is None or value is None:
        return None
    ptype = PropertyType(type_code)
    if ptype.is_numeric:
        return number
    if ptype is PropertyType.BOOLEAN:
        return value == "true"
    return value
