from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Dict, Optional

from graphml_loader.app.core.errors import ConfigurationError, GraphMLParseError

_INTEGER = re.compile(r"-?[0-9]+")
_ID_MIN, _ID_MAX = -(2 ** 63), 2 ** 63 - 1


@dataclass(frozen=True)
class FormatConvention:
    """How one GraphML dialect encodes identifiers and labels.

    Neo4j exports write ids as ``n12`` / ``e7`` (one type-tag character before
    the number) and vertex labels as ``:Person``. Tinkerpop exports use bare
    integers and plain ``labelV`` / ``labelE`` values.
    """

    name: str
    vertex_label_key: str
    edge_label_key: str
    id_prefix_length: int = 0
    vertex_label_delimiter: Optional[str] = None

    def decode_id(self, raw: Optional[str], element: str, attribute: str = "id") -> int:
        if raw is None:
            raise GraphMLParseError(f"<{element}> without '{attribute}' attribute", element=element)
        digits = raw.strip()[self.id_prefix_length:]
        if not _INTEGER.fullmatch(digits):
            raise GraphMLParseError(
                f"invalid {self.name} identifier", element=element, attribute=attribute, value=raw,
            )
        value = int(digits)
        if not _ID_MIN <= value <= _ID_MAX:
            raise GraphMLParseError(
                "identifier out of 64-bit range", element=element, attribute=attribute, value=raw,
            )
        return value

    def vertex_label(self, raw: str, vertex_id: Optional[int] = None) -> str:
        if self.vertex_label_delimiter is None:
            return raw
        if not raw.startswith(self.vertex_label_delimiter):
            raise GraphMLParseError(
                f"vertex label must start with '{self.vertex_label_delimiter}'",
                element="node", vertex_id=vertex_id, value=raw,
            )
        return raw[len(self.vertex_label_delimiter):]

    def edge_label(self, raw: str) -> str:
        return raw

    def label_key(self, kind: str) -> str:
        return self.vertex_label_key if kind == "vertex" else self.edge_label_key


NEO4J = FormatConvention(
    name="NEO4J",
    vertex_label_key="labels",
    edge_label_key="label",
    id_prefix_length=1,
    vertex_label_delimiter=":",
)

TINKERPOP = FormatConvention(
    name="TINKERPOP",
    vertex_label_key="labelV",
    edge_label_key="labelE",
)

CONVENTIONS: Dict[str, FormatConvention] = {c.name: c for c in (NEO4J, TINKERPOP)}


def get_convention(name: str) -> FormatConvention:
    try:
        return CONVENTIONS[name.upper()]
    except KeyError:
        raise ConfigurationError("unknown source format", format=name) from None
