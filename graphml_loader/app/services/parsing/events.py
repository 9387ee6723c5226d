from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, Literal, Optional, BinaryIO, Union
import lxml.etree as LET

from graphml_loader.app.core.errors import ConfigurationError, GraphMLParseError

EventKind = Literal["start", "end"]

# Elements whose subtree can be discarded once their end event was handed out
_RELEASE_TAGS = frozenset({"node", "edge", "key"})


@dataclass(frozen=True)
class XmlEvent:
    kind: EventKind
    tag: str
    attrs: Dict[str, str] = field(default_factory=dict)
    # element text, only populated on end events
    text: Optional[str] = None
    line: Optional[int] = None


def start(tag: str, line: Optional[int] = None, **attrs: str) -> XmlEvent:
    return XmlEvent("start", tag, dict(attrs), None, line)


def end(tag: str, text: Optional[str] = None, line: Optional[int] = None) -> XmlEvent:
    return XmlEvent("end", tag, {}, text, line)


def _localname(elem: LET._Element) -> str:
    return LET.QName(elem).localname


def _attrs(elem: LET._Element) -> Dict[str, str]:
    # attribute names keep their local part only; GraphML attributes are unqualified
    return {LET.QName(k).localname: v for k, v in elem.attrib.items()}


def iter_xml_events(source: Union[BinaryIO, str, Path]) -> Iterator[XmlEvent]:
    """
    Pull start/end events from a GraphML document without building the tree.

    Finished <node>, <edge> and <key> subtrees are released as soon as their end
    event has been consumed, so memory stays flat on large files.
    """
    parser = LET.iterparse(
        source,
        events=("start", "end"),
        remove_comments=True,
        remove_pis=True,
        huge_tree=True,
        resolve_entities=False,
    )
    try:
        for action, elem in parser:
            tag = _localname(elem)
            if action == "start":
                yield XmlEvent("start", tag, _attrs(elem), None, elem.sourceline)
                continue

            yield XmlEvent("end", tag, {}, elem.text or "", elem.sourceline)
            if tag in _RELEASE_TAGS:
                elem.clear(keep_tail=True)
                parent = elem.getparent()
                if parent is not None:
                    while elem.getprevious() is not None:
                        del parent[0]
    except LET.XMLSyntaxError as e:
        line = e.position[0] if e.position else None
        raise GraphMLParseError(f"malformed GraphML: {e.msg}", line=line) from e


class GraphMLEventSource:
    """Opens a GraphML file and yields its events; the file is closed on exit."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._fh: Optional[BinaryIO] = None

    def __enter__(self) -> "GraphMLEventSource":
        if not self.path.is_file():
            raise ConfigurationError("input file not found", filename=str(self.path))
        try:
            self._fh = open(self.path, "rb")
        except OSError as e:
            raise ConfigurationError(f"cannot open input file: {e.strerror}", filename=str(self.path)) from e
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __iter__(self) -> Iterator[XmlEvent]:
        if self._fh is None:
            raise RuntimeError("event source is not open")
        return iter_xml_events(self._fh)
