from __future__ import annotations
import logging
from typing import Dict, Optional

from graphml_loader.app.models.graph import KeyDeclaration, PropertyType

logger = logging.getLogger(__name__)


class KeyRegistry:
    """Run-scoped map of GraphML property keys to their declared name and type.

    Declarations are append/overwrite only: registering an id again replaces the
    previous declaration. Keys that were never declared resolve to STRING.
    """

    def __init__(self) -> None:
        self._keys: Dict[str, KeyDeclaration] = {}

    def register(
        self,
        key_id: str,
        display_name: Optional[str] = None,
        declared_type: PropertyType = PropertyType.STRING,
        domain: Optional[str] = None,
    ) -> KeyDeclaration:
        decl = KeyDeclaration(
            key_id=key_id,
            display_name=display_name or key_id,
            declared_type=declared_type,
            domain=domain,
        )
        previous = self._keys.get(key_id)
        if previous is not None and previous != decl:
            logger.debug(
                "Key %s redeclared: %s %s for=%s -> %s %s for=%s",
                key_id,
                previous.display_name, previous.declared_type.name, previous.domain or "all",
                decl.display_name, declared_type.name, domain or "all",
            )
        self._keys[key_id] = decl
        return decl

    def resolve_type(self, key_id: str) -> PropertyType:
        decl = self._keys.get(key_id)
        return decl.declared_type if decl else PropertyType.STRING

    def display_name(self, key_id: str) -> str:
        decl = self._keys.get(key_id)
        return decl.display_name if decl else key_id

    def __contains__(self, key_id: object) -> bool:
        return key_id in self._keys

    def __len__(self) -> int:
        return len(self._keys)
