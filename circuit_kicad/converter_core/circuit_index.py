"""
Queryable index over a Circuit JSON element list.

Circuit JSON is a flat list of dicts, each with a ``type`` (e.g.
``source_component``, ``pcb_smtpad``) and a primary key named after the
type (``source_component_id``, ``pcb_smtpad_id``). Elements refer to each
other by those keys. The index groups elements by type, keeps input order
and looks elements up by primary key or by arbitrary field values.
"""

from typing import Any, Dict, Iterable, List, Optional


class CircuitIndex:
    """
    Index of Circuit JSON elements by type and primary key.

    Example:
        index = CircuitIndex(circuit_json)
        for pad in index.filter("pcb_smtpad", pcb_component_id="pcb_component_0"):
            port = index.get("pcb_port", pad["pcb_port_id"])
    """

    def __init__(self, circuit_json: Iterable[Dict[str, Any]]):
        self.elements: List[Dict[str, Any]] = [
            el for el in (circuit_json or []) if isinstance(el, dict)
        ]
        self._by_type: Dict[str, List[Dict[str, Any]]] = {}
        self._by_id: Dict[str, Dict[str, Dict[str, Any]]] = {}

        for element in self.elements:
            kind = element.get("type")
            if not kind:
                continue
            self._by_type.setdefault(kind, []).append(element)
            primary = element.get(f"{kind}_id")
            if primary is not None:
                self._by_id.setdefault(kind, {}).setdefault(primary, element)

    def list(self, kind: str) -> List[Dict[str, Any]]:
        """Return all elements of ``kind`` in input order."""
        return list(self._by_type.get(kind, []))

    def get(self, kind: str, element_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Look up one element by its primary key.

        Falls back to a linear scan over every ``*_id`` field for element
        kinds whose key is not named after the type.
        """
        if element_id is None:
            return None
        found = self._by_id.get(kind, {}).get(element_id)
        if found is not None:
            return found
        for element in self._by_type.get(kind, []):
            for key, value in element.items():
                if key.endswith("_id") and value == element_id:
                    return element
        return None

    def filter(self, kind: str, **fields: Any) -> List[Dict[str, Any]]:
        """Return elements of ``kind`` whose fields equal all of ``fields``."""
        return [
            element for element in self._by_type.get(kind, [])
            if all(element.get(key) == value for key, value in fields.items())
        ]

    def first(self, kind: str, **fields: Any) -> Optional[Dict[str, Any]]:
        matches = self.filter(kind, **fields)
        return matches[0] if matches else None

    def kinds(self) -> List[str]:
        return list(self._by_type.keys())

    def __len__(self) -> int:
        return len(self.elements)
