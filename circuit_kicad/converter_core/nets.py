"""
Net/connectivity resolver.

Circuit JSON groups electrically connected ports and traces with a
``subcircuit_connectivity_map_key``. This module turns those keys into
numbered KiCad nets and attaches them to pads, track segments and vias.

When a trace carries no key (older or hand-written input), connectivity is
recovered from adjacency instead: traces, ports and nets that touch each
other are merged with a union-find, and a group without any key gets a
synthetic ``trace_<id>`` key so its pads still share a net.
"""

import logging
from typing import Any, Dict, List, Optional

from .circuit_index import CircuitIndex
from .models import NetInfo

logger = logging.getLogger(__name__)

NO_NET = NetInfo(id=0, name="")

KEY_FIELD = "subcircuit_connectivity_map_key"


class _UnionFind:
    """Disjoint sets over string node ids."""

    def __init__(self):
        self._parent: Dict[str, str] = {}

    def add(self, node: str) -> None:
        self._parent.setdefault(node, node)

    def find(self, node: str) -> str:
        self.add(node)
        root = node
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[node] != root:
            self._parent[node], node = root, self._parent[node]
        return root

    def union(self, a: str, b: str) -> None:
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return
        # Smaller id becomes the root so results do not depend on input order
        if rb < ra:
            ra, rb = rb, ra
        self._parent[rb] = ra

    def groups(self) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = {}
        for node in sorted(self._parent):
            grouped.setdefault(self.find(node), []).append(node)
        return grouped


def _key_of(element: Optional[Dict[str, Any]]) -> Optional[str]:
    if not element:
        return None
    key = element.get(KEY_FIELD)
    return key if isinstance(key, str) and key else None


class NetResolver:
    """
    Resolve connectivity keys into numbered nets for one board.

    Usage:
        resolver = NetResolver(index)
        resolver.build()
        for net in resolver.nets():
            ...
        pad_net = resolver.net_for_pcb_port(pad["pcb_port_id"])
    """

    def __init__(self, index: CircuitIndex):
        self.index = index
        self.net_map: Dict[str, NetInfo] = {}
        self._names: Dict[str, str] = {}
        self._groups = _UnionFind()
        self._group_keys: Dict[str, str] = {}
        self._built = False

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def build(self) -> Dict[str, NetInfo]:
        """
        Collect keys, recover keyless connectivity and number the nets.

        Returns:
            Mapping of connectivity key -> NetInfo (net 0 is not included)
        """
        self._collect_explicit_keys()
        self._link_adjacency()
        self._assign_group_keys()
        self._number_nets()
        self._built = True
        return self.net_map

    def _remember_name(self, key: str, candidate: Optional[str]) -> None:
        """
        Name the net for ``key`` once.

        The first source_net (or source_trace) seen for a key names the net;
        later elements sharing the key keep that name. Blank names fall back
        to the key itself.
        """
        if key in self._names:
            return
        name = candidate if candidate and candidate.strip() else key
        self._names[key] = name

    def _collect_explicit_keys(self) -> None:
        for source_net in self.index.list("source_net"):
            key = _key_of(source_net) or source_net.get("source_net_id")
            if not key:
                continue
            self._remember_name(key, source_net.get("name") or source_net.get("source_net_id"))

        for source_trace in self.index.list("source_trace"):
            key = self._explicit_trace_key(source_trace)
            if not key:
                continue
            self._remember_name(
                key, source_trace.get("display_name") or source_trace.get("source_trace_id")
            )

    def _explicit_trace_key(self, source_trace: Dict[str, Any]) -> Optional[str]:
        key = _key_of(source_trace)
        if key:
            return key
        for net_id in source_trace.get("connected_source_net_ids") or []:
            key = _key_of(self.index.get("source_net", net_id))
            if key:
                return key
        return None

    def _link_adjacency(self) -> None:
        for source_port in self.index.list("source_port"):
            self._groups.add(f"port:{source_port.get('source_port_id')}")
        for source_net in self.index.list("source_net"):
            self._groups.add(f"net:{source_net.get('source_net_id')}")

        for source_trace in self.index.list("source_trace"):
            node = f"trace:{source_trace.get('source_trace_id')}"
            self._groups.add(node)
            for port_id in source_trace.get("connected_source_port_ids") or []:
                self._groups.union(node, f"port:{port_id}")
            for net_id in source_trace.get("connected_source_net_ids") or []:
                self._groups.union(node, f"net:{net_id}")

        # Routed copper joins the ports at its ends even without a source trace
        for pcb_trace in self.index.list("pcb_trace"):
            node = f"pcb_trace:{pcb_trace.get('pcb_trace_id')}"
            self._groups.add(node)
            if pcb_trace.get("source_trace_id"):
                self._groups.union(node, f"trace:{pcb_trace['source_trace_id']}")
            for point in pcb_trace.get("route") or []:
                for field in ("start_pcb_port_id", "end_pcb_port_id"):
                    source_port_id = self._source_port_id(point.get(field))
                    if source_port_id:
                        self._groups.union(node, f"port:{source_port_id}")

    def _source_port_id(self, pcb_port_id: Optional[str]) -> Optional[str]:
        pcb_port = self.index.get("pcb_port", pcb_port_id)
        return pcb_port.get("source_port_id") if pcb_port else None

    def _node_key(self, node: str) -> Optional[str]:
        kind, _, element_id = node.partition(":")
        if kind == "port":
            return _key_of(self.index.get("source_port", element_id))
        if kind == "net":
            source_net = self.index.get("source_net", element_id)
            return (_key_of(source_net) or element_id) if source_net else None
        if kind == "trace":
            source_trace = self.index.get("source_trace", element_id)
            return self._explicit_trace_key(source_trace) if source_trace else None
        if kind == "pcb_trace":
            return _key_of(self.index.get("pcb_trace", element_id))
        return None

    def _assign_group_keys(self) -> None:
        for root, members in self._groups.groups().items():
            keys = sorted(
                key for key in (self._node_key(member) for member in members)
                if key and key in self._names
            )
            if keys:
                self._group_keys[root] = keys[0]
                continue

            traces = [m for m in members if m.startswith(("trace:", "pcb_trace:"))]
            if not traces:
                continue
            # A keyless group joined by at least one trace still forms a net
            source_traces = [m for m in traces if m.startswith("trace:")]
            anchor = (source_traces or traces)[0]
            anchor_id = anchor.partition(":")[2]
            synthetic = f"trace_{anchor_id}"
            display = None
            if anchor.startswith("trace:"):
                display = (self.index.get("source_trace", anchor_id) or {}).get("display_name")
            self._remember_name(synthetic, display or anchor_id)
            self._group_keys[root] = synthetic
            logger.debug("Synthesized net key %s for keyless trace group", synthetic)

    def _number_nets(self) -> None:
        for number, key in enumerate(sorted(self._names), start=1):
            self.net_map[key] = NetInfo(id=number, name=self._names[key])

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def nets(self) -> List[NetInfo]:
        """All nets in number order, starting with net 0."""
        return [NO_NET] + sorted(self.net_map.values(), key=lambda net: net.id)

    def resolve_key(self, key: Optional[str]) -> NetInfo:
        if not key:
            return NO_NET
        return self.net_map.get(key, NO_NET)

    def _group_key(self, node: str) -> Optional[str]:
        if not self._built:
            return None
        return self._group_keys.get(self._groups.find(node))

    def key_for_source_port(self, source_port_id: Optional[str]) -> Optional[str]:
        if not source_port_id:
            return None
        key = _key_of(self.index.get("source_port", source_port_id))
        if key and key in self.net_map:
            return key
        return self._group_key(f"port:{source_port_id}")

    def net_for_pcb_port(self, pcb_port_id: Optional[str]) -> NetInfo:
        """Net of the pad attached to ``pcb_port_id`` (net 0 if unconnected)."""
        return self.resolve_key(self.key_for_source_port(self._source_port_id(pcb_port_id)))

    def key_for_pcb_trace(self, pcb_trace: Dict[str, Any]) -> Optional[str]:
        key = _key_of(pcb_trace)
        if not key and pcb_trace.get("source_trace_id"):
            source_trace = self.index.get("source_trace", pcb_trace["source_trace_id"])
            if source_trace:
                key = self._explicit_trace_key(source_trace)
        if not key and isinstance(pcb_trace.get("connection_name"), str):
            key = _key_of(self.index.get("source_net", pcb_trace["connection_name"]))
        if not key and pcb_trace.get("pcb_trace_id"):
            key = self._group_key(f"pcb_trace:{pcb_trace['pcb_trace_id']}")
        return key

    def net_for_pcb_trace(self, pcb_trace: Dict[str, Any]) -> NetInfo:
        return self.resolve_key(self.key_for_pcb_trace(pcb_trace))

    def net_for_via(self, via: Dict[str, Any]) -> NetInfo:
        key = _key_of(via)
        if not key and via.get("pcb_trace_id"):
            pcb_trace = self.index.get("pcb_trace", via["pcb_trace_id"])
            if pcb_trace:
                key = self.key_for_pcb_trace(pcb_trace)
        if not key and via.get("connection_name"):
            key = _key_of(self.index.get("source_net", via["connection_name"]))
        return self.resolve_key(key)
