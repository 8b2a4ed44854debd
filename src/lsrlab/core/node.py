# src/lsrlab/core/node.py
# Estado por nodo: enlaces directos, LSDB, tabla de rutas
import copy
import logging
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict

from lsrlab.algorithms.dijkstra import routing_from
from lsrlab.algorithms.link_state import TopologyStore
from lsrlab.core.messages import (
    LSAPayload,
    Packet,
    PacketType,
    make_discovery,
    make_lsa,
    make_lsa_payload,
)

LOGGER = logging.getLogger(__name__)

IsActive = Callable[[int], bool]


class Route(BaseModel):
    model_config = ConfigDict(frozen=True)

    next_hop: int
    cost: int


class NodeSnapshot(BaseModel):
    """Copia de solo lectura del estado de un nodo."""
    model_config = ConfigDict(frozen=True)

    id: int
    active: bool
    meta: Any = None
    links: Dict[int, int]
    topology: Dict[int, Dict[int, int]]
    routing_table: Dict[int, Route]
    sequence_number: int
    confirmed_neighbors: Tuple[int, ...]


class Node:
    """
    Router simulado. Los enlaces solo los modifica la Network (add_link /
    remove_link / forget_node) para mantener la simetría.
    """

    def __init__(self, node_id: int, meta: Any = None):
        self.id = node_id
        self.meta = meta
        self.active = True
        self.links: Dict[int, int] = {}
        self.store = TopologyStore(node_id)
        self.routing_table: Dict[int, Route] = {}
        self.seq = 0
        # vecinos confirmados por DISCOVERY
        self.confirmed: Set[int] = set()

    # -------------------------------
    # Enlaces directos (vía Network)
    # -------------------------------
    def _link_changed(self) -> None:
        self.seq += 1
        self.store.set_own(self.links, self.seq)

    def add_link(self, neighbor: int, cost: int) -> bool:
        if neighbor in self.links:
            return False
        self.links[neighbor] = cost
        self._link_changed()
        return True

    def remove_link(self, neighbor: int) -> bool:
        if neighbor not in self.links:
            return False
        del self.links[neighbor]
        self.confirmed.discard(neighbor)
        self._link_changed()
        return True

    def neighbor_state_changed(self) -> None:
        """Un vecino se activó o desactivó: cambia lo que este nodo anuncia."""
        self._link_changed()

    def forget_node(self, node: int) -> bool:
        """Borra toda referencia a 'node' (enlace, LSDB, rutas, confirmados)."""
        changed = self.remove_link(node)
        if self.store.purge_node_everywhere(node):
            changed = True
        self.confirmed.discard(node)
        if node in self.routing_table:
            table = dict(self.routing_table)
            del table[node]
            self.routing_table = table
            changed = True
        return changed

    # -------------------------------
    # DISCOVERY (hello)
    # -------------------------------
    def emit_discovery(self, is_active: IsActive) -> List[Packet]:
        if not self.active:
            return []
        return [
            make_discovery(self.id, nbr, cost)
            for nbr, cost in sorted(self.links.items())
            if is_active(nbr)
        ]

    def receive_discovery(self, packet: Packet) -> bool:
        """
        Marca al emisor como vecino confirmado. La tabla de enlaces es la
        verdad: un hello de alguien que no es vecino directo se ignora.
        """
        if not self.active or packet.type is not PacketType.DISCOVERY:
            return False
        sender = packet.payload.sender_id
        if sender not in self.links or sender in self.confirmed:
            return False
        self.confirmed.add(sender)
        return True

    # -------------------------------
    # LSA (flooding)
    # -------------------------------
    def active_links(self, is_active: Optional[IsActive] = None) -> Dict[int, int]:
        """Enlaces hacia vecinos activos: lo que el nodo anuncia y usa para rutear."""
        if is_active is None:
            return dict(self.links)
        return {nbr: cost for nbr, cost in self.links.items() if is_active(nbr)}

    def lsa_payload(self, is_active: Optional[IsActive] = None) -> LSAPayload:
        return make_lsa_payload(self.id, self.active_links(is_active), self.seq)

    def emit_lsa(self, is_active: IsActive) -> List[Packet]:
        if not self.active:
            return []
        payload = self.lsa_payload(is_active)
        return [make_lsa(self.id, nbr, payload) for nbr in sorted(self.links) if is_active(nbr)]

    def database_packets(self, peer: int) -> List[Packet]:
        """
        Intercambio de base con un vecino nuevo: un LSA por cada entrada ajena
        de la LSDB (la propia sale por emit_lsa).
        """
        if not self.active:
            return []
        packets: List[Packet] = []
        for origin in sorted(self.store.lsdb):
            if origin in (self.id, peer):
                continue
            payload = make_lsa_payload(origin, self.store.lsdb[origin], self.store.seqs.get(origin, 0))
            packets.append(make_lsa(self.id, peer, payload))
        return packets

    def receive_lsa(self, packet: Packet, is_active: IsActive) -> Tuple[bool, List[Packet]]:
        """
        Instala el LSA y devuelve (actualizado, paquetes a reenviar).
        Solo se re-floodea información que no estaba registrada; eso es lo
        que corta los ciclos.
        """
        if not self.active or packet.type is not PacketType.LSA:
            return False, []
        payload: LSAPayload = packet.payload
        origin = payload.originator_id
        if origin == self.id:
            return False, []

        updated = self.store.install(origin, payload.links_dict(), payload.sequence_number)
        if not updated:
            return False, []

        LOGGER.debug("[%s] LSA de %s instalado (seq=%s, via %s)", self.id, origin, payload.sequence_number, packet.src)
        forwards = [
            make_lsa(self.id, nbr, payload)
            for nbr in sorted(self.links)
            if nbr != packet.src and is_active(nbr)
        ]
        return True, forwards

    # -------------------------------
    # Tabla de rutas
    # -------------------------------
    def recompute_routing_table(self, is_active: Optional[IsActive] = None) -> bool:
        """
        Dijkstra sobre la LSDB con raíz en este nodo. La tabla nueva se arma
        aparte y se reemplaza de una sola vez. Devuelve True si cambió.
        Con 'is_active', los enlaces propios hacia vecinos inactivos no se usan.
        """
        new_table: Dict[int, Route] = {}
        if len(self.store):
            topology = self.store.lsdb
            if is_active is not None and self.id in topology:
                topology = dict(topology)
                topology[self.id] = self.active_links(is_active)
            next_hops = routing_from(topology, self.id)["next_hop"]
            for dest, (hop, cost) in next_hops.items():
                new_table[dest] = Route(next_hop=hop, cost=int(cost))

        changed = new_table != self.routing_table
        self.routing_table = new_table
        if changed:
            LOGGER.debug("[%s] tabla de rutas recalculada: %d entradas", self.id, len(new_table))
        return changed

    def next_hop(self, dest: int) -> Optional[int]:
        route = self.routing_table.get(dest)
        return None if route is None else route.next_hop

    # -------------------------------
    # Utilidades de Tabla / Inspección
    # -------------------------------
    def snapshot(self) -> NodeSnapshot:
        return NodeSnapshot(
            id=self.id,
            active=self.active,
            meta=copy.deepcopy(self.meta),
            links=dict(self.links),
            topology=self.store.snapshot(),
            routing_table=dict(self.routing_table),
            sequence_number=self.seq,
            confirmed_neighbors=tuple(sorted(self.confirmed)),
        )

    def format_routes(self) -> str:
        """Tabla de rutas legible (distancias desde este nodo)."""
        lines = [
            f"[{self.id}] Tabla de rutas (Dijkstra):",
            "Ruta      : Costo",
            "------------------",
        ]
        for dst in sorted(self.routing_table):
            r = self.routing_table[dst]
            lines.append(f"{self.id} -> {dst} : {r.cost} (nh={r.next_hop})")
        return "\n".join(lines)
