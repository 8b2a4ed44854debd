# src/lsrlab/core/network.py
# Red simulada: dueña de los ids, de la simetría de enlaces y de las fases del protocolo
import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from lsrlab.algorithms.actors import AsyncFloodingCoordinator
from lsrlab.algorithms.flooding import FloodingCoordinator, FloodReport
from lsrlab.core.config import Settings
from lsrlab.core.events import EventBus, packet_delivered, routing_table_changed
from lsrlab.core.messages import Packet, make_discovery
from lsrlab.core.node import Node, NodeSnapshot, Route

LOGGER = logging.getLogger(__name__)

UNREACHABLE = "unreachable"


class Outcome(str, Enum):
    OK = "ok"
    NODE_NOT_FOUND = "node_not_found"
    INVALID_LINK = "invalid_link"
    LINK_NOT_FOUND = "link_not_found"


# Topología inicial de la demo: 4 nodos en anillo + nodo 5 unido a 1 y 3
INITIAL_POSITIONS = [
    {"x": -3, "y": 0, "z": 0},
    {"x": 0, "y": 3, "z": 0},
    {"x": 3, "y": 0, "z": 0},
    {"x": 0, "y": -3, "z": 0},
    {"x": 0, "y": 0, "z": 3},
]
INITIAL_LINKS = [(0, 1, 1), (1, 2, 1), (2, 3, 1), (3, 0, 1), (4, 0, 2), (4, 2, 2)]


class Network:
    """
    Todas las mutaciones pasan por acá: los nodos nunca se enlazan solos.
    Cada instancia tiene su propio contador de ids, así que varias
    simulaciones pueden convivir en el mismo proceso.
    """

    def __init__(self, settings: Optional[Settings] = None, events: Optional[EventBus] = None):
        self.settings = settings or Settings()
        self.events = events or EventBus()
        self.nodes: Dict[int, Node] = {}
        self.next_node_id = 1
        # paquetes entregados en la última fase (discovery o flooding)
        self.last_packets: List[Packet] = []
        self.last_flood: Optional[FloodReport] = None
        self._flooding = False
        # adyacencias (a, b) con a < b que todavía no intercambiaron su LSDB
        self._new_adjacencies: Set[Tuple[int, int]] = set()

    # -------------------------------
    # Helpers internos
    # -------------------------------
    def _assert_idle(self) -> None:
        if self._flooding:
            raise RuntimeError("no se aceptan mutaciones con un flooding en curso")

    def is_active(self, node_id: int) -> bool:
        node = self.nodes.get(node_id)
        return node is not None and node.active

    def _on_delivered(self, packet: Packet) -> None:
        self.events.emit(packet_delivered(packet))

    def _refresh(self, ids: Iterable[int], before: Optional[Mapping[int, Dict[int, Route]]] = None) -> None:
        """Recalcula las tablas de 'ids' y avisa las que cambiaron."""
        for nid in sorted(set(ids)):
            node = self.nodes.get(nid)
            if node is None:
                continue
            prev = before[nid] if before is not None and nid in before else node.routing_table
            node.recompute_routing_table(self.is_active)
            if node.routing_table != prev:
                self.events.emit(routing_table_changed(nid))

    def _checked(self, outcome: Outcome) -> Outcome:
        if self.settings.check_invariants:
            self.check_consistency()
        return outcome

    # -------------------------------
    # Comandos
    # -------------------------------
    def create_node(self, meta: Any = None) -> int:
        self._assert_idle()
        node_id = self.next_node_id
        self.next_node_id += 1
        self.nodes[node_id] = Node(node_id, meta)
        LOGGER.debug("nodo %s creado", node_id)
        return node_id

    def remove_node(self, node_id: int) -> Outcome:
        if node_id not in self.nodes:
            return Outcome.NODE_NOT_FOUND
        self._assert_idle()
        del self.nodes[node_id]
        before = {nid: n.routing_table for nid, n in self.nodes.items()}
        for node in self.nodes.values():
            node.forget_node(node_id)
        self._new_adjacencies = {pair for pair in self._new_adjacencies if node_id not in pair}
        self._refresh(self.nodes, before)
        LOGGER.debug("nodo %s eliminado", node_id)
        if self.settings.check_invariants:
            for node in self.nodes.values():
                assert not node.store.references(node_id), f"[{node.id}] la LSDB todavía menciona a {node_id}"
                assert node_id not in node.routing_table, f"[{node.id}] ruta hacia el nodo eliminado {node_id}"
        return self._checked(Outcome.OK)

    def create_link(self, a: int, b: int, cost: Optional[int] = None) -> Outcome:
        if cost is None:
            cost = self.settings.default_cost
        if a == b or cost < 0:
            return Outcome.INVALID_LINK
        if a not in self.nodes or b not in self.nodes:
            return Outcome.NODE_NOT_FOUND
        self._assert_idle()
        node_a, node_b = self.nodes[a], self.nodes[b]
        if b in node_a.links:
            return Outcome.OK
        node_a.add_link(b, cost)
        node_b.add_link(a, cost)
        self._new_adjacencies.add((min(a, b), max(a, b)))
        self._refresh((a, b))
        LOGGER.debug("enlace %s<->%s creado (costo=%s)", a, b, cost)
        return self._checked(Outcome.OK)

    def remove_link(self, a: int, b: int) -> Outcome:
        if a not in self.nodes or b not in self.nodes:
            return Outcome.NODE_NOT_FOUND
        self._assert_idle()
        node_a, node_b = self.nodes[a], self.nodes[b]
        if b not in node_a.links:
            return Outcome.LINK_NOT_FOUND
        node_a.remove_link(b)
        node_b.remove_link(a)
        self._new_adjacencies.discard((min(a, b), max(a, b)))
        self._refresh((a, b))
        LOGGER.debug("enlace %s<->%s eliminado", a, b)
        return self._checked(Outcome.OK)

    def set_node_active(self, node_id: int, active: bool) -> Outcome:
        """
        Baja/alta lógica: un nodo inactivo no origina ni reenvía tráfico,
        pero conserva su registro hasta remove_node(). Sus vecinos dejan de
        anunciar el enlace hacia él (nueva secuencia) y, al reactivarse, cada
        enlace cuenta como adyacencia nueva para el próximo flooding.
        """
        node = self.nodes.get(node_id)
        if node is None:
            return Outcome.NODE_NOT_FOUND
        self._assert_idle()
        if node.active == active:
            return Outcome.OK
        node.active = active
        if not active:
            node.confirmed.clear()
            for other in self.nodes.values():
                other.confirmed.discard(node_id)
        for nbr in sorted(node.links):
            self.nodes[nbr].neighbor_state_changed()
            if active:
                self._new_adjacencies.add((min(node_id, nbr), max(node_id, nbr)))
        self._refresh(self.nodes)
        return self._checked(Outcome.OK)

    def create_initial_topology(self) -> List[int]:
        """Arma la topología de la demo y devuelve los ids creados."""
        ids = [self.create_node(dict(pos)) for pos in INITIAL_POSITIONS]
        for i, j, cost in INITIAL_LINKS:
            self.create_link(ids[i], ids[j], cost)
        return ids

    # -------------------------------
    # Fases del protocolo
    # -------------------------------
    def _deliver_discovery(self, packets: List[Packet]) -> None:
        for packet in packets:
            target = self.nodes.get(packet.dst)
            if target is None:
                continue
            target.receive_discovery(packet)
            self._on_delivered(packet)

    def run_discovery(self, node_id: Optional[int] = None) -> List[Packet]:
        """
        Hellos sobre los enlaces ya existentes (confirmación, no descubrimiento
        de vecinos desconocidos). Sin 'node_id' saludan todos los nodos activos;
        con 'node_id' solo ese, y los vecinos le responden.
        """
        self._assert_idle()
        if node_id is None:
            ids = sorted(self.nodes)
            for node in self.nodes.values():
                node.confirmed.clear()
        elif node_id in self.nodes:
            ids = [node_id]
        else:
            return []

        hellos: List[Packet] = []
        for nid in ids:
            hellos.extend(self.nodes[nid].emit_discovery(self.is_active))
        self._deliver_discovery(hellos)

        # respuestas: quien recibió un hello contesta si el emisor aún no lo confirmó
        replies: List[Packet] = []
        for hello in hellos:
            sender = self.nodes[hello.src]
            receiver = self.nodes.get(hello.dst)
            if receiver is None or not receiver.active or hello.dst in sender.confirmed:
                continue
            replies.append(make_discovery(receiver.id, sender.id, receiver.links[sender.id]))
        self._deliver_discovery(replies)

        self.last_packets = hellos + replies
        return self.last_packets

    def _flood_ceiling(self, max_rounds: Optional[int]) -> int:
        if max_rounds is not None:
            return max_rounds
        return max(self.settings.max_rounds, len(self.nodes))

    def _adjacencies_for(self, origins: Optional[Iterable[int]]) -> List[Tuple[int, int]]:
        # con 'origins' solo anuncian esos nodos; el intercambio queda pendiente
        return [] if origins is not None else sorted(self._new_adjacencies)

    def _all_adjacencies(self) -> Set[Tuple[int, int]]:
        return {(a, b) for a, node in self.nodes.items() for b in node.links if a < b}

    def _after_flood(self, coordinator: FloodingCoordinator, report: FloodReport, synced: List[Tuple[int, int]]) -> FloodReport:
        self._new_adjacencies.difference_update(synced)
        if report.aborted:
            # lo que quedó pendiente se perdió: el próximo flooding resincroniza todo
            self._new_adjacencies = self._all_adjacencies()
        self.last_packets = coordinator.delivered
        self.last_flood = report
        self._refresh(report.touched_nodes)
        if self.settings.check_invariants:
            self.check_consistency()
        return report

    def run_flooding(self, max_rounds: Optional[int] = None, origins: Optional[Iterable[int]] = None) -> FloodReport:
        self._assert_idle()
        coordinator = FloodingCoordinator(self.nodes, self._flood_ceiling(max_rounds), self._on_delivered)
        synced = self._adjacencies_for(origins)
        self._flooding = True
        try:
            report = coordinator.run(origins, synced)
        finally:
            self._flooding = False
        return self._after_flood(coordinator, report, synced)

    async def run_flooding_async(self, max_rounds: Optional[int] = None, origins: Optional[Iterable[int]] = None) -> FloodReport:
        """Igual que run_flooding(), con un task asyncio por nodo."""
        self._assert_idle()
        coordinator = AsyncFloodingCoordinator(self.nodes, self._flood_ceiling(max_rounds), self._on_delivered)
        synced = self._adjacencies_for(origins)
        self._flooding = True
        try:
            report = await coordinator.run_async(origins, synced)
        finally:
            self._flooding = False
        return self._after_flood(coordinator, report, synced)

    # -------------------------------
    # Consultas (copias, nunca mutan)
    # -------------------------------
    def get_node(self, node_id: int) -> Optional[NodeSnapshot]:
        node = self.nodes.get(node_id)
        return None if node is None else node.snapshot()

    def list_node_ids(self) -> List[int]:
        return sorted(self.nodes)

    def list_active_node_ids(self) -> List[int]:
        return sorted(nid for nid, n in self.nodes.items() if n.active)

    def get_neighbors(self, node_id: int) -> List[Tuple[int, int]]:
        node = self.nodes.get(node_id)
        if node is None:
            return []
        return sorted(node.links.items())

    def get_topology_database(self, node_id: int) -> Optional[Dict[int, Dict[int, int]]]:
        node = self.nodes.get(node_id)
        return None if node is None else node.store.snapshot()

    def get_routing_table(self, node_id: int) -> Optional[Dict[int, Route]]:
        node = self.nodes.get(node_id)
        return None if node is None else dict(node.routing_table)

    def compute_path(self, src: int, dst: int) -> Union[List[int], str]:
        """
        Sigue las tablas de rutas salto a salto desde 'src'. Si algún nodo del
        camino no tiene ruta, hay un ciclo o se pasa del límite de saltos,
        devuelve "unreachable".
        """
        if src not in self.nodes or dst not in self.nodes:
            return UNREACHABLE
        path = [src]
        cur = src
        for _ in range(self.settings.path_max_hops):
            if cur == dst:
                return path
            hop = self.nodes[cur].next_hop(dst)
            if hop is None or hop in path or hop not in self.nodes:
                return UNREACHABLE
            path.append(hop)
            cur = hop
        return path if cur == dst else UNREACHABLE

    def compute_path_string(self, src: int, dst: int) -> str:
        path = self.compute_path(src, dst)
        if isinstance(path, str):
            return path
        return " → ".join(str(n) for n in path)

    # -------------------------------
    # Invariantes
    # -------------------------------
    def check_consistency(self) -> None:
        """Falla con AssertionError si hay un defecto de programación."""
        for nid, node in self.nodes.items():
            assert nid == node.id, f"id inconsistente: {nid} != {node.id}"
            assert nid not in node.links, f"[{nid}] enlace a sí mismo"
            assert nid not in node.routing_table, f"[{nid}] ruta hacia sí mismo"
            own = node.store.entry(nid)
            assert own == node.links or (own is None and not node.links), \
                f"[{nid}] entrada propia de la LSDB distinta de sus enlaces"
            for nbr, cost in node.links.items():
                other = self.nodes.get(nbr)
                assert other is not None, f"[{nid}] enlace a nodo inexistente {nbr}"
                assert other.links.get(nid) == cost, f"enlace asimétrico {nid}<->{nbr}"
