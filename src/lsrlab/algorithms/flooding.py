# Flooding de LSAs por rondas (supresión de duplicados + anti-eco)
import logging
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict

from lsrlab.core.messages import Packet
from lsrlab.core.node import Node

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_ROUNDS = 15


class FloodState(str, Enum):
    IDLE = "idle"
    FLOODING = "flooding"
    CONVERGED = "converged"
    ABORTED = "aborted"


class FloodReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: FloodState
    rounds: int
    touched_nodes: Tuple[int, ...] = ()
    packets_delivered: int = 0

    @property
    def aborted(self) -> bool:
        return self.state is FloodState.ABORTED

    @property
    def converged_rounds(self) -> Optional[int]:
        return self.rounds if self.state is FloodState.CONVERGED else None

    @property
    def rounds_run(self) -> int:
        return self.rounds

    def as_dict(self) -> Dict[str, object]:
        """Forma corta: {convergedRounds, touchedNodes} | {aborted, roundsRun}."""
        if self.aborted:
            return {"aborted": True, "roundsRun": self.rounds}
        return {"convergedRounds": self.rounds, "touchedNodes": list(self.touched_nodes)}


class FloodingCoordinator:
    """
    Propagación determinística de LSAs:
      - ronda 1: LSAs originados por cada nodo activo, más el intercambio
        de LSDB entre los extremos de cada adyacencia nueva
      - cada ronda entrega todo lo pendiente y junta los reenvíos
      - CONVERGED cuando una ronda no produce reenvíos
      - ABORTED si se llega al techo de rondas con paquetes pendientes
    Los cambios ya aplicados en las LSDB se mantienen aunque se aborte.
    """

    def __init__(
        self,
        nodes: Mapping[int, Node],
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        on_delivered: Optional[Callable[[Packet], None]] = None,
    ):
        if max_rounds < 1:
            raise ValueError("max_rounds debe ser >= 1")
        self.nodes = nodes
        self.max_rounds = max_rounds
        self.on_delivered = on_delivered
        self.state = FloodState.IDLE
        self.round = 0
        self.delivered: List[Packet] = []
        self._touched: Set[int] = set()

    def is_active(self, node_id: int) -> bool:
        node = self.nodes.get(node_id)
        return node is not None and node.active

    def initial_packets(
        self,
        origins: Optional[Iterable[int]] = None,
        adjacencies: Iterable[Tuple[int, int]] = (),
    ) -> List[Packet]:
        """
        LSAs propios de cada origen y, por cada adyacencia nueva (a, b), la
        LSDB de a hacia b y la de b hacia a.
        """
        ids = sorted(self.nodes) if origins is None else sorted(set(origins))
        packets: List[Packet] = []
        for nid in ids:
            node = self.nodes.get(nid)
            if node is not None:
                packets.extend(node.emit_lsa(self.is_active))
        for a, b in sorted(adjacencies):
            if not (self.is_active(a) and self.is_active(b)):
                continue
            packets.extend(self.nodes[a].database_packets(b))
            packets.extend(self.nodes[b].database_packets(a))
        return packets

    def _delivered(self, packet: Packet) -> None:
        self.delivered.append(packet)
        if self.on_delivered is not None:
            self.on_delivered(packet)

    def step(self, pending: List[Packet]) -> List[Packet]:
        """Una ronda: entrega 'pending' y devuelve los reenvíos de la próxima."""
        self.round += 1
        forwards: List[Packet] = []
        for packet in pending:
            target = self.nodes.get(packet.dst)
            if target is None:
                continue
            self._delivered(packet)
            updated, out = target.receive_lsa(packet, self.is_active)
            if updated:
                self._touched.add(target.id)
            forwards.extend(out)
        LOGGER.debug("ronda %d: %d entregados, %d reenvíos", self.round, len(pending), len(forwards))
        return forwards

    def _start(self, origins: Optional[Iterable[int]], adjacencies: Iterable[Tuple[int, int]] = ()) -> List[Packet]:
        if self.state is FloodState.FLOODING:
            raise RuntimeError("flooding ya en curso")
        self.state = FloodState.FLOODING
        self.round = 0
        self.delivered = []
        self._touched = set()
        return self.initial_packets(origins, adjacencies)

    def _finish(self, pending: List[Packet]) -> FloodReport:
        if pending:
            self.state = FloodState.ABORTED
            LOGGER.warning(
                "flooding abortado: techo de %d rondas alcanzado con %d paquetes pendientes",
                self.max_rounds, len(pending),
            )
        else:
            self.state = FloodState.CONVERGED
        return FloodReport(
            state=self.state,
            rounds=self.round,
            touched_nodes=tuple(sorted(self._touched)),
            packets_delivered=len(self.delivered),
        )

    def run(
        self,
        origins: Optional[Iterable[int]] = None,
        adjacencies: Iterable[Tuple[int, int]] = (),
    ) -> FloodReport:
        pending = self._start(origins, adjacencies)
        while pending and self.round < self.max_rounds:
            pending = self.step(pending)
        return self._finish(pending)
