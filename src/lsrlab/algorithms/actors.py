# Flooding con un task asyncio por nodo (cola de entrada propia + barrera por ronda)
import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from lsrlab.algorithms.flooding import FloodingCoordinator, FloodReport
from lsrlab.core.messages import Packet
from lsrlab.core.node import Node

LOGGER = logging.getLogger(__name__)

# (id del nodo, paquete entregado, actualizado, reenvíos, error)
Reply = Tuple[int, Packet, bool, List[Packet], Optional[Exception]]


class AsyncFloodingCoordinator(FloodingCoordinator):
    """
    Misma semántica que FloodingCoordinator, pero cada nodo corre como un
    task con su propia asyncio.Queue: el estado del nodo solo lo toca su
    task. La ronda N+1 no arranca hasta tener la respuesta de cada entrega
    de la ronda N.
    """

    async def _node_task(self, node: Node, inbox: asyncio.Queue) -> None:
        while True:
            item = await inbox.get()
            if item is None:
                return
            packet, replies = item
            try:
                updated, forwards = node.receive_lsa(packet, self.is_active)
            except Exception as exc:
                # la barrera siempre recibe respuesta; el error lo relanza step_async
                await replies.put((node.id, packet, False, [], exc))
                continue
            await replies.put((node.id, packet, updated, forwards, None))

    async def step_async(self, pending: List[Packet], inboxes: Dict[int, asyncio.Queue]) -> List[Packet]:
        self.round += 1
        replies: asyncio.Queue = asyncio.Queue()
        expected = 0
        for packet in pending:
            inbox = inboxes.get(packet.dst)
            if inbox is None:
                continue
            await inbox.put((packet, replies))
            expected += 1

        # barrera: se esperan todas las respuestas de esta ronda
        got: List[Reply] = [await replies.get() for _ in range(expected)]

        # orden estable para que el resultado no dependa del scheduling
        order = {id(p): i for i, p in enumerate(pending)}
        got.sort(key=lambda r: order[id(r[1])])
        for reply in got:
            if reply[4] is not None:
                raise reply[4]

        forwards: List[Packet] = []
        for node_id, packet, updated, out, _ in got:
            self._delivered(packet)
            if updated:
                self._touched.add(node_id)
            forwards.extend(out)
        LOGGER.debug("ronda %d (async): %d entregados, %d reenvíos", self.round, expected, len(forwards))
        return forwards

    async def run_async(
        self,
        origins: Optional[Iterable[int]] = None,
        adjacencies: Iterable[Tuple[int, int]] = (),
    ) -> FloodReport:
        pending = self._start(origins, adjacencies)
        inboxes: Dict[int, asyncio.Queue] = {nid: asyncio.Queue() for nid in self.nodes}
        tasks = [
            asyncio.create_task(self._node_task(node, inboxes[nid]))
            for nid, node in self.nodes.items()
        ]
        try:
            while pending and self.round < self.max_rounds:
                pending = await self.step_async(pending, inboxes)
        finally:
            for inbox in inboxes.values():
                inbox.put_nowait(None)
            await asyncio.gather(*tasks)
        return self._finish(pending)
