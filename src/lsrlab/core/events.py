# src/lsrlab/core/events.py
# Eventos para la capa de presentación (animación de paquetes, refresco de tablas)
import logging
from enum import Enum
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from lsrlab.core.messages import Packet

LOGGER = logging.getLogger(__name__)


class EventKind(str, Enum):
    PACKET_DELIVERED = "packet_delivered"
    ROUTING_TABLE_CHANGED = "routing_table_changed"


class Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: EventKind
    node_id: Optional[int] = None
    packet_type: Optional[str] = None
    src: Optional[int] = None
    dst: Optional[int] = None


def packet_delivered(packet: Packet) -> Event:
    return Event(
        kind=EventKind.PACKET_DELIVERED,
        node_id=packet.dst,
        packet_type=packet.type.value,
        src=packet.src,
        dst=packet.dst,
    )


def routing_table_changed(node_id: int) -> Event:
    return Event(kind=EventKind.ROUTING_TABLE_CHANGED, node_id=node_id)


Callback = Callable[[Event], None]


class EventBus:
    """
    Bus sincrónico de eventos. Los suscriptores se llaman en orden de
    registro; si uno falla se registra la excepción y se sigue con el resto.
    """

    def __init__(self) -> None:
        self._subs: Dict[EventKind, List[Callback]] = {k: [] for k in EventKind}

    def subscribe(self, kind: EventKind, callback: Callback) -> None:
        self._subs[kind].append(callback)

    def subscribe_all(self, callback: Callback) -> None:
        for kind in EventKind:
            self._subs[kind].append(callback)

    def unsubscribe(self, callback: Callback) -> None:
        for subs in self._subs.values():
            while callback in subs:
                subs.remove(callback)

    def emit(self, event: Event) -> None:
        for cb in list(self._subs[event.kind]):
            try:
                cb(event)
            except Exception:
                LOGGER.exception("event subscriber failed on %s", event.kind.value)
