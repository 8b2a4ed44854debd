from abc import ABC, abstractmethod

from lsrlab.core.events import Event, EventBus


class EventSink(ABC):
    """Destino externo de los eventos de la simulación (para visualización)."""

    @abstractmethod
    def publish(self, event: Event) -> None:
        """Envía 'event' hacia afuera del proceso."""
        ...

    def attach(self, bus: EventBus) -> None:
        """Suscribe el sink a todos los eventos de 'bus'."""
        bus.subscribe_all(self.publish)

    def detach(self, bus: EventBus) -> None:
        bus.unsubscribe(self.publish)
