# src/lsrlab/core/messages.py
# Modelo de paquetes (DISCOVERY | LSA) con payload etiquetado
from __future__ import annotations
from enum import Enum
from typing import Annotated, Dict, List, Literal, Mapping, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class PacketType(str, Enum):
    DISCOVERY = "DISCOVERY"
    LSA = "LSA"


class LinkAdvert(BaseModel):
    """Un enlace anunciado: (vecino, costo)."""
    model_config = ConfigDict(frozen=True)

    neighbor_id: int = Field(gt=0)
    cost: int = Field(ge=0)


class DiscoveryPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["DISCOVERY"] = "DISCOVERY"
    sender_id: int = Field(gt=0)
    cost: int = Field(ge=0)


class LSAPayload(BaseModel):
    """
    Copia completa de la tabla de enlaces directos del originador
    en el momento de generarse el LSA.
    """
    model_config = ConfigDict(frozen=True)

    type: Literal["LSA"] = "LSA"
    originator_id: int = Field(gt=0)
    links: Tuple[LinkAdvert, ...] = ()
    sequence_number: int = Field(default=0, ge=0)

    def links_dict(self) -> Dict[int, int]:
        return {a.neighbor_id: a.cost for a in self.links}


Payload = Annotated[Union[DiscoveryPayload, LSAPayload], Field(discriminator="type")]


class Packet(BaseModel):
    """
    Paquete en tránsito por un único salto. El campo 'payload' es una unión
    discriminada por 'type', así que los handlers nunca leen campos sin tipo.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    src: int = Field(alias="from", gt=0)
    dst: int = Field(alias="to", gt=0)
    payload: Payload

    @property
    def type(self) -> PacketType:
        return PacketType(self.payload.type)

    def to_wire(self) -> Dict[str, object]:
        """Forma plana {type, from, to, payload} (para logs y eventos)."""
        return {
            "type": self.payload.type,
            "from": self.src,
            "to": self.dst,
            "payload": self.payload.model_dump(mode="json"),
        }


# -----------------------
#   Constructores
# -----------------------

def make_discovery(src: int, dst: int, cost: int) -> Packet:
    """
    Construye un paquete tipo 'DISCOVERY' (hello) hacia un vecino directo
    """
    return Packet(src=src, dst=dst, payload=DiscoveryPayload(sender_id=src, cost=cost))


def make_lsa_payload(originator: int, links: Mapping[int, int], seq: int) -> LSAPayload:
    adverts: List[LinkAdvert] = [
        LinkAdvert(neighbor_id=n, cost=c) for n, c in sorted(links.items())
    ]
    return LSAPayload(originator_id=originator, links=tuple(adverts), sequence_number=seq)


def make_lsa(src: int, dst: int, payload: LSAPayload) -> Packet:
    """
    Construye un paquete tipo 'LSA'. El payload se comparte tal cual entre
    copias (flooding, no re-anuncio).
    """
    return Packet(src=src, dst=dst, payload=payload)
