# Base de estado de enlaces (LSDB) de un nodo
from typing import Dict, Mapping, Optional


class TopologyStore:
    """
    LSDB de un nodo: originador -> {vecino: costo}, tal como lo anunció en
    su último LSA aceptado. La entrada propia (self.me) la mantiene el nodo
    con su tabla de enlaces directos; el resto llega por flooding.
    """

    def __init__(self, me: int):
        self.me = me
        self.lsdb: Dict[int, Dict[int, int]] = {}
        # último número de secuencia aceptado por originador
        self.seqs: Dict[int, int] = {}

    def __len__(self) -> int:
        return len(self.lsdb)

    def __contains__(self, origin: int) -> bool:
        return origin in self.lsdb

    def entry(self, origin: int) -> Optional[Dict[int, int]]:
        return self.lsdb.get(origin)

    def set_own(self, links: Mapping[int, int], seq: int) -> None:
        """Reemplaza la entrada propia por la tabla de enlaces actual."""
        self.lsdb[self.me] = dict(links)
        self.seqs[self.me] = seq

    def install(self, origin: int, links: Mapping[int, int], seq: int = 0) -> bool:
        """
        Instala el anuncio de 'origin'. Devuelve True si la LSDB cambió:
        primera entrada de ese originador, o conjunto de enlaces distinto
        (enlace nuevo, costo cambiado o enlace retirado). Un anuncio con
        secuencia menor a la registrada es una copia vieja y se descarta.
        """
        incoming = dict(links)
        current = self.lsdb.get(origin)
        if current is not None and seq < self.seqs.get(origin, 0):
            return False
        self.seqs[origin] = seq
        if current is not None and current == incoming:
            return False
        self.lsdb[origin] = incoming
        return True

    def purge_node_everywhere(self, node: int) -> bool:
        """
        Elimina 'node' como originador y como vecino anunciado por otros.
        Devuelve True si algo cambió.
        """
        changed = self.lsdb.pop(node, None) is not None
        self.seqs.pop(node, None)
        for nbrs in self.lsdb.values():
            if nbrs.pop(node, None) is not None:
                changed = True
        return changed

    def references(self, node: int) -> bool:
        if node in self.lsdb:
            return True
        return any(node in nbrs for nbrs in self.lsdb.values())

    def snapshot(self) -> Dict[int, Dict[int, int]]:
        """Copia profunda de la LSDB (para consultas de solo lectura)."""
        return {u: dict(nbrs) for u, nbrs in self.lsdb.items()}

    def format_lsdb(self) -> str:
        """LSDB legible, una línea por originador."""
        lines = [f"[{self.me}] LSDB:"]
        for u in sorted(self.lsdb):
            parts = [f"{v}:{w}" for v, w in sorted(self.lsdb[u].items())]
            lines.append(f"  {u} (seq={self.seqs.get(u, 0)}) -> {{ " + ", ".join(parts) + " }")
        return "\n".join(lines)
