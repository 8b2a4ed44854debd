# Algoritmo de Dijkstra sobre una base de estado de enlaces
# Descripción:
# - La entrada es una LSDB: originador -> {vecino: costo}
# - dijkstra(): distancias + predecesores desde 'source'
# - reconstrucción de rutas y primer salto (next-hop)
# - loader del formato topo del laboratorio ({"type":"topo","config":{...}})

from __future__ import annotations
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Set, Tuple
import heapq, json

Topology = Mapping[int, Mapping[int, int]]

INF = float("inf")

# -----------------------
#   Core de Dijkstra
# -----------------------

def known_ids(topology: Topology) -> Set[int]:
    """
    Todos los ids que aparecen en la LSDB, ya sea como originador (clave)
    o como vecino anunciado por otro.
    """
    ids: Set[int] = set(topology.keys())
    for nbrs in topology.values():
        ids.update(nbrs.keys())
    return ids


def dijkstra(topology: Topology, source: int) -> Tuple[Dict[int, float], Dict[int, Optional[int]]]:
    """
    Ejecuta Dijkstra desde 'source'.
    Retorna:
      - dist: distancia mínima a cada nodo conocido (inf si inalcanzable)
      - prev: predecesor inmediato en la ruta más corta (None si origen o inalcanzable)

    Solo se relaja usando la entrada del nodo seleccionado (lo que él anunció).
    Empates: se procesa primero el id menor, y un camino de igual costo no
    reemplaza al ya encontrado, así el resultado es reproducible.
    """
    ids = known_ids(topology) | {source}
    dist: Dict[int, float] = {u: INF for u in ids}
    prev: Dict[int, Optional[int]] = {u: None for u in ids}
    dist[source] = 0

    visited: Set[int] = set()
    pq: List[Tuple[float, int]] = [(0, source)]

    while pq:
        du, u = heapq.heappop(pq)
        if u in visited or du > dist[u]:
            continue
        visited.add(u)
        for v, w in topology.get(u, {}).items():
            alt = du + w
            if alt < dist.get(v, INF):
                dist[v] = alt
                prev[v] = u
                heapq.heappush(pq, (alt, v))

    return dist, prev


def reconstruct_path(prev: Mapping[int, Optional[int]], source: int, target: int) -> List[int]:
    """
    Reconstruye la ruta source -> target usando el mapa de predecesores 'prev'.
    Retorna lista vacía si 'target' es inalcanzable o la cadena está rota.
    """
    path: List[int] = []
    cur: Optional[int] = target
    # una cadena válida nunca es más larga que la cantidad de nodos
    for _ in range(len(prev) + 1):
        if cur is None:
            break
        path.append(cur)
        if cur == source:
            break
        cur = prev.get(cur)
    path.reverse()
    if not path or path[0] != source:
        return []  # inalcanzable
    return path


def _first_hop(prev: Mapping[int, Optional[int]], source: int, dest: int) -> Optional[int]:
    # Recorre hacia atrás: dest <- ... <- source, y toma el nodo justo después de source
    path = reconstruct_path(prev, source, dest)
    if len(path) < 2:
        return None
    return path[1]


def build_next_hops(dist: Mapping[int, float], prev: Mapping[int, Optional[int]], source: int) -> Dict[int, Tuple[int, float]]:
    """
    Tabla destino -> (next_hop, costo) para todo destino alcanzable != source.
    Destinos sin primer salto resoluble se omiten.
    """
    table: Dict[int, Tuple[int, float]] = {}
    for dest in sorted(dist):
        d = dist[dest]
        if dest == source or d == INF:
            continue
        hop = _first_hop(prev, source, dest)
        if hop is None:
            continue
        table[dest] = (hop, d)
    return table


def routing_from(topology: Topology, source: int) -> Dict[str, dict]:
    """
    Función de conveniencia:
      - corre Dijkstra
      - arma next_hops
    Retorna dict con 'dist', 'prev', 'next_hop'.
    """
    dist, prev = dijkstra(topology, source)
    return {"dist": dist, "prev": prev, "next_hop": build_next_hops(dist, prev, source)}

# -----------------------
#   Loader de topología
# -----------------------

def load_topology(path: str | Path, default_cost: int = 1) -> Dict[int, Dict[int, int]]:
    """
    Carga enlaces desde el formato del laboratorio:
    { "type":"topo", "config": { "1": [2, 3], "2": [1], "3": [] } }

    También acepta costos por arista usando dict:
    { "type":"topo", "config": { "1": {"2": 3, "3": 5}, "2": {"1": 3}, "3": {} } }

    El resultado se simetriza: basta con declarar cada enlace en un extremo.
    """
    p = Path(path)
    data = json.loads(p.read_text(encoding="utf-8"))
    if data.get("type") != "topo":
        raise ValueError("topo inválido: se espera {'type':'topo','config':{...}}")

    cfg = data.get("config", {})
    links: Dict[int, Dict[int, int]] = {}

    for u, neigh in cfg.items():
        u = int(u)
        links.setdefault(u, {})
        if isinstance(neigh, list):
            pairs = [(int(v), default_cost) for v in neigh]
        elif isinstance(neigh, dict):
            pairs = [(int(v), int(w)) for v, w in neigh.items()]
        else:
            raise ValueError(f"Vecinos de {u} deben ser list o dict.")
        for v, w in pairs:
            links[u][v] = w
            links.setdefault(v, {})[u] = w
    return links
