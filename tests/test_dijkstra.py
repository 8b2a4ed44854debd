# tests/test_dijkstra.py
# Pruebas unitarias para Dijkstra sobre una LSDB
# Ejecuta:
#   pytest -q tests/test_dijkstra.py

import json
import math
import pytest

from lsrlab.algorithms.dijkstra import (
    _first_hop,
    dijkstra,
    known_ids,
    load_topology,
    reconstruct_path,
    routing_from,
)


def line_1_2_3():
    """
    Topología en línea:
      1 -- 2 -- 3
    Costos = 1
    """
    return {
        1: {2: 1},
        2: {1: 1, 3: 1},
        3: {2: 1},
    }


# ---------- Casos base ----------

def test_line_topology_routing():
    res = routing_from(line_1_2_3(), 1)
    dist = res["dist"]
    nh = res["next_hop"]

    assert dist[1] == 0
    assert dist[2] == 1
    assert dist[3] == 2
    assert nh[2] == (2, 1)
    assert nh[3] == (2, 2)   # primer salto desde 1 hacia 3 debe ser 2
    assert 1 not in nh       # nunca hay ruta a sí mismo

    assert reconstruct_path(res["prev"], 1, 3) == [1, 2, 3]


def test_unreachable_destination_has_no_next_hop():
    # 3 es originador pero nadie anuncia un enlace hacia él
    topo = {1: {2: 1}, 2: {1: 1}, 3: {}}
    res = routing_from(topo, 1)

    assert math.isinf(res["dist"][3])
    assert 3 not in res["next_hop"]


def test_node_known_only_as_neighbor_is_reachable():
    # 2 nunca mandó su LSA, pero 1 lo anuncia como vecino
    res = routing_from({1: {2: 3}}, 1)
    assert res["next_hop"] == {2: (2, 3)}


def test_source_absent_from_topology_is_still_computable():
    dist, prev = dijkstra({2: {3: 1}}, 1)
    assert dist[1] == 0
    assert math.isinf(dist[2]) and math.isinf(dist[3])
    assert routing_from({2: {3: 1}}, 1)["next_hop"] == {}


def test_known_ids_includes_keys_and_neighbors():
    assert known_ids({1: {2: 1}, 4: {5: 1}}) == {1, 2, 4, 5}


# ---------- Pesos ----------

def test_weighted_prefers_lower_cost_path():
    """
    Grafo:
      1 -1- 2 -100- 3
      1 -1- 4 -1--- 3
    Debe preferir 1 -> 4 -> 3 (costo 2) sobre 1 -> 2 -> 3 (costo 101).
    """
    topo = {
        1: {2: 1, 4: 1},
        2: {1: 1, 3: 100},
        3: {2: 100, 4: 1},
        4: {1: 1, 3: 1},
    }
    res = routing_from(topo, 1)
    assert res["dist"][3] == 2
    assert res["next_hop"][3] == (4, 2)
    assert reconstruct_path(res["prev"], 1, 3) == [1, 4, 3]


def test_zero_cost_link_does_not_break_routing():
    topo = {1: {2: 0}, 2: {1: 0, 3: 1}, 3: {2: 1}}
    nh = routing_from(topo, 1)["next_hop"]
    assert nh[2] == (2, 0)
    assert nh[3] == (2, 1)


def test_ties_are_broken_by_lowest_id():
    # anillo 1-2-3-4-1: hacia 3 hay dos caminos de costo 2
    ring = {
        1: {2: 1, 4: 1},
        2: {1: 1, 3: 1},
        3: {2: 1, 4: 1},
        4: {3: 1, 1: 1},
    }
    for _ in range(3):
        assert routing_from(ring, 1)["next_hop"][3] == (2, 2)


def test_only_originator_entry_is_used_for_relaxation():
    # 2 dice que llega a 1, pero 1 no anuncia a 2: desde 1 no hay camino
    topo = {1: {}, 2: {1: 1}}
    assert routing_from(topo, 1)["next_hop"] == {}


# ---------- Reconstrucción ----------

def test_broken_predecessor_chain_gives_empty_path():
    prev = {1: None, 3: 2}
    assert reconstruct_path(prev, 1, 3) == []
    assert _first_hop(prev, 1, 3) is None


def test_cyclic_predecessor_chain_terminates():
    prev = {1: None, 2: 3, 3: 2}
    assert reconstruct_path(prev, 1, 3) == []


# ---------- Carga desde topo-*.json ----------

def test_load_topology_with_costs_is_symmetric(tmp_path):
    topo = {"type": "topo", "config": {"1": {"2": 3}, "2": {"3": 1}}}
    topo_file = tmp_path / "topo-line.json"
    topo_file.write_text(json.dumps(topo), encoding="utf-8")

    links = load_topology(topo_file)
    assert links == {1: {2: 3}, 2: {1: 3, 3: 1}, 3: {2: 1}}


@pytest.mark.parametrize(
    "cfg,expected",
    [
        ({"1": ["2"], "2": []}, {1: {2: 1}, 2: {1: 1}}),
        ({"1": [], "2": ["3"]}, {1: {}, 2: {3: 1}, 3: {2: 1}}),
    ],
)
def test_load_topology_list_form_uses_default_cost(tmp_path, cfg, expected):
    topo_file = tmp_path / "topo.json"
    topo_file.write_text(json.dumps({"type": "topo", "config": cfg}), encoding="utf-8")
    assert load_topology(topo_file) == expected


def test_load_topology_rejects_other_types(tmp_path):
    topo_file = tmp_path / "names.json"
    topo_file.write_text(json.dumps({"type": "names", "config": {}}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_topology(topo_file)
