# Tests para TopologyStore y el manejo de LSAs en Node
from lsrlab.algorithms.link_state import TopologyStore
from lsrlab.core.messages import PacketType, make_discovery, make_lsa, make_lsa_payload
from lsrlab.core.node import Node, Route


def always(_nid):
    return True


def lsa_from(origin, links, src=None, dst=2, seq=1):
    return make_lsa(src or origin, dst, make_lsa_payload(origin, links, seq))


# ---------- TopologyStore ----------

def test_install_first_entry_is_new():
    st = TopologyStore(1)
    assert st.install(2, {1: 1, 3: 1}, seq=1) is True
    assert st.entry(2) == {1: 1, 3: 1}


def test_install_same_content_is_not_new():
    st = TopologyStore(1)
    st.install(2, {1: 1})
    # la secuencia se registra pero no decide la frescura
    assert st.install(2, {1: 1}, seq=9) is False
    assert st.seqs[2] == 9


def test_install_cost_change_and_removed_link_are_new():
    st = TopologyStore(1)
    st.install(2, {1: 1, 3: 1})
    assert st.install(2, {1: 5, 3: 1}) is True
    assert st.install(2, {1: 5}) is True
    assert st.entry(2) == {1: 5}


def test_purge_node_everywhere():
    st = TopologyStore(1)
    st.set_own({2: 1, 3: 4}, seq=2)
    st.install(3, {1: 4, 2: 2})
    assert st.purge_node_everywhere(3) is True
    assert st.snapshot() == {1: {2: 1}}
    assert not st.references(3)
    assert st.purge_node_everywhere(3) is False


def test_snapshot_is_a_copy():
    st = TopologyStore(1)
    st.set_own({2: 1}, seq=1)
    snap = st.snapshot()
    snap[1][9] = 9
    assert st.entry(1) == {2: 1}


# ---------- Node: enlaces y LSDB propia ----------

def test_link_changes_keep_own_entry_and_bump_sequence():
    n = Node(1)
    assert n.store.entry(1) is None
    n.add_link(2, 1)
    n.add_link(3, 4)
    assert n.store.entry(1) == n.links == {2: 1, 3: 4}
    assert n.seq == 2
    n.remove_link(2)
    assert n.store.entry(1) == {3: 4}
    assert n.seq == 3
    # no-ops no tocan la secuencia
    assert n.add_link(3, 7) is False
    assert n.remove_link(2) is False
    assert n.seq == 3


def test_emit_lsa_shares_one_payload_snapshot():
    n = Node(1)
    n.add_link(2, 1)
    n.add_link(3, 2)
    pkts = n.emit_lsa(always)
    assert [p.dst for p in pkts] == [2, 3]
    assert all(p.type is PacketType.LSA for p in pkts)
    assert pkts[0].payload == pkts[1].payload
    assert pkts[0].payload.links_dict() == {2: 1, 3: 2}
    assert pkts[0].payload.sequence_number == 2


def test_emit_only_towards_active_neighbors():
    n = Node(1)
    n.add_link(2, 1)
    n.add_link(3, 1)
    assert [p.dst for p in n.emit_lsa(lambda nid: nid != 3)] == [2]
    assert [p.dst for p in n.emit_discovery(lambda nid: nid != 2)] == [3]


def test_inactive_node_emits_nothing():
    n = Node(1)
    n.add_link(2, 1)
    n.active = False
    assert n.emit_lsa(always) == []
    assert n.emit_discovery(always) == []


# ---------- Node: recepción de LSAs ----------

def test_receive_lsa_new_info_is_forwarded_except_to_sender():
    n = Node(2)
    n.add_link(1, 1)
    n.add_link(3, 1)
    n.add_link(4, 1)
    updated, fwd = n.receive_lsa(lsa_from(1, {2: 1}), always)
    assert updated is True
    assert sorted(p.dst for p in fwd) == [3, 4]
    assert all(p.src == 2 for p in fwd)
    # flooding: se reenvía el mismo payload, no se re-anuncia
    assert all(p.payload.originator_id == 1 for p in fwd)


def test_receive_lsa_duplicate_is_suppressed():
    n = Node(2)
    n.add_link(1, 1)
    n.add_link(3, 1)
    n.receive_lsa(lsa_from(1, {2: 1}), always)
    updated, fwd = n.receive_lsa(lsa_from(1, {2: 1}, src=3), always)
    assert updated is False
    assert fwd == []


def test_receive_lsa_on_inactive_node_does_nothing():
    n = Node(2)
    n.add_link(1, 1)
    n.active = False
    assert n.receive_lsa(lsa_from(1, {2: 1}), always) == (False, [])
    assert n.store.entry(1) is None


def test_receive_own_lsa_is_ignored():
    n = Node(2)
    n.add_link(1, 1)
    stale = make_lsa(1, 2, make_lsa_payload(2, {}, 0))
    assert n.receive_lsa(stale, always) == (False, [])
    assert n.store.entry(2) == {1: 1}


def test_receive_lsa_ignores_discovery_packets():
    n = Node(2)
    n.add_link(1, 1)
    assert n.receive_lsa(make_discovery(1, 2, 1), always) == (False, [])


def test_receive_discovery_confirms_only_direct_neighbors():
    n = Node(2)
    n.add_link(1, 3)
    assert n.receive_discovery(make_discovery(1, 2, 3)) is True
    assert n.receive_discovery(make_discovery(1, 2, 3)) is False
    assert n.receive_discovery(make_discovery(7, 2, 1)) is False
    assert n.confirmed == {1}


# ---------- Node: tabla de rutas ----------

def test_empty_topology_gives_empty_table():
    n = Node(1)
    assert n.recompute_routing_table() is False
    assert n.routing_table == {}


def test_recompute_from_received_lsas():
    """
    Con topología en línea 1-2-3:
    - 1 llega a 3 a través de 2
    """
    n = Node(1)
    n.add_link(2, 1)
    n.receive_lsa(lsa_from(2, {1: 1, 3: 1}, dst=1), always)
    assert n.recompute_routing_table() is True
    assert n.routing_table == {2: Route(next_hop=2, cost=1), 3: Route(next_hop=2, cost=2)}
    assert n.next_hop(3) == 2
    assert n.next_hop(9) is None
    # idempotente
    assert n.recompute_routing_table() is False


def test_routing_table_is_replaced_not_mutated():
    n = Node(1)
    n.add_link(2, 1)
    n.recompute_routing_table()
    old = n.routing_table
    n.add_link(3, 1)
    n.recompute_routing_table()
    assert old == {2: Route(next_hop=2, cost=1)}
    assert set(n.routing_table) == {2, 3}


def test_forget_node_drops_every_reference():
    n = Node(1)
    n.add_link(2, 1)
    n.add_link(3, 1)
    n.receive_lsa(lsa_from(3, {1: 1, 4: 2}, dst=1), always)
    n.recompute_routing_table()
    n.confirmed.add(3)
    assert n.forget_node(3) is True
    assert 3 not in n.links
    assert not n.store.references(3)
    assert 3 not in n.routing_table
    assert 3 not in n.confirmed


def test_older_sequence_is_discarded():
    st = TopologyStore(1)
    st.install(2, {1: 1, 3: 1}, seq=4)
    assert st.install(2, {1: 1}, seq=3) is False
    assert st.entry(2) == {1: 1, 3: 1}
    assert st.seqs[2] == 4
    assert st.install(2, {1: 1}, seq=5) is True


# ---------- Node: vecinos inactivos e intercambio de LSDB ----------

def test_inactive_neighbors_are_not_advertised_nor_used():
    n = Node(1)
    n.add_link(2, 1)
    n.add_link(3, 4)
    only_3 = lambda nid: nid == 3
    assert n.lsa_payload(only_3).links_dict() == {3: 4}
    # la entrada propia sigue reflejando todos los enlaces
    assert n.store.entry(1) == {2: 1, 3: 4}
    n.recompute_routing_table(only_3)
    assert n.routing_table == {3: Route(next_hop=3, cost=4)}


def test_neighbor_state_change_bumps_sequence():
    n = Node(1)
    n.add_link(2, 1)
    n.neighbor_state_changed()
    assert n.seq == 2
    assert n.store.seqs[1] == 2
    assert n.store.entry(1) == {2: 1}


def test_database_packets_carry_every_foreign_entry():
    n = Node(2)
    n.add_link(1, 1)
    n.add_link(3, 1)
    n.receive_lsa(lsa_from(1, {2: 1}, dst=2, seq=3), always)
    n.receive_lsa(lsa_from(4, {3: 2}, src=3, dst=2, seq=7), always)
    pkts = n.database_packets(3)
    assert [(p.src, p.dst, p.payload.originator_id) for p in pkts] == [(2, 3, 1), (2, 3, 4)]
    assert pkts[1].payload.sequence_number == 7
    # al propio peer no se le devuelve su entrada
    assert [p.payload.originator_id for p in n.database_packets(1)] == [4]
    n.active = False
    assert n.database_packets(3) == []
