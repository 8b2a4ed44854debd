# src/lsrlab/cli.py
# CLI: arma la red (topo-*.json o demo), corre discovery + flooding e imprime tablas
import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from lsrlab.algorithms.dijkstra import load_topology
from lsrlab.core.config import Settings
from lsrlab.core.network import Network, Outcome


def build_network(settings: Settings, topo_path: Optional[str]) -> Network:
    net = Network(settings=settings)
    if not topo_path:
        net.create_initial_topology()
        return net

    links = load_topology(topo_path, default_cost=settings.default_cost)
    # los ids del archivo se respetan: se crean nodos hasta cubrir el mayor id
    for _ in range(max(links, default=0)):
        net.create_node()
    for u, nbrs in sorted(links.items()):
        for v, w in sorted(nbrs.items()):
            if u < v:
                outcome = net.create_link(u, v, w)
                if outcome is not Outcome.OK:
                    raise ValueError(f"enlace {u}<->{v} inválido: {outcome.value}")
    return net


def print_state(net: Network) -> None:
    for nid in net.list_node_ids():
        node = net.nodes[nid]
        estado = "activo" if node.active else "inactivo"
        vecinos = ", ".join(f"{n}:{c}" for n, c in net.get_neighbors(nid)) or "-"
        print(f"[{nid}] {estado}; vecinos={{ {vecinos} }}")
        print(node.store.format_lsdb())
        print(node.format_routes())
        print()


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="lsrlab.cli", description="Simulación de enrutamiento link-state")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--topo", help="ruta a topo-*.json")
    src.add_argument("--demo", action="store_true", help="topología inicial de 5 nodos")
    p.add_argument("--max-rounds", type=int, default=None, help="techo de rondas de flooding")
    p.add_argument("--remove-link", nargs=2, type=int, action="append", default=[],
                   metavar=("A", "B"), help="enlace a cortar después del primer flooding")
    p.add_argument("--path", nargs=2, type=int, action="append", default=[],
                   metavar=("SRC", "DST"), help="camino a mostrar al final")
    p.add_argument("--publish", action="store_true", help="publica eventos en Redis (REDIS_URL/HOST)")
    p.add_argument("--log-level", type=str.upper, default=None,
                   choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="nivel de logging")
    args = p.parse_args(argv)

    try:
        settings = Settings.from_env()
    except ValidationError as exc:
        print(f"configuración inválida: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        net = build_network(settings, args.topo)
    except (OSError, ValueError) as exc:
        print(f"no se pudo cargar la topología: {exc}", file=sys.stderr)
        return 2

    sink = None
    if args.publish:
        from lsrlab.net.redis_events import RedisEventSink
        sink = RedisEventSink(settings=settings)
        sink.attach(net.events)

    try:
        hellos = net.run_discovery()
        print(f"discovery: {len(hellos)} hellos entregados")
        report = net.run_flooding(max_rounds=args.max_rounds)
        print(f"flooding: {report.as_dict()}")

        for a, b in args.remove_link:
            outcome = net.remove_link(a, b)
            print(f"remove_link({a}, {b}) -> {outcome.value}")
        if args.remove_link:
            report = net.run_flooding(max_rounds=args.max_rounds)
            print(f"flooding: {report.as_dict()}")

        print()
        print_state(net)
        for a, b in args.path:
            print(f"camino {a} -> {b}: {net.compute_path_string(a, b)}")
    finally:
        if sink is not None:
            sink.detach(net.events)
            sink.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
