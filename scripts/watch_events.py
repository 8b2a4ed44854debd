#!/usr/bin/env python3
# Escucha el canal de eventos de lsrlab en Redis e imprime cada evento.
import argparse
import json

from lsrlab.core.config import Settings
from lsrlab.net.redis_events import make_redis_client


def main():
    settings = Settings.from_env()

    ap = argparse.ArgumentParser(description="Muestra los eventos publicados por una simulación lsrlab.")
    ap.add_argument("--channel", default=settings.events_channel,
                    help=f"Canal Pub/Sub. Default: {settings.events_channel}")
    args = ap.parse_args()

    r = make_redis_client(settings)
    pubsub = r.pubsub()
    pubsub.subscribe(args.channel)
    print(f"escuchando '{args.channel}' (Ctrl+C para salir)")
    try:
        for msg in pubsub.listen():
            if msg.get("type") != "message":
                continue
            data = msg.get("data")
            if isinstance(data, (bytes, bytearray)):
                data = data.decode("utf-8", "ignore")
            try:
                evt = json.loads(data)
            except json.JSONDecodeError:
                print(f"[??] {data}")
                continue
            if evt.get("kind") == "packet_delivered":
                print(f"[PKT] {evt.get('packet_type')} {evt.get('src')} -> {evt.get('dst')}")
            else:
                print(f"[RT]  tabla de rutas de {evt.get('node_id')} cambió")
    except KeyboardInterrupt:
        pass
    finally:
        pubsub.close()
        r.close()


if __name__ == "__main__":
    main()
