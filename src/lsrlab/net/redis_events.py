# src/lsrlab/net/redis_events.py
import json
import logging
from typing import Optional

import redis
from redis.exceptions import RedisError

from lsrlab.core.config import Settings
from lsrlab.core.events import Event
from lsrlab.net.transport import EventSink

LOGGER = logging.getLogger(__name__)


def make_redis_client(settings: Settings) -> redis.Redis:
    """
    Crea un cliente Redis.
    Prioriza REDIS_URL. Si no existe, arma a partir de host/port/password/tls.
    """
    if settings.redis_url:
        # el esquema rediss:// ya activa TLS
        return redis.Redis.from_url(settings.redis_url, decode_responses=False)
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        password=settings.redis_password,
        ssl=settings.redis_tls,
        decode_responses=False,
    )


def encode_event(event: Event) -> bytes:
    data = event.model_dump(mode="json", exclude_none=True)
    return json.dumps(data, separators=(",", ":")).encode("utf-8")


class RedisEventSink(EventSink):
    """
    Pub/Sub: cada evento se publica como JSON compacto en un único canal.
    Los fallos de Redis no frenan la simulación; se registran y se cuentan.
    """

    def __init__(self, client: Optional[redis.Redis] = None, channel: Optional[str] = None,
                 settings: Optional[Settings] = None):
        settings = settings or Settings.from_env()
        self._r = client if client is not None else make_redis_client(settings)
        self.channel = channel or settings.events_channel
        self.published = 0
        self.failed = 0

    def publish(self, event: Event) -> None:
        try:
            self._r.publish(self.channel, encode_event(event))
        except RedisError as exc:
            self.failed += 1
            LOGGER.warning("no se pudo publicar %s en '%s': %s", event.kind.value, self.channel, exc)
            return
        self.published += 1

    def close(self) -> None:
        self._r.close()
