# src/lsrlab/core/config.py
# Parámetros de la simulación leídos del entorno (.env)
import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


class Settings(BaseModel):
    max_rounds: int = Field(default=15, ge=1)
    default_cost: int = Field(default=1, ge=0)
    path_max_hops: int = Field(default=20, ge=1)
    check_invariants: bool = True
    log_level: str = "WARNING"

    redis_url: Optional[str] = None
    redis_host: str = "127.0.0.1"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None
    redis_tls: bool = False
    events_channel: str = "lsrlab:events"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"nivel de logging desconocido: {v}")
        return v

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Construye Settings desde variables de entorno.
        Si no se pasa 'env', carga el .env (si existe) y usa os.environ.
        """
        if env is None:
            load_dotenv()
            env = os.environ

        raw = {
            "max_rounds": env.get("LSR_MAX_ROUNDS"),
            "default_cost": env.get("LSR_DEFAULT_COST"),
            "path_max_hops": env.get("LSR_PATH_MAX_HOPS"),
            "check_invariants": _flag(env.get("LSR_CHECK_INVARIANTS")),
            "log_level": env.get("LSR_LOG_LEVEL"),
            "redis_url": env.get("REDIS_URL"),
            "redis_host": env.get("REDIS_HOST"),
            "redis_port": env.get("REDIS_PORT"),
            "redis_db": env.get("REDIS_DB"),
            "redis_password": env.get("REDIS_PASSWORD"),
            "redis_tls": _flag(env.get("REDIS_TLS")),
            "events_channel": env.get("LSR_EVENTS_CHANNEL"),
        }
        # Solo lo que viene definido; el resto toma el default del modelo
        return cls(**{k: v for k, v in raw.items() if v is not None})


def _flag(value: Optional[str]) -> Optional[bool]:
    # "1" -> True, cualquier otro valor definido -> False
    if value is None:
        return None
    return value.strip() == "1"
