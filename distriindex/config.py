"""Service configuration loaded from YAML, and the database built from it."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Any, Optional

import yaml
from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine

from .models import auto_migrate

ENV_VARIABLE = "APP_ENV"
DEFAULT_CONFIG_PATH = "config/config.yml"
DEV_CONFIG_PATH = "config/config-dev.yml"

_INT64 = (-(2**63), 2**63 - 1)


def _uint(bits: int) -> Any:
    return field(default=0, metadata={"range": (0, 2**bits - 1)})


@dataclass
class ServerConfig:
    mode: str = ""
    port: str = ""


@dataclass
class DatabaseConfig:
    host: str = ""
    port: str = ""
    username: str = ""
    password: str = ""
    database: str = ""


@dataclass
class RedisConfig:
    addr: str = ""
    password: str = ""
    db: int = 0


@dataclass
class MailboxConfig:
    host: str = ""
    port: int = 0
    username: str = ""
    password: str = ""


@dataclass
class ChainConfig:
    rpc: str = ""
    program_id: str = ""
    faucet_private_key: str = ""
    dist: str = ""
    dist_decimals: int = _uint(8)
    dist_faucet_amount: int = _uint(64)


@dataclass
class Config:
    server: ServerConfig = field(default_factory=ServerConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    mailbox: MailboxConfig = field(default_factory=MailboxConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)


def _normalise(key: Any) -> str:
    return str(key).replace("_", "").replace("-", "").lower()


def _to_str(value: Any, where: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return str(value)
    raise ValueError(f"{where}: cannot use {value!r} as a string")


def _to_int(value: Any, where: str, bounds: tuple[int, int]) -> int:
    if isinstance(value, bool):
        number = int(value)
    elif isinstance(value, int):
        number = value
    elif isinstance(value, float):
        number = int(value)
    elif isinstance(value, str):
        if value == "":
            number = 0
        else:
            try:
                number = int(value, 0)
            except ValueError:
                raise ValueError(f"{where}: cannot parse {value!r} as an integer") from None
    else:
        raise ValueError(f"{where}: cannot use {value!r} as an integer")
    low, high = bounds
    if not low <= number <= high:
        raise ValueError(f"{where}: {number} is out of range")
    return number


def _section(cls: type, data: Any, where: str) -> Any:
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ValueError(f"{where}: expected a mapping, got {data!r}")
    values = {_normalise(key): value for key, value in data.items()}
    kwargs: dict[str, Any] = {}
    for spec in fields(cls):
        key = _normalise(spec.name)
        if key not in values or values[key] is None:
            continue
        name = f"{where}.{spec.name}"
        if isinstance(spec.default, str):
            kwargs[spec.name] = _to_str(values[key], name)
        else:
            kwargs[spec.name] = _to_int(values[key], name, spec.metadata.get("range", _INT64))
    return cls(**kwargs)


def config_path(env: Optional[str] = None) -> str:
    """Return the config file for an environment; 'dev' has its own file."""
    if env is None:
        env = os.environ.get(ENV_VARIABLE, "")
    return DEV_CONFIG_PATH if env == "dev" else DEFAULT_CONFIG_PATH


def load_config(path: Optional[str] = None) -> Config:
    """Read a YAML config file. Keys match case-insensitively."""
    with open(path or config_path(), encoding="utf-8") as handle:
        document = yaml.safe_load(handle)
    if document is None:
        return Config()
    if not isinstance(document, dict):
        raise ValueError("config: expected a mapping at the top level")
    sections = {_normalise(key): value for key, value in document.items()}
    return Config(
        server=_section(ServerConfig, sections.get("server"), "server"),
        database=_section(DatabaseConfig, sections.get("database"), "database"),
        redis=_section(RedisConfig, sections.get("redis"), "redis"),
        mailbox=_section(MailboxConfig, sections.get("mailbox"), "mailbox"),
        chain=_section(ChainConfig, sections.get("chain"), "chain"),
    )


def database_url(config: Config) -> str:
    """Return the MySQL connection URL for the configured database."""
    db = config.database
    try:
        port = int(db.port) if db.port else None
    except ValueError:
        raise ValueError(f"database.port: invalid port {db.port!r}") from None
    url = URL.create(
        "mysql+pymysql",
        username=db.username or None,
        password=db.password or None,
        host=db.host or None,
        port=port,
        database=db.database or None,
        query={"charset": "utf8mb4"},
    )
    return url.render_as_string(hide_password=False)


def create_database(config: Config) -> Engine:
    """Open the database, with a pool of ten connections, and migrate the schema."""
    engine = create_engine(
        database_url(config),
        pool_size=10,
        max_overflow=0,
        pool_recycle=3600,
    )
    auto_migrate(engine)
    return engine