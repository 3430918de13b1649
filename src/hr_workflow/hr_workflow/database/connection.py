from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

import mysql.connector

DEFAULT_DATABASE = "hr_workflow"


@dataclass(frozen=True)
class DBConfig:
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    database: str = DEFAULT_DATABASE

    @classmethod
    def from_mapping(cls, db_config: Mapping[str, Any]) -> "DBConfig":
        """Read the settings' DB_CONFIG dict; missing keys fall back to local defaults."""
        return cls(
            host=str(db_config.get("host") or cls.host),
            port=int(db_config.get("port") or cls.port),
            user=str(db_config.get("user") or cls.user),
            password=str(db_config.get("password") or ""),
            database=str(db_config.get("database") or cls.database),
        )

    def connect_kwargs(self, *, with_database: bool = True) -> dict:
        kwargs = dict(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            use_pure=True,
        )
        if with_database:
            kwargs["database"] = self.database
        return kwargs


def open_connection(config: DBConfig, *, with_database: bool = True):
    return mysql.connector.connect(**config.connect_kwargs(with_database=with_database))


class DatabaseConnection:
    """Process-wide factory for short-lived MySQL connections.

    Each connection serves one operation and one transaction.
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: DBConfig):
        self.config = config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if cls._instance is None or cls._instance.config != config:
            cls._instance = cls(config)
        return cls._instance

    def connect(self):
        return open_connection(self.config)
