"""
Engine dialect resolution.

Maps the configured database engine to the connection options each driver
needs, both for the privileged bootstrap connection and for the working
connection against a provisioned test database.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from testdb.config.config_manager import ConfigManager


class DatabaseType(str, Enum):
    """Database engine as selected by configuration."""
    SQLITE = "sqlite"
    POSTGRESDB = "postgresdb"
    MYSQLDB = "mysqldb"
    MARIADB = "mariadb"


class DriverType(str, Enum):
    """Driver-level engine tag."""
    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"


class EngineConnectionOptions(BaseModel):
    """Immutable description of how to reach one database."""

    model_config = ConfigDict(frozen=True)

    type: DriverType
    database: str
    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)
    schema_name: Optional[str] = None
    entity_prefix: str = ""
    charset: Optional[str] = None

    def with_database(self, database: str) -> "EngineConnectionOptions":
        """Return a copy of these options targeting another database."""
        return self.model_copy(update={"database": database})


MYSQL_CHARSET = "utf8mb4"


def bootstrap_family(db_type: str) -> Optional[DatabaseType]:
    """
    Return the bootstrap-capable engine family for a database type.

    Engines outside the postgres and mysql families create their database
    on connect and get no bootstrap support.
    """
    db_type = DatabaseType(db_type)
    if db_type == DatabaseType.POSTGRESDB:
        return DatabaseType.POSTGRESDB
    if db_type in (DatabaseType.MYSQLDB, DatabaseType.MARIADB):
        return DatabaseType.MYSQLDB
    return None


def get_option_overrides(config: ConfigManager, db_type: str) -> Dict[str, Any]:
    """Host, port and credentials for an engine family, read from configuration."""
    family = bootstrap_family(db_type)
    if family == DatabaseType.POSTGRESDB:
        return {
            "host": config.postgres_host,
            "port": config.postgres_port,
            "user": config.postgres_user,
            "password": config.postgres_password,
        }
    if family == DatabaseType.MYSQLDB:
        return {
            "host": config.mysql_host,
            "port": config.mysql_port,
            "user": config.mysql_user,
            "password": config.mysql_password,
        }
    return {}


def get_bootstrap_options(config: ConfigManager, db_type: str) -> EngineConnectionOptions:
    """
    Generate options for a bootstrap connection, used to create and drop test databases.

    The administrative database is named after the driver type tag
    (``postgres`` or ``mysql``). Only the postgres family carries a schema.

    Raises:
        ValueError: If the engine has no bootstrap support
    """
    family = bootstrap_family(db_type)
    if family is None:
        raise ValueError(f"Database type '{db_type}' does not support bootstrap connections")

    driver_type = DriverType.POSTGRES if family == DatabaseType.POSTGRESDB else DriverType.MYSQL
    return EngineConnectionOptions(
        type=driver_type,
        **get_option_overrides(config, family),
        database=driver_type.value,
        entity_prefix=config.table_prefix,
        schema_name=config.postgres_schema if family == DatabaseType.POSTGRESDB else None,
        charset=MYSQL_CHARSET if driver_type == DriverType.MYSQL else None,
    )


def get_connection_options(config: ConfigManager, db_type: str, database: str) -> EngineConnectionOptions:
    """Generate working-connection options targeting ``database``."""
    family = bootstrap_family(db_type)
    if family is None:
        path = Path(config.sqlite_directory) / f"{database}.sqlite"
        return EngineConnectionOptions(
            type=DriverType.SQLITE,
            database=str(path),
            entity_prefix=config.table_prefix,
        )

    return get_bootstrap_options(config, family).with_database(database)
