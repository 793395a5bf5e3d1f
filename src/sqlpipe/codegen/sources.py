"""Classify data sources and derive their connection and watermark settings.

Each source type (``cassandra``, ``csv``, ``druid``, ...) falls into
one of three categories, which dictate how the generated pipeline will
connect to it and how it will keep track of what was already moved:

- ``file`` sources (``csv``) are read by row number.
- ``database`` sources (``cassandra``, ``postgres``, ``mysql``, ``mongodb``)
  use a composite watermark made of a timestamp and an id.
- ``api`` sources (``druid``, ``elasticsearch``) use the composite watermark too.

Source types that are not known are assumed to be databases.

>>> record = classify("cassandra", table="events", schema="tracking")
>>> record["category"], record["connection"]["defaults"]["port"]
('database', 9042)
>>> record["watermark"]["strategy"]
'composite'

Only the names of the environment variables to read are produced,
the variables themselves are never accessed.
"""

import logging

logger = logging.getLogger(__name__)

FILE_SOURCES = frozenset(("csv",))
DATABASE_SOURCES = frozenset(("cassandra", "postgres", "postgresql", "mysql", "mongodb"))
API_SOURCES = frozenset(("druid", "elasticsearch"))

# Columns used by the generated pipelines for their own bookkeeping.
RESERVED_COLUMNS = frozenset(("__row_number",))

DEFAULT_HOSTS = {
    "cassandra": "127.0.0.1",
    "postgres": "localhost",
    "postgresql": "localhost",
    "mysql": "localhost",
    "mongodb": "localhost",
}

DEFAULT_PORTS = {
    "cassandra": 9042,
    "postgres": 5432,
    "postgresql": 5432,
    "mysql": 3306,
    "mongodb": 27017,
}

DEFAULT_URLS = {
    "druid": "http://localhost:8888",
    "elasticsearch": "http://localhost:9200",
}

FALLBACK_HOST = "localhost"
FALLBACK_PORT = 8080
FALLBACK_URL = "http://localhost:8080"
DEFAULT_DATA_DIR = "./data"
DEFAULT_DELIMITER = ","


def categorize(source_type: str) -> str:
    """Return the category of a source type: ``file``, ``database`` or ``api``."""
    source_type = normalize_type(source_type)
    if source_type in FILE_SOURCES:
        return "file"
    elif source_type in DATABASE_SOURCES:
        return "database"
    elif source_type in API_SOURCES:
        return "api"
    logger.debug("Unknown source type %r, assuming a database", source_type)
    return "database"


def default_host(source_type: str) -> str:
    return DEFAULT_HOSTS.get(normalize_type(source_type), FALLBACK_HOST)


def default_port(source_type: str) -> int:
    return DEFAULT_PORTS.get(normalize_type(source_type), FALLBACK_PORT)


def default_url(source_type: str) -> str:
    return DEFAULT_URLS.get(normalize_type(source_type), FALLBACK_URL)


def normalize_type(source_type: str) -> str:
    """Source types are matched case insensitively."""
    return str(source_type).strip().lower()


def connection_config(source_type: str, table: str) -> dict:
    """Names of the environment variables and default values to connect to the source.

    The environment variables are named after the source type,
    like ``POSTGRES_HOST`` or ``CSV_FILE``.

    :param source_type: The type of the source.
    :param table: The table being read, used to derive the default path of files.
    """
    source_type = normalize_type(source_type)
    prefix = source_type.upper()
    category = categorize(source_type)

    if category == "file":
        return {
            "env_vars": {
                "file_path": f"{prefix}_FILE",
                "delimiter": f"{prefix}_DELIMITER",
            },
            "defaults": {
                "file_path": f"{DEFAULT_DATA_DIR}/{table}.{source_type}",
                "delimiter": DEFAULT_DELIMITER,
            },
            "template_kind": "file",
        }
    elif category == "api":
        return {
            "env_vars": {
                "url": f"{prefix}_URL",
                "username": f"{prefix}_USER",
                "password": f"{prefix}_PASSWORD",
            },
            "defaults": {"url": default_url(source_type)},
            "template_kind": "api",
        }
    return {
        "env_vars": {
            "host": f"{prefix}_HOST",
            "port": f"{prefix}_PORT",
            "username": f"{prefix}_USER",
            "password": f"{prefix}_PASSWORD",
            "keyspace": f"{prefix}_KEYSPACE",
            "database": f"{prefix}_DB",
        },
        "defaults": {
            "host": default_host(source_type),
            "port": default_port(source_type),
            "keyspace": None,
            "database": None,
        },
        "template_kind": "database",
    }


def watermark_config(source_type: str) -> dict:
    """How the pipeline tracks its progress on the source.

    Files have no reliable timestamp, so they are tracked by row number.
    Everything else is tracked by a composite timestamp and id watermark,
    which allows to resume at a timestamp boundary without reprocessing the
    rows sharing that same timestamp.
    """
    if categorize(source_type) == "file":
        return {"strategy": "row_number", "uses_composite": False, "timestamp_based": False}
    return {"strategy": "composite", "uses_composite": True, "timestamp_based": True}


def classify(source_type: str, table: str, schema: str | None = None) -> dict:
    """Build the classification record of a source.

    :param source_type: The type of the source, like ``cassandra`` or ``csv``.
    :param table: The table (or file, or datasource) to read.
    :param schema: The schema or keyspace containing the table, if any.
    """
    source_type = normalize_type(source_type)
    return {
        "type": source_type,
        "table": table,
        "schema": schema,
        "category": categorize(source_type),
        "connection": connection_config(source_type, table),
        "watermark": watermark_config(source_type),
        "reserved_columns": RESERVED_COLUMNS,
    }
