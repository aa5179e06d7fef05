"""Static type tables between IR property types, TypeScript and SQL.

Unrecognised IR types pass through unchanged in every direction.
"""

import re

from ..schema.models import EnumNode

POSTGRES = "postgres"
MYSQL = "mysql"
DIALECTS = (POSTGRES, MYSQL)

KNOWN_TYPES = ("string", "number", "boolean", "Date", "bigint", "Buffer", "uuid")

TS_TYPES = {
    "string": "string",
    "number": "number",
    "boolean": "boolean",
    "Date": "Date",
    "bigint": "bigint",
    "Buffer": "Buffer",
    "uuid": "string",
}

SQL_TYPES = {
    POSTGRES: {
        "string": "VARCHAR(255)",
        "number": "INTEGER",
        "boolean": "BOOLEAN",
        "Date": "TIMESTAMP",
        "bigint": "BIGINT",
        "Buffer": "BYTEA",
        "uuid": "UUID",
    },
    MYSQL: {
        "string": "VARCHAR(255)",
        "number": "INT",
        "boolean": "TINYINT(1)",
        "Date": "TIMESTAMP",
        "bigint": "BIGINT",
        "Buffer": "BLOB",
        "uuid": "CHAR(36)",
    },
}

# Auto-generated primary keys
SQL_SERIAL_TYPES = {
    POSTGRES: {"number": "SERIAL", "bigint": "BIGSERIAL"},
    MYSQL: {"number": "INT AUTO_INCREMENT", "bigint": "BIGINT AUTO_INCREMENT"},
}

# Base SQL type name (without length/precision) -> IR type
_SQL_TO_IR = {
    "varchar": "string",
    "character varying": "string",
    "char": "string",
    "character": "string",
    "text": "string",
    "tinytext": "string",
    "mediumtext": "string",
    "longtext": "string",
    "citext": "string",
    "int": "number",
    "integer": "number",
    "int4": "number",
    "int2": "number",
    "smallint": "number",
    "mediumint": "number",
    "serial": "number",
    "serial4": "number",
    "smallserial": "number",
    "real": "number",
    "float": "number",
    "float4": "number",
    "float8": "number",
    "double": "number",
    "double precision": "number",
    "decimal": "number",
    "numeric": "number",
    "bigint": "bigint",
    "int8": "bigint",
    "bigserial": "bigint",
    "serial8": "bigint",
    "boolean": "boolean",
    "bool": "boolean",
    "bit": "boolean",
    "timestamp": "Date",
    "timestamptz": "Date",
    "timestamp with time zone": "Date",
    "timestamp without time zone": "Date",
    "datetime": "Date",
    "date": "Date",
    "bytea": "Buffer",
    "blob": "Buffer",
    "tinyblob": "Buffer",
    "mediumblob": "Buffer",
    "longblob": "Buffer",
    "binary": "Buffer",
    "varbinary": "Buffer",
    "uuid": "uuid",
}

NUMBER_PATTERN = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?$")

_SQL_TYPE_PATTERN = re.compile(r"^\s*([A-Za-z][A-Za-z0-9_ ]*?)\s*(?:\(\s*([^)]*)\))?\s*$")


def ts_type(ir_type: str) -> str:
    """TypeScript type for an IR type."""
    return TS_TYPES.get(ir_type, ir_type)


def sql_type(ir_type: str, dialect: str, primary_key: bool = False) -> str:
    """SQL column type for an IR type.

    Args:
        ir_type: The property type.
        dialect: ``postgres`` or ``mysql``.
        primary_key: Use the auto-increment form for numeric keys.
    """
    if primary_key and ir_type in SQL_SERIAL_TYPES[dialect]:
        return SQL_SERIAL_TYPES[dialect][ir_type]
    return SQL_TYPES[dialect].get(ir_type, ir_type)


def enum_is_numeric(enum_node: EnumNode) -> bool:
    values = enum_node.data.values
    return bool(values) and all(_is_number(v.value) for v in values)


def enum_base_type(enum_node: EnumNode, dialect: str) -> str:
    """Column type for an enum stored as plain values."""
    if enum_is_numeric(enum_node):
        return SQL_TYPES[dialect]["number"]
    return SQL_TYPES[dialect]["string"]


def ir_type_for_sql(sql: str) -> str:
    """IR type for a SQL column type, e.g. ``VARCHAR(100)`` -> ``string``.

    ``TINYINT(1)`` is read as boolean; unknown types are returned unchanged.
    """
    match = _SQL_TYPE_PATTERN.match(sql)
    if not match:
        return sql.strip()

    base = " ".join(match.group(1).lower().split())
    args = (match.group(2) or "").strip()

    if base == "tinyint":
        return "boolean" if args == "1" else "number"
    if base in ("char", "character") and args == "36":
        return "uuid"
    return _SQL_TO_IR.get(base, sql.strip())


def is_serial_type(sql: str) -> bool:
    """Whether a SQL type implies an auto-generated value."""
    lowered = sql.lower()
    return "serial" in lowered or "auto_increment" in lowered


def _is_number(text: str) -> bool:
    return bool(NUMBER_PATTERN.match(text))
