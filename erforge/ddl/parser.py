"""DDL parser: SQL table definitions to a diagram fragment.

Only the subset of SQL that describes structure is understood: ``CREATE
TABLE``, ``ALTER TABLE ... ADD FOREIGN KEY``, ``CREATE INDEX`` and ``CREATE
TYPE ... AS ENUM``. Anything else is skipped with a diagnostic, and a broken
statement never stops the rest of the script from being imported.
"""

import re
from dataclasses import dataclass, field
from logging import getLogger

from ..codegen.naming import (
    camel_case,
    column_name,
    entity_name_for_table,
    pascal_case,
    pluralize,
    snake_case,
    table_name,
)
from ..codegen.type_mapping import MYSQL, POSTGRES, ir_type_for_sql
from ..schema.models import (
    DiagramSnapshot,
    EntityData,
    EntityNode,
    EnumData,
    EnumNode,
    EnumValue,
    Index,
    Position,
    Property,
    RelationshipData,
    RelationshipEdge,
)
from ..schema.types import DeleteRule, RelationType
from ..validators.base import Severity, ValidationIssue, ValidationResult
from .errors import DdlSyntaxError

logger = getLogger(__name__)

GRID_COLUMNS = 4
GRID_SPACING_X = 320
GRID_SPACING_Y = 280

_TOKEN = re.compile(r"'(?:[^']|'')*'|\"[^\"]*\"|`[^`]*`|\(|\)|,|[^\s(),'\"`]+")
_MYSQL_HINTS = re.compile(r"`|\bAUTO_INCREMENT\b|\bENGINE\s*=", re.IGNORECASE)

_CREATE_TABLE = re.compile(
    r"^CREATE\s+(?:TEMP(?:ORARY)?\s+)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?([^\s(]+)\s*\(",
    re.IGNORECASE,
)
_ALTER_FOREIGN_KEY = re.compile(
    r"^ALTER\s+TABLE\s+(?:ONLY\s+)?(?:IF\s+EXISTS\s+)?(\S+)\s+ADD\s+"
    r"(?:CONSTRAINT\s+\S+\s+)?(FOREIGN\s+KEY\s*\(.*)$",
    re.IGNORECASE | re.DOTALL,
)
_CREATE_INDEX = re.compile(
    r"^CREATE\s+(UNIQUE\s+)?INDEX\s+(?:CONCURRENTLY\s+)?(?:IF\s+NOT\s+EXISTS\s+)?"
    r"(\S+)\s+ON\s+(?:ONLY\s+)?([^\s(]+)\s*(?:USING\s+\w+\s*)?\((.*)\)\s*$",
    re.IGNORECASE | re.DOTALL,
)
_CREATE_ENUM_TYPE = re.compile(
    r"^CREATE\s+TYPE\s+(\S+)\s+AS\s+ENUM\s*\((.*)\)\s*$",
    re.IGNORECASE | re.DOTALL,
)
_FOREIGN_KEY = re.compile(
    r"^FOREIGN\s+KEY\s*\(([^)]*)\)\s*REFERENCES\s+([^\s(]+)\s*(?:\(([^)]*)\))?(.*)$",
    re.IGNORECASE | re.DOTALL,
)
_ON_DELETE = re.compile(
    r"\bON\s+DELETE\s+(CASCADE|SET\s+NULL|SET\s+DEFAULT|RESTRICT|NO\s+ACTION)\b",
    re.IGNORECASE,
)

# ``KEY``/``INDEX``/``UNIQUE`` may also be column names; a constraint has a
# column list right after the keyword or after an index name
_KEY_CONSTRAINT = re.compile(
    r"^(?:UNIQUE|KEY|INDEX|FULLTEXT|SPATIAL)\b(?:\s+(?:KEY|INDEX)\b)?\s*(?:[^\s(]+\s*)?\(",
    re.IGNORECASE,
)
_CHECK_CONSTRAINT = re.compile(r"^(?:CHECK\s*\(|EXCLUDE\s+(?:USING\s+\w+\s*)?\()", re.IGNORECASE)
_COLUMN_REFERENCE = re.compile(r"^[\"`]?[A-Za-z_]")

# Words that end the type part of a column definition
_CONSTRAINT_WORDS = {
    "NOT",
    "NULL",
    "PRIMARY",
    "UNIQUE",
    "DEFAULT",
    "REFERENCES",
    "AUTO_INCREMENT",
    "CHECK",
    "CONSTRAINT",
    "COLLATE",
    "GENERATED",
    "COMMENT",
    "CHARACTER",
    "CHARSET",
    "ON",
}
_TYPE_MODIFIERS = {"UNSIGNED", "ZEROFILL", "SIGNED"}


@dataclass
class DdlParseResult:
    """A candidate fragment plus everything that could not be imported.

    Diagnostics are ``ValidationIssue`` records carrying the script line of
    the statement they came from.
    """

    fragment: DiagramSnapshot
    diagnostics: list[ValidationIssue] = field(default_factory=list)
    dialect: str = POSTGRES

    @property
    def has_errors(self) -> bool:
        return any(d.severity == Severity.ERROR for d in self.diagnostics)


@dataclass
class _Statement:
    text: str
    line: int


@dataclass
class _ForeignKey:
    columns: list[str]
    table: str
    referenced_columns: list[str]
    delete_rule: DeleteRule | None
    line: int


@dataclass
class _Column:
    name: str
    sql_type: str
    not_null: bool = False
    primary_key: bool = False
    unique: bool = False
    default: str | None = None
    enum_values: list[str] | None = None


@dataclass
class _Index:
    name: str | None
    columns: list[str]
    unique: bool
    line: int


@dataclass
class _Table:
    name: str
    line: int
    columns: list[_Column] = field(default_factory=list)
    primary_key: list[str] = field(default_factory=list)
    foreign_keys: list[_ForeignKey] = field(default_factory=list)
    indexes: list[_Index] = field(default_factory=list)

    def column(self, name: str) -> _Column | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None


def detect_dialect(text: str) -> str:
    """Guess the dialect: backticks, ``AUTO_INCREMENT`` or ``ENGINE=`` mean MySQL."""
    return MYSQL if _MYSQL_HINTS.search(text) else POSTGRES


def parse_ddl(text: str, dialect: str | None = None) -> DdlParseResult:
    """Parse a DDL script into a diagram fragment.

    Args:
        text: The SQL script.
        dialect: ``postgres`` or ``mysql``; detected from the text when omitted.

    Returns:
        The fragment (entities, enums, relationships) with per-statement
        diagnostics. The parse never raises on bad SQL.
    """
    if dialect in (None, "auto"):
        dialect = detect_dialect(text)
    parser = _DdlParser(dialect)
    for statement in split_statements(text):
        parser.handle(statement)
    fragment = parser.build_fragment()

    logger.debug(
        "Parsed %d table(s) with %d diagnostic(s) as %s",
        len(parser.tables),
        len(parser.result.issues),
        dialect,
    )
    return DdlParseResult(fragment=fragment, diagnostics=parser.result.issues, dialect=dialect)


def split_statements(text: str) -> list[_Statement]:
    """Split a script on top-level semicolons, dropping comments.

    Each statement remembers the line it starts on.
    """
    statements = []
    buffer: list[str] = []
    line = 1
    start_line = None
    i = 0
    length = len(text)

    def flush() -> None:
        nonlocal start_line
        statement = "".join(buffer).strip()
        if statement:
            statements.append(_Statement(statement, start_line or line))
        buffer.clear()
        start_line = None

    while i < length:
        char = text[i]

        if char == "-" and text.startswith("--", i):
            end = text.find("\n", i)
            i = length if end == -1 else end
            continue

        if char == "/" and text.startswith("/*", i):
            end = text.find("*/", i + 2)
            end = length if end == -1 else end + 2
            line += text.count("\n", i, end)
            buffer.append(" ")
            i = end
            continue

        if char in "'\"`":
            end = i + 1
            while end < length:
                if text[end] == char:
                    if char == "'" and text.startswith("''", end):
                        end += 2
                        continue
                    break
                end += 1
            end = min(end + 1, length)
            if start_line is None:
                start_line = line
            buffer.append(text[i:end])
            line += text.count("\n", i, end)
            i = end
            continue

        if char == ";":
            flush()
            i += 1
            continue

        if char == "\n":
            line += 1
        elif start_line is None and not char.isspace():
            start_line = line
        buffer.append(char)
        i += 1

    flush()
    return statements


def unquote_identifier(name: str) -> str:
    """Strip identifier quotes and any schema prefix: ``"public"."users"`` -> ``users``."""
    name = name.strip()
    parts = re.findall(r'"[^"]*"|`[^`]*`|[^.]+', name)
    last = parts[-1] if parts else name
    if len(last) >= 2 and last[0] in "\"`" and last[-1] == last[0]:
        return last[1:-1]
    return last


def split_top_level(text: str) -> list[str]:
    """Split on commas that are outside parentheses and quotes."""
    items = []
    depth = 0
    current: list[str] = []
    for token in _TOKEN.finditer(text):
        value = token.group(0)
        if value == "(":
            depth += 1
        elif value == ")":
            depth -= 1
        elif value == "," and depth == 0:
            items.append(_join_tokens(current))
            current = []
            continue
        current.append(value)
    if current:
        items.append(_join_tokens(current))
    return [item for item in items if item]


def parse_string_literal(text: str) -> str:
    """``'it''s'`` -> ``it's``."""
    text = text.strip()
    if len(text) >= 2 and text[0] == "'" and text[-1] == "'":
        return text[1:-1].replace("''", "'")
    return text


def _join_tokens(tokens: list[str]) -> str:
    out = ""
    for token in tokens:
        if not out or token in (")", ",") or out.endswith("("):
            out += token
        elif token == "(":
            out += token
        else:
            out += " " + token
    return out.strip()


def _identifier_list(text: str) -> list[str]:
    return [unquote_identifier(part) for part in split_top_level(text)]


def _matching_paren(text: str, open_index: int) -> int:
    depth = 0
    quote = None
    for i in range(open_index, len(text)):
        char = text[i]
        if quote:
            if char == quote:
                quote = None
            continue
        if char in "'\"`":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return i
    return -1


def _enum_key(value: str) -> str:
    key = re.sub(r"[^A-Za-z0-9]+", "_", value).strip("_").upper()
    if not key or key[0].isdigit():
        key = "_" + key
    return key


class _DdlParser:
    def __init__(self, dialect: str):
        self.dialect = dialect
        self.tables: dict[str, _Table] = {}
        self.enum_types: dict[str, list[str]] = {}
        self.result = ValidationResult()
        self._counter = 0

    def new_id(self, kind: str) -> str:
        self._counter += 1
        return f"ddl-{kind}-{self._counter}"

    def diagnose(
        self,
        code: str,
        line: int,
        message: str,
        table: str | None = None,
        severity: Severity = Severity.WARNING,
    ) -> None:
        self.result.add(severity, code, message, node=table, line=line)
        logger.warning("DDL line %d: %s", line, message)

    def skip_constraint(self, table: _Table, kind: str, line: int) -> None:
        self.diagnose(
            "CONSTRAINT_SKIPPED", line, f"Constraint skipped on {table.name}: {kind}", table.name
        )

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def handle(self, statement: _Statement) -> None:
        text = statement.text
        try:
            if _CREATE_TABLE.match(text):
                self.create_table(statement)
            elif _ALTER_FOREIGN_KEY.match(text):
                self.alter_foreign_key(statement)
            elif _CREATE_INDEX.match(text):
                self.create_index(statement)
            elif _CREATE_ENUM_TYPE.match(text):
                self.create_enum_type(statement)
            else:
                summary = " ".join(text.split()[:3])
                self.diagnose(
                    "UNSUPPORTED_STATEMENT",
                    statement.line,
                    f"Unsupported statement skipped: {summary}",
                )
        except DdlSyntaxError as e:
            self.diagnose("SYNTAX_ERROR", statement.line, str(e), severity=Severity.ERROR)

    def create_table(self, statement: _Statement) -> None:
        text = statement.text
        match = _CREATE_TABLE.match(text)
        name = unquote_identifier(match.group(1))
        open_index = match.end() - 1
        close_index = _matching_paren(text, open_index)
        if close_index == -1:
            raise DdlSyntaxError(f"Unbalanced parentheses in CREATE TABLE {name}")

        if name in self.tables:
            raise DdlSyntaxError(f"Table {name} is defined more than once")

        table = _Table(name=name, line=statement.line)
        for item in split_top_level(text[open_index + 1 : close_index]):
            self.table_item(table, item, statement.line)
        self.tables[name] = table

    def table_item(self, table: _Table, item: str, line: int) -> None:
        upper = item.upper()
        if upper.startswith("CONSTRAINT "):
            item = item.split(None, 2)[2] if len(item.split(None, 2)) == 3 else ""
            upper = item.upper()

        if re.match(r"PRIMARY\s+KEY\b", upper):
            table.primary_key = _identifier_list(_parenthesized(item))
        elif re.match(r"FOREIGN\s+KEY\b", upper):
            table.foreign_keys.append(self.foreign_key(item, line))
        elif _CHECK_CONSTRAINT.match(item):
            kind = item.split(None, 1)[0].split("(")[0].upper()
            self.skip_constraint(table, kind, line)
        elif _is_key_constraint(item):
            keyword = item.split(None, 1)[0].split("(")[0].upper()
            if keyword in ("FULLTEXT", "SPATIAL"):
                self.skip_constraint(table, keyword, line)
                return
            columns = _identifier_list(_parenthesized(item))
            name = _index_name(item, ("UNIQUE", "KEY", "INDEX"))
            table.indexes.append(_Index(name, columns, keyword == "UNIQUE", line))
        else:
            table.columns.append(self.column(table, item, line))

    def column(self, table: _Table, item: str, line: int) -> _Column:
        tokens = [t.group(0) for t in _TOKEN.finditer(item)]
        if len(tokens) < 2:
            raise DdlSyntaxError(f"Column definition without a type in {table.name}: {item}")

        column = _Column(name=unquote_identifier(tokens[0]), sql_type="")
        type_parts: list[str] = []
        i = 1
        # The first word is always part of the type (``CHARACTER VARYING``)
        while i < len(tokens) and (not type_parts or tokens[i].upper() not in _CONSTRAINT_WORDS):
            if tokens[i] == "(" and type_parts:
                end = _group_end(tokens, i)
                type_parts[-1] += _join_tokens(tokens[i : end + 1])
                i = end + 1
                continue
            if tokens[i].upper() not in _TYPE_MODIFIERS:
                type_parts.append(tokens[i])
            i += 1
        column.sql_type = " ".join(type_parts)

        enum_match = re.match(r"^ENUM\s*\((.*)\)$", column.sql_type, re.IGNORECASE)
        if enum_match:
            column.enum_values = [
                parse_string_literal(v) for v in split_top_level(enum_match.group(1))
            ]

        while i < len(tokens):
            word = tokens[i].upper()
            if word == "NOT" and i + 1 < len(tokens) and tokens[i + 1].upper() == "NULL":
                column.not_null = True
                i += 2
            elif word == "NULL":
                i += 1
            elif word == "PRIMARY":
                column.primary_key = True
                i += 2
            elif word == "UNIQUE":
                column.unique = True
                i += 2 if i + 1 < len(tokens) and tokens[i + 1].upper() == "KEY" else 1
            elif word == "DEFAULT":
                i, column.default = _default_value(tokens, i + 1)
            elif word == "REFERENCES":
                reference = _join_tokens(tokens[i:])
                table.foreign_keys.append(
                    self.foreign_key(f"FOREIGN KEY ({column.name}) {reference}", line)
                )
                break
            elif word == "CHECK":
                i = _group_end(tokens, i + 1) + 1 if i + 1 < len(tokens) else i + 1
            else:
                i += 1

        if column.default and column.default.lower().startswith("nextval("):
            column.default = None
        return column

    def foreign_key(self, item: str, line: int) -> _ForeignKey:
        match = _FOREIGN_KEY.match(item.strip())
        if not match:
            raise DdlSyntaxError(f"Malformed foreign key: {item}")
        rule_match = _ON_DELETE.search(match.group(4) or "")
        return _ForeignKey(
            columns=_identifier_list(match.group(1)),
            table=unquote_identifier(match.group(2)),
            referenced_columns=_identifier_list(match.group(3) or ""),
            delete_rule=DeleteRule.from_sql(rule_match.group(1)) if rule_match else None,
            line=line,
        )

    def alter_foreign_key(self, statement: _Statement) -> None:
        match = _ALTER_FOREIGN_KEY.match(statement.text)
        name = unquote_identifier(match.group(1))
        if name not in self.tables:
            self.diagnose(
                "UNKNOWN_TABLE", statement.line, f"ALTER TABLE on unknown table {name}", name
            )
            return
        self.tables[name].foreign_keys.append(self.foreign_key(match.group(2), statement.line))

    def create_index(self, statement: _Statement) -> None:
        match = _CREATE_INDEX.match(statement.text)
        table = unquote_identifier(match.group(3))
        if table not in self.tables:
            self.diagnose(
                "UNKNOWN_TABLE", statement.line, f"Index on unknown table {table}", table
            )
            return
        columns = [c.split()[0] for c in _identifier_list(match.group(4))]
        index = _Index(
            unquote_identifier(match.group(2)), columns, bool(match.group(1)), statement.line
        )
        self.tables[table].indexes.append(index)

    def create_enum_type(self, statement: _Statement) -> None:
        match = _CREATE_ENUM_TYPE.match(statement.text)
        name = unquote_identifier(match.group(1))
        self.enum_types[name] = [
            parse_string_literal(v) for v in split_top_level(match.group(2))
        ]

    # -------------------------------------------------------------------------
    # Fragment
    # -------------------------------------------------------------------------

    def build_fragment(self) -> DiagramSnapshot:
        entity_nodes = []
        edges = []
        enum_names: dict[str, str] = {}  # SQL type name -> enum node name
        enum_values: dict[str, list[str]] = {}  # enum node name -> values

        for type_name, values in self.enum_types.items():
            enum_name = pascal_case(type_name) or type_name
            enum_names[type_name.lower()] = enum_name
            enum_values[enum_name] = values

        join_tables = {name for name, table in self.tables.items() if self.is_join_table(table)}
        entity_ids: dict[str, str] = {}
        entity_names: dict[str, str] = {}
        fk_columns: dict[str, set[str]] = {}

        for name, table in self.tables.items():
            if name in join_tables:
                continue
            entity_ids[name] = self.new_id("entity")
            entity_names[name] = entity_name_for_table(name) or name
            # Key columns stay properties even when they also reference another table
            fk_columns[name] = {
                fk.columns[0]
                for fk in table.foreign_keys
                if len(fk.columns) == 1
                and fk.table in self.tables
                and fk.columns[0] not in table.primary_key
                and not getattr(table.column(fk.columns[0]), "primary_key", False)
            }

        for name, table in self.tables.items():
            if name in join_tables:
                continue
            properties = []
            for column in table.columns:
                if column.name in fk_columns[name]:
                    continue
                prop_type = self.column_type(
                    column, entity_names[name], enum_names, enum_values
                )
                properties.append(
                    Property(
                        id=f"{entity_ids[name]}-{column.name}",
                        name=_property_name(column.name),
                        type=prop_type,
                        is_primary_key=column.primary_key or column.name in table.primary_key,
                        is_unique=column.unique,
                        is_nullable=not (
                            column.not_null
                            or column.primary_key
                            or column.name in table.primary_key
                        ),
                        default_value=_ir_default(column.default),
                    )
                )

            entity_name = entity_names[name]
            entity_nodes.append(
                EntityNode(
                    id=entity_ids[name],
                    data=EntityData(
                        name=entity_name,
                        table_name=None if table_name(entity_name) == name else name,
                        properties=properties,
                        indexes=self.indexes(table, entity_ids[name], properties),
                    ),
                )
            )

        for name, table in self.tables.items():
            if name in join_tables:
                edges.extend(self.many_to_many(table, entity_ids, entity_names))
                continue
            for fk in table.foreign_keys:
                edge = self.relationship(table, fk, entity_ids)
                if edge is not None:
                    edges.append(edge)

        enum_nodes = [
            EnumNode(
                id=self.new_id("enum"),
                data=EnumData(
                    name=enum_name,
                    values=[EnumValue(key=_enum_key(v), value=v) for v in values],
                ),
            )
            for enum_name, values in enum_values.items()
        ]
        nodes = enum_nodes + entity_nodes
        for i, node in enumerate(nodes):
            node.position = self.grid_position(i)

        return DiagramSnapshot(nodes=nodes, edges=edges)

    def column_type(
        self,
        column: _Column,
        entity_name: str,
        enum_names: dict[str, str],
        enum_values: dict[str, list[str]],
    ) -> str:
        if column.enum_values is not None:
            enum_name = pascal_case(column.name) or column.name
            if enum_values.get(enum_name, column.enum_values) != column.enum_values:
                enum_name = entity_name + enum_name
            enum_values[enum_name] = column.enum_values
            return enum_name

        sql = re.sub(r"\bAUTO_INCREMENT\b", "", column.sql_type, flags=re.IGNORECASE).strip()
        if sql.lower() in enum_names:
            return enum_names[sql.lower()]
        return ir_type_for_sql(sql)

    def is_join_table(self, table: _Table) -> bool:
        """Exactly two single-column foreign keys to known tables and nothing else."""
        if len(table.columns) != 2 or len(table.foreign_keys) != 2:
            return False
        fk_columns = {fk.columns[0] for fk in table.foreign_keys if len(fk.columns) == 1}
        return (
            fk_columns == {c.name for c in table.columns}
            and all(fk.table in self.tables for fk in table.foreign_keys)
        )

    def indexes(
        self, table: _Table, entity_id: str, properties: list[Property]
    ) -> list[Index]:
        by_column = {p.id.removeprefix(f"{entity_id}-"): p.id for p in properties}
        indexes = []
        for index in table.indexes:
            if index.unique and len(index.columns) == 1:
                prop_id = by_column.get(index.columns[0])
                prop = next((p for p in properties if p.id == prop_id), None)
                if prop is not None and index.name is None:
                    prop.is_unique = True
                    continue
            missing = [c for c in index.columns if c not in by_column]
            if missing:
                self.diagnose(
                    "INDEX_SKIPPED",
                    index.line,
                    f"Index on {table.name} skipped: unknown column(s) {', '.join(missing)}",
                    table.name,
                )
                continue
            default_name = (
                f"{'uq' if index.unique else 'idx'}_{table.name}_{'_'.join(index.columns)}"
            )
            indexes.append(
                Index(
                    id=self.new_id("index"),
                    name=None if index.name in (None, default_name) else index.name,
                    properties=[by_column[c] for c in index.columns],
                    is_unique=index.unique,
                )
            )
        return indexes

    def relationship(
        self,
        table: _Table,
        fk: _ForeignKey,
        entity_ids: dict[str, str],
    ) -> RelationshipEdge | None:
        if len(fk.columns) != 1:
            self.diagnose(
                "COMPOSITE_FOREIGN_KEY",
                fk.line,
                f"Composite foreign key on {table.name} ({', '.join(fk.columns)}) skipped",
                table.name,
            )
            return None
        if fk.table not in entity_ids:
            self.diagnose(
                "UNKNOWN_REFERENCE",
                fk.line,
                f"Foreign key {table.name}.{fk.columns[0]} references unknown table {fk.table}",
                table.name,
            )
            return None

        column = table.column(fk.columns[0])
        unique = column is not None and (column.unique or column.primary_key)
        unique = unique or any(
            index.unique and index.columns == fk.columns for index in table.indexes
        )
        base = re.sub(r"_id$", "", fk.columns[0], flags=re.IGNORECASE)
        return RelationshipEdge(
            id=self.new_id("edge"),
            source=entity_ids[table.name],
            target=entity_ids[fk.table],
            data=RelationshipData(
                relation_type=RelationType.ONE_TO_ONE if unique else RelationType.MANY_TO_ONE,
                source_property=camel_case(base) or base,
                is_nullable=column is None or not column.not_null,
                delete_rule=fk.delete_rule,
            ),
        )

    def many_to_many(
        self,
        table: _Table,
        entity_ids: dict[str, str],
        entity_names: dict[str, str],
    ) -> list[RelationshipEdge]:
        owner_fk, other_fk = table.foreign_keys
        if owner_fk.table not in entity_ids or other_fk.table not in entity_ids:
            self.diagnose(
                "JOIN_TABLE_SKIPPED",
                owner_fk.line,
                f"Join table {table.name} links join tables; skipped",
                table.name,
            )
            return []

        prefix = snake_case(entity_names[owner_fk.table]) + "_"
        if table.name.startswith(prefix) and len(table.name) > len(prefix):
            source_property = camel_case(table.name[len(prefix) :])
        else:
            source_property = pluralize(camel_case(entity_names[other_fk.table]))

        return [
            RelationshipEdge(
                id=self.new_id("edge"),
                source=entity_ids[owner_fk.table],
                target=entity_ids[other_fk.table],
                data=RelationshipData(
                    relation_type=RelationType.MANY_TO_MANY,
                    source_property=source_property,
                ),
            )
        ]

    @staticmethod
    def grid_position(index: int) -> Position:
        return Position(
            x=(index % GRID_COLUMNS) * GRID_SPACING_X,
            y=(index // GRID_COLUMNS) * GRID_SPACING_Y,
        )


def _parenthesized(item: str) -> str:
    start = item.find("(")
    if start == -1:
        raise DdlSyntaxError(f"Expected a column list: {item}")
    end = _matching_paren(item, start)
    if end == -1:
        raise DdlSyntaxError(f"Unbalanced parentheses: {item}")
    return item[start + 1 : end]


def _is_key_constraint(item: str) -> bool:
    """``KEY idx (a, b)`` is a constraint; ``key VARCHAR(255)`` is a column."""
    match = _KEY_CONSTRAINT.match(item)
    if not match:
        return False
    columns = split_top_level(_parenthesized(item[match.end() - 1 :]))
    return bool(columns) and all(_COLUMN_REFERENCE.match(c) for c in columns)


def _index_name(item: str, keywords: tuple[str, ...]) -> str | None:
    head = item.split("(", 1)[0].split()
    names = [word for word in head if word.upper() not in keywords]
    return unquote_identifier(names[0]) if names else None


def _group_end(tokens: list[str], start: int) -> int:
    """Index of the ``)`` closing the ``(`` at ``start``."""
    depth = 0
    for i in range(start, len(tokens)):
        if tokens[i] == "(":
            depth += 1
        elif tokens[i] == ")":
            depth -= 1
            if depth == 0:
                return i
    return len(tokens) - 1


def _default_value(tokens: list[str], start: int) -> tuple[int, str | None]:
    """Read a DEFAULT expression; returns the next token index and the raw text."""
    if start >= len(tokens):
        return start, None
    if tokens[start] == "(":
        end = _group_end(tokens, start)
        return end + 1, _join_tokens(tokens[start + 1 : end])
    end = start + 1
    if end < len(tokens) and tokens[end] == "(":
        end = _group_end(tokens, end) + 1
    return end, _join_tokens(tokens[start:end])


def _ir_default(raw: str | None) -> str | None:
    """Convert a SQL default to the editor's textual form."""
    if raw is None:
        return None
    value = re.sub(r"::[\w\s]+(\(\d+\))?$", "", raw.strip())
    if value.startswith("'"):
        return parse_string_literal(value)
    if value.upper() in ("TRUE", "FALSE"):
        return value.lower()
    if value.upper() == "NULL":
        return None
    return value


def _property_name(column: str) -> str:
    """camelCase name when it maps back to the same column, else the column name."""
    name = camel_case(column)
    if name and column_name(name) == column:
        return name
    return column
