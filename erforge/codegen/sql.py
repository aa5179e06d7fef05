"""SQL-DDL emitter for PostgreSQL and MySQL."""

import re
from dataclasses import dataclass, field
from logging import getLogger

import networkx as nx

from ..config import GeneratorConfig
from ..schema.models import (
    DiagramSnapshot,
    EntityNode,
    EnumNode,
    Property,
    RelationshipEdge,
)
from ..schema.types import NodeType, RelationType
from .naming import camel_case, column_name, singularize, snake_case, table_name
from .type_mapping import MYSQL, NUMBER_PATTERN, POSTGRES, enum_base_type, sql_type

logger = getLogger(__name__)

SCHEMA_FILENAME = "schema.sql"

_FUNCTION_CALL = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*\(.*\)$")
_SQL_KEYWORD_DEFAULTS = {"CURRENT_TIMESTAMP", "CURRENT_DATE", "CURRENT_TIME", "NULL"}


@dataclass
class Column:
    name: str
    type: str
    primary_key: bool = False
    not_null: bool = False
    unique: bool = False
    default: str | None = None

    def render(self, inline_primary_key: bool) -> str:
        parts = [self.name, self.type]
        if self.primary_key and inline_primary_key:
            parts.append("PRIMARY KEY")
        if self.not_null and not self.primary_key:
            parts.append("NOT NULL")
        if self.unique and not self.primary_key:
            parts.append("UNIQUE")
        if self.default is not None:
            parts.append(f"DEFAULT {self.default}")
        return " ".join(parts)


@dataclass
class ForeignKey:
    column: str
    references: str  # table key
    referenced_table: str
    referenced_column: str
    on_delete: str | None = None

    def render(self) -> str:
        clause = (
            f"FOREIGN KEY ({self.column}) REFERENCES "
            f"{self.referenced_table} ({self.referenced_column})"
        )
        if self.on_delete:
            clause += f" ON DELETE {self.on_delete}"
        return clause


@dataclass
class Table:
    key: str  # entity id, or edge id for join tables
    name: str
    columns: list[Column] = field(default_factory=list)
    foreign_keys: list[ForeignKey] = field(default_factory=list)
    indexes: list[str] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)

    def column(self, name: str) -> Column | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    @property
    def primary_key(self) -> list[str]:
        return [c.name for c in self.columns if c.primary_key]


def emit_sql(
    snapshot: DiagramSnapshot,
    dialect: str | None = None,
    config: GeneratorConfig | None = None,
) -> dict[str, str]:
    """Generate the DDL script for a diagram.

    Args:
        snapshot: The diagram to emit.
        dialect: ``postgres`` or ``mysql``; defaults to the configured dialect.
        config: Generator options.

    Returns:
        ``{"schema.sql": text}``.
    """
    config = config or GeneratorConfig()
    dialect = dialect or config.dialect
    if dialect not in (POSTGRES, MYSQL):
        raise ValueError(f"Unknown SQL dialect: {dialect}")

    script = _SqlEmitter(snapshot, dialect, config).render()
    return {SCHEMA_FILENAME: script}


class _SqlEmitter:
    def __init__(self, snapshot: DiagramSnapshot, dialect: str, config: GeneratorConfig):
        self.snapshot = snapshot
        self.dialect = dialect
        self.config = config
        self.tables: dict[str, Table] = {}
        self.used_enums: list[EnumNode] = []
        self.trailing_comments: list[str] = []

    # -------------------------------------------------------------------------
    # Table construction
    # -------------------------------------------------------------------------

    def build(self) -> None:
        for entity in self.snapshot.entities:
            self.tables[entity.id] = self.entity_table(entity)

        for entity in self.snapshot.entities:
            self.add_indexes(entity)

        for edge in self.snapshot.relationships:
            self.add_relationship(edge)

    def entity_table(self, entity: EntityNode) -> Table:
        table = Table(
            key=entity.id,
            name=table_name(entity.data.name, entity.data.table_name),
        )
        single_key = sum(p.is_primary_key for p in entity.data.properties) == 1
        for prop in entity.data.properties:
            table.columns.extend(self.property_columns(prop, single_key))
        return table

    def property_columns(
        self,
        prop: Property,
        serial: bool,
        prefix: str = "",
        nullable: bool = False,
        seen: frozenset[str] = frozenset(),
    ) -> list[Column]:
        name = prefix + column_name(prop.name)
        enum_node = self.snapshot.find_enum(prop.type)
        embeddable = self.snapshot.find_embeddable(prop.type)

        if enum_node is None and embeddable is not None and embeddable.id not in seen:
            columns = []
            for inner in embeddable.data.properties:
                if inner.is_primary_key:
                    continue
                columns.extend(
                    self.property_columns(
                        inner,
                        serial=False,
                        prefix=f"{name}_",
                        nullable=nullable or prop.is_nullable,
                        seen=seen | {embeddable.id},
                    )
                )
            return columns

        if enum_node is not None:
            column_type = self.enum_column_type(enum_node)
        else:
            column_type = sql_type(
                prop.type, self.dialect, primary_key=prop.is_primary_key and serial
            )

        return [
            Column(
                name=name,
                type=column_type,
                primary_key=prop.is_primary_key and not prefix,
                not_null=not (prop.is_nullable or nullable),
                unique=prop.is_unique,
                default=format_sql_default(prop.default_value),
            )
        ]

    def enum_column_type(self, enum_node: EnumNode) -> str:
        if not self.config.native_enums:
            return enum_base_type(enum_node, self.dialect)
        if self.dialect == MYSQL:
            values = ", ".join(_quote(v.value) for v in enum_node.data.values)
            return f"ENUM({values})"
        if enum_node not in self.used_enums:
            self.used_enums.append(enum_node)
        return snake_case(enum_node.data.name)

    def add_indexes(self, entity: EntityNode) -> None:
        table = self.tables[entity.id]
        by_id = {p.id: p for p in entity.data.properties}
        for index in entity.data.indexes:
            columns = []
            for property_id in index.properties:
                prop = by_id[property_id]
                columns.extend(c.name for c in self.property_columns(prop, serial=False))
            if not columns:
                continue
            prefix = "uq" if index.is_unique else "idx"
            name = index.name or f"{prefix}_{table.name}_{'_'.join(columns)}"
            unique = "UNIQUE " if index.is_unique else ""
            table.indexes.append(
                f"CREATE {unique}INDEX {name} ON {table.name} ({', '.join(columns)});"
            )

    def add_relationship(self, edge: RelationshipEdge) -> None:
        data = edge.data
        relation = data.relation_type
        source = self.snapshot.get_node(edge.source)
        target = self.snapshot.get_node(edge.target)
        description = (
            f"{relation.value} {source.data.name}.{data.source_property} -> {target.data.name}"
        )

        if not relation.is_structural:
            self.comment(edge.source, f"-- {description}: no SQL equivalent")
            return
        if source.type != NodeType.ENTITY or target.type != NodeType.ENTITY:
            self.comment(edge.source, f"-- {description}: both ends must be entities")
            return

        if relation == RelationType.MANY_TO_MANY:
            self.add_join_table(edge, source, target)
            return

        if relation == RelationType.ONE_TO_MANY:
            owner, referenced = target, source
            base = data.target_property or camel_case(source.data.name)
        else:
            owner, referenced = source, target
            base = data.source_property

        referenced_pk = self.single_primary_key(referenced)
        if referenced_pk is None:
            self.comment(
                owner.id, f"-- {description}: {referenced.data.name} needs a single primary key"
            )
            return

        owner_table = self.tables[owner.id]
        fk_name = f"{column_name(base)}_id"
        if owner_table.column(fk_name) is None:
            owner_table.columns.append(
                Column(
                    name=fk_name,
                    type=referenced_pk.type,
                    not_null=not data.is_nullable,
                    unique=relation == RelationType.ONE_TO_ONE,
                )
            )
        owner_table.foreign_keys.append(
            ForeignKey(
                column=fk_name,
                references=referenced.id,
                referenced_table=self.tables[referenced.id].name,
                referenced_column=referenced_pk.name,
                on_delete=_on_delete(edge),
            )
        )

    def add_join_table(
        self, edge: RelationshipEdge, source: EntityNode, target: EntityNode
    ) -> None:
        source_table = self.tables[source.id]
        target_table = self.tables[target.id]
        source_pk = self.single_primary_key(source)
        target_pk = self.single_primary_key(target)
        if source_pk is None or target_pk is None:
            self.comment(
                source.id,
                f"-- ManyToMany {source.data.name}.{edge.data.source_property}: "
                "both entities need a single primary key",
            )
            return

        owner_column = f"{snake_case(source.data.name)}_id"
        other_column = f"{singularize(column_name(edge.data.source_property))}_id"
        if other_column == owner_column:
            other_column = f"{snake_case(target.data.name)}_{other_column}"

        join = Table(
            key=edge.id,
            name=f"{snake_case(source.data.name)}_{column_name(edge.data.source_property)}",
            columns=[
                Column(name=owner_column, type=source_pk.type, primary_key=True),
                Column(name=other_column, type=target_pk.type, primary_key=True),
            ],
            foreign_keys=[
                ForeignKey(owner_column, source.id, source_table.name, source_pk.name, "CASCADE"),
                ForeignKey(other_column, target.id, target_table.name, target_pk.name, "CASCADE"),
            ],
        )
        self.tables[edge.id] = join

    def single_primary_key(self, entity: EntityNode) -> Column | None:
        """The referenced key column, typed as a foreign key would be."""
        keys = [p for p in entity.data.properties if p.is_primary_key]
        if len(keys) != 1:
            return None
        prop = keys[0]
        columns = self.property_columns(prop, serial=False)
        if len(columns) != 1:
            return None
        return columns[0]

    def comment(self, node_id: str, text: str) -> None:
        if node_id in self.tables:
            self.tables[node_id].comments.append(text)
        else:
            self.trailing_comments.append(text)

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def table_order(self) -> list[str]:
        """Referenced tables first; insertion order breaks ties.

        Falls back to plain insertion order when the references form a cycle.
        """
        position = {key: i for i, key in enumerate(self.tables)}
        graph = nx.DiGraph()
        graph.add_nodes_from(self.tables)
        for key, table in self.tables.items():
            for fk in table.foreign_keys:
                if fk.references != key:
                    graph.add_edge(fk.references, key)
        try:
            return list(nx.lexicographical_topological_sort(graph, key=position.get))
        except nx.NetworkXUnfeasible:
            logger.debug("Foreign keys form a cycle; deferring constraints")
            return list(self.tables)

    def render(self) -> str:
        self.build()
        order = self.table_order()
        position = {key: i for i, key in enumerate(order)}

        blocks = []
        for enum_node in self.used_enums:
            values = ", ".join(_quote(v.value) for v in enum_node.data.values)
            blocks.append(f"CREATE TYPE {snake_case(enum_node.data.name)} AS ENUM ({values});")

        deferred = []
        for key in order:
            table = self.tables[key]
            inline = []
            for fk in table.foreign_keys:
                if position[fk.references] > position[key]:
                    deferred.append(f"ALTER TABLE {table.name} ADD {fk.render()};")
                else:
                    inline.append(fk)
            lines = [self.create_table(table, inline)]
            lines.extend(table.indexes)
            lines.extend(table.comments)
            blocks.append("\n".join(lines))

        if deferred:
            blocks.append("\n".join(deferred))
        if self.trailing_comments:
            blocks.append("\n".join(self.trailing_comments))

        logger.debug("Generated %d %s table(s)", len(self.tables), self.dialect)
        return "\n\n".join(blocks) + "\n" if blocks else ""

    def create_table(self, table: Table, foreign_keys: list[ForeignKey]) -> str:
        primary_key = table.primary_key
        inline_pk = len(primary_key) == 1
        parts = [column.render(inline_pk) for column in table.columns]
        if len(primary_key) > 1:
            parts.append(f"PRIMARY KEY ({', '.join(primary_key)})")
        parts.extend(fk.render() for fk in foreign_keys)

        statement = f"CREATE TABLE {table.name} ({', '.join(parts)})"
        if self.dialect == MYSQL:
            statement += f" ENGINE={self.config.mysql_engine}"
        return statement + ";"


def format_sql_default(value: str | None) -> str | None:
    """Render a property default as a SQL literal.

    Numbers, booleans, SQL keywords and function calls are kept as-is and
    other values are single-quoted. ``new Date()`` maps to
    ``CURRENT_TIMESTAMP``; other JavaScript expressions have no SQL form.
    """
    if value is None or value == "":
        return None
    text = value.strip()
    if text in ("true", "false"):
        return text.upper()
    if NUMBER_PATTERN.match(text):
        return text
    if text == "new Date()":
        return "CURRENT_TIMESTAMP"
    if text.startswith("new ") or text.startswith("() =>"):
        return None
    if text.upper() in _SQL_KEYWORD_DEFAULTS or _FUNCTION_CALL.match(text):
        return text
    return _quote(value)


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _on_delete(edge: RelationshipEdge) -> str | None:
    if edge.data.delete_rule is not None:
        return edge.data.delete_rule.sql
    if edge.data.cascade:
        return "CASCADE"
    return None
