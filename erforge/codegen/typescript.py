"""TypeScript emitter: MikroORM entity classes, embeddables, enums and interfaces."""

from logging import getLogger

from ..config import GeneratorConfig
from ..schema.models import (
    DiagramSnapshot,
    EmbeddableNode,
    EntityNode,
    EnumNode,
    InterfaceNode,
    Node,
    Property,
    RelationshipEdge,
)
from ..schema.types import FetchType, NodeType, RelationType
from .naming import camel_case, pluralize, sanitize_class_name
from .type_mapping import NUMBER_PATTERN, ts_type

logger = getLogger(__name__)

COMMENT_RELATIONS = {
    RelationType.COMPOSITION: "owns",
    RelationType.AGGREGATION: "references",
    RelationType.DEPENDENCY: "uses",
}


def emit_typescript(
    snapshot: DiagramSnapshot,
    config: GeneratorConfig | None = None,
) -> dict[str, str]:
    """Generate one TypeScript file per entity, embeddable, enum and interface.

    Args:
        snapshot: The diagram to emit.
        config: Generator options.

    Returns:
        File contents keyed by file name (``<ClassName>.ts``), in node order.
    """
    emitter = _TypeScriptEmitter(snapshot, config or GeneratorConfig())
    files = {}
    for node in snapshot.nodes:
        class_name = emitter.class_names[node.id]
        files[f"{class_name}.ts"] = emitter.emit_node(node) + "\n"

    logger.debug("Generated %d TypeScript file(s)", len(files))
    return files


class _Imports:
    """Import statements collected while rendering one file."""

    def __init__(self, own_name: str):
        self.own_name = own_name
        self.core: set[str] = set()
        self.types: set[str] = set()
        self.enums: set[str] = set()
        self.classes: set[str] = set()

    def render(self, orm_import: str) -> list[str]:
        lines = []
        if self.core:
            lines.append(f'import {{ {", ".join(sorted(self.core))} }} from "{orm_import}"')

        classes = self.classes - {self.own_name}
        enums = self.enums - {self.own_name}
        types = self.types - classes - enums - {self.own_name}
        for name in sorted(types):
            lines.append(f'import type {{ {name} }} from "./{name}"')
        for name in sorted(enums):
            lines.append(f'import {{ {name} }} from "./{name}"')
        for name in sorted(classes):
            lines.append(f'import {{ {name} }} from "./{name}"')
        return lines


class _TypeScriptEmitter:
    def __init__(self, snapshot: DiagramSnapshot, config: GeneratorConfig):
        self.snapshot = snapshot
        self.config = config
        self.nodes = {node.id: node for node in snapshot.nodes}
        self.class_names = _assign_class_names(snapshot.nodes)

    @property
    def ind(self) -> str:
        return self.config.indent()

    def emit_node(self, node: Node) -> str:
        if node.type == NodeType.ENTITY:
            return self.emit_entity(node)
        if node.type == NodeType.EMBEDDABLE:
            return self.emit_embeddable(node)
        if node.type == NodeType.ENUM:
            return self.emit_enum(node)
        return self.emit_interface(node)

    # -------------------------------------------------------------------------
    # Type references
    # -------------------------------------------------------------------------

    def enum_for(self, type_name: str) -> EnumNode | None:
        return self.snapshot.find_enum(type_name)

    def embeddable_for(self, type_name: str) -> EmbeddableNode | None:
        return self.snapshot.find_embeddable(type_name)

    def property_ts_type(self, prop: Property, imports: _Imports) -> str:
        enum_node = self.enum_for(prop.type)
        if enum_node is not None:
            name = self.class_names[enum_node.id]
            imports.enums.add(name)
            return name
        embeddable = self.embeddable_for(prop.type)
        if embeddable is not None:
            name = self.class_names[embeddable.id]
            imports.classes.add(name)
            return name
        return ts_type(prop.type)

    # -------------------------------------------------------------------------
    # Entities
    # -------------------------------------------------------------------------

    def emit_entity(self, entity: EntityNode) -> str:
        class_name = self.class_names[entity.id]
        imports = _Imports(class_name)
        imports.core.add("Entity")

        property_blocks = [self.property_block(p, imports) for p in entity.data.properties]

        taken = {p.name for p in entity.data.properties}
        outgoing = self.snapshot.outgoing(entity.id)
        relation_blocks = []
        comment_lines = []
        base_class = None
        implemented = []

        for edge in outgoing:
            relation = edge.data.relation_type
            target = self.nodes[edge.target]
            target_name = self.class_names[target.id]

            if relation == RelationType.INHERITANCE:
                if base_class is None:
                    base_class = target_name
                    imports.classes.add(target_name)
                else:
                    comment_lines.append(
                        f"{self.ind}// Inheritance: {target_name} (only one base class is emitted)"
                    )
            elif relation == RelationType.IMPLEMENTATION:
                implemented.append(target_name)
                imports.types.add(target_name)
            elif relation in COMMENT_RELATIONS:
                verb = COMMENT_RELATIONS[relation]
                comment_lines.append(
                    f"{self.ind}// {relation.value}: {verb} {target_name} "
                    f"({edge.data.source_property})"
                )
                if relation == RelationType.DEPENDENCY:
                    self.import_node(target, imports)
            elif target.type != NodeType.ENTITY:
                comment_lines.append(
                    f"{self.ind}// {relation.value} {edge.data.source_property}: "
                    f"{target_name} is not an entity"
                )
            else:
                relation_blocks.append(self.relation_block(edge, target, imports))
                taken.add(edge.data.source_property)

        for edge in self.snapshot.incoming(entity.id):
            source = self.nodes[edge.source]
            if not edge.data.relation_type.is_structural or source.type != NodeType.ENTITY:
                continue
            name = self.inverse_name(edge)
            if name in taken or (edge.source == entity.id and name == edge.data.source_property):
                continue
            taken.add(name)
            relation_blocks.append(self.inverse_block(edge, source, name, imports))

        index_decorators = self.index_decorators(entity, imports)

        lines = imports.render(self.config.orm_import)
        lines.append("")
        if entity.data.is_aggregate_root:
            lines.append("/** Aggregate root */")
        lines.extend(index_decorators)
        if entity.data.table_name:
            lines.append(f'@Entity({{ tableName: "{entity.data.table_name}" }})')
        else:
            lines.append("@Entity()")

        header = f"export class {class_name}"
        if base_class:
            header += f" extends {base_class}"
        if implemented:
            header += f" implements {', '.join(implemented)}"
        lines.append(header + " {")

        body = []
        if property_blocks:
            body.append("\n\n".join(property_blocks))
        if relation_blocks:
            body.append("\n\n".join(relation_blocks))
        if comment_lines:
            body.append("\n".join(comment_lines))
        if body:
            lines.append("\n\n".join(body))
        lines.append("}")
        return "\n".join(lines)

    def index_decorators(self, entity: EntityNode, imports: _Imports) -> list[str]:
        names = {p.id: p.name for p in entity.data.properties}
        decorators = []
        for index in entity.data.indexes:
            if not index.properties:
                continue
            decorator = "Unique" if index.is_unique else "Index"
            imports.core.add(decorator)
            props = ", ".join(f'"{names[p]}"' for p in index.properties)
            if index.name:
                decorators.append(
                    f'@{decorator}({{ properties: [{props}], name: "{index.name}" }})'
                )
            else:
                decorators.append(f"@{decorator}({{ properties: [{props}] }})")
        return decorators

    def property_block(self, prop: Property, imports: _Imports) -> str:
        ind = self.ind
        type_name = self.property_ts_type(prop, imports)
        options = property_options(prop)

        if prop.is_primary_key:
            imports.core.add("PrimaryKey")
            decorator = "@PrimaryKey()"
        elif self.enum_for(prop.type) is not None:
            imports.core.add("Enum")
            if options:
                decorator = f"@Enum({{ items: () => {type_name}, {', '.join(options)} }})"
            else:
                decorator = f"@Enum(() => {type_name})"
        elif self.embeddable_for(prop.type) is not None:
            imports.core.add("Embedded")
            if prop.is_nullable:
                decorator = f"@Embedded({{ entity: () => {type_name}, nullable: true }})"
            else:
                decorator = f"@Embedded(() => {type_name})"
        else:
            imports.core.add("Property")
            decorator = f"@Property({{ {', '.join(options)} }})" if options else "@Property()"

        marker = "?" if prop.is_nullable else "!"
        return f"{ind}{decorator}\n{ind}{prop.name}{marker}: {type_name}"

    def relation_block(
        self,
        edge: RelationshipEdge,
        target: EntityNode,
        imports: _Imports,
    ) -> str:
        data = edge.data
        relation = data.relation_type
        target_name = self.class_names[target.id]
        imports.core.add(relation.value)
        imports.classes.add(target_name)
        if data.cascade:
            imports.core.add("Cascade")

        mapped_by = ""
        if data.target_property or relation == RelationType.ONE_TO_MANY:
            var = camel_case(target_name) or "e"
            mapped_by = f", {var} => {var}.{self.inverse_name(edge)}"

        options = self.relation_options(edge)
        decorator = f"@{relation.value}(() => {target_name}{mapped_by}{options})"
        return self.relation_field(
            decorator, data.source_property, target_name, relation, data.is_nullable, imports
        )

    def inverse_block(
        self,
        edge: RelationshipEdge,
        source: EntityNode,
        name: str,
        imports: _Imports,
    ) -> str:
        relation = edge.data.relation_type.inverse()
        source_name = self.class_names[source.id]
        imports.core.add(relation.value)
        imports.classes.add(source_name)

        mapped_by = ""
        if relation != RelationType.MANY_TO_ONE:
            var = camel_case(source_name) or "e"
            mapped_by = f", {var} => {var}.{edge.data.source_property}"

        decorator = f"@{relation.value}(() => {source_name}{mapped_by})"
        return self.relation_field(
            decorator, name, source_name, relation, edge.data.is_nullable, imports
        )

    def relation_field(
        self,
        decorator: str,
        name: str,
        type_name: str,
        relation: RelationType,
        nullable: bool,
        imports: _Imports,
    ) -> str:
        ind = self.ind
        if relation.is_collection:
            imports.core.add("Collection")
            field = f"{name}: Collection<{type_name}> = new Collection<{type_name}>(this)"
        else:
            field = f"{name}{'?' if nullable else '!'}: {type_name}"
        return f"{ind}{decorator}\n{ind}{field}"

    def relation_options(self, edge: RelationshipEdge) -> str:
        """Decorator options as a multiline object literal, or an empty string."""
        data = edge.data
        options = []
        if data.cascade:
            options.append("cascade: [Cascade.ALL]")
        if data.is_nullable:
            options.append("nullable: true")
        if data.orphan_removal:
            options.append("orphanRemoval: true")
        if data.fetch_type == FetchType.EAGER:
            options.append("eager: true")
        if data.delete_rule is not None:
            options.append(f'deleteRule: "{data.delete_rule.value}"')

        if not options:
            return ""
        inner = self.config.indent(2)
        body = ",\n".join(f"{inner}{option}" for option in options)
        return f", {{\n{body}\n{self.ind}}}"

    def inverse_name(self, edge: RelationshipEdge) -> str:
        """Name of the derived field on the target side of a relationship."""
        if edge.data.target_property:
            return edge.data.target_property
        base = camel_case(self.class_names[edge.source]) or "owner"
        if edge.data.relation_type.inverse().is_collection:
            return pluralize(base)
        return base

    def import_node(self, node: Node, imports: _Imports) -> None:
        name = self.class_names[node.id]
        if node.type == NodeType.INTERFACE:
            imports.types.add(name)
        elif node.type == NodeType.ENUM:
            imports.enums.add(name)
        else:
            imports.classes.add(name)

    # -------------------------------------------------------------------------
    # Embeddables, enums, interfaces
    # -------------------------------------------------------------------------

    def emit_embeddable(self, embeddable: EmbeddableNode) -> str:
        class_name = self.class_names[embeddable.id]
        imports = _Imports(class_name)
        imports.core.add("Embeddable")

        blocks = [
            self.property_block(p, imports)
            for p in embeddable.data.properties
            if not p.is_primary_key
        ]

        lines = imports.render(self.config.orm_import)
        lines.append("")
        lines.append("@Embeddable()")
        lines.append(f"export class {class_name} {{")
        if blocks:
            lines.append("\n\n".join(blocks))
        lines.append("}")
        return "\n".join(lines)

    def emit_enum(self, enum_node: EnumNode) -> str:
        lines = [f"export enum {self.class_names[enum_node.id]} {{"]
        for member in enum_node.data.values:
            if NUMBER_PATTERN.match(member.value):
                value = member.value
            else:
                value = f'"{_escape(member.value)}"'
            lines.append(f"{self.ind}{member.key} = {value},")
        lines.append("}")
        return "\n".join(lines)

    def emit_interface(self, interface: InterfaceNode) -> str:
        class_name = self.class_names[interface.id]
        imports = _Imports(class_name)

        members = []
        for prop in interface.data.properties:
            optional = "?" if prop.is_nullable else ""
            type_name = self.property_ts_type(prop, imports)
            members.append(f"{self.ind}{prop.name}{optional}: {type_name};")
        if members and interface.data.methods:
            members.append("")
        for method in interface.data.methods:
            return_type = method.return_type or "void"
            members.append(f"{self.ind}{method.name}({method.parameters}): {return_type};")

        # Interfaces only ever need type-level imports
        imports.types |= imports.enums | imports.classes
        imports.enums.clear()
        imports.classes.clear()

        lines = imports.render(self.config.orm_import)
        if lines:
            lines.append("")
        lines.append(f"export interface {class_name} {{")
        lines.extend(members)
        lines.append("}")
        return "\n".join(lines)


def property_options(prop: Property) -> list[str]:
    """``unique``/``nullable``/``default`` entries for a property decorator."""
    options = []
    if prop.is_unique:
        options.append("unique: true")
    if prop.is_nullable:
        options.append("nullable: true")
    if prop.default_value is not None and prop.default_value != "":
        options.append(f"default: {format_default(prop.default_value)}")
    return options


def format_default(value: str) -> str:
    """Render a default value as a TypeScript expression.

    Booleans, numbers, ``new ...`` and ``() => ...`` are emitted verbatim;
    anything else becomes a double-quoted string literal.
    """
    if (
        value in ("true", "false")
        or NUMBER_PATTERN.match(value.strip())
        or value.startswith("new ")
        or value.startswith("() =>")
    ):
        return value
    return f'"{_escape(value)}"'


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _assign_class_names(nodes: list[Node]) -> dict[str, str]:
    """Sanitized class name per node id; later duplicates get ``_2``, ``_3``..."""
    names: dict[str, str] = {}
    used: set[str] = set()
    for node in nodes:
        base = sanitize_class_name(node.data.name)
        name = base
        counter = 1
        while name in used:
            counter += 1
            name = f"{base}_{counter}"
        used.add(name)
        names[node.id] = name
    return names
