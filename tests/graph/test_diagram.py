"""Tests for the Diagram mutation API and its invariants."""

import pytest

from erforge.graph.diagram import Diagram, sequential_ids, unique_name
from erforge.graph.errors import DiagramError, ElementNotFoundError, InvariantViolation
from erforge.schema.types import EdgeType, NodeType, RelationType


def _user(diagram):
    return diagram.nodes(NodeType.ENTITY)[0]


class TestIds:
    def test_sequential_ids(self):
        next_id = sequential_ids("n")

        assert [next_id(), next_id(), next_id()] == ["n-1", "n-2", "n-3"]

    def test_default_ids_are_unique(self):
        diagram = Diagram()

        first = diagram.add_node("entity")
        second = diagram.add_node("entity")

        assert first != second

    def test_reused_id_is_rejected(self):
        diagram = Diagram(id_factory=lambda: "same")
        diagram.add_node("entity")

        with pytest.raises(InvariantViolation) as exc_info:
            diagram.add_node("enum")

        assert exc_info.value.code == "ID_REUSED"
        assert len(diagram.nodes()) == 1


class TestUniqueName:
    def test_free_name(self):
        assert unique_name("NewEntity", []) == "NewEntity"

    def test_taken_name(self):
        assert unique_name("NewEntity", ["NewEntity"]) == "NewEntity 1"

    def test_next_after_highest(self):
        assert unique_name("NewEntity", ["NewEntity", "NewEntity 3"]) == "NewEntity 4"


class TestAddNode:
    def test_default_entity(self, diagram):
        node_id = diagram.add_node(NodeType.ENTITY)
        node = diagram.get_node(node_id)

        assert node_id == "id-1"
        assert node.data.name == "NewEntity"
        assert len(node.data.properties) == 1
        prop = node.data.properties[0]
        assert prop.id == "id-1-prop-id"
        assert prop.name == "id"
        assert prop.type == "number"
        assert prop.is_primary_key

    def test_default_names_are_unique(self, diagram):
        diagram.add_node("entity")
        second = diagram.add_node("entity")

        assert diagram.get_node(second).data.name == "NewEntity 1"

    def test_default_enum(self, diagram):
        node = diagram.get_node(diagram.add_node("enum"))

        assert node.data.name == "NewEnum"
        assert [(v.key, v.value) for v in node.data.values] == [
            ("Value1", "value1"),
            ("Value2", "value2"),
        ]

    def test_default_interface(self, diagram):
        node = diagram.get_node(diagram.add_node("interface"))

        assert node.data.properties[0].name == "id"
        assert node.data.methods[0].name == "execute"
        assert node.data.methods[0].return_type == "void"

    def test_explicit_payload_and_position(self, diagram):
        node_id = diagram.add_node(
            "embeddable",
            {"name": "Address", "properties": [{"id": "street", "name": "street"}]},
            position={"x": 10, "y": 20},
        )
        node = diagram.get_node(node_id)

        assert node.type == "embeddable"
        assert node.data.name == "Address"
        assert (node.position.x, node.position.y) == (10, 20)

    def test_unknown_kind(self, diagram):
        with pytest.raises(ValueError):
            diagram.add_node("table")

    def test_entity_referencing_enum_gets_mapping(self, user_role_diagram):
        node_id = user_role_diagram.add_node(
            "entity",
            {
                "name": "Invite",
                "properties": [{"id": "invite-role", "name": "role", "type": "Role"}],
            },
        )

        mappings = user_role_diagram.edges(EdgeType.ENUM_MAPPING)
        assert len(mappings) == 1
        assert mappings[0].source == node_id
        assert mappings[0].data.property_id == "invite-role"


class TestUpdateNode:
    def test_rename(self, user_role_diagram):
        user = _user(user_role_diagram)

        user_role_diagram.update_node(user.id, {"name": "Account"})

        assert user_role_diagram.get_node(user.id).data.name == "Account"

    def test_alias_keys(self, user_role_diagram):
        user = _user(user_role_diagram)

        user_role_diagram.update_node(user.id, {"tableName": "accounts"})

        assert user_role_diagram.get_node(user.id).data.table_name == "accounts"

    def test_unknown_field(self, user_role_diagram):
        user = _user(user_role_diagram)

        with pytest.raises(DiagramError, match="Unknown field"):
            user_role_diagram.update_node(user.id, {"color": "red"})

    def test_unknown_node(self, diagram):
        with pytest.raises(ElementNotFoundError):
            diagram.update_node("missing", {"name": "X"})

    def test_index_on_unknown_property_is_rolled_back(self, user_role_diagram):
        user = _user(user_role_diagram)

        with pytest.raises(InvariantViolation) as exc_info:
            user_role_diagram.update_node(
                user.id, {"indexes": [{"id": "ix", "properties": ["nope"]}]}
            )

        assert exc_info.value.code == "INDEX_FOREIGN_PROPERTY"
        assert user_role_diagram.get_node(user.id).data.indexes == []

    def test_move(self, user_role_diagram):
        user = _user(user_role_diagram)

        user_role_diagram.move_node(user.id, 120, 80)

        position = user_role_diagram.get_node(user.id).position
        assert (position.x, position.y) == (120, 80)


class TestDeleteNode:
    def test_removes_incident_edges(self, diagram):
        a = diagram.add_node("entity")
        b = diagram.add_node("entity")
        edge_id = diagram.add_edge("relationship", a, b)

        diagram.delete_node(b)

        assert not diagram.has_node(b)
        assert not diagram.has_edge(edge_id)
        assert diagram.edges() == []

    def test_unknown_node(self, diagram):
        with pytest.raises(KeyError):
            diagram.delete_node("missing")


class TestEdges:
    def test_add_relationship(self, diagram):
        a = diagram.add_node("entity")
        b = diagram.add_node("entity")

        edge_id = diagram.add_edge(
            "relationship",
            a,
            b,
            {"relationType": "ManyToOne", "sourceProperty": "owner"},
        )
        edge = diagram.get_edge(edge_id)

        assert edge.data.relation_type == RelationType.MANY_TO_ONE
        assert edge.data.source_property == "owner"
        assert diagram.edges_for_node(a) == [edge]

    def test_parallel_relationships(self, diagram):
        a = diagram.add_node("entity")
        b = diagram.add_node("entity")

        diagram.add_edge("relationship", a, b, {"sourceProperty": "first"})
        diagram.add_edge("relationship", a, b, {"sourceProperty": "second"})

        assert len(diagram.edges(EdgeType.RELATIONSHIP)) == 2

    def test_missing_endpoint(self, diagram):
        a = diagram.add_node("entity")

        with pytest.raises(ElementNotFoundError):
            diagram.add_edge("relationship", a, "ghost")

    def test_update_edge(self, diagram):
        a = diagram.add_node("entity")
        b = diagram.add_node("entity")
        edge_id = diagram.add_edge("relationship", a, b)

        diagram.update_edge(edge_id, {"cascade": True, "fetchType": "eager"})

        data = diagram.get_edge(edge_id).data
        assert data.cascade is True
        assert data.fetch_type == "eager"

    def test_enum_mapping_between_entities_is_rolled_back(self, diagram):
        a = diagram.add_node("entity")
        b = diagram.add_node("entity")

        with pytest.raises(InvariantViolation) as exc_info:
            diagram.add_edge("enum-mapping", a, b)

        assert exc_info.value.code == "MAPPING_ENDPOINTS"
        assert diagram.edges() == []

    def test_second_mapping_for_pair_is_rejected(self, user_role_diagram):
        user, role = user_role_diagram.nodes()
        user_role_diagram.add_edge("enum-mapping", user.id, role.id)

        with pytest.raises(InvariantViolation) as exc_info:
            user_role_diagram.add_edge("enum-mapping", user.id, role.id)

        assert exc_info.value.code == "DUPLICATE_MAPPING"
        assert len(user_role_diagram.edges()) == 1


class TestConnect:
    def test_entity_to_entity_is_relationship(self, diagram):
        a = diagram.add_node("entity")
        b = diagram.add_node("entity")

        edge = diagram.get_edge(diagram.connect(a, b))

        assert edge.type == "relationship"

    def test_enum_to_entity_is_normalized(self, user_role_diagram):
        user, role = user_role_diagram.nodes()

        edge = user_role_diagram.get_edge(user_role_diagram.connect(role.id, user.id))

        assert edge.type == "enum-mapping"
        assert (edge.source, edge.target) == (user.id, role.id)
        assert edge.data.property_id is None

    def test_existing_mapping_is_reused(self, user_role_diagram):
        user, role = user_role_diagram.nodes()

        first = user_role_diagram.connect(user.id, role.id)
        second = user_role_diagram.connect(role.id, user.id)

        assert first == second
        assert len(user_role_diagram.edges()) == 1


class TestAssignEnumMapping:
    def test_binds_property(self, user_role_diagram):
        user, role = user_role_diagram.nodes()
        edge_id = user_role_diagram.connect(user.id, role.id)

        user_role_diagram.assign_enum_mapping(edge_id, "user-role")

        prop = user_role_diagram.get_node(user.id).data.properties[1]
        assert prop.type == "Role"
        edge = user_role_diagram.get_edge(edge_id)
        assert edge.data.property_id == "user-role"
        assert edge.data.previous_type == "string"
        assert len(user_role_diagram.edges()) == 1

    def test_unknown_property(self, user_role_diagram):
        user, role = user_role_diagram.nodes()
        edge_id = user_role_diagram.connect(user.id, role.id)

        with pytest.raises(ElementNotFoundError):
            user_role_diagram.assign_enum_mapping(edge_id, "nope")

    def test_relationship_edge_is_rejected(self, diagram):
        a = diagram.add_node("entity")
        b = diagram.add_node("entity")
        edge_id = diagram.add_edge("relationship", a, b)

        with pytest.raises(DiagramError, match="not an enum mapping"):
            diagram.assign_enum_mapping(edge_id, f"{a}-prop-id")


class TestDeleteEnumMapping:
    def test_restores_previous_type(self, user_role_diagram):
        user, role = user_role_diagram.nodes()
        edge_id = user_role_diagram.connect(user.id, role.id)
        user_role_diagram.assign_enum_mapping(edge_id, "user-role")

        user_role_diagram.delete_edge(edge_id)

        assert user_role_diagram.get_node(user.id).data.properties[1].type == "string"
        assert user_role_diagram.edges() == []

    def test_keeps_type_when_asked(self, user_role_diagram):
        user, role = user_role_diagram.nodes()
        edge_id = user_role_diagram.connect(user.id, role.id)
        user_role_diagram.assign_enum_mapping(edge_id, "user-role")

        user_role_diagram.delete_edge(edge_id, restore_type=False)

        assert user_role_diagram.get_node(user.id).data.properties[1].type == "Role"


class TestSnapshotAndFile:
    def test_snapshot_is_detached(self, user_role_diagram):
        snapshot = user_role_diagram.snapshot()
        snapshot.nodes[0].data.name = "Changed"

        assert _user(user_role_diagram).data.name == "User"

    def test_to_file_metadata(self, user_role_diagram):
        diagram_file = user_role_diagram.to_file()

        assert diagram_file.version == "1.0"
        assert diagram_file.metadata.name == "Users"
        assert diagram_file.metadata.created_at == "2024-01-15T10:30:00.123Z"
        assert diagram_file.metadata.updated_at == "2024-01-15T10:30:00.123Z"
        assert len(diagram_file.nodes) == 2

    def test_created_at_comes_from_clock(self, user_role_diagram, clock):
        assert user_role_diagram.created_at == clock()
