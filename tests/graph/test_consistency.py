"""Tests for the Consistency Engine."""

import pytest

from erforge.graph.consistency import TypeChange, changed_property_types
from erforge.schema.models import Property
from erforge.schema.types import EdgeType


def _retype(diagram, entity_id, property_id, new_type):
    entity = diagram.get_node(entity_id)
    diagram.update_node(
        entity_id,
        {
            "properties": [
                p.model_copy(update={"type": new_type}) if p.id == property_id else p
                for p in entity.data.properties
            ]
        },
    )


def _mappings(diagram):
    return diagram.edges(EdgeType.ENUM_MAPPING)


class TestChangedPropertyTypes:
    def test_added_property(self):
        after = [Property(id="a", name="a", type="string")]

        assert changed_property_types([], after) == [TypeChange("a", None, "string")]

    def test_removed_properties_come_first(self):
        before = [
            Property(id="a", name="a", type="Role"),
            Property(id="b", name="b", type="string"),
        ]
        after = [Property(id="b", name="b", type="Role")]

        assert changed_property_types(before, after) == [
            TypeChange("a", "Role", None),
            TypeChange("b", "string", "Role"),
        ]

    def test_renames_are_ignored(self):
        before = [Property(id="a", name="a", type="string")]
        after = [Property(id="a", name="renamed", type="string")]

        assert changed_property_types(before, after) == []


class TestEnumMappingSync:
    def test_retype_to_enum_creates_one_mapping(self, user_role_diagram):
        user, role = user_role_diagram.nodes()

        _retype(user_role_diagram, user.id, "user-role", "Role")

        mappings = _mappings(user_role_diagram)
        assert len(mappings) == 1
        mapping = mappings[0]
        assert (mapping.source, mapping.target) == (user.id, role.id)
        assert mapping.data.property_id == "user-role"
        assert mapping.data.previous_type == "string"

    def test_retype_away_from_enum_removes_mapping(self, user_role_diagram):
        user, _ = user_role_diagram.nodes()
        _retype(user_role_diagram, user.id, "user-role", "Role")

        _retype(user_role_diagram, user.id, "user-role", "number")

        assert _mappings(user_role_diagram) == []
        assert user_role_diagram.get_node(user.id).data.properties[1].type == "number"

    def test_removing_property_removes_mapping(self, user_role_diagram):
        user, _ = user_role_diagram.nodes()
        _retype(user_role_diagram, user.id, "user-role", "Role")

        entity = user_role_diagram.get_node(user.id)
        user_role_diagram.update_node(
            user.id, {"properties": [p for p in entity.data.properties if p.id != "user-role"]}
        )

        assert _mappings(user_role_diagram) == []

    def test_switch_between_enums(self, user_role_diagram):
        user, _ = user_role_diagram.nodes()
        level = user_role_diagram.add_node(
            "enum", {"name": "Level", "values": [{"key": "LOW", "value": "low"}]}
        )
        _retype(user_role_diagram, user.id, "user-role", "Role")

        _retype(user_role_diagram, user.id, "user-role", "Level")

        mappings = _mappings(user_role_diagram)
        assert len(mappings) == 1
        assert mappings[0].target == level
        assert mappings[0].data.previous_type == "Role"

    def test_non_reactive_update_leaves_mappings_alone(self, user_role_diagram):
        user, _ = user_role_diagram.nodes()
        entity = user_role_diagram.get_node(user.id)

        user_role_diagram.update_node(
            user.id,
            {
                "properties": [
                    p.model_copy(update={"type": "Role"}) if p.id == "user-role" else p
                    for p in entity.data.properties
                ]
            },
            reactive=False,
        )

        assert _mappings(user_role_diagram) == []

    def test_deleting_enum_drops_its_mappings(self, user_role_diagram):
        user, role = user_role_diagram.nodes()
        _retype(user_role_diagram, user.id, "user-role", "Role")

        user_role_diagram.delete_node(role.id)

        assert _mappings(user_role_diagram) == []


class TestEnumRename:
    def test_rename_retypes_properties(self, user_role_diagram):
        user, role = user_role_diagram.nodes()
        _retype(user_role_diagram, user.id, "user-role", "Role")
        holder = user_role_diagram.add_node(
            "embeddable",
            {"name": "Grant", "properties": [{"id": "grant-role", "name": "role", "type": "Role"}]},
        )

        user_role_diagram.update_node(role.id, {"name": "Permission"})

        assert user_role_diagram.get_node(user.id).data.properties[1].type == "Permission"
        assert user_role_diagram.get_node(holder).data.properties[0].type == "Permission"
        mappings = _mappings(user_role_diagram)
        assert len(mappings) == 1
        assert mappings[0].data.property_id == "user-role"

    def test_rename_with_duplicate_name_moves_mappings(self, user_role_diagram):
        user, role = user_role_diagram.nodes()
        _retype(user_role_diagram, user.id, "user-role", "Role")
        twin = user_role_diagram.add_node(
            "enum", {"name": "Role", "values": [{"key": "GUEST", "value": "guest"}]}
        )

        user_role_diagram.update_node(role.id, {"name": "OldRole"})

        assert user_role_diagram.get_node(user.id).data.properties[1].type == "Role"
        mappings = _mappings(user_role_diagram)
        assert len(mappings) == 1
        assert mappings[0].target == twin
        assert mappings[0].data.property_id == "user-role"


class TestMultiPropertyEdits:
    @pytest.fixture
    def account(self, diagram):
        diagram.add_node("enum", {"name": "Role", "values": [{"key": "ADMIN", "value": "admin"}]})
        diagram.add_node("enum", {"name": "Level", "values": [{"key": "LOW", "value": "low"}]})
        entity_id = diagram.add_node(
            "entity",
            {
                "name": "Account",
                "properties": [
                    {"id": "a", "name": "a", "type": "string"},
                    {"id": "b", "name": "b", "type": "string"},
                    {"id": "c", "name": "c", "type": "number"},
                ],
            },
        )
        return entity_id

    @staticmethod
    def _edit(diagram, entity_id, types):
        """Retype several properties in one update; a ``None`` type removes the property."""
        entity = diagram.get_node(entity_id)
        properties = []
        for prop in entity.data.properties:
            new_type = types.get(prop.id, prop.type)
            if new_type is not None:
                properties.append(prop.model_copy(update={"type": new_type}))
        diagram.update_node(entity_id, {"properties": properties})

    @staticmethod
    def _assert_mapped(diagram, entity_id):
        diagram.check_invariants()
        enums = {node.data.name: node.id for node in diagram.nodes("enum")}
        typed = {
            prop.id: enums[prop.type]
            for prop in diagram.get_node(entity_id).data.properties
            if prop.type in enums
        }
        mapped = {
            m.data.property_id: m.target
            for m in _mappings(diagram)
            if m.source == entity_id
        }
        assert mapped == typed

    def test_moving_enum_type_between_properties_keeps_mapping(self, diagram, account):
        self._edit(diagram, account, {"b": "Role"})

        self._edit(diagram, account, {"a": "Role", "b": "string"})

        [mapping] = _mappings(diagram)
        assert mapping.data.property_id == "a"
        assert mapping.data.previous_type == "string"

    def test_sequence_of_edits_keeps_every_reference_mapped(self, diagram, account):
        edits = [
            {"a": "Role", "b": "Level"},
            {"a": "Level", "b": "Role"},
            {"a": "string"},
            {"a": "Role", "b": "string"},
            {"a": None, "c": "Level"},
            {"b": "Role", "c": "number"},
        ]

        for types in edits:
            self._edit(diagram, account, types)
            self._assert_mapped(diagram, account)
