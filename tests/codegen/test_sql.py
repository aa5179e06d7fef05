"""Tests for the SQL-DDL emitter."""

import pytest

from erforge.codegen.sql import emit_sql, format_sql_default
from erforge.config import GeneratorConfig
from erforge.schema.models import DiagramSnapshot


def _snapshot(nodes, edges=()):
    return DiagramSnapshot.model_validate({"nodes": list(nodes), "edges": list(edges)})


def _entity(node_id, name, *properties, **data):
    return {
        "id": node_id,
        "type": "entity",
        "data": {"name": name, "properties": list(properties), **data},
    }


def _pk(prop_id, type_="number"):
    return {"id": prop_id, "name": "id", "type": type_, "isPrimaryKey": True}


def _sql(snapshot, dialect="postgres", **options):
    return emit_sql(snapshot, dialect, GeneratorConfig(**options))["schema.sql"]


class TestTables:
    def test_user_with_enum_role(self, user_role_diagram):
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
        )

        files = emit_sql(user_role_diagram.snapshot(), "postgres")

        assert files == {
            "schema.sql": "CREATE TABLE users (id SERIAL PRIMARY KEY, role VARCHAR(255) NOT NULL);\n"
        }

    def test_blog_schema(self, blog_snapshot):
        assert _sql(blog_snapshot) == (
            "CREATE TABLE users (id SERIAL PRIMARY KEY, email VARCHAR(255) NOT NULL UNIQUE);\n"
            "\n"
            "CREATE TABLE posts (id SERIAL PRIMARY KEY, title VARCHAR(255) NOT NULL, "
            "status VARCHAR(255) NOT NULL, author_id INTEGER NOT NULL, "
            "FOREIGN KEY (author_id) REFERENCES users (id));\n"
            "\n"
            "CREATE TABLE tags (id SERIAL PRIMARY KEY, label VARCHAR(255) NOT NULL);\n"
            "\n"
            "CREATE TABLE post_tags (post_id INTEGER, tag_id INTEGER, "
            "PRIMARY KEY (post_id, tag_id), "
            "FOREIGN KEY (post_id) REFERENCES posts (id) ON DELETE CASCADE, "
            "FOREIGN KEY (tag_id) REFERENCES tags (id) ON DELETE CASCADE);\n"
        )

    def test_mysql_dialect(self, blog_snapshot):
        script = _sql(blog_snapshot, "mysql")

        assert script.startswith(
            "CREATE TABLE users (id INT AUTO_INCREMENT PRIMARY KEY, "
            "email VARCHAR(255) NOT NULL UNIQUE) ENGINE=InnoDB;\n"
        )
        assert "author_id INT NOT NULL" in script

    def test_mysql_engine_from_config(self, blog_snapshot):
        assert "ENGINE=MyISAM;" in _sql(blog_snapshot, "mysql", mysql_engine="MyISAM")

    def test_dialect_defaults_to_config(self, blog_snapshot):
        script = emit_sql(blog_snapshot, config=GeneratorConfig(dialect="mysql"))["schema.sql"]

        assert "ENGINE=InnoDB" in script

    def test_unknown_dialect(self, blog_snapshot):
        with pytest.raises(ValueError, match="Unknown SQL dialect"):
            emit_sql(blog_snapshot, "oracle")

    def test_empty_diagram(self):
        assert _sql(_snapshot([])) == ""

    def test_output_is_reproducible(self, blog_snapshot):
        assert _sql(blog_snapshot) == _sql(blog_snapshot)

    def test_custom_table_and_defaults(self):
        snapshot = _snapshot(
            [
                _entity(
                    "a",
                    "Person",
                    _pk("a-id", "uuid"),
                    {"id": "a-active", "name": "isActive", "type": "boolean",
                     "defaultValue": "true"},
                    {"id": "a-nick", "name": "nickName", "type": "string",
                     "isNullable": True, "defaultValue": "anon"},
                    tableName="people",
                )
            ]
        )

        assert _sql(snapshot) == (
            "CREATE TABLE people (id UUID PRIMARY KEY, is_active BOOLEAN NOT NULL DEFAULT TRUE, "
            "nick_name VARCHAR(255) DEFAULT 'anon');\n"
        )

    def test_composite_primary_key(self):
        snapshot = _snapshot(
            [
                _entity(
                    "a",
                    "Membership",
                    {"id": "a-u", "name": "userId", "type": "number", "isPrimaryKey": True},
                    {"id": "a-g", "name": "groupId", "type": "number", "isPrimaryKey": True},
                )
            ]
        )

        assert _sql(snapshot) == (
            "CREATE TABLE memberships (user_id INTEGER, group_id INTEGER, "
            "PRIMARY KEY (user_id, group_id));\n"
        )


class TestIndexesAndEmbeddables:
    def test_indexes(self):
        snapshot = _snapshot(
            [
                _entity(
                    "a",
                    "User",
                    _pk("a-id"),
                    {"id": "a-email", "name": "email"},
                    {"id": "a-last", "name": "lastName"},
                    indexes=[
                        {"id": "i1", "properties": ["a-email"], "isUnique": True},
                        {"id": "i2", "properties": ["a-last", "a-email"]},
                        {"id": "i3", "name": "by_name", "properties": ["a-last"]},
                    ],
                )
            ]
        )

        lines = _sql(snapshot).splitlines()

        assert lines[1:] == [
            "CREATE UNIQUE INDEX uq_users_email ON users (email);",
            "CREATE INDEX idx_users_last_name_email ON users (last_name, email);",
            "CREATE INDEX by_name ON users (last_name);",
        ]

    def test_embeddable_expands_to_columns(self):
        snapshot = _snapshot(
            [
                {
                    "id": "addr",
                    "type": "embeddable",
                    "data": {
                        "name": "Address",
                        "properties": [
                            {"id": "addr-street", "name": "street"},
                            {"id": "addr-zip", "name": "zipCode", "isNullable": True},
                        ],
                    },
                },
                _entity(
                    "a",
                    "Customer",
                    _pk("a-id"),
                    {"id": "a-addr", "name": "homeAddress", "type": "Address"},
                ),
            ]
        )

        assert _sql(snapshot) == (
            "CREATE TABLE customers (id SERIAL PRIMARY KEY, "
            "home_address_street VARCHAR(255) NOT NULL, "
            "home_address_zip_code VARCHAR(255));\n"
        )


class TestEnums:
    @pytest.fixture
    def snapshot(self):
        return _snapshot(
            [
                {
                    "id": "role",
                    "type": "enum",
                    "data": {
                        "name": "UserRole",
                        "values": [{"key": "A", "value": "admin"}, {"key": "U", "value": "user"}],
                    },
                },
                _entity(
                    "a", "User", _pk("a-id"), {"id": "a-role", "name": "role", "type": "UserRole"}
                ),
            ]
        )

    def test_postgres_native_enum(self, snapshot):
        assert _sql(snapshot, native_enums=True) == (
            "CREATE TYPE user_role AS ENUM ('admin', 'user');\n"
            "\n"
            "CREATE TABLE users (id SERIAL PRIMARY KEY, role user_role NOT NULL);\n"
        )

    def test_mysql_native_enum(self, snapshot):
        assert "role ENUM('admin', 'user') NOT NULL" in _sql(snapshot, "mysql", native_enums=True)

    def test_numeric_enum_uses_integer(self):
        snapshot = _snapshot(
            [
                {
                    "id": "p",
                    "type": "enum",
                    "data": {"name": "Priority", "values": [{"key": "Low", "value": 1}]},
                },
                _entity(
                    "a", "Task", _pk("a-id"), {"id": "a-p", "name": "priority", "type": "Priority"}
                ),
            ]
        )

        assert "priority INTEGER NOT NULL" in _sql(snapshot)


class TestRelationships:
    def _pair(self, **data):
        return _snapshot(
            [_entity("a", "Order", _pk("a-id")), _entity("b", "Customer", _pk("b-id"))],
            [{"id": "r", "type": "relationship", "source": "a", "target": "b", "data": data}],
        )

    def test_referenced_table_comes_first(self):
        script = _sql(self._pair(relationType="ManyToOne", sourceProperty="buyer"))

        assert script == (
            "CREATE TABLE customers (id SERIAL PRIMARY KEY);\n"
            "\n"
            "CREATE TABLE orders (id SERIAL PRIMARY KEY, buyer_id INTEGER, "
            "FOREIGN KEY (buyer_id) REFERENCES customers (id));\n"
        )

    def test_one_to_one_is_unique(self):
        script = _sql(self._pair(relationType="OneToOne", sourceProperty="customer"))

        assert "customer_id INTEGER UNIQUE" in script

    def test_on_delete(self):
        script = _sql(
            self._pair(relationType="ManyToOne", sourceProperty="customer", deleteRule="set null")
        )
        assert "REFERENCES customers (id) ON DELETE SET NULL" in script

        script = _sql(self._pair(relationType="ManyToOne", sourceProperty="customer", cascade=True))
        assert "REFERENCES customers (id) ON DELETE CASCADE" in script

    def test_one_to_many_without_target_property(self):
        script = _sql(self._pair(relationType="OneToMany", sourceProperty="customers"))

        assert "CREATE TABLE customers (id SERIAL PRIMARY KEY, order_id INTEGER, " in script

    def test_cycle_defers_foreign_key(self):
        snapshot = _snapshot(
            [_entity("l", "Left", _pk("l-id")), _entity("r", "Right", _pk("r-id"))],
            [
                {"id": "e1", "type": "relationship", "source": "l", "target": "r",
                 "data": {"relationType": "ManyToOne", "sourceProperty": "right"}},
                {"id": "e2", "type": "relationship", "source": "r", "target": "l",
                 "data": {"relationType": "ManyToOne", "sourceProperty": "left"}},
            ],
        )

        assert _sql(snapshot) == (
            "CREATE TABLE lefts (id SERIAL PRIMARY KEY, right_id INTEGER);\n"
            "\n"
            "CREATE TABLE rights (id SERIAL PRIMARY KEY, left_id INTEGER, "
            "FOREIGN KEY (left_id) REFERENCES lefts (id));\n"
            "\n"
            "ALTER TABLE lefts ADD FOREIGN KEY (right_id) REFERENCES rights (id);\n"
        )

    def test_annotation_relation_is_comment(self):
        script = _sql(self._pair(relationType="Aggregation", sourceProperty="customers"))

        assert "-- Aggregation Order.customers -> Customer: no SQL equivalent" in script
        assert "FOREIGN KEY" not in script

    def test_missing_primary_key_is_comment(self):
        snapshot = _snapshot(
            [_entity("a", "Order", _pk("a-id")), _entity("b", "Note")],
            [{"id": "r", "type": "relationship", "source": "a", "target": "b",
              "data": {"relationType": "ManyToOne", "sourceProperty": "note"}}],
        )

        script = _sql(snapshot)

        assert "Note needs a single primary key" in script
        assert "note_id" not in script


class TestSqlDefaults:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, None),
            ("", None),
            ("true", "TRUE"),
            ("42", "42"),
            ("-1.5", "-1.5"),
            ("new Date()", "CURRENT_TIMESTAMP"),
            ("() => uuid()", None),
            ("CURRENT_DATE", "CURRENT_DATE"),
            ("now()", "now()"),
            ("it's", "'it''s'"),
        ],
    )
    def test_format_sql_default(self, value, expected):
        assert format_sql_default(value) == expected
