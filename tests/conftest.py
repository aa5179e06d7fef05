"""Shared fixtures for tests."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from erforge.graph.diagram import Diagram, sequential_ids
from erforge.schema.models import DiagramSnapshot

FIXED_TIME = datetime(2024, 1, 15, 10, 30, 0, 123000, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    """Return a clock frozen at FIXED_TIME."""
    return lambda: FIXED_TIME


@pytest.fixture
def diagram(clock) -> Diagram:
    """Return an empty diagram with deterministic ids."""
    return Diagram(id_factory=sequential_ids("id"), clock=clock)


@pytest.fixture
def user_role_diagram(clock) -> Diagram:
    """Return a diagram with a User entity and a Role enum, not yet linked.

    User has ``id`` (number, primary key) and ``role`` (string).
    """
    diagram = Diagram(id_factory=sequential_ids("id"), clock=clock, name="Users")
    diagram.add_node(
        "entity",
        {
            "name": "User",
            "properties": [
                {"id": "user-id", "name": "id", "type": "number", "isPrimaryKey": True},
                {"id": "user-role", "name": "role", "type": "string"},
            ],
        },
    )
    diagram.add_node(
        "enum",
        {
            "name": "Role",
            "values": [
                {"key": "ADMIN", "value": "admin"},
                {"key": "USER", "value": "user"},
            ],
        },
    )
    return diagram


@pytest.fixture
def blog_document() -> dict:
    """Return a diagram document: User 1-n Post, Post n-m Tag, a Status enum."""
    return {
        "version": "1.0",
        "metadata": {
            "createdAt": "2024-01-01T00:00:00.000Z",
            "updatedAt": "2024-01-02T00:00:00.000Z",
            "name": "Blog",
        },
        "nodes": [
            {
                "id": "user",
                "type": "entity",
                "position": {"x": 0, "y": 0},
                "data": {
                    "name": "User",
                    "properties": [
                        {"id": "user-id", "name": "id", "type": "number", "isPrimaryKey": True},
                        {"id": "user-email", "name": "email", "type": "string", "isUnique": True},
                    ],
                },
            },
            {
                "id": "post",
                "type": "entity",
                "position": {"x": 300, "y": 0},
                "data": {
                    "name": "Post",
                    "properties": [
                        {"id": "post-id", "name": "id", "type": "number", "isPrimaryKey": True},
                        {"id": "post-title", "name": "title", "type": "string"},
                        {"id": "post-status", "name": "status", "type": "Status"},
                    ],
                },
            },
            {
                "id": "tag",
                "type": "entity",
                "position": {"x": 600, "y": 0},
                "data": {
                    "name": "Tag",
                    "properties": [
                        {"id": "tag-id", "name": "id", "type": "number", "isPrimaryKey": True},
                        {"id": "tag-label", "name": "label", "type": "string"},
                    ],
                },
            },
            {
                "id": "status",
                "type": "enum",
                "position": {"x": 300, "y": 300},
                "data": {
                    "name": "Status",
                    "values": [
                        {"key": "Draft", "value": "draft"},
                        {"key": "Published", "value": "published"},
                    ],
                },
            },
        ],
        "edges": [
            {
                "id": "user-posts",
                "type": "relationship",
                "source": "user",
                "target": "post",
                "data": {
                    "relationType": "OneToMany",
                    "sourceProperty": "posts",
                    "targetProperty": "author",
                    "isNullable": False,
                },
            },
            {
                "id": "post-tags",
                "type": "relationship",
                "source": "post",
                "target": "tag",
                "data": {
                    "relationType": "ManyToMany",
                    "sourceProperty": "tags",
                    "isNullable": True,
                },
            },
            {
                "id": "post-status-mapping",
                "type": "enum-mapping",
                "source": "post",
                "target": "status",
                "data": {"propertyId": "post-status", "previousType": "string"},
            },
        ],
    }


@pytest.fixture
def blog_snapshot(blog_document) -> DiagramSnapshot:
    """Return the blog document as a snapshot."""
    return DiagramSnapshot.model_validate(
        {"nodes": blog_document["nodes"], "edges": blog_document["edges"], "name": "Blog"}
    )


@pytest.fixture
def blog_file(tmp_path, blog_document) -> Path:
    """Write the blog document to a file and return its path."""
    path = tmp_path / "blog.json"
    path.write_text(json.dumps(blog_document, indent=2))
    return path
