"""Tag and option enums shared by the diagram IR."""

from enum import Enum


class NodeType(str, Enum):
    """Variants of a diagram node."""

    ENTITY = "entity"
    EMBEDDABLE = "embeddable"
    ENUM = "enum"
    INTERFACE = "interface"


class EdgeType(str, Enum):
    """Variants of a diagram edge."""

    RELATIONSHIP = "relationship"
    ENUM_MAPPING = "enum-mapping"  # Entity -> Enum, derived


class RelationType(str, Enum):
    """Kinds of relationship between two nodes."""

    # Structural (ORM relations / foreign keys)
    ONE_TO_ONE = "OneToOne"
    ONE_TO_MANY = "OneToMany"
    MANY_TO_ONE = "ManyToOne"
    MANY_TO_MANY = "ManyToMany"

    # UML-style annotations
    INHERITANCE = "Inheritance"
    IMPLEMENTATION = "Implementation"
    COMPOSITION = "Composition"
    AGGREGATION = "Aggregation"
    DEPENDENCY = "Dependency"

    @property
    def is_structural(self) -> bool:
        return self in STRUCTURAL_RELATION_TYPES

    @property
    def is_collection(self) -> bool:
        """True when the source side holds many targets."""
        return self in (RelationType.ONE_TO_MANY, RelationType.MANY_TO_MANY)

    def inverse(self) -> "RelationType":
        """Get the relation type seen from the target side.

        OneToMany and ManyToOne swap; every other type maps to itself.
        """
        if self == RelationType.ONE_TO_MANY:
            return RelationType.MANY_TO_ONE
        if self == RelationType.MANY_TO_ONE:
            return RelationType.ONE_TO_MANY
        return self


STRUCTURAL_RELATION_TYPES = frozenset(
    {
        RelationType.ONE_TO_ONE,
        RelationType.ONE_TO_MANY,
        RelationType.MANY_TO_ONE,
        RelationType.MANY_TO_MANY,
    }
)


class FetchType(str, Enum):
    """Loading strategy for a relation."""

    LAZY = "lazy"
    EAGER = "eager"


class DeleteRule(str, Enum):
    """What happens to the referencing row when the referenced row is deleted."""

    CASCADE = "cascade"
    SET_NULL = "set null"
    RESTRICT = "restrict"
    NO_ACTION = "no action"
    SET_DEFAULT = "set default"

    @property
    def sql(self) -> str:
        """The rule as it appears after ON DELETE."""
        return self.value.upper()

    @classmethod
    def from_sql(cls, text: str) -> "DeleteRule | None":
        normalized = " ".join(text.lower().split())
        for rule in cls:
            if rule.value == normalized:
                return rule
        return None
