"""Declarative relation schema: resource type → relations → inheritance edges.

The schema is data, loaded once at startup. A relation may be inherited from
other relations on the same resource ("owner implies viewer"). The inheritance
graph must be acyclic; the set of relations implying a given relation is the
reflexive-transitive closure over that graph.
"""

import json

from pydantic import BaseModel, field_validator, model_validator

from shared.exceptions import InvalidRelationError


class RelationRule(BaseModel):
    """Inheritance rule of a single relation.

    Attributes:
        inherit_if: Relations on the same resource that imply this relation.
    """

    inherit_if: list[str] = []

    @field_validator("inherit_if", mode="before")
    @classmethod
    def _coerce_single(cls, value):
        # WorkOS-style schemas write a single parent as a plain string
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


class ResourceTypeSchema(BaseModel):
    """Relations declared for one resource type."""

    type: str
    relations: dict[str, RelationRule] = {}

    @model_validator(mode="after")
    def _validate_edges(self) -> "ResourceTypeSchema":
        for relation, rule in self.relations.items():
            for parent in rule.inherit_if:
                if parent not in self.relations:
                    raise ValueError(
                        f"Relation '{relation}' of type '{self.type}' inherits from undeclared relation '{parent}'."
                    )
        self._check_acyclic()
        return self

    def _check_acyclic(self) -> None:
        """Depth-first search over inheritance edges; a back edge is a cycle."""
        WHITE, GREY, BLACK = 0, 1, 2
        state = {relation: WHITE for relation in self.relations}

        def visit(relation: str, trail: list[str]) -> None:
            state[relation] = GREY
            for parent in self.relations[relation].inherit_if:
                if state[parent] == GREY:
                    cycle = " -> ".join(trail + [relation, parent])
                    raise ValueError(f"Inheritance cycle in type '{self.type}': {cycle}")
                if state[parent] == WHITE:
                    visit(parent, trail + [relation])
            state[relation] = BLACK

        for relation in self.relations:
            if state[relation] == WHITE:
                visit(relation, [])

    def get_implying_relations(self, relation: str) -> frozenset[str]:
        """Return every relation whose direct warrant grants `relation`, itself included.

        Computed as a fixed point: start from {relation} and keep adding the
        inherit_if parents of every member until the set stops growing.

        Raises:
            InvalidRelationError: If the relation is not declared for this type.
        """
        if relation not in self.relations:
            raise InvalidRelationError(resource_type=self.type, relation=relation)
        closure = {relation}
        while True:
            grown = closure | {
                parent
                for member in closure
                for parent in self.relations[member].inherit_if
            }
            if grown == closure:
                return frozenset(closure)
            closure = grown


class RelationSchema(BaseModel):
    """The full relation schema of the authorization model."""

    resource_types: list[ResourceTypeSchema]

    @model_validator(mode="after")
    def _unique_types(self) -> "RelationSchema":
        names = [rt.type for rt in self.resource_types]
        duplicates = {name for name in names if names.count(name) > 1}
        if duplicates:
            raise ValueError(f"Resource types declared more than once: {sorted(duplicates)}")
        return self

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_type(self, resource_type: str) -> ResourceTypeSchema:
        """Return the schema of a resource type.

        Raises:
            InvalidRelationError: If the resource type is not declared.
        """
        for rt in self.resource_types:
            if rt.type == resource_type:
                return rt
        raise InvalidRelationError(resource_type=resource_type)

    def validate_relation(self, resource_type: str, relation: str) -> None:
        """Raise InvalidRelationError unless `relation` is declared for `resource_type`."""
        if relation not in self.get_type(resource_type).relations:
            raise InvalidRelationError(resource_type=resource_type, relation=relation)

    def get_implying_relations(self, resource_type: str, relation: str) -> frozenset[str]:
        """See ResourceTypeSchema.get_implying_relations."""
        return self.get_type(resource_type).get_implying_relations(relation)

    ##########################################
    ################ LOADER ##################
    ##########################################

    @classmethod
    def from_file(cls, path: str) -> "RelationSchema":
        """Load a schema from a JSON file of the form
        {"resource_types": [{"type": "document", "relations": {"owner": {}, "viewer": {"inherit_if": "owner"}}}]}
        """
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate(json.load(f))

    @classmethod
    def default(cls) -> "RelationSchema":
        """Built-in schema: documents with owner and viewer, owner implies viewer."""
        return cls.model_validate({
            "resource_types": [
                {
                    "type": "document",
                    "relations": {
                        "owner": {},
                        "viewer": {"inherit_if": "owner"},
                    },
                },
                {"type": "user", "relations": {}},
            ]
        })
