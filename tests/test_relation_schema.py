import json

import pytest

from shared.clients.authz.models.RelationSchema import RelationSchema
from shared.exceptions import InvalidRelationError


class TestDefaultSchema:
    def test_owner_implies_viewer(self, schema):
        assert schema.get_implying_relations("document", "viewer") == {"viewer", "owner"}

    def test_owner_implies_only_itself(self, schema):
        assert schema.get_implying_relations("document", "owner") == {"owner"}

    def test_unknown_relation_raises(self, schema):
        with pytest.raises(InvalidRelationError) as exc_info:
            schema.validate_relation("document", "editor")
        assert exc_info.value.relation == "editor"

    def test_unknown_resource_type_raises(self, schema):
        with pytest.raises(InvalidRelationError) as exc_info:
            schema.get_type("folder")
        assert exc_info.value.resource_type == "folder"
        assert exc_info.value.relation is None


class TestSchemaValidation:
    def test_transitive_inheritance(self):
        schema = RelationSchema.model_validate({
            "resource_types": [{
                "type": "document",
                "relations": {
                    "owner": {},
                    "editor": {"inherit_if": "owner"},
                    "viewer": {"inherit_if": ["editor"]},
                },
            }]
        })
        assert schema.get_implying_relations("document", "viewer") == {"viewer", "editor", "owner"}

    def test_cycle_is_rejected(self):
        with pytest.raises(ValueError, match="cycle"):
            RelationSchema.model_validate({
                "resource_types": [{
                    "type": "document",
                    "relations": {
                        "owner": {"inherit_if": "viewer"},
                        "viewer": {"inherit_if": "owner"},
                    },
                }]
            })

    def test_undeclared_parent_is_rejected(self):
        with pytest.raises(ValueError, match="undeclared"):
            RelationSchema.model_validate({
                "resource_types": [{"type": "document", "relations": {"viewer": {"inherit_if": "owner"}}}]
            })

    def test_duplicate_type_is_rejected(self):
        with pytest.raises(ValueError, match="more than once"):
            RelationSchema.model_validate({
                "resource_types": [{"type": "user"}, {"type": "user"}]
            })

    def test_from_file(self, tmp_path):
        path = tmp_path / "schema.json"
        path.write_text(json.dumps({
            "resource_types": [{"type": "report", "relations": {"author": {}, "reader": {"inherit_if": "author"}}}]
        }))
        schema = RelationSchema.from_file(str(path))
        assert schema.get_implying_relations("report", "reader") == {"reader", "author"}
