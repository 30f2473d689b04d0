import os

from services.authz.schema_loader import load_relation_schema


class TestLoadRelationSchema:
    def test_builtin_schema_when_unset(self, helper_config, monkeypatch):
        monkeypatch.delenv("AUTHZ_SCHEMA_FILE", raising=False)
        schema = load_relation_schema(helper_config)
        assert schema.get_implying_relations("document", "viewer") == {"viewer", "owner"}

    def test_bundled_schema_file(self, helper_config, monkeypatch):
        root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        monkeypatch.setenv("ROOT_DIR", root)
        monkeypatch.setenv("AUTHZ_SCHEMA_FILE", "config/relation_schema.json")
        schema = load_relation_schema(helper_config)
        assert [t.type for t in schema.resource_types] == ["document", "user"]
        assert schema.get_implying_relations("document", "viewer") == {"viewer", "owner"}
