import pytest

from shared.exceptions import ConfigurationError


class TestHelperConfig:
    def test_missing_value_raises_configuration_error(self, helper_config, monkeypatch):
        monkeypatch.delenv("API_SERVER_API_KEY", raising=False)

        with pytest.raises(ConfigurationError, match="API_SERVER_API_KEY"):
            helper_config.get_string_val("API_SERVER_API_KEY")

    def test_invalid_number_raises_configuration_error(self, helper_config, monkeypatch):
        monkeypatch.setenv("RETRIEVAL_TOP_K", "five")

        with pytest.raises(ConfigurationError, match="not a valid number"):
            helper_config.get_number_val("RETRIEVAL_TOP_K", default=5)

    def test_list_syntax(self, helper_config, monkeypatch):
        monkeypatch.setenv("RAG_ENGINES", "[qdrant, pinecone]")

        assert helper_config.get_list_val("RAG_ENGINES") == ["qdrant", "pinecone"]

    def test_list_without_brackets_raises(self, helper_config, monkeypatch):
        monkeypatch.setenv("RAG_ENGINES", "qdrant")

        with pytest.raises(ConfigurationError):
            helper_config.get_list_val("RAG_ENGINES")

    def test_default_when_unset(self, helper_config, monkeypatch):
        monkeypatch.delenv("INGEST_CHUNK_SIZE", raising=False)

        assert helper_config.get_number_val("INGEST_CHUNK_SIZE", default=1000) == 1000
