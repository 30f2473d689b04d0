from shared.clients.ClientManager import ClientManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.exceptions import ConfigurationError
from shared.helper.HelperConfig import HelperConfig


class RAGClientManager(ClientManager):
    """
    Manager class to handle multiple RAG clients based on configuration.
    The first configured engine serves retrieval queries, ingestion writes to all of them.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.clients = self._initialize_clients()

    def _get_client_type(self) -> str:
        return "rag"

    def _get_class_prefix(self) -> str:
        return "RAGClient"

    def _initialize_clients(self) -> list[RAGClientInterface]:
        """
        Initializes RAG clients based on the RAG_ENGINES list, e.g. "[qdrant,pinecone]".

        Raises:
            ConfigurationError: If no engines are configured or an engine is unsupported.
        """
        engines = self.helper_config.get_list_val("RAG_ENGINES")
        if not engines:
            raise ConfigurationError("No RAG engines specified in configuration.")
        return [self._load_client(self._normalize_engine(engine)) for engine in engines]

    def get_clients(self) -> list[RAGClientInterface]:
        """
        Returns the list of instantiated RAG clients.
        """
        return self.clients
