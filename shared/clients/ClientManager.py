from abc import ABC, abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions import ConfigurationError
from shared.helper.HelperConfig import HelperConfig


class ClientManager(ABC):
    """
    Base class of the per-type client managers. Resolves engine names from ENV
    configuration and imports the matching client class from
    shared.clients.<type>.<engine>.<Prefix><Engine>.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()

    @abstractmethod
    def _get_client_type(self) -> str:
        """
        Returns the type of the managed clients. E.g. "rag"
        """
        pass

    @abstractmethod
    def _get_class_prefix(self) -> str:
        """
        Returns the class name prefix of the managed clients. E.g. "RAGClient"
        """
        pass

    def _normalize_engine(self, engine: str) -> str:
        #lowercase all and uppcercase first letter for better comparison and display
        return engine.strip().lower().capitalize()

    def _load_client(self, engine: str) -> ClientInterface:
        """
        Instantiates the client for a single engine.

        Args:
            engine (str): Normalised engine name (e.g. "Qdrant").

        Returns:
            ClientInterface: The instantiated client.

        Raises:
            ConfigurationError: If the engine is unsupported or cannot be imported.
        """
        class_name = f"{self._get_class_prefix()}{engine}"
        try:
            module = __import__(
                f"shared.clients.{self._get_client_type()}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ConfigurationError(f"Unsupported {self._get_client_type().upper()} engine specified: '{engine}'. Error: {e}")
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated %s client for engine: %s", self._get_client_type().upper(), engine)
        return client
