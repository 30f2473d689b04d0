from shared.clients.ClientManager import ClientManager
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.exceptions import ConfigurationError
from shared.helper.HelperConfig import HelperConfig


class EmbedClientManager(ClientManager):
    """
    Manager class to instantiate the configured embedding provider.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        engine = helper_config.get_string_val("EMBED_ENGINE")
        if not engine.strip():
            raise ConfigurationError("No Embed engine specified in configuration.")
        self.client: EmbedClientInterface = self._load_client(self._normalize_engine(engine))

    def _get_client_type(self) -> str:
        return "embed"

    def _get_class_prefix(self) -> str:
        return "EmbedClient"

    def get_client(self) -> EmbedClientInterface:
        """
        Returns the instantiated Embed client.
        """
        return self.client
