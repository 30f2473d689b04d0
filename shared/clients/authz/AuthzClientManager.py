from shared.clients.ClientManager import ClientManager
from shared.clients.authz.AuthzClientInterface import AuthzClientInterface
from shared.helper.HelperConfig import HelperConfig


class AuthzClientManager(ClientManager):
    """
    Manager class to instantiate the configured relation store client.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        engine = helper_config.get_string_val("AUTHZ_ENGINE", default="workos")
        self.client: AuthzClientInterface = self._load_client(self._normalize_engine(engine))

    def _get_client_type(self) -> str:
        return "authz"

    def _get_class_prefix(self) -> str:
        return "AuthzClient"

    def get_client(self) -> AuthzClientInterface:
        """
        Returns the instantiated Authz client.
        """
        return self.client
