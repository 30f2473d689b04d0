from abc import ABC, abstractmethod

import httpx
from httpx._types import QueryParamTypes, RequestContent, RequestData
from typing import Any, Callable, TypeVar
from pydantic import ValidationError
from shared.exceptions import AccessBridgeError, BackendUnavailableError, ConfigurationError, RequestTimeoutError
from shared.models.config import EnvConfig

from shared.helper.HelperConfig import HelperConfig

T = TypeVar("T")


class ClientInterface(ABC):
    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)

        # client and config
        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Validates that all required configuration values for the client are set and valid.

        Raises:
            ConfigurationError: If any required configuration value is missing or invalid.
        """
        req_config = self._get_required_config()
        for config in req_config:
            _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """
        Returns the type of the client in lowercase. E.g. "rag"
        """
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        pass

    def get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "qdrant"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "qdrant"
        """
        pass

    ################ ERRORS ##################
    @abstractmethod
    def _get_unavailable_error(self) -> type[BackendUnavailableError]:
        """
        Returns the exception class raised when the backend cannot be reached
        or answers with an error status. E.g. IndexUnavailableError for "rag".
        """
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns all required configurations for the client.

        Returns:
            list[EnvConfig]: A list containing the details of each required configuration key.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """
        Returns:
            str: The full configuration key name for the client. E.g. "RAG_QDRANT_API_KEY"
        """
        key_prefix = f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}"
        return f"{key_prefix}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Retrieves the value of a configuration key for the client.

        Args:
            raw_key (str): The raw configuration key name
            default (Any): The default value to return if the configuration key is not set
            val_type (str): The type of the configuration value ("string", "number", "bool", "list")
        """
        key = self._get_config_key_name(raw_key)
        if val_type == "string":
            return self._helper_config.get_string_val(key, default=default)
        elif val_type == "number":
            return self._helper_config.get_number_val(key, default=default)
        elif val_type == "bool":
            return self._helper_config.get_bool_val(key, default=default)
        elif val_type == "list":
            return self._helper_config.get_list_val(key, default=default)
        else:
            raise ConfigurationError(f"Unsupported config value type '{val_type}' for env key '{raw_key}' in {self.get_client_type().upper()} client '{self.get_engine_name()}'.")

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Returns the authentication header for the client backend server, if an API key is set.

        Returns:
            dict: A dictionary containing the auth data
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """
        Returns the base URL of the client backend server from env variables

        Returns:
            str: The base URL of the client backend server (e.g. "http://localhost:6333")
        """
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """
        Returns the endpoint path for healthcheck requests.

        Returns:
            str: The endpoint path for healthcheck requests (e.g. "/healthz")
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """Check if the client backend is healthy by sending a test request.

        Returns:
            httpx.Response: The response from the healthcheck request.
        """
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialise the HTTP client.

        Args:
            transport (httpx.AsyncBaseTransport | None): Optional transport override,
                e.g. an httpx.MockTransport in tests.
        """
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        """Close the HTTP client and any other resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        data: RequestData | None = None,
        json: dict | list | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
        accept_status: tuple[int, ...] = (),
        timeout: float | None = None,
        base_url: str | None = None,
    ) -> httpx.Response:
        """Send an HTTP request to the client backend.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, …).
            content: Raw bytes / stream body.
            data: Form-encoded body (dict or list of tuples).
            json: JSON-serialisable body (sets Content-Type automatically).
            params: URL query parameters.
            endpoint: Path to append to the base URL (leading slash optional).
            additional_headers: Extra headers that override the defaults.
            raise_on_error: Raise the client's unavailable error on a status >= 300.
            accept_status: Error statuses that are returned instead of raised.
            timeout: Caller-supplied timeout in seconds, overrides the configured default.
            base_url: Base URL override for backends with separate control planes.

        Returns:
            The raw httpx.Response.

        Raises:
            RuntimeError: If the client is not initialised.
            RequestTimeoutError: If the request exceeds its timeout.
            BackendUnavailableError: The client's subclass, on transport failure or
                (when raise_on_error is True) on a non-2xx status.
        """
        if self._client is None:
            raise RuntimeError("HTTP client not initialised. Call boot() before making requests.")

        endpoint = "/" + endpoint.strip().lstrip("/") if endpoint.strip() else ""
        url = f"{(base_url or self._get_base_url()).rstrip('/')}{endpoint}"
        effective_timeout = timeout if timeout is not None else self.timeout

        # Do NOT set a default Content-Type: httpx sets it automatically for json/data.
        headers: dict = {}
        headers.update(self._get_auth_header())
        if additional_headers:
            headers.update(additional_headers)

        kwargs: dict = {
            "url": url,
            "headers": headers,
            "timeout": effective_timeout,
            "params": params,
        }

        # add exactly one body argument
        if content is not None:
            kwargs["content"] = content
        elif data is not None:
            kwargs["data"] = data
        elif json is not None:
            kwargs["json"] = json

        unavailable_error = self._get_unavailable_error()
        try:
            response = await self._client.request(method, **kwargs)
        except httpx.TimeoutException as e:
            self.logging.error("Request to %s timed out after %ss: %s", url, effective_timeout, e)
            raise RequestTimeoutError(url=url, timeout=effective_timeout) from e
        except httpx.HTTPError as e:
            self.logging.error("Request to %s failed: %s", url, e)
            raise unavailable_error(
                message=f"{self.get_client_type().upper()} backend '{self.get_engine_name()}' is not reachable.",
                detail=str(e),
            ) from e

        if raise_on_error and response.status_code >= 300 and response.status_code not in accept_status:
            self.logging.error(
                "Request to %s failed with status %d: %s",
                url,
                response.status_code,
                response.text[:500],
            )
            raise unavailable_error(
                message=f"Request to {url} failed with status {response.status_code}",
                detail=response.text[:500],
            )

        return response

    def parse_response(self, response: httpx.Response, parser: Callable[[Any], T], raw: bool = False) -> T:
        """Run a response parser on a backend answer.

        A body that is not JSON or does not have the expected shape is a backend
        fault, so it is raised as the client's unavailable error and never as a
        bare ValueError or KeyError.

        Args:
            response (httpx.Response): The backend response.
            parser: Callable receiving the decoded JSON body (or the response itself when raw is True).
            raw (bool): Pass the response object instead of its decoded body.

        Returns:
            Whatever the parser returns.

        Raises:
            BackendUnavailableError: The client's subclass, on a malformed body.
        """
        try:
            if raw:
                return parser(response)
            return parser(response.json() if response.content else {})
        except AccessBridgeError:
            raise
        except (ValidationError, ValueError, KeyError, TypeError, AttributeError, IndexError) as e:
            self.logging.error("Malformed response from %s: %s", self.get_engine_name(), e)
            raise self._get_unavailable_error()(
                message=f"{self.get_client_type().upper()} backend '{self.get_engine_name()}' returned a malformed response.",
                detail=str(e)[:500],
            ) from e
