from abc import ABC, abstractmethod
from typing import Any

import httpx
from httpx._types import QueryParamTypes, RequestContent

from elastic_bridge.clients.transport import send_request
from elastic_bridge.helper.HelperConfig import HelperConfig
from elastic_bridge.models.config import EnvConfig
from elastic_bridge.models.transport import TransportResponse


class ClientInterface(ABC):
    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)

        self._client: httpx.Client | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Validates that all required configuration values for the client are set and valid.

        Raises:
            ValueError: If any required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """
        Returns the type of the client in lowercase. E.g. "search"
        """
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        pass

    def get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client in lowercase. E.g. "elasticsearch"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns all configuration settings the client reads.

        Returns:
            list[EnvConfig]: One entry per setting, without the client prefix.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """
        Returns:
            str: The full configuration key name for the client. E.g. "SEARCH_ELASTICSEARCH_URL"
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
            raise ValueError(f"Unsupported config value type '{val_type}' for env key '{raw_key}' in {self.get_client_type().upper()} client '{self.get_engine_name()}'.")

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Returns the authentication header for the backend server, or an empty dict.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """
        Returns the base URL of the backend server (e.g. "http://localhost:9200").
        """
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    def do_healthcheck(self) -> httpx.Response:
        """Check if the backend is reachable and healthy.

        Raises:
            Exception: If the backend answers with a non-2xx status.
        """
        return self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck(), raise_on_error=True)

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    def boot(self, transport: httpx.BaseTransport | None = None) -> None:
        """Initialise the HTTP client.

        Args:
            transport: Optional httpx transport, e.g. an httpx.MockTransport in tests.
        """
        self._client = httpx.Client(timeout=self.timeout, transport=transport)

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self):
        self.boot()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _build_headers(self, additional_headers: dict | None = None) -> dict:
        headers: dict = {}
        headers.update(self._get_auth_header())
        if additional_headers:
            headers.update(additional_headers)
        return headers

    def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send an HTTP request to the backend.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, …).
            content: Raw request body.
            params: URL query parameters.
            endpoint: Path to append to the base URL (leading slash optional).
            additional_headers: Extra headers that override the defaults.
            raise_on_error: Raise on a non-2xx status instead of returning the response.

        Returns:
            The raw httpx.Response.

        Raises:
            Exception: If the client is not initialised, or the status is not 2xx and raise_on_error is set.
        """
        if self._client is None:
            raise Exception("HTTP client not initialised. Call boot() before making requests.")

        endpoint = "/" + endpoint.strip().lstrip("/") if endpoint.strip() else ""
        url = f"{self._get_base_url().rstrip('/')}{endpoint}"

        response = self._client.request(
            method,
            url,
            headers=self._build_headers(additional_headers),
            params=params,
            content=content,
            timeout=self.timeout,
        )

        if raise_on_error and not 200 <= response.status_code <= 299:
            self.logging.error(
                "Request to %s failed with status %d: %s",
                url,
                response.status_code,
                response.text,
            )
            raise Exception(f"Request to {url} failed with status {response.status_code}")

        return response

    def do_transport(
        self,
        url: str,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        content: str | bytes | None = None,
    ) -> TransportResponse:
        """Transport primitive bound to this client's connection and credentials.

        Unlike do_request() this never raises for HTTP or network errors; the
        outcome is reported in the returned TransportResponse so it can be
        handed to a ResultCursor.

        Raises:
            Exception: If the client is not initialised.
        """
        if self._client is None:
            raise Exception("HTTP client not initialised. Call boot() before making requests.")
        return send_request(
            url,
            method=method,
            params=params,
            headers=self._build_headers(headers),
            content=content,
            client=self._client,
            timeout=self.timeout,
        )
