from elastic_bridge.helper.HelperConfig import HelperConfig
from elastic_bridge.clients.search.SearchClientInterface import SearchClientInterface


class SearchClientManager:
    """
    Manager class to create the search clients listed in the configuration.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.clients = self._initialize_clients()

    def _get_engines_from_env(self) -> list[str]:
        """
        Reads the list of search engines from SEARCH_ENGINES, e.g. "[elasticsearch]".

        Returns:
            list[str]: Engine names, capitalised the way the client classes are named.

        Raises:
            ValueError: If the list is empty.
        """
        engines = self.helper_config.get_list_val("SEARCH_ENGINES", default=["elasticsearch"])
        if not engines:
            raise ValueError("No search engines specified in configuration.")
        return [engine.strip().lower().capitalize() for engine in engines]

    def _initialize_clients(self) -> list[SearchClientInterface]:
        """
        Instantiates one client per configured engine.

        Raises:
            ValueError: If an engine has no client implementation.
        """
        clients = []
        for engine in self._get_engines_from_env():
            class_name = f"SearchClient{engine}"
            try:
                module = __import__(
                    f"elastic_bridge.clients.search.{engine.lower()}.{class_name}",
                    fromlist=[class_name],
                )
                client_class = getattr(module, class_name)
            except (ImportError, AttributeError) as e:
                raise ValueError(f"Unsupported search engine specified: '{engine}'. Error: {e}")
            clients.append(client_class(helper_config=self.helper_config))
            self.logging.debug(f"Instantiated search client for engine: {engine}")
        return clients

    def get_clients(self) -> list[SearchClientInterface]:
        return self.clients

    def get_client(self) -> SearchClientInterface:
        """
        Returns the first configured client.
        """
        return self.clients[0]
