from typing import Literal

from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter a client reads from the environment.

    Attributes:
        env_key (str): The raw key of the setting, without the client prefix (e.g. "URL" for "SEARCH_ELASTICSEARCH_URL").
        val_type (str): The expected type of the value. Supported types are "string", "number", "bool" and "list".
        default (str | int | float | bool | list | None): Value used when the variable is not set. If None, the variable is required.
    """

    env_key: str
    val_type: Literal["string", "number", "bool", "list"] = "string"
    default: str | int | float | bool | list | None = None
