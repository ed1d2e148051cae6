"""Central configuration helper for the elastic bridge."""

import logging
import os
from collections.abc import Mapping


class HelperConfig:
    """Central configuration helper. Reads all settings from environment variables.

    An explicit env mapping can be injected instead of os.environ, which is
    how the command line runner and the tests pass settings around.
    """

    def __init__(self, logger: logging.Logger, env: Mapping[str, str] | None = None) -> None:
        self._logger = logger
        self._env = env

    def _read(self, key: str) -> str | None:
        source = self._env if self._env is not None else os.environ
        raw = source.get(key.upper())
        if raw is None:
            return None
        raw = raw.strip()
        return raw or None  # empty string → None

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string setting.

        Args:
            key (str): Variable name (case-insensitive).
            default (str | None): Fallback value if the variable is not set.

        Returns:
            str: The resolved value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        val = self._read(key)
        if val is None and default is None:
            raise ValueError(f"Environment variable '{key.upper()}' is not set.")
        return val if val is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a numeric setting.

        Raises:
            ValueError: If the variable is not set and no default is provided,
                or if the value cannot be parsed as a number.
        """
        raw = self._read(key)
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        try:
            return int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        raw = self._read(key)
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        return raw.lower() in ("true", "1", "yes")

    def get_list_val(self, key: str, default: list[str] | None = None, separator: str = ",") -> list[str]:
        """Read a list setting written as "[elem1,elem2,...]".

        Args:
            key (str): Variable name (case-insensitive).
            default (list[str] | None): Fallback value if the variable is not set.
            separator (str): The delimiter between elements.

        Returns:
            list[str]: The stripped, non-empty elements.

        Raises:
            ValueError: If the variable is not set and no default is provided,
                or if it is not wrapped in brackets.
        """
        raw_val = self._read(key)
        if raw_val is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        if not raw_val.startswith("[") or not raw_val.endswith("]"):
            raise ValueError(f"Environment variable '{key.upper()}' must be in the format '[elem1{separator}elem2{separator}...]'. Got: '{raw_val}'")
        return [v.strip() for v in raw_val[1:-1].split(separator) if v.strip()]

    def get_logger(self) -> logging.Logger:
        """Return the application logger."""
        return self._logger
