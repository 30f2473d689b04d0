"""Central configuration helper for the access-filtered retrieval bridge."""

import logging
import os

from shared.exceptions import ConfigurationError


class HelperConfig:
    """Central configuration helper. Reads all settings from environment variables."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (str | None): Fallback value if the variable is not set.

        Returns:
            str: The resolved value.

        Raises:
            ConfigurationError: If the variable is not set and no default is provided.
        """
        key = key.upper()
        val = os.getenv(key) or None  # empty string → None
        if val is None and default is None:
            raise ConfigurationError(f"Environment variable '{key}' is not set.")
        return val.strip() if val is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a numeric environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (float | int | None): Fallback value if the variable is not set.

        Returns:
            float | int: The resolved numeric value.

        Raises:
            ConfigurationError: If the variable is not set and no default is provided.
            ConfigurationError: If the value cannot be parsed as a number.
        """
        key = key.upper()
        raw = os.getenv(key) or None
        if raw is None:
            if default is None:
                raise ConfigurationError(f"Environment variable '{key}' is not set.")
            return default
        try:
            return int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ConfigurationError(f"Environment variable '{key}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a boolean environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (bool | None): Fallback value if the variable is not set.

        Returns:
            bool: The resolved boolean value.

        Raises:
            ConfigurationError: If the variable is not set and no default is provided.
        """
        key = key.upper()
        raw = os.getenv(key) or None
        if raw is None:
            if default is None:
                raise ConfigurationError(f"Environment variable '{key}' is not set.")
            return default
        return raw.lower() in ("true", "1", "yes")

    def get_list_val(self, key: str, default: list[str] | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a list environment variable in the syntax "[elem1,elem2,...]".

        Args:
            key (str): Environment variable name (case-insensitive).
            default (list[str] | None): Fallback value if the variable is not set.
            separator (str): The delimiter between elements.
            element_type (type): The type to which each element is cast.

        Returns:
            list: The resolved list of elements.

        Raises:
            ConfigurationError: If the variable is not set and no default is provided, or if it is malformed.
        """
        raw_val = os.getenv(key.upper()) or None
        if raw_val is None:
            if default is None:
                raise ConfigurationError(f"Environment variable '{key.upper()}' is not set.")
            return default
        raw_val = raw_val.strip()
        if not raw_val.startswith("[") or not raw_val.endswith("]"):
            raise ConfigurationError(f"Environment variable '{key.upper()}' must be in the format '[elem1{separator}elem2{separator}...]'. Got: '{raw_val}'")
        elements = [v.strip() for v in raw_val[1:-1].split(separator) if v.strip()]
        if not elements:
            return []
        try:
            return [element_type(elem) for elem in elements]
        except ValueError as e:
            raise ConfigurationError(f"Environment variable '{key.upper()}' contains invalid elements: {e}. Type set to {element_type.__name__}. Got: '{raw_val}'")

    def get_path_val(self, key: str, default: str | None = None) -> str:
        """Read a filesystem path. Relative paths are resolved against ROOT_DIR
        (or the current working directory when ROOT_DIR is not set).

        Args:
            key (str): Environment variable name (case-insensitive).
            default (str | None): Fallback path if the variable is not set.

        Returns:
            str: The absolute path.

        Raises:
            ConfigurationError: If the variable is not set and no default is provided.
        """
        path = self.get_string_val(key, default=default)
        if os.path.isabs(path):
            return path
        root_dir = os.getenv("ROOT_DIR") or os.getcwd()
        return os.path.join(root_dir, path)

    def get_logger(self) -> logging.Logger:
        """Return the application logger.

        Returns:
            logging.Logger: The configured logger instance.
        """
        return self._logger
