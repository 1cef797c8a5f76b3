"""
Configuration repository for loading connection settings.

Reads a JSON or JSONC file and layers environment variables and explicit
overrides on top of it:

    file  <  HYPERV_* environment  <  explicit overrides
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from hypervvm.domain.models import ConnectionConfig

logger = logging.getLogger(__name__)

# Provider-style attribute names accepted in config files
LEGACY_FIELD_NAMES = {
    "tlservername": "tls_server_name",
    "cacert": "ca_cert",
    "cakey": "ca_key",
    "auth": "auth_method",
}


def _strip_comments(jsonc_content: str) -> str:
    """Strip // and /* */ comments from JSONC content, leaving strings intact."""
    out = []
    i = 0
    in_string = False
    length = len(jsonc_content)

    while i < length:
        char = jsonc_content[i]
        nxt = jsonc_content[i + 1] if i + 1 < length else ""

        if in_string:
            out.append(char)
            if char == "\\" and nxt:
                out.append(nxt)
                i += 2
                continue
            if char == '"':
                in_string = False
            i += 1
        elif char == '"':
            in_string = True
            out.append(char)
            i += 1
        elif char == "/" and nxt == "/":
            end = jsonc_content.find("\n", i)
            i = length if end == -1 else end
        elif char == "/" and nxt == "*":
            end = jsonc_content.find("*/", i + 2)
            i = length if end == -1 else end + 2
        else:
            out.append(char)
            i += 1

    return "".join(out)


class ConfigRepository:
    """
    Repository for connection configuration files.

    Handles JSON and JSONC files and the merge with environment variables.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        """
        Initialize the config repository.

        Args:
            environ: Environment mapping (defaults to os.environ)
        """
        self.environ = environ

    def load_json_file(self, path: Path) -> Dict[str, Any]:
        """
        Load a JSON or JSONC file.

        Args:
            path: File to load; comments are allowed in either extension

        Returns:
            Parsed JSON data as dictionary

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file cannot be parsed
        """
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        content = path.read_text(encoding="utf-8")
        try:
            data = json.loads(_strip_comments(content))
        except json.JSONDecodeError as e:
            logger.error("Failed to parse config file %s: %s", path, e)
            raise ValueError(f"Invalid JSON in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a JSON object")
        return data

    def _migrate_fields(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Rename provider-style attribute names to model field names.

        Args:
            data: Raw settings from a config file

        Returns:
            Settings keyed by ConnectionConfig field names
        """
        migrated = data.copy()
        for old, new in LEGACY_FIELD_NAMES.items():
            if old in migrated and new not in migrated:
                migrated[new] = migrated.pop(old)
        return migrated

    def load_connection_config(
        self,
        path: Optional[Path] = None,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> ConnectionConfig:
        """
        Build the connection config from file, environment and overrides.

        Args:
            path: Optional JSON/JSONC file with connection settings
            overrides: Explicit values (None entries are ignored)

        Returns:
            Validated ConnectionConfig

        Raises:
            FileNotFoundError: If ``path`` is given but missing
            ValueError: If the merged settings are invalid
        """
        settings: Dict[str, Any] = {}

        if path is not None:
            file_data = self.load_json_file(path)
            settings.update(self._migrate_fields(file_data.get("connection", file_data)))
            logger.debug("Loaded connection settings from %s", path)

        env_values = ConnectionConfig.env_values(self.environ)
        if env_values:
            logger.debug("Applying environment settings: %s", ", ".join(sorted(env_values)))
        settings.update(env_values)

        if overrides:
            settings.update({key: value for key, value in overrides.items() if value is not None})

        try:
            return ConnectionConfig(**settings)
        except ValidationError as e:
            logger.error("Invalid connection configuration: %s", e)
            raise ValueError(f"Invalid connection configuration: {e}") from e
