"""Bundled configuration with optional local override."""

import copy
import logging
import os
import urllib.parse
from importlib.resources import files
from typing import Any, Dict, Optional

import yaml
from jsonschema import Draft7Validator

CONFIG_ENV_VAR = "SCRIPT_VALIDATION_CONFIG"

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "module_name": {"type": "string", "pattern": "^[A-Za-z_][A-Za-z0-9_.]*$"},
        "register_global": {"type": "boolean"},
        "log_level": {
            "type": "string",
            "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        },
        "email": {
            "type": "object",
            "properties": {
                "allow_display_name": {"type": "boolean"},
                "allow_smtputf8": {"type": "boolean"},
            },
            "additionalProperties": False,
        },
    },
    "required": ["module_name"],
    "additionalProperties": False,
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """Loads the bundled local-config.yaml and merges an optional override over it."""

    def __init__(self, override_path: Optional[str] = None):
        """
        Initialize config loader.

        Args:
            override_path: Path or file:// URI of a YAML file whose keys are
                merged over the bundled defaults. Falls back to the
                SCRIPT_VALIDATION_CONFIG environment variable when omitted.

        Raises:
            ValueError: If the merged configuration is invalid
            RuntimeError: If the override file cannot be read
        """
        config_file = files("script_validation").joinpath("local-config.yaml")
        self.local_config_path = str(config_file)

        with config_file.open("r") as f:
            self.local_config = yaml.safe_load(f) or {}

        override_path = override_path or os.environ.get(CONFIG_ENV_VAR)
        self.override_path = override_path
        if override_path:
            override = self._load_config_from_uri(override_path)
            self.config = _merge(self.local_config, override)
        else:
            self.config = copy.deepcopy(self.local_config)

        self._validate(self.config)

    def _load_yaml(self, path: str) -> Dict[str, Any]:
        """Load YAML file from disk."""
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
        return data

    def _load_config_from_uri(self, uri: str) -> Dict[str, Any]:
        """
        Load config from a plain path or a file:// URI.

        Relative paths are resolved against the current working directory.
        """
        parsed = urllib.parse.urlparse(uri)

        if parsed.scheme == "file":
            path = urllib.parse.unquote(parsed.path)
        elif not parsed.scheme or len(parsed.scheme) == 1:
            # No scheme, or a Windows drive letter
            path = os.path.abspath(uri)
        else:
            raise ValueError(f"Unsupported URI scheme: {parsed.scheme} in {uri}")

        try:
            return self._load_yaml(path)
        except OSError as e:
            raise RuntimeError(f"Failed to load config from {uri}: {e}") from e
        except yaml.YAMLError as e:
            raise ValueError(f"Config file {uri} is not valid YAML: {e}") from e

    def _validate(self, config: Dict[str, Any]) -> None:
        errors = sorted(Draft7Validator(CONFIG_SCHEMA).iter_errors(config), key=lambda e: list(e.path))
        if errors:
            first = errors[0]
            location = " -> ".join(str(p) for p in first.path) if first.path else "root"
            raise ValueError(f"Invalid configuration at {location}: {first.message}")

    def get_config(self) -> Dict[str, Any]:
        """Get the merged configuration."""
        return self.config

    def get_module_name(self) -> str:
        return self.config["module_name"]

    def get_register_global(self) -> bool:
        return self.config.get("register_global", False)

    def get_log_level(self) -> str:
        return self.config.get("log_level", "WARNING")

    def get_email_options(self) -> Dict[str, Any]:
        return self.config.get("email", {})

    def apply_log_level(self) -> None:
        """
        Set the configured log_level on the package logger.

        The logger is shared by the whole process, so call this once from
        application setup rather than per host.
        """
        logging.getLogger("script_validation").setLevel(self.get_log_level())
