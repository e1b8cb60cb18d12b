"""Configuration loader for the tsuru installer."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from tsuru_installer.errors import ConfigurationError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "name",
        "address",
        "ip",
        "ca_path",
        "docker_hub_mirror",
        "mongo_port",
        "redis_port",
        "planb_port",
        "registry_port",
        "api_port",
        "certs_root",
        "docker_timeout",
        "verbose",
        "log_file",
        "manifest_file",
    }
    ALIASES = {"docker-hub-mirror": "docker_hub_mirror"}

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise ConfigurationError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ConfigurationError("Config file must contain a YAML mapping at the root.")

        for alias, key in self.ALIASES.items():
            if alias in parsed and key in parsed:
                raise ConfigurationError(f"Config keys `{alias}` and `{key}` are the same setting; use only one.")

        normalized = {self.ALIASES.get(key, key): value for key, value in parsed.items()}

        unknown = sorted(set(normalized.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(str(key) for key in unknown)
            raise ConfigurationError(f"Unknown configuration keys: {unknown_list}")

        return normalized
