"""
Configuration handling for the tunnel client.
Parses JSON configuration, inlines file directives and validates client settings.
"""
import os
import json
import math
import logging
from typing import Dict, Any, Optional, List, Callable

from tunnel_common.errors import ConfigError
from tunnel_common.networking.resolver import Remote, RESOLVER_FAMILIES

DEFAULT_PORT = 1194

FileLoader = Callable[[str], str]

logger = logging.getLogger("tunnel.config")


def read_file(filename: str) -> str:
    """
    Read the full contents of a file

    Args:
        filename: Path to the file

    Returns:
        File contents as text
    """
    with open(filename, 'r', encoding='utf-8') as f:
        return f.read()


class ConfigManager:
    """
    Parsed client configuration with dot-notation access
    """
    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 config_path: Optional[str] = None):
        """
        Initialize the configuration manager

        Args:
            config: Parsed configuration dictionary
            config_path: File the configuration came from, if any
        """
        self.config = config if config is not None else {}
        self.config_path = config_path

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value

        Args:
            key: Configuration key (dot notation for nested keys)
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split('.')
        value = self.config

        try:
            for k in keys:
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def remotes(self) -> List[Remote]:
        """
        Get the configured remotes, in order

        Raises:
            ConfigError: If an entry is malformed
        """
        entries = self.get("remote", [])
        if not isinstance(entries, list):
            entries = [entries]
        return [_parse_remote(entry) for entry in entries]

    def validate(self) -> List[str]:
        """
        Validate the configuration as a client configuration

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        mode = self.get("mode", "client")
        if mode != "client":
            errors.append(f"mode must be 'client', got {mode!r}")

        entries = self.get("remote", [])
        if not isinstance(entries, list):
            entries = [entries]
        for index, entry in enumerate(entries):
            try:
                _parse_remote(entry)
            except ConfigError as e:
                errors.append(f"remote #{index + 1}: {e}")

        engine = self.get("engine", "static-key")
        if not isinstance(engine, str) or not engine:
            errors.append("engine must be a non-empty string")

        timeout = self.get("client.connect_timeout")
        if timeout is not None:
            if (isinstance(timeout, bool) or not isinstance(timeout, (int, float))
                    or not math.isfinite(timeout) or timeout <= 0):
                errors.append("client.connect_timeout must be a positive number")

        family = self.get("client.resolver_family", "ipv4")
        if family not in RESOLVER_FAMILIES:
            errors.append(f"client.resolver_family must be one of "
                          f"{', '.join(sorted(RESOLVER_FAMILIES))}")

        return errors


def _parse_remote(entry: Any) -> Remote:
    """
    Parse one remote entry

    Accepted forms are "host", "host port", [host, port] and
    {"host": host, "port": port}.
    """
    if isinstance(entry, str):
        parts = entry.split()
        if not parts or len(parts) > 2:
            raise ConfigError(f"invalid remote {entry!r}")
        host = parts[0]
        port: Any = parts[1] if len(parts) == 2 else DEFAULT_PORT
    elif isinstance(entry, list) and len(entry) == 2:
        host, port = entry
    elif isinstance(entry, dict) and "host" in entry:
        host = entry["host"]
        port = entry.get("port", DEFAULT_PORT)
    else:
        raise ConfigError(f"invalid remote {entry!r}")

    if not isinstance(host, str) or not host:
        raise ConfigError(f"invalid remote host {host!r}")

    if isinstance(port, str) and port.isdigit():
        port = int(port)
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ConfigError(f"invalid remote port {port!r}")

    return Remote(host, port)


def _inline_files(value: Any, file_loader: FileLoader, base_dir: Optional[str]) -> Any:
    """Replace every {"file": path} object with the loader's contents"""
    if isinstance(value, dict):
        if set(value) == {"file"} and isinstance(value["file"], str):
            filename = value["file"]
            if base_dir and not os.path.isabs(filename):
                filename = os.path.join(base_dir, filename)
            try:
                return file_loader(filename)
            except (OSError, UnicodeDecodeError) as e:
                raise ConfigError(f"cannot read {filename}: {e}") from e
        return {k: _inline_files(v, file_loader, base_dir) for k, v in value.items()}

    if isinstance(value, list):
        return [_inline_files(v, file_loader, base_dir) for v in value]

    return value


def parse(raw_text: str, file_loader: FileLoader = read_file,
          base_dir: Optional[str] = None) -> ConfigManager:
    """
    Parse configuration text

    Args:
        raw_text: JSON configuration text
        file_loader: Maps a filename to its contents, used for file directives
        base_dir: Directory relative file directives are resolved against

    Returns:
        ConfigManager holding the parsed configuration

    Raises:
        ConfigError: If the text is not a valid configuration document
    """
    try:
        document = json.loads(raw_text)
    except ValueError as e:
        raise ConfigError(str(e)) from e

    if not isinstance(document, dict):
        raise ConfigError("configuration must be a JSON object")

    return ConfigManager(_inline_files(document, file_loader, base_dir))


def validate_client(config: ConfigManager) -> None:
    """
    Check that a configuration is usable by the client

    Raises:
        ConfigError: Listing every problem found
    """
    errors = config.validate()
    if errors:
        raise ConfigError("; ".join(errors))


def load_config(config_path: str, file_loader: FileLoader = read_file) -> ConfigManager:
    """
    Read, parse and validate a client configuration file

    Args:
        config_path: Path to the configuration file
        file_loader: Loader for the file itself and its file directives

    Returns:
        Validated ConfigManager

    Raises:
        ConfigError: With a "config parser:" prefix on any failure
    """
    try:
        raw_text = file_loader(config_path)
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"config parser: cannot read {config_path}: {e}") from e

    try:
        config = parse(raw_text, file_loader, os.path.dirname(config_path))
        validate_client(config)
    except ConfigError as e:
        raise ConfigError(f"config parser: {e}") from e

    config.config_path = config_path
    logger.info(f"Configuration loaded from {config_path}")
    return config
