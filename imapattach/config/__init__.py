"""Configuration management module.

Handles loading, validating, and saving the imapattach configuration.
Config is stored as TOML, by default at ~/.config/imapattach/config.toml

Usage:
    from imapattach.config import build_settings, load_config

    settings = build_settings(load_config())
"""

import os
import re
import tomllib
from pathlib import Path

import tomli_w

from imapattach.errors import ConfigError

from .paths import CONFIG_FILE, PASSWORD_ENV_VAR, find_config_file
from .schema import ImapAttachConfig, Settings
from .template import CONFIG_TEMPLATE

__all__ = [
    "load_config",
    "save_config",
    "init_config",
    "set_config_value",
    "build_settings",
    "resolve_config_file",
    "Settings",
    "CONFIG_FILE",
]


def resolve_config_file(path: Path | None = None) -> Path | None:
    """Pick the config file to use.

    Args:
        path: Explicit config file. Used as-is when given.

    Returns:
        The explicit path, else the first existing file on the search path,
        or None if no config file exists.
    """
    if path is not None:
        return path
    return find_config_file()


def load_config(path: Path | None = None) -> ImapAttachConfig:
    """Load configuration from disk.

    Args:
        path: Config file to read. Searched for if omitted.

    Returns:
        The configuration dictionary.

    Raises:
        ConfigError: If no config file is found or it isn't valid TOML.
    """
    config_file = resolve_config_file(path)
    if config_file is None:
        raise ConfigError(
            f"no config file found, run 'imapattach config init' to create {CONFIG_FILE}"
        )

    try:
        with open(config_file, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"config file {config_file} does not exist") from e
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"failed to read config file {config_file}: {e}") from e


def save_config(config: ImapAttachConfig, path: Path | None = None) -> None:
    """Save configuration to disk.

    Creates the parent directory if needed.

    Args:
        config: The configuration dictionary to save.
        path: Destination file (defaults to the user config file).
    """
    path = path or CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "wb") as f:
        tomli_w.dump(config, f)


def init_config(*, overwrite: bool = False, path: Path | None = None) -> bool:
    """Create the template config file.

    Args:
        overwrite: If True, overwrite an existing config file.
        path: Destination file (defaults to the user config file).

    Returns:
        True if config was created, False if it already existed.
    """
    path = path or CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)

    if path.exists() and not overwrite:
        return False

    path.write_text(CONFIG_TEMPLATE)
    # Holds a password
    path.chmod(0o600)
    return True


def set_config_value(key: str, value: str, path: Path | None = None) -> None:
    """Set a configuration value using dot notation.

    Examples:
        set_config_value("download.page_size", "200")
        set_config_value("connect.host", "imap.fastmail.com")

    Args:
        key: Dot-separated key path (e.g., "download.page_size").
        value: Value to set (will be type-converted for known fields).
        path: Config file to update. Defaults to the file load_config()
              would read, or the user config file if none exists yet.

    Raises:
        ValueError: If value cannot be converted to expected type.
    """
    path = path or resolve_config_file() or CONFIG_FILE
    config: dict = load_config(path) if path.exists() else {}

    parts = key.split(".")

    # Navigate to parent dict, creating intermediate dicts as needed
    current = config
    for part in parts[:-1]:
        if part not in current:
            current[part] = {}
        current = current[part]

    final_key = parts[-1]
    current[final_key] = _convert_value(final_key, value)

    save_config(config, path)


def _convert_value(key: str, value: str) -> str | int | bool:
    """Convert string value to appropriate type based on field name."""
    int_fields = {"port", "page_size"}
    bool_fields = {"debug", "ssl"}

    if key in int_fields:
        return int(value)

    if key in bool_fields:
        lowered = value.lower()
        if lowered in ("true", "yes", "1", "on"):
            return True
        if lowered in ("false", "no", "0", "off"):
            return False
        raise ValueError(f"expected a boolean for {key}, got {value!r}")

    return value


def build_settings(
    config: ImapAttachConfig, environ: dict[str, str] | None = None
) -> Settings:
    """Validate a loaded configuration.

    The filename pattern is compiled here so a bad pattern is reported
    before connecting to the server.

    Args:
        config: The loaded configuration dictionary.
        environ: Environment to read the password override from
                 (defaults to os.environ).

    Returns:
        Validated Settings.

    Raises:
        ConfigError: If a required value is missing or invalid.
    """
    environ = os.environ if environ is None else environ
    connect = config.get("connect", {})
    credentials = config.get("credentials", {})
    download = config.get("download", {})

    host = _require(connect, "connect.host")
    username = _require(credentials, "credentials.username")
    directory = _require(download, "download.attachments_directory")
    # An empty pattern is valid and matches every filename
    pattern_text = _require(download, "download.pattern", allow_empty=True)

    port = _integer(connect.get("port", 993), "connect.port")
    page_size = _integer(download.get("page_size", 100), "download.page_size")
    if page_size <= 0:
        raise ConfigError(f"download.page_size must be positive, got {page_size}")

    try:
        pattern = re.compile(pattern_text)
    except re.error as e:
        raise ConfigError(f"download.pattern {pattern_text!r} is invalid: {e}") from e

    password = environ.get(PASSWORD_ENV_VAR) or credentials.get("password", "")

    return Settings(
        host=host,
        port=port,
        username=username,
        password=password,
        attachments_directory=Path(directory).expanduser(),
        page_size=page_size,
        pattern=pattern,
        mailbox=download.get("mailbox") or "INBOX",
        ssl=_boolean(connect.get("ssl", True), "connect.ssl"),
        debug=_boolean(config.get("debug", False), "debug"),
    )


def _require(section: dict, key: str, allow_empty: bool = False) -> str:
    value = section.get(key.rsplit(".", 1)[-1])
    if value is None or (value == "" and not allow_empty):
        raise ConfigError(f"{key} is not set")
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string, got {value!r}")
    return value


def _boolean(value, key: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    return value


def _integer(value, key: str) -> int:
    # bool is an int subclass but never a valid port or page size
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from e
