"""Path constants for imapattach config.

The user config lives in ~/.config/imapattach/ (XDG Base Directory
layout). A system-wide file and one in the current directory are also
searched.
"""

from pathlib import Path


CONFIG_DIR = Path.home() / ".config" / "imapattach"
CONFIG_FILE = CONFIG_DIR / "config.toml"

# Searched in order, the first existing file is used
SEARCH_PATHS = [
    Path("/etc/imapattach/config.toml"),
    CONFIG_FILE,
    Path("config.toml"),
]

# Environment variable that overrides credentials.password
PASSWORD_ENV_VAR = "IMAPATTACH_PASSWORD"


def find_config_file(search_paths: list[Path] | None = None) -> Path | None:
    """Return the first existing config file, or None if there is none."""
    for path in search_paths if search_paths is not None else SEARCH_PATHS:
        if path.is_file():
            return path
    return None
