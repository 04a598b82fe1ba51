"""
Discovery module for locating and parsing MCP client config files.
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .models import ServerConfig

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """A config file is missing or cannot be parsed."""


@dataclass
class DiscoveredConfig:
    path: str
    client: str
    config: Dict[str, Any]


def default_locations(home: Optional[Path] = None) -> List[Tuple[Path, str]]:
    """Known MCP config file locations across clients, as (path, client) pairs."""
    home = home or Path.home()
    return [
        # Claude Desktop
        (home / "Library" / "Application Support" / "Claude" / "claude_desktop_config.json", "Claude Desktop (macOS)"),
        (home / "AppData" / "Roaming" / "Claude" / "claude_desktop_config.json", "Claude Desktop (Windows)"),
        (home / ".config" / "claude" / "claude_desktop_config.json", "Claude Desktop (Linux)"),
        # Cursor
        (home / ".cursor" / "mcp.json", "Cursor"),
        (Path(".cursor") / "mcp.json", "Cursor (project-level)"),
        # Windsurf
        (home / ".windsurf" / "mcp.json", "Windsurf"),
        (home / ".codeium" / "windsurf" / "mcp_config.json", "Windsurf"),
        # VS Code / Continue
        (Path(".vscode") / "mcp.json", "VS Code"),
        (home / ".continue" / "config.json", "Continue"),
        # Generic
        (Path("mcp.json"), "Project root"),
        (Path("mcp-config.json"), "Project root"),
        (Path(".mcp.json"), "Project root"),
    ]


def load_config(file_path: str) -> Dict[str, Any]:
    """
    Load a config file from a specific path.

    Raises:
        ConfigError: if the file does not exist or is not valid JSON
    """
    path = Path(file_path).expanduser().resolve()
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Could not read config file: {path}\n{e}")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file: {path}\n{e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a JSON object: {path}")
    return data


def parse_servers(config: Dict[str, Any]) -> Dict[str, ServerConfig]:
    """
    Extract server definitions, normalizing the different config shapes.

    Supports `mcpServers`, `mcp.servers`, `servers`, or a bare object whose
    first value looks like a server (has a `command`).
    """
    servers: Any = {}

    if isinstance(config.get("mcpServers"), dict):
        servers = config["mcpServers"]
    elif isinstance(config.get("mcp"), dict) and isinstance(config["mcp"].get("servers"), dict):
        servers = config["mcp"]["servers"]
    elif isinstance(config.get("servers"), dict):
        servers = config["servers"]
    elif config:
        # Maybe it IS the servers object directly
        first = next(iter(config.values()))
        if isinstance(first, dict) and "command" in first:
            servers = config

    return {str(name): ServerConfig.from_raw(raw) for name, raw in servers.items()}


def looks_like_mcp_config(config: Any) -> bool:
    return isinstance(config, dict) and any(k in config for k in ("mcpServers", "mcp", "servers"))


class ConfigDiscovery:
    """
    Finds MCP config files in the locations used by common clients.
    """

    def __init__(self, locations: Optional[List[Tuple[Path, str]]] = None):
        self.locations = locations if locations is not None else default_locations()

    def discover_configs(self) -> List[DiscoveredConfig]:
        """
        Check every known location.

        Unreadable or non-MCP files are skipped; discovery never fails.

        Returns:
            List of configs found, in location order
        """
        found = []
        seen = set()
        for location, client in self.locations:
            path = Path(location).expanduser().resolve()
            if str(path) in seen or not path.is_file():
                continue
            seen.add(str(path))

            try:
                config = load_config(str(path))
            except ConfigError as e:
                logger.warning(f"Skipping {path}: {e}")
                continue

            if looks_like_mcp_config(config):
                logger.info(f"Found {client} config at {path}")
                found.append(DiscoveredConfig(path=str(path), client=client, config=config))
            else:
                logger.debug(f"{path} does not look like an MCP config")

        return found
