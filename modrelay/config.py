#!/usr/bin/env python3

import os
import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import logging
import sys

import yaml

from .exit_codes import ConfigError
from .infra.artifact_repository import ArtifactRepository
from .infra.backend import RepositoryBackend
from .router import PatternRouter, RouteEntry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="modrelay: %(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("modrelay")

# Searched for in the working directory and each of its parents
CONFIG_FILENAMES = ['.modrelay.json', '.modrelay.yaml', '.modrelay.yml', '.modrelay.toml']

CONFIG_ENV = 'MODRELAY_CONFIG'
LOG_LEVEL_ENV = 'MODRELAY_LOG_LEVEL'

# Repository types accepted in the "type" field of a route
BACKEND_TYPES: Dict[str, Callable[[Dict[str, Any]], RepositoryBackend]] = {
    'codeartifact': ArtifactRepository.from_config,
}


@dataclass
class Config:
    """Loaded configuration: where it came from and the routes it defines."""
    router: PatternRouter
    path: Optional[Path] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'config_path': str(self.path) if self.path else None,
            'repos': [
                {'pattern': route.pattern, 'backend': repr(route.backend)}
                for route in self.router
            ],
        }


def find_config_path(start: Optional[str] = None) -> Optional[Path]:
    """Get the path to the configuration file.

    Checks in order:
    1. MODRELAY_CONFIG environment variable
    2. The start directory (default: cwd) and each parent, for
       .modrelay.json, .modrelay.yaml, .modrelay.yml, .modrelay.toml
    """
    if os.environ.get(CONFIG_ENV):
        return Path(os.environ[CONFIG_ENV]).expanduser()

    directory = Path(start or os.getcwd()).resolve()
    for candidate in [directory, *directory.parents]:
        for filename in CONFIG_FILENAMES:
            path = candidate / filename
            if path.is_file():
                return path
    return None


def read_config_file(config_path: Path) -> Dict[str, Any]:
    """Read a JSON, YAML or TOML configuration file into a dict."""
    try:
        if config_path.suffix.lower() in ['.toml']:
            with open(config_path, 'rb') as f:
                file_config = tomllib.load(f)
        elif config_path.suffix.lower() in ['.yaml', '.yml']:
            with open(config_path, 'r') as f:
                file_config = yaml.safe_load(f)
        else:
            # Default to JSON format
            with open(config_path, 'r') as f:
                file_config = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Error loading config: {config_path}: {e}") from e

    if not isinstance(file_config, dict):
        raise ConfigError(f"Error loading config: {config_path}: expected a mapping at top level")
    return file_config


def build_backend(pattern: str, entry: Any) -> RepositoryBackend:
    """Create the backend described by one route entry."""
    if not isinstance(entry, dict):
        raise ConfigError(f"Error parsing repo config: {pattern}: expected a mapping")

    repo_type = entry.get('type')
    if not isinstance(repo_type, str):
        raise ConfigError(f"Error parsing repo config: {pattern}: missing 'type'")

    factory = BACKEND_TYPES.get(repo_type.lower())
    if factory is None:
        raise ConfigError(f"Repository type not supported: {repo_type}")

    try:
        return factory(entry)
    except ConfigError as e:
        raise ConfigError(f"Error parsing repo config: {pattern}: {e}") from e


def parse_routes(raw: Dict[str, Any]) -> List[RouteEntry]:
    """
    Build the ordered route list from the ``repos`` section.

    ``repos`` is either a mapping of pattern to repository entry, or a list
    of repository entries each carrying a ``pattern`` key. Order is kept.
    """
    repos = raw.get('repos')
    if repos is None:
        raise ConfigError("Config has no 'repos' section")

    if isinstance(repos, dict):
        pairs = list(repos.items())
    elif isinstance(repos, list):
        pairs = []
        for entry in repos:
            if not isinstance(entry, dict) or not isinstance(entry.get('pattern'), str):
                raise ConfigError("Each entry of 'repos' needs a 'pattern'")
            pairs.append((entry['pattern'], {k: v for k, v in entry.items() if k != 'pattern'}))
    else:
        raise ConfigError("'repos' must be a mapping or a list")

    routes = []
    for pattern, entry in pairs:
        if not isinstance(pattern, str) or not pattern:
            raise ConfigError(f"Malformed module glob: {pattern!r}")
        routes.append(RouteEntry(pattern, build_backend(pattern, entry)))
    return routes


def apply_log_level(raw: Dict[str, Any]) -> None:
    """Set the modrelay log level from config or MODRELAY_LOG_LEVEL."""
    section = raw.get('logging')
    level = os.environ.get(LOG_LEVEL_ENV)
    if not level and isinstance(section, dict):
        level = section.get('level')
    if not level:
        return
    numeric = logging.getLevelName(str(level).upper())
    if isinstance(numeric, int):
        logger.setLevel(numeric)
    else:
        logger.warning(f"Unknown log level: {level}")


def load_config(config_path: Optional[Path] = None, start: Optional[str] = None) -> Config:
    """
    Load configuration from file.

    Raises:
        ConfigError: no config file found, or the file is invalid
    """
    path = Path(config_path) if config_path else find_config_path(start)
    if path is None:
        raise ConfigError(f"Config file not found: {CONFIG_FILENAMES[0]}")
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    raw = read_config_file(path)
    try:
        router = PatternRouter(parse_routes(raw))
    except ConfigError as e:
        raise ConfigError(f"Error loading config: {path}: {e}") from e

    apply_log_level(raw)
    logger.debug(f"Loaded {len(router)} routes from {path}")
    return Config(router=router, path=path, raw=raw)
