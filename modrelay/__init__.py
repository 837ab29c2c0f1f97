"""
modrelay - A Go module proxy for private artifact repositories.

modrelay sits between the go command and private package repositories:
module paths matching configured patterns are served from their
repository, everything else falls through to the public proxy. It also
publishes tagged module versions to those repositories.

Quick Start:
    import modrelay

    # Load .modrelay.json from the working directory or a parent
    config = modrelay.load_config()

    # Which repository owns a module?
    backend = config.router.resolve("github.com/acme/widgets")

    # Serve the proxy while running something else
    with modrelay.running_proxy(config.router) as server:
        print(server.url)

    # Publish the module in the current directory at a tag
    result = modrelay.PublishService(config.router).publish("v0.1.0")

Configuration (.modrelay.json):
    {
      "repos": {
        "github.com/acme/*": {
          "type": "codeartifact",
          "domain": "acme",
          "domain_owner": "111111111111",
          "repository": "go",
          "namespace": "acme"
        }
      }
    }
"""

__version__ = "0.3.0"

# Routing
from .router import PatternRouter, RouteEntry, glob_to_regexp

# Domain objects
from .domain import (
    ArtifactKind,
    ArtifactRequest,
    AssetKey,
    PublishArtifactSet,
    VersionInfo,
    parse_artifact_request,
)

# Infrastructure
from .infra import RepositoryBackend, ArtifactRepository, GitClient

# Proxy and publishing
from .proxy import ProtocolTranslator, running_proxy, run_proxy_server
from .services import PublishService, PublishResult

# Configuration
from .config import load_config, Config

__all__ = [
    # Version
    "__version__",
    # Routing
    "PatternRouter",
    "RouteEntry",
    "glob_to_regexp",
    # Domain objects
    "ArtifactKind",
    "ArtifactRequest",
    "AssetKey",
    "PublishArtifactSet",
    "VersionInfo",
    "parse_artifact_request",
    # Infrastructure
    "RepositoryBackend",
    "ArtifactRepository",
    "GitClient",
    # Proxy and publishing
    "ProtocolTranslator",
    "running_proxy",
    "run_proxy_server",
    "PublishService",
    "PublishResult",
    # Configuration
    "load_config",
    "Config",
]
