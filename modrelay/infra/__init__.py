"""
Infrastructure layer for modrelay.

Contains abstractions for external systems:
- GitClient: Git command execution
- ArtifactRepository: AWS CodeArtifact generic package storage
- RepositoryBackend: The contract every repository implements

These provide clean interfaces that can be mocked for testing.
"""

from .backend import RepositoryBackend
from .git_client import GitClient
from .artifact_repository import ArtifactRepository, escape_package_name, DEFAULT_NAMESPACE

__all__ = [
    'RepositoryBackend',
    'GitClient',
    'ArtifactRepository',
    'escape_package_name',
    'DEFAULT_NAMESPACE',
]
