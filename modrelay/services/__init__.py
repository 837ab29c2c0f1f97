"""
Service layer for modrelay.

Contains business logic that orchestrates domain objects and infrastructure:
- PublishService: Builds and uploads a module version

Services are the primary API for commands to use.
"""

from .publish_service import PublishService, PublishResult, PublishedAsset

__all__ = [
    'PublishService',
    'PublishResult',
    'PublishedAsset',
]
