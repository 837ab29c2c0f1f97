"""
Domain layer for modrelay.

Contains pure domain objects with no I/O or side effects:
- ArtifactRequest: Parsed module proxy request suffix
- AssetKey: Storage coordinates of one asset
- PublishArtifactSet: The info/mod/zip payloads of a version
- VersionInfo: The ``.info`` payload
- Module path escaping used on the wire
"""

from .artifact import (
    ASSET_EXTENSIONS,
    ArtifactKind,
    ArtifactRequest,
    AssetKey,
    AssetUpload,
    PublishArtifactSet,
    VersionInfo,
    parse_artifact_request,
    split_request_path,
    sha256_hex,
)
from .module_path import escape_path, unescape_path, escape_version, unescape_version

__all__ = [
    'ASSET_EXTENSIONS',
    'ArtifactKind',
    'ArtifactRequest',
    'AssetKey',
    'AssetUpload',
    'PublishArtifactSet',
    'VersionInfo',
    'parse_artifact_request',
    'split_request_path',
    'sha256_hex',
    'escape_path',
    'unescape_path',
    'escape_version',
    'unescape_version',
]
