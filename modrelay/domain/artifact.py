"""
Artifact domain objects for modrelay.

A Go module version is stored as three assets: ``<version>.info``
(JSON version metadata), ``<version>.mod`` (the go.mod file) and
``<version>.zip`` (the module source archive). These objects describe
requests for those assets, their storage keys, and the set of payloads
built for a publish.
"""

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, List, Optional, Tuple

from ..exit_codes import MalformedRequest, OperationUnsupported
from .module_path import unescape_path, unescape_version

INFO_EXT = '.info'
MOD_EXT = '.mod'
ZIP_EXT = '.zip'

ASSET_EXTENSIONS = (INFO_EXT, MOD_EXT, ZIP_EXT)

CONTENT_TYPES = {
    INFO_EXT: 'application/json',
    MOD_EXT: 'text/plain; charset=utf-8',
    ZIP_EXT: 'application/zip',
}


class ArtifactKind(Enum):
    """Operations of the module proxy protocol."""
    LIST = "list"
    LATEST = "latest"
    INFO = INFO_EXT
    MOD = MOD_EXT
    ZIP = ZIP_EXT

    @property
    def is_asset(self) -> bool:
        return self.value in ASSET_EXTENSIONS


@dataclass(frozen=True)
class ArtifactRequest:
    """
    Parsed form of the request suffix following ``@``.

    ``version`` is set for asset requests (INFO, MOD, ZIP) and None for
    LIST and LATEST.
    """
    kind: ArtifactKind
    version: Optional[str] = None

    @property
    def extension(self) -> Optional[str]:
        return self.kind.value if self.kind.is_asset else None

    @property
    def asset_name(self) -> Optional[str]:
        if not self.kind.is_asset:
            return None
        return f"{self.version}{self.kind.value}"

    @property
    def content_type(self) -> str:
        return CONTENT_TYPES.get(self.kind.value, 'text/plain; charset=utf-8')

    def __str__(self) -> str:
        if self.kind is ArtifactKind.LATEST:
            return "@latest"
        if self.kind is ArtifactKind.LIST:
            return "@v/list"
        return f"@v/{self.asset_name}"


def parse_artifact_request(suffix: str) -> ArtifactRequest:
    """
    Parse a protocol suffix such as ``@v/list`` or ``@v/v1.2.3.zip``.

    Raises:
        MalformedRequest: the suffix does not follow the protocol grammar
        OperationUnsupported: the suffix names an asset type that is not served
    """
    if suffix == "@latest":
        return ArtifactRequest(ArtifactKind.LATEST)
    if suffix == "@v/list":
        return ArtifactRequest(ArtifactKind.LIST)
    if not suffix.startswith("@v/"):
        raise MalformedRequest(f"Unrecognized request: {suffix}")

    asset = suffix[3:]
    if not asset or '/' in asset:
        raise MalformedRequest(f"Unrecognized request: {suffix}")

    dot = asset.rfind('.')
    extension = asset[dot:] if dot >= 0 else ''
    if extension not in ASSET_EXTENSIONS:
        raise OperationUnsupported(f"Asset extension not supported: {suffix}")

    try:
        version = unescape_version(asset[:dot])
    except ValueError as e:
        raise MalformedRequest(f"Invalid version in request: {suffix}: {e}") from e

    return ArtifactRequest(ArtifactKind(extension), version)


def split_request_path(path: str) -> Tuple[str, str]:
    """
    Split ``/<escaped-module>/@<suffix>`` into the module path and suffix.

    The module path is unescaped; the suffix keeps its leading ``@``.

    Raises:
        MalformedRequest: no ``@`` present or the module path is invalid
    """
    at_index = path.find('@')
    if at_index < 0:
        raise MalformedRequest(f"Error parsing request path: {path}: '@' expected")
    try:
        module_path = unescape_path(path[:at_index].strip('/'))
    except ValueError as e:
        raise MalformedRequest(f"Error unescaping module path: {path}: {e}") from e
    return module_path, path[at_index:]


@dataclass(frozen=True)
class AssetKey:
    """Storage coordinates of a single asset within a namespace."""
    package: str
    namespace: str
    version: str
    extension: str

    @property
    def asset_name(self) -> str:
        return f"{self.version}{self.extension}"


def sha256_hex(data: bytes) -> str:
    """Hex SHA-256 digest sent along with each upload for verification."""
    return hashlib.sha256(data).hexdigest()


@dataclass(frozen=True)
class AssetUpload:
    """One step of the publish sequence."""
    extension: str
    data: bytes
    sha256: str
    unfinished: bool

    def asset_name(self, version: str) -> str:
        return f"{version}{self.extension}"


@dataclass(frozen=True)
class PublishArtifactSet:
    """
    The three payloads of a module version, built once per publish.

    ``uploads()`` yields them in the order they must reach the repository:
    info and mod stay unfinished until the zip completes the version.
    """
    mod_data: bytes
    info_data: bytes
    zip_data: bytes

    def uploads(self) -> List[AssetUpload]:
        return [
            AssetUpload(INFO_EXT, self.info_data, sha256_hex(self.info_data), True),
            AssetUpload(MOD_EXT, self.mod_data, sha256_hex(self.mod_data), True),
            AssetUpload(ZIP_EXT, self.zip_data, sha256_hex(self.zip_data), False),
        ]


@dataclass(frozen=True)
class VersionInfo:
    """Payload of the ``.info`` asset: the version and its commit time."""
    version: str
    time: datetime

    @classmethod
    def from_timestamp(cls, version: str, timestamp: int) -> 'VersionInfo':
        return cls(version=version, time=datetime.fromtimestamp(timestamp, tz=timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        when = self.time.astimezone(timezone.utc).replace(microsecond=0)
        return {
            'Version': self.version,
            'Time': when.strftime('%Y-%m-%dT%H:%M:%SZ'),
        }

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), indent=4).encode('utf-8')
