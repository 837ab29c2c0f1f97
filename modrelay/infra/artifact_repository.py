"""
AWS CodeArtifact backend for modrelay.

Stores each module version as a generic package version with three
assets. Provides:
- Version listing (paged, published versions only)
- Single asset download
- Three-step publish (info, mod, zip) with SHA-256 verification

The boto3 client is created on first use and reused for the lifetime
of the repository object. Pass ``client=`` to substitute a stub.
"""

import logging
import threading
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..domain.artifact import (
    ArtifactKind,
    ArtifactRequest,
    AssetKey,
    PublishArtifactSet,
)
from ..exit_codes import (
    BackendFailure,
    BackendNotFound,
    ConfigError,
    OperationUnsupported,
)

logger = logging.getLogger(__name__)

# Namespace used when a route does not configure one
DEFAULT_NAMESPACE = "modrelay"

# CodeArtifact package format for arbitrary files
PACKAGE_FORMAT = "generic"

# Page size for ListPackageVersions
LIST_PAGE_SIZE = 50

# Failed calls surface immediately; re-publishing is left to the user
_BOTO_CONFIG = BotoConfig(retries={'total_max_attempts': 1, 'mode': 'standard'})


def escape_package_name(module_path: str) -> str:
    """
    Convert a module path into a CodeArtifact package name.

    Package names must match ``([a-zA-Z0-9])+([-_+.]?[a-zA-Z0-9])*`` while
    module paths may also contain ``/`` and ``~``. Those (and ``+`` itself,
    replaced first) are written as ``+`` followed by their hex code.
    """
    name = module_path.replace('+', '+2B')
    name = name.replace('/', '+2F')
    name = name.replace('~', '+7E')
    return name


def default_namespace(namespace: Optional[str]) -> str:
    return namespace if namespace else DEFAULT_NAMESPACE


def _is_not_found(error: ClientError) -> bool:
    return error.response.get('Error', {}).get('Code') == 'ResourceNotFoundException'


class ArtifactRepository:
    """
    A CodeArtifact repository serving generic packages.

    Example:
        repo = ArtifactRepository(domain="acme", repository="go",
                                  domain_owner="111111111111")
        data = repo.fetch("github.com/acme/widgets",
                          ArtifactRequest(ArtifactKind.INFO, "v0.1.0"))
    """

    def __init__(
        self,
        domain: str,
        repository: str,
        namespace: Optional[str] = None,
        domain_owner: Optional[str] = None,
        region: Optional[str] = None,
        client: Any = None,
    ):
        """
        Initialize ArtifactRepository.

        Args:
            domain: CodeArtifact domain name
            repository: Repository name within the domain
            namespace: Package namespace (defaults to DEFAULT_NAMESPACE)
            domain_owner: AWS account ID owning the domain
            region: AWS region (defaults to the boto3 session's region)
            client: Pre-built codeartifact client, mainly for tests
        """
        self.domain = domain
        self.repository = repository
        self.namespace = default_namespace(namespace)
        self.domain_owner = domain_owner
        self.region = region
        self._client = client
        self._client_lock = threading.Lock()

    @classmethod
    def from_config(cls, entry: Dict[str, Any]) -> 'ArtifactRepository':
        """
        Create from a route entry of the configuration file.

        Raises:
            ConfigError: a required key is missing or not a string
        """
        for key in ('domain', 'repository'):
            if not isinstance(entry.get(key), str) or not entry[key]:
                raise ConfigError(f"CodeArtifact repository requires '{key}'")
        for key in ('namespace', 'domain_owner', 'region'):
            value = entry.get(key)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"CodeArtifact '{key}' must be a string")

        return cls(
            domain=entry['domain'],
            repository=entry['repository'],
            namespace=entry.get('namespace'),
            domain_owner=entry.get('domain_owner'),
            region=entry.get('region'),
        )

    def __repr__(self) -> str:
        return (
            f"ArtifactRepository(Domain:{self.domain}({self.domain_owner or ''}) "
            f"Repo:{self.repository} NS:{self.namespace})"
        )

    def coordinates(
        self,
        package: str,
        version: Optional[str] = None,
        asset: Optional[str] = None
    ) -> str:
        """Describe where a call is addressed, for logs and error messages."""
        text = (
            f"Domain:{self.domain}({self.domain_owner or ''}) Repo:{self.repository} "
            f"NS:{self.namespace} Pkg:{package}"
        )
        if version is not None:
            text += f" Version:{version}"
        if asset is not None:
            text += f" Asset:{asset}"
        return text

    def _get_client(self) -> Any:
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    try:
                        session = boto3.session.Session(region_name=self.region)
                        self._client = session.client('codeartifact', config=_BOTO_CONFIG)
                    except BotoCoreError as e:
                        raise BackendFailure(f"Error loading AWS config: {e}") from e
        return self._client

    def _base_params(self, package: str) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            'domain': self.domain,
            'repository': self.repository,
            'format': PACKAGE_FORMAT,
            'namespace': self.namespace,
            'package': package,
        }
        if self.domain_owner:
            params['domainOwner'] = self.domain_owner
        return params

    def fetch(self, module_path: str, request: ArtifactRequest) -> bytes:
        """
        Answer a module proxy request.

        Raises:
            OperationUnsupported: for ``@latest``
            BackendNotFound: the asset does not exist
            BackendFailure: any other CodeArtifact or client error
        """
        if request.kind is ArtifactKind.LATEST:
            raise OperationUnsupported(f"Not implemented: {module_path}/{request}")

        package = escape_package_name(module_path)
        client = self._get_client()

        if request.kind is ArtifactKind.LIST:
            return self._list_versions(client, package)

        key = AssetKey(
            package=package,
            namespace=self.namespace,
            version=request.version,
            extension=request.extension,
        )
        return self._get_asset(client, key)

    def _list_versions(self, client: Any, package: str) -> bytes:
        """Concatenate published versions one per line, in repository order."""
        params = self._base_params(package)
        params['status'] = 'Published'
        params['maxResults'] = LIST_PAGE_SIZE
        coords = self.coordinates(package)

        lines = []
        next_token = None
        while True:
            if next_token:
                params['nextToken'] = next_token
            try:
                output = client.list_package_versions(**params)
            except ClientError as e:
                if _is_not_found(e):
                    logger.info(f"No CodeArtifact package: {coords}")
                    return b""
                raise BackendFailure(
                    f"Error listing CodeArtifact versions: {coords}: {e}", coords
                ) from e
            except BotoCoreError as e:
                raise BackendFailure(
                    f"Error listing CodeArtifact versions: {coords}: {e}", coords
                ) from e

            for entry in output.get('versions', []):
                lines.append(f"{entry['version']}\n")

            next_token = output.get('nextToken')
            if not next_token:
                break

        logger.info(f"Got CodeArtifact versions: {coords} Count:{len(lines)}")
        return ''.join(lines).encode('utf-8')

    def _get_asset(self, client: Any, key: AssetKey) -> bytes:
        params = self._base_params(key.package)
        params['packageVersion'] = key.version
        params['asset'] = key.asset_name
        coords = self.coordinates(key.package, key.version, key.asset_name)

        try:
            output = client.get_package_version_asset(**params)
            body = output['asset']
            try:
                data = body.read()
            finally:
                body.close()
        except ClientError as e:
            if _is_not_found(e):
                raise BackendNotFound(
                    f"CodeArtifact asset not found: {coords}", coords
                ) from e
            raise BackendFailure(
                f"Error getting CodeArtifact asset: {coords}: {e}", coords
            ) from e
        except BotoCoreError as e:
            raise BackendFailure(
                f"Error getting CodeArtifact asset: {coords}: {e}", coords
            ) from e

        logger.info(f"Got CodeArtifact asset: {coords}")
        return data

    def publish(
        self,
        module_path: str,
        version: str,
        mod_data: bytes,
        info_data: bytes,
        zip_data: bytes,
    ) -> None:
        """
        Upload a module version as three assets: info, mod, then zip.

        Info and mod are marked unfinished; the zip upload finishes the
        version. The first failure stops the sequence and already uploaded
        assets are left unfinished.

        Raises:
            BackendFailure: an upload failed
        """
        client = self._get_client()
        package = escape_package_name(module_path)
        artifacts = PublishArtifactSet(mod_data=mod_data, info_data=info_data, zip_data=zip_data)

        for upload in artifacts.uploads():
            asset_name = upload.asset_name(version)
            coords = self.coordinates(package, version, asset_name)

            params = self._base_params(package)
            params.update({
                'packageVersion': version,
                'assetName': asset_name,
                'assetContent': upload.data,
                'assetSHA256': upload.sha256,
                'unfinished': upload.unfinished,
            })

            try:
                client.publish_package_version(**params)
            except (ClientError, BotoCoreError) as e:
                raise BackendFailure(
                    f"Error publishing CodeArtifact asset: {coords}: {e}", coords
                ) from e

            logger.info(f"Published CodeArtifact asset: {coords}")
