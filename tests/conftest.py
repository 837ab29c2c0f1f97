"""
Shared fixtures for modrelay tests.

Provides:
- MemoryBackend: RepositoryBackend keeping published assets in memory
- StubCodeArtifactClient: records boto3-style calls made by ArtifactRepository
- git_module: a real git checkout with a tagged Go module
"""

import io
import os
import shutil
import subprocess
from typing import Any, Dict, List, Optional, Tuple

import pytest
from botocore.exceptions import ClientError

from modrelay.domain.artifact import ArtifactKind, ArtifactRequest
from modrelay.exit_codes import BackendFailure, BackendNotFound, OperationUnsupported

# 2024-01-02T03:04:05Z
COMMIT_TIMESTAMP = 1704164645

GO_MOD = b"module github.com/acme/widgets\n\ngo 1.21\n"


def client_error(code: str, operation: str = "Operation") -> ClientError:
    """Build a botocore ClientError with the given error code."""
    return ClientError({'Error': {'Code': code, 'Message': f'{code} (stub)'}}, operation)


class MemoryBackend:
    """
    RepositoryBackend storing assets in a dict and recording every call.

    Published versions become listable only once their zip is stored,
    mirroring the unfinished flag of the real repository.
    """

    def __init__(self, fail_fetch: Optional[Exception] = None):
        self.assets: Dict[Tuple[str, str], bytes] = {}
        self.versions: Dict[str, List[str]] = {}
        self.fetch_calls: List[Tuple[str, ArtifactRequest]] = []
        self.publish_calls: List[Tuple[str, str]] = []
        self.fail_fetch = fail_fetch

    def fetch(self, module_path: str, request: ArtifactRequest) -> bytes:
        self.fetch_calls.append((module_path, request))
        if self.fail_fetch is not None:
            raise self.fail_fetch
        if request.kind is ArtifactKind.LATEST:
            raise OperationUnsupported("latest")
        if request.kind is ArtifactKind.LIST:
            return "".join(f"{v}\n" for v in self.versions.get(module_path, [])).encode()
        try:
            return self.assets[(module_path, request.asset_name)]
        except KeyError:
            raise BackendNotFound(f"missing {module_path} {request.asset_name}")

    def publish(self, module_path, version, mod_data, info_data, zip_data) -> None:
        self.publish_calls.append((module_path, version))
        self.assets[(module_path, f"{version}.info")] = info_data
        self.assets[(module_path, f"{version}.mod")] = mod_data
        self.assets[(module_path, f"{version}.zip")] = zip_data
        self.versions.setdefault(module_path, []).append(version)


class StubCodeArtifactClient:
    """
    Stand-in for a boto3 codeartifact client.

    Args:
        pages: Responses returned by successive list_package_versions calls
        assets: Asset bytes keyed by asset name
        errors: Exceptions to raise, keyed by method name; for
            publish_package_version, keyed by (method, call index)
    """

    def __init__(
        self,
        pages: Optional[List[Dict[str, Any]]] = None,
        assets: Optional[Dict[str, bytes]] = None,
        errors: Optional[Dict[Any, Exception]] = None,
    ):
        self.pages = list(pages or [])
        self.assets = assets or {}
        self.errors = errors or {}
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def _calls_to(self, method: str) -> List[Dict[str, Any]]:
        return [params for name, params in self.calls if name == method]

    def list_package_versions(self, **params):
        self.calls.append(('list_package_versions', params))
        if 'list_package_versions' in self.errors:
            raise self.errors['list_package_versions']
        return self.pages.pop(0) if self.pages else {'versions': []}

    def get_package_version_asset(self, **params):
        self.calls.append(('get_package_version_asset', params))
        if 'get_package_version_asset' in self.errors:
            raise self.errors['get_package_version_asset']
        if params['asset'] not in self.assets:
            raise client_error('ResourceNotFoundException', 'GetPackageVersionAsset')
        return {'asset': io.BytesIO(self.assets[params['asset']]), 'assetName': params['asset']}

    def publish_package_version(self, **params):
        index = len(self._calls_to('publish_package_version'))
        self.calls.append(('publish_package_version', params))
        error = self.errors.get(('publish_package_version', index))
        if error is not None:
            raise error
        return {'format': 'generic', 'status': 'Unfinished' if params['unfinished'] else 'Published'}


@pytest.fixture
def memory_backend():
    return MemoryBackend()


def _git(cwd, *args):
    env = dict(os.environ)
    stamp = f"@{COMMIT_TIMESTAMP} +0000"
    env.update({
        'GIT_AUTHOR_NAME': 'Test',
        'GIT_AUTHOR_EMAIL': 'test@example.com',
        'GIT_COMMITTER_NAME': 'Test',
        'GIT_COMMITTER_EMAIL': 'test@example.com',
        'GIT_AUTHOR_DATE': stamp,
        'GIT_COMMITTER_DATE': stamp,
        'GIT_CONFIG_NOSYSTEM': '1',
        'HOME': str(cwd),
    })
    subprocess.run(['git', *args], cwd=cwd, env=env, check=True, capture_output=True)


requires_git = pytest.mark.skipif(shutil.which('git') is None, reason="git not installed")


@pytest.fixture
def git_module(tmp_path):
    """
    A git repository with a Go module in ``sub/`` tagged v0.1.0.

    Layout:
        LICENSE
        README.md
        sub/go.mod, sub/widgets.go
        sub/vendor/x/x.go        (excluded from the zip)
        sub/inner/go.mod, ...    (nested module, excluded)
    """
    if shutil.which('git') is None:
        pytest.skip("git not installed")

    repo = tmp_path / 'repo'
    (repo / 'sub' / 'vendor' / 'x').mkdir(parents=True)
    (repo / 'sub' / 'inner').mkdir(parents=True)
    (repo / 'LICENSE').write_text('MIT\n')
    (repo / 'README.md').write_text('# widgets\n')
    (repo / 'sub' / 'go.mod').write_bytes(GO_MOD)
    (repo / 'sub' / 'widgets.go').write_text('package widgets\n')
    (repo / 'sub' / 'vendor' / 'x' / 'x.go').write_text('package x\n')
    (repo / 'sub' / 'inner' / 'go.mod').write_text('module github.com/acme/widgets/inner\n')
    (repo / 'sub' / 'inner' / 'inner.go').write_text('package inner\n')

    _git(repo, 'init', '-q')
    _git(repo, 'add', '-A')
    _git(repo, 'commit', '-q', '-m', 'initial')
    _git(repo, 'tag', 'v0.1.0')
    _git(repo, 'tag', '-a', 'v0.1.1', '-m', 'annotated')
    return repo
