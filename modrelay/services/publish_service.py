"""
Publish service for modrelay.

Turns a tagged Go module checkout into the three assets of a module
version and uploads them to the repository its module path routes to.
Used by the `modrelay publish` command.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..archive import build_module_zip
from ..domain.artifact import PublishArtifactSet, VersionInfo
from ..exit_codes import NoRouteError, PathOutsideRepo
from ..infra.git_client import GitClient
from ..modfile import ModuleDescriptor, read_module
from ..router import PatternRouter

logger = logging.getLogger(__name__)


@dataclass
class PublishedAsset:
    """One asset as sent to the repository."""
    name: str
    sha256: str
    size: int
    unfinished: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'sha256': self.sha256,
            'size': self.size,
            'unfinished': self.unfinished,
        }


@dataclass
class PublishResult:
    """Outcome of a successful publish."""
    module_path: str
    version: str
    route: str
    repository: str
    assets: List[PublishedAsset] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'module': self.module_path,
            'version': self.version,
            'route': self.route,
            'repository': self.repository,
            'assets': [asset.to_dict() for asset in self.assets],
        }


@dataclass(frozen=True)
class PreparedPublish:
    """Everything built locally before any upload happens."""
    module: ModuleDescriptor
    version: str
    subdir: str
    artifacts: PublishArtifactSet


def module_subdir(git_root: str, module_dir: Path) -> str:
    """
    Path of the module directory relative to the git root.

    Returns "" when they are the same directory.

    Raises:
        PathOutsideRepo: the module directory is not below the git root
    """
    root = os.path.realpath(git_root)
    relative = os.path.relpath(os.path.realpath(module_dir), root)
    if relative == os.curdir:
        return ""
    if relative == os.pardir or relative.startswith(os.pardir + os.sep):
        raise PathOutsideRepo("Unable to resolve go.mod path within Git repository")
    return Path(relative).as_posix()


class PublishService:
    """
    Service publishing the module in a working directory.

    Example:
        service = PublishService(config.router)
        result = service.publish("v0.1.0")
        print(f"Published {result.module_path}@{result.version}")
    """

    def __init__(
        self,
        router: PatternRouter,
        git_client: Optional[GitClient] = None,
        working_dir: Optional[str] = None,
    ):
        """
        Initialize PublishService.

        Args:
            router: Routes module paths to repositories
            git_client: GitClient instance (creates new if None)
            working_dir: Directory holding go.mod (default: cwd)
        """
        self.router = router
        self.git = git_client or GitClient()
        self.working_dir = working_dir or os.getcwd()

    def prepare(self, version: str) -> PreparedPublish:
        """
        Discover the module and build its artifacts for ``version``.

        Nothing is uploaded. Every precondition failure is raised before
        any artifact is built.
        """
        version = version.strip()
        if not version:
            raise ValueError("Version must not be empty")

        module = read_module(self.working_dir)
        git_root = self.git.root_path(str(module.directory))
        timestamp = self.git.commit_timestamp(git_root, version)
        subdir = module_subdir(git_root, module.directory)

        info = VersionInfo.from_timestamp(version, timestamp)
        zip_data = build_module_zip(
            module.module_path, version, git_root, subdir, git_client=self.git
        )

        logger.debug(
            f"Prepared {module.module_path}@{version} from {git_root}"
            f"{'/' + subdir if subdir else ''}"
        )
        return PreparedPublish(
            module=module,
            version=version,
            subdir=subdir,
            artifacts=PublishArtifactSet(
                mod_data=module.data,
                info_data=info.to_json(),
                zip_data=zip_data,
            ),
        )

    def publish(self, version: str) -> PublishResult:
        """
        Build and upload the module version.

        Raises:
            ModuleDescriptorMissing, VcsUnavailable, PathOutsideRepo,
            ArchiveError: local preconditions failed, nothing uploaded
            NoRouteError: no configured repository owns the module
            BackendFailure: an upload failed (earlier assets stay unfinished)
        """
        prepared = self.prepare(version)
        module_path = prepared.module.module_path

        route = self.router.resolve_entry(module_path)
        if route is None:
            raise NoRouteError(module_path)

        artifacts = prepared.artifacts
        route.backend.publish(
            module_path,
            prepared.version,
            artifacts.mod_data,
            artifacts.info_data,
            artifacts.zip_data,
        )

        return PublishResult(
            module_path=module_path,
            version=prepared.version,
            route=route.pattern,
            repository=repr(route.backend),
            assets=[
                PublishedAsset(
                    name=upload.asset_name(prepared.version),
                    sha256=upload.sha256,
                    size=len(upload.data),
                    unfinished=upload.unfinished,
                )
                for upload in artifacts.uploads()
            ],
        )
