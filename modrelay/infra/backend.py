"""
Repository backend contract for modrelay.

Anything that can serve and store module versions implements these two
operations. ArtifactRepository is the production implementation; tests
provide their own in-memory variants.
"""

from typing import Protocol, runtime_checkable

from ..domain.artifact import ArtifactRequest


@runtime_checkable
class RepositoryBackend(Protocol):
    """
    Storage for Go module versions.

    fetch() returns the bytes answering a proxy request and raises
    BackendNotFound when the asset does not exist, OperationUnsupported for
    operations the backend does not serve, and BackendFailure for any other
    error.

    publish() uploads the three assets of a version in order and raises
    BackendFailure on the first failed upload.
    """

    def fetch(self, module_path: str, request: ArtifactRequest) -> bytes:
        ...

    def publish(
        self,
        module_path: str,
        version: str,
        mod_data: bytes,
        info_data: bytes,
        zip_data: bytes,
    ) -> None:
        ...
