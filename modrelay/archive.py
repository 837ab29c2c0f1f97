"""
Module zip construction from a git checkout.

Builds the ``.zip`` asset of a module version from the files git tracks at
the version's ref. Every entry lives under ``<module>@<version>/``. Files
belonging to nested modules or vendor directories are left out, and a
module published from a subdirectory inherits the repository's root
LICENSE when it has none of its own.

The output depends only on the tree at the ref, so the same ref always
produces the same bytes.
"""

import io
import logging
import posixpath
import tarfile
import zipfile
from typing import Dict, Optional, Set

from .exit_codes import ArchiveError
from .infra.git_client import GitClient

logger = logging.getLogger(__name__)

# Size limits enforced by the go command on module zips
MAX_ZIP_FILE_SIZE = 500 << 20
MAX_GO_MOD_SIZE = 16 << 20
MAX_LICENSE_SIZE = 16 << 20

# Fixed timestamp for every zip entry
ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)


def read_tree(tar_data: bytes, subdir: str = "") -> Dict[str, bytes]:
    """
    Extract regular files from a tar archive, relative to ``subdir``.

    Files outside ``subdir`` are dropped, except a root-level LICENSE,
    which is kept under the key ``"/LICENSE"`` so callers can fall back
    to it.
    """
    prefix = f"{subdir.strip('/')}/" if subdir else ""
    files: Dict[str, bytes] = {}

    with tarfile.open(fileobj=io.BytesIO(tar_data), mode="r:") as tar:
        for member in tar:
            if not member.isfile():
                continue
            name = member.name
            if name.startswith("./"):
                name = name[2:]

            if prefix and name == "LICENSE":
                key = "/LICENSE"
            elif prefix:
                if not name.startswith(prefix):
                    continue
                key = name[len(prefix):]
            else:
                key = name

            handle = tar.extractfile(member)
            if handle is None:
                continue
            with handle:
                files[key] = handle.read()

    return files


def _nested_module_dirs(paths: Set[str]) -> Set[str]:
    dirs = set()
    for path in paths:
        directory, base = posixpath.split(path)
        if base == "go.mod" and directory:
            dirs.add(directory)
    return dirs


def _is_vendored_package(path: str) -> bool:
    """
    True for files in a package below a vendor directory.

    Files directly in the top-level ``vendor/`` (e.g. ``vendor/modules.txt``)
    are kept. For a nested ``/vendor/`` the go command skips a fixed
    ``len("/vendor/")`` characters from the start of the path, not from the
    match. Module checksums depend on that offset.
    """
    if path.startswith("vendor/"):
        rest = path[len("vendor/"):]
    elif "/vendor/" in path:
        rest = path[len("/vendor/"):]
    else:
        return False
    return "/" in rest


def _is_excluded(path: str, nested: Set[str]) -> bool:
    if _is_vendored_package(path):
        return True
    parts = path.split("/")[:-1]
    for i in range(1, len(parts) + 1):
        if "/".join(parts[:i]) in nested:
            return True
    return False


def select_module_files(files: Dict[str, bytes]) -> Dict[str, bytes]:
    """
    Apply the module zip inclusion rules to a tree of files.

    Raises:
        ArchiveError: case-insensitive path collisions or size limits exceeded
    """
    root_license = files.get("/LICENSE")
    tree = {path: data for path, data in files.items() if not path.startswith("/")}
    nested = _nested_module_dirs(set(tree))

    selected: Dict[str, bytes] = {}
    for path, data in tree.items():
        if _is_excluded(path, nested):
            logger.debug(f"Excluding from module zip: {path}")
            continue
        selected[path] = data

    if "LICENSE" not in selected and root_license is not None:
        selected["LICENSE"] = root_license

    folded: Dict[str, str] = {}
    for path in selected:
        other = folded.setdefault(path.lower(), path)
        if other != path:
            raise ArchiveError(f"Module zip has case-insensitive file path collision: {other} and {path}")

    if len(selected.get("go.mod", b"")) > MAX_GO_MOD_SIZE:
        raise ArchiveError(f"go.mod file too large (max size is {MAX_GO_MOD_SIZE} bytes)")
    if len(selected.get("LICENSE", b"")) > MAX_LICENSE_SIZE:
        raise ArchiveError(f"LICENSE file too large (max size is {MAX_LICENSE_SIZE} bytes)")
    total = sum(len(data) for data in selected.values())
    if total > MAX_ZIP_FILE_SIZE:
        raise ArchiveError(f"Total size of module files exceeds {MAX_ZIP_FILE_SIZE} bytes")

    return selected


def write_module_zip(module_path: str, version: str, files: Dict[str, bytes]) -> bytes:
    """Write files into a zip with entries under ``<module>@<version>/``."""
    prefix = f"{module_path}@{version}/"
    buffer = io.BytesIO()

    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in sorted(files):
            info = zipfile.ZipInfo(prefix + path, date_time=ZIP_DATE_TIME)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            zf.writestr(info, files[path])

    return buffer.getvalue()


def build_module_zip(
    module_path: str,
    version: str,
    root_path: str,
    subdir: str = "",
    git_client: Optional[GitClient] = None,
) -> bytes:
    """
    Build the module zip for ``module_path@version`` from git.

    Args:
        module_path: Module path declared in go.mod
        version: Tag or ref to export
        root_path: Top-level directory of the git checkout
        subdir: Directory of go.mod relative to root_path ("" for the root)
        git_client: GitClient to use (creates new if None)

    Raises:
        VcsUnavailable: git could not export the ref
        ArchiveError: the tree violates the module zip rules
    """
    git = git_client or GitClient()
    tar_data = git.archive(root_path, version)
    files = select_module_files(read_tree(tar_data, subdir))

    if not files:
        raise ArchiveError(f"No files to archive for {module_path}@{version}")

    logger.info(f"Archiving {len(files)} files for {module_path}@{version}")
    return write_module_zip(module_path, version, files)
