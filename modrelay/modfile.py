"""
go.mod reading for the publish pipeline.

Only the ``module`` directive matters here; everything else in the file is
uploaded verbatim as the ``.mod`` asset.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .exit_codes import ModuleDescriptorMissing

GO_MOD = "go.mod"

_MODULE_LINE = re.compile(r'^\s*module\s+(.+?)\s*$')
_MODULE_BLOCK = re.compile(r'^\s*module\s*\(\s*$')


@dataclass(frozen=True)
class ModuleDescriptor:
    """A go.mod file and the module path it declares."""
    module_path: str
    data: bytes
    file_path: Path

    @property
    def directory(self) -> Path:
        return self.file_path.parent


def _strip_comment(line: str) -> str:
    index = line.find('//')
    return line if index < 0 else line[:index]


def _unquote(token: str) -> str:
    if len(token) >= 2 and token[0] == token[-1] and token[0] in '"`':
        return token[1:-1]
    return token


def parse_module_path(data: bytes) -> Optional[str]:
    """
    Return the module path declared in go.mod content, or None.

    Accepts ``module example.com/m``, the quoted forms, and the
    parenthesized block form.
    """
    text = data.decode('utf-8', errors='replace')
    in_block = False
    for raw in text.splitlines():
        line = _strip_comment(raw).strip()
        if not line:
            continue
        if in_block:
            if line == ')':
                in_block = False
                continue
            return _unquote(line.split()[0]) or None
        if _MODULE_BLOCK.match(line):
            in_block = True
            continue
        match = _MODULE_LINE.match(line)
        if match:
            return _unquote(match.group(1).split()[0]) or None
    return None


def read_module(directory: Optional[str] = None) -> ModuleDescriptor:
    """
    Read go.mod from ``directory`` (default: the working directory).

    Raises:
        ModuleDescriptorMissing: no go.mod, unreadable, or no module path
    """
    base = Path(directory) if directory else Path(os.getcwd())
    file_path = (base / GO_MOD).resolve()

    if not file_path.is_file():
        raise ModuleDescriptorMissing("Current directory does not contain a Go module file (go.mod)")
    try:
        data = file_path.read_bytes()
    except OSError as e:
        raise ModuleDescriptorMissing(f"Go module file (go.mod) could not be read: {e}") from e

    module_path = parse_module_path(data)
    if not module_path:
        raise ModuleDescriptorMissing("Go module name not found")

    return ModuleDescriptor(module_path=module_path, data=data, file_path=file_path)
