"""
Module path case-escaping used on the module proxy wire protocol.

Module paths and versions may contain uppercase letters, but proxy URLs
must be safe on case-insensitive file systems, so every uppercase letter
is sent as ``!`` followed by its lowercase form:

    github.com/Azure/azure-sdk  ->  github.com/!azure/azure-sdk
"""

import re

# Characters allowed in a module path element besides ASCII letters and digits
_PATH_PUNCTUATION = set("-._~+")


def _escape_string(value: str) -> str:
    out = []
    for ch in value:
        if ch == '!' or not ch.isascii():
            raise ValueError(f"invalid character {ch!r} in {value!r}")
        if 'A' <= ch <= 'Z':
            out.append('!' + ch.lower())
        else:
            out.append(ch)
    return ''.join(out)


def _unescape_string(escaped: str) -> str:
    out = []
    bang = False
    for ch in escaped:
        if not ch.isascii():
            raise ValueError(f"invalid character {ch!r} in {escaped!r}")
        if bang:
            if not ('a' <= ch <= 'z'):
                raise ValueError(f"invalid escape '!{ch}' in {escaped!r}")
            out.append(ch.upper())
            bang = False
        elif ch == '!':
            bang = True
        elif 'A' <= ch <= 'Z':
            raise ValueError(f"unescaped uppercase letter {ch!r} in {escaped!r}")
        else:
            out.append(ch)
    if bang:
        raise ValueError(f"trailing '!' in {escaped!r}")
    return ''.join(out)


def check_path(path: str) -> None:
    """
    Validate a module path, raising ValueError when it is not usable.

    A module path is a non-empty, slash-separated list of elements made of
    ASCII letters, digits and ``-._~+``. Elements may not be empty, ``.``
    or ``..``, and may not start or end with a dot.
    """
    if not path:
        raise ValueError("empty module path")
    if '@' in path:
        raise ValueError(f"module path {path!r} contains '@'")
    for element in path.split('/'):
        if not element:
            raise ValueError(f"module path {path!r} has an empty element")
        if element.startswith('.') or element.endswith('.'):
            raise ValueError(f"module path {path!r} has a leading or trailing dot in {element!r}")
        for ch in element:
            if not (ch.isascii() and (ch.isalnum() or ch in _PATH_PUNCTUATION)):
                raise ValueError(f"invalid character {ch!r} in module path {path!r}")
    if path.startswith('-'):
        raise ValueError(f"module path {path!r} starts with '-'")


def escape_path(path: str) -> str:
    """Escape a module path for use in a proxy URL."""
    check_path(path)
    return _escape_string(path)


def unescape_path(escaped: str) -> str:
    """Reverse ``escape_path``, validating both the escaped and plain forms."""
    path = _unescape_string(escaped)
    check_path(path)
    return path


_VERSION_DISALLOWED = re.compile(r'[/\\\s]')


def escape_version(version: str) -> str:
    """Escape a version string for use in a proxy URL."""
    if not version or _VERSION_DISALLOWED.search(version):
        raise ValueError(f"invalid version {version!r}")
    return _escape_string(version)


def unescape_version(escaped: str) -> str:
    """Reverse ``escape_version``."""
    version = _unescape_string(escaped)
    if not version or _VERSION_DISALLOWED.search(version):
        raise ValueError(f"invalid version {version!r}")
    return version
