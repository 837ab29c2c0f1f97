"""
Module path routing for modrelay.

Maps glob-style module path patterns (``github.com/acme/*``) onto the
repository backend that owns them. Routes are kept in configuration order
and the first matching pattern wins, so overlapping patterns resolve
deterministically.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Pattern, Tuple

from .exit_codes import ConfigError
from .infra.backend import RepositoryBackend


def glob_to_regexp(glob: str) -> str:
    """
    Convert a module path glob into a regular expression.

    All regex metacharacters are escaped, then every ``*`` becomes a
    ``(.*)`` capture group. The result is meant to be used with
    ``re.fullmatch`` so the whole module path has to match.

    Example:
        >>> glob_to_regexp("github.com/acme/*")
        'github\\\\.com/acme/(.*)'
    """
    return re.escape(glob).replace(r'\*', '(.*)')


@dataclass(frozen=True)
class RouteEntry:
    """A module path pattern and the backend that serves matching modules."""
    pattern: str
    backend: RepositoryBackend
    regex: Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        try:
            compiled = re.compile(glob_to_regexp(self.pattern))
        except re.error as e:
            raise ConfigError(f"Malformed module glob: {self.pattern}: {e}") from e
        object.__setattr__(self, 'regex', compiled)

    def matches(self, module_path: str) -> bool:
        return self.regex.fullmatch(module_path) is not None


class PatternRouter:
    """
    Ordered set of routes resolving a module path to one backend.

    Example:
        router = PatternRouter([RouteEntry("github.com/acme/*", repo)])
        backend = router.resolve("github.com/acme/widgets")
    """

    def __init__(self, routes: Iterable[RouteEntry] = ()):
        self._routes: Tuple[RouteEntry, ...] = tuple(routes)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, RepositoryBackend]]) -> 'PatternRouter':
        """Build a router from ``(pattern, backend)`` pairs, keeping their order."""
        return cls(RouteEntry(pattern, backend) for pattern, backend in pairs)

    @property
    def routes(self) -> Tuple[RouteEntry, ...]:
        return self._routes

    @property
    def patterns(self) -> List[str]:
        return [route.pattern for route in self._routes]

    def resolve_entry(self, module_path: str) -> Optional[RouteEntry]:
        """Return the first route whose pattern matches the module path."""
        for route in self._routes:
            if route.matches(module_path):
                return route
        return None

    def resolve(self, module_path: str) -> Optional[RepositoryBackend]:
        """Return the backend owning ``module_path``, or None if unclaimed."""
        route = self.resolve_entry(module_path)
        return route.backend if route else None

    def __iter__(self) -> Iterator[RouteEntry]:
        return iter(self._routes)

    def __len__(self) -> int:
        return len(self._routes)
