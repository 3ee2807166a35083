"""Repository selection through ordered regular-expression filters."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..models.records import Repository

logger = logging.getLogger(__name__)


@dataclass
class RepositoryFilterSpec:
    """Ordered repository name patterns and the mode they are applied in.

    Patterns are matched case-insensitively with ``re.search``. The first
    pattern that matches a repository decides its fate: dropped when
    ``exclude`` is set, kept otherwise. A repository no pattern matches is
    kept in exclude mode and dropped in include mode, so an empty pattern
    list matches nothing.
    """

    patterns: list[str] = field(default_factory=list)
    exclude: bool = False

    @classmethod
    def parse(cls, value: str | None, exclude: bool = False) -> RepositoryFilterSpec | None:
        """Build a filter from a comma-separated pattern string.

        Returns None when no filter was given at all; blank entries are
        dropped, which can leave an empty (match-nothing) pattern list.
        """
        if value is None:
            return None
        patterns = [pattern.strip() for pattern in value.split(",") if pattern.strip()]
        return cls(patterns=patterns, exclude=exclude)

    def compile(self) -> list[re.Pattern[str]]:
        """Compile the patterns, raising ``re.error`` on the first invalid one."""
        return [re.compile(pattern, re.IGNORECASE) for pattern in self.patterns]


def _first_match(name: str, compiled: list[re.Pattern[str]]) -> re.Pattern[str] | None:
    for pattern in compiled:
        if pattern.search(name):
            return pattern
    return None


def filter_repositories(
    repositories: Iterable[Repository], spec: RepositoryFilterSpec | None = None
) -> list[Repository]:
    """Select the repositories to analyze.

    Args:
        repositories: Repositories returned for a project, in any order.
        spec: Filter to apply, or None to keep every repository.

    Returns:
        The selected repositories sorted by name.
    """
    ordered = sorted(repositories, key=lambda repo: repo.name.lower())
    if spec is None:
        return ordered

    compiled = spec.compile()
    selected = []
    for repository in ordered:
        match = _first_match(repository.name, compiled)
        if match is None:
            keep = spec.exclude
            logger.debug(
                f"{'Keeping' if keep else 'Removing'} {repository.name}: no filter matched"
            )
        else:
            keep = not spec.exclude
            logger.debug(
                f"{'Keeping' if keep else 'Removing'} {repository.name} per filter: {match.pattern}"
            )

        if keep:
            selected.append(repository)

    return selected
