"""Flattening of the area-path classification tree into report rows."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from ..models.records import ClassificationNode


@dataclass(frozen=True)
class AreaPathRow:
    project_url: str
    area_path: str
    name: str


def rewrite_area_path(path: str, project_name: str) -> str:
    """Make an area path project-relative.

    ``\\<project>\\Area\\Team`` becomes ``<project>\\Team``. Applying the
    rewrite to an already rewritten path changes nothing.
    """
    return path.replace(f"\\{project_name}\\Area", project_name)


def _walk(node: ClassificationNode, project_url: str, project_name: str) -> Iterator[AreaPathRow]:
    for child in node.children:
        yield AreaPathRow(project_url, rewrite_area_path(child.path, project_name), child.name)
        if child.has_children:
            yield from _walk(child, project_url, project_name)


def flatten_area_paths(
    root: ClassificationNode, project_url: str, project_name: str
) -> Iterator[AreaPathRow]:
    """Yield one row for the root, then one row per descendant in pre-order.

    Intermediate areas get a row of their own before their children, which
    are visited depth-first in input order.
    """
    yield AreaPathRow(project_url, rewrite_area_path(root.path, project_name), root.name)
    yield from _walk(root, project_url, project_name)
