"""Flatten the dependency forest into a work list and rebuild it afterwards."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping, Sequence
from typing import TypeVar

from dephealth.models.analysis import DependencyAnalysis
from dephealth.models.dependency import Dependency

T = TypeVar("T")


def scoped_key(dependency: Dependency, *, is_monorepo: bool) -> str:
    """``name@version@scope``; scope is empty outside monorepos."""
    scope = (dependency.package_root or "") if is_monorepo else ""
    return f"{dependency.name}@{dependency.version}@{scope}"


def collect_dependencies(
    roots: Iterable[Dependency], *, is_monorepo: bool, include_transitive: bool
) -> list[Dependency]:
    """Depth-first, deduplicated by scoped key, first occurrence order.

    When a key is seen both as a direct and a transitive dependency the
    direct entry is kept; otherwise the first occurrence wins.
    """
    seen: dict[str, Dependency] = {}

    def visit(deps: Iterable[Dependency]) -> None:
        for dep in deps:
            key = scoped_key(dep, is_monorepo=is_monorepo)
            existing = seen.get(key)
            if existing is None or (existing.is_transitive and not dep.is_transitive):
                seen[key] = dep
            if include_transitive and dep.children:
                visit(dep.children)

    visit(roots)
    return list(seen.values())


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def build_tree(
    roots: Iterable[Dependency],
    analyses: Mapping[str, DependencyAnalysis],
    *,
    is_monorepo: bool,
    include_transitive: bool,
) -> list[DependencyAnalysis]:
    """Mirror the input forest with one analysis copy per tree position.

    Internal dependencies and nodes with no analysis are left out.
    """

    def node(dep: Dependency, ancestors: frozenset[str]) -> DependencyAnalysis | None:
        if dep.is_internal:
            return None
        key = scoped_key(dep, is_monorepo=is_monorepo)
        analysis = analyses.get(key)
        if analysis is None or key in ancestors:
            return None

        children: tuple[DependencyAnalysis, ...] = ()
        if include_transitive and dep.children:
            path = ancestors | {key}
            children = tuple(
                child for child in (node(c, path) for c in dep.children) if child is not None
            )
        return dataclasses.replace(analysis, children=children)

    return [a for a in (node(dep, frozenset()) for dep in roots) if a is not None]


def flatten_tree(analyses: Iterable[DependencyAnalysis]) -> list[DependencyAnalysis]:
    """Every node of an analysis forest, parents before children."""
    out: list[DependencyAnalysis] = []
    for a in analyses:
        out.append(a)
        out.extend(flatten_tree(a.children))
    return out
