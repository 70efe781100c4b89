"""Dependency forest supplied by the manifest scanner."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Dependency:
    """A single node of the dependency forest.

    Constructed by the scanner and never mutated by the pipeline.
    ``package_root`` is the owning sub-project path in a monorepo.
    """

    name: str
    version_constraint: str
    resolved_version: str | None = None
    is_dev: bool = False
    is_internal: bool = False
    is_transitive: bool = False
    package_root: str | None = None
    children: tuple[Dependency, ...] = ()

    @property
    def version(self) -> str:
        """Installed version when known, otherwise the declared constraint."""
        return self.resolved_version or self.version_constraint


@dataclass(frozen=True)
class DependencyFile:
    """A manifest the scanner read (package.json, pyproject.toml, ...)."""

    path: str
    package_root: str | None = None

    @property
    def scope(self) -> str:
        return self.package_root if self.package_root is not None else self.path


@dataclass
class ProjectInfo:
    dependencies: list[Dependency]
    dependency_files: list[DependencyFile] = field(default_factory=list)
    license: str | None = None

    @property
    def is_monorepo(self) -> bool:
        return len({f.scope for f in self.dependency_files}) > 1

    @property
    def manifest_count(self) -> int:
        return len({f.scope for f in self.dependency_files})
