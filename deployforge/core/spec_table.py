"""Artifact spec table with deterministic dependency ordering.

The table enforces:
- Every artifact name resolves to exactly one ``ArtifactSpec``.
- ``base_deps`` and ``base_libs`` form a DAG; a cycle is reported by name.
- Deployment order is a depth-first topological sort: dependencies come
  before dependents, and independent artifacts keep the order in which
  they were declared, so output is reproducible across runs.
"""

from __future__ import annotations

import json
import tomllib
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from deployforge.core.errors import CyclicDependency, UnknownArtifact
from deployforge.models.artifacts import ArtifactSpec

_DEFAULT_SECTION = "default"

_VISITING = 1
_DONE = 2


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge mappings recursively; lists and scalars in ``override`` win."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(dict(merged[key]), value)
        else:
            merged[key] = value
    return merged


def network_sections(network: str | None) -> list[str]:
    """Override sections applied for a network, lowest precedence first.

    ``"polygon:amoy"`` yields ``["default", "polygon", "polygon:amoy"]``.
    """
    sections = [_DEFAULT_SECTION]
    if not network:
        return sections
    network = network.lower()
    if ":" in network:
        sections.append(network.split(":", 1)[0])
    sections.append(network)
    return sections


class ArtifactSpecTable:
    """Static, read-only table of deployable artifacts keyed by name.

    Parameters
    ----------
    specs:
        Artifact declarations, in declaration order.
    implicit_libraries:
        When True, a name that is only ever referenced as a dependency
        (typically a library) resolves to a bare ``ArtifactSpec`` instead of
        raising ``UnknownArtifact``.
    """

    def __init__(
        self,
        specs: Iterable[ArtifactSpec],
        *,
        implicit_libraries: bool = True,
    ) -> None:
        self._specs: dict[str, ArtifactSpec] = {}
        for spec in specs:
            if spec.name in self._specs:
                raise ValueError(f"Artifact '{spec.name}' declared twice")
            self._specs[spec.name] = spec

        # Names referenced as dependencies but never declared, first-seen order
        self._implicit: dict[str, ArtifactSpec] = {}
        if implicit_libraries:
            for spec in self._specs.values():
                for dep in spec.dependencies:
                    if dep not in self._specs and dep not in self._implicit:
                        self._implicit[dep] = ArtifactSpec(name=dep)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        network: str | None = None,
        *,
        implicit_libraries: bool = True,
    ) -> ArtifactSpecTable:
        """Build a table from ``{section: {name: fields}}`` data.

        Sections are merged in ``network_sections(network)`` order.  Data
        without a ``default`` section is treated as a single default section.
        """
        if _DEFAULT_SECTION not in data:
            data = {_DEFAULT_SECTION: data}

        merged: dict[str, dict[str, Any]] = {}
        for section in network_sections(network):
            for name, fields in (data.get(section) or {}).items():
                merged[name] = _deep_merge(merged.get(name, {}), fields or {})

        specs = [ArtifactSpec(name=name, **fields) for name, fields in merged.items()]
        return cls(specs, implicit_libraries=implicit_libraries)

    @classmethod
    def from_file(
        cls,
        path: Path,
        network: str | None = None,
        *,
        implicit_libraries: bool = True,
    ) -> ArtifactSpecTable:
        """Load a JSON or TOML spec table file."""
        path = Path(path)
        raw = path.read_bytes()
        if path.suffix == ".toml":
            data = tomllib.loads(raw.decode("utf-8"))
        else:
            data = json.loads(raw)
        return cls.from_mapping(data, network, implicit_libraries=implicit_libraries)

    # ------------------------------------------------------------------
    # Query methods
    # ------------------------------------------------------------------

    @property
    def names(self) -> list[str]:
        """Declared artifact names in declaration order."""
        return list(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._specs or name in self._implicit

    def __len__(self) -> int:
        return len(self._specs)

    def resolve(self, name: str) -> ArtifactSpec:
        """Return the spec for ``name`` or raise ``UnknownArtifact``."""
        spec = self._specs.get(name) or self._implicit.get(name)
        if spec is None:
            raise UnknownArtifact(name)
        return spec

    def _declaration_index(self, name: str) -> int:
        if name in self._specs:
            return list(self._specs).index(name)
        return len(self._specs) + list(self._implicit).index(name)

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def topological_order(self, names: Iterable[str] | None = None) -> list[str]:
        """Return ``names`` plus their transitive dependencies, dependencies first.

        Roots are visited in declaration order, each artifact's dependencies
        in the order they are listed (``base_deps`` then ``base_libs``).
        Raises ``CyclicDependency`` with the cycle's members, or
        ``UnknownArtifact`` for an undeclared name.
        """
        roots = list(self._specs) if names is None else list(dict.fromkeys(names))
        for name in roots:
            self.resolve(name)
        roots.sort(key=self._declaration_index)

        order: list[str] = []
        marks: dict[str, int] = {}
        path: list[str] = []

        def visit(name: str) -> None:
            mark = marks.get(name)
            if mark == _DONE:
                return
            if mark == _VISITING:
                raise CyclicDependency([*path[path.index(name):], name])
            marks[name] = _VISITING
            path.append(name)
            for dep in self.resolve(name).dependencies:
                visit(dep)
            path.pop()
            marks[name] = _DONE
            order.append(name)

        for root in roots:
            visit(root)
        return order

    def validate(self) -> list[str]:
        """Check the whole table is acyclic; returns the full deployment order."""
        return self.topological_order()

    def dependents_of(self, name: str) -> list[str]:
        """Return every artifact that depends on ``name``, transitively."""
        result: list[str] = []
        frontier = [name]
        while frontier:
            current = frontier.pop(0)
            for candidate in self._specs.values():
                if current in candidate.dependencies and candidate.name not in result:
                    result.append(candidate.name)
                    frontier.append(candidate.name)
        return result
