from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Collection, Protocol, Sequence

from protobuild.errors import ResolutionError
from protobuild.model import DependencyResolutionDepth, MavenCoordinate

DEFAULT_SCOPES = frozenset({"compile", "runtime", "system"})

# Scopes that never propagate past the first hop, whatever the caller allows.
_NON_TRANSITIVE_SCOPES = frozenset({"test", "provided"})

_PROPERTY_RE = re.compile(r"\$\{([^}]+)\}")


class ArtifactResolver(Protocol):
    """
    Resolves coordinates to local files.

    The first path returned for a single coordinate is always that
    coordinate's own artifact.
    """

    def resolve(
        self,
        coordinates: Sequence[MavenCoordinate],
        depth: DependencyResolutionDepth,
        allowed_scopes: Collection[str] = DEFAULT_SCOPES,
    ) -> list[Path]: ...


@dataclass(frozen=True)
class _PomDependency:
    coordinate: MavenCoordinate
    scope: str
    optional: bool


def _local_name(tag: str) -> str:
    # Strip the "{http://maven.apache.org/POM/4.0.0}" namespace prefix.
    return tag.rsplit("}", 1)[-1]


def _child(el: ET.Element, name: str) -> ET.Element | None:
    for c in el:
        if _local_name(c.tag) == name:
            return c
    return None


def _child_text(el: ET.Element, name: str) -> str | None:
    c = _child(el, name)
    if c is None or c.text is None:
        return None
    return c.text.strip()


def parse_pom_dependencies(pom: Path, owner: MavenCoordinate) -> list[_PomDependency]:
    """
    Read the <dependencies> of a POM. Parent POMs and dependencyManagement
    are not consulted, so dependencies without an explicit version are
    skipped.
    """
    root = ET.parse(pom).getroot()

    props: dict[str, str] = {
        "project.version": owner.version,
        "project.groupId": owner.group_id,
        "project.artifactId": owner.artifact_id,
        "version": owner.version,
    }
    props_el = _child(root, "properties")
    if props_el is not None:
        for p in props_el:
            if p.text is not None:
                props[_local_name(p.tag)] = p.text.strip()

    def interpolate(s: str | None) -> str | None:
        if s is None:
            return None
        return _PROPERTY_RE.sub(lambda m: props.get(m.group(1), m.group(0)), s)

    out: list[_PomDependency] = []
    deps_el = _child(root, "dependencies")
    if deps_el is None:
        return out
    for dep in deps_el:
        if _local_name(dep.tag) != "dependency":
            continue
        group_id = interpolate(_child_text(dep, "groupId"))
        artifact_id = interpolate(_child_text(dep, "artifactId"))
        version = interpolate(_child_text(dep, "version"))
        if not group_id or not artifact_id or not version or "${" in version:
            continue
        type_ = interpolate(_child_text(dep, "type")) or "jar"
        classifier = interpolate(_child_text(dep, "classifier"))
        scope = interpolate(_child_text(dep, "scope")) or "compile"
        optional = (interpolate(_child_text(dep, "optional")) or "false").lower() == "true"
        out.append(
            _PomDependency(
                coordinate=MavenCoordinate(group_id, artifact_id, version, type_, classifier),
                scope=scope,
                optional=optional,
            )
        )
    return out


class LocalRepositoryResolver:
    """
    Artifact resolver over a Maven-layout directory (e.g. ~/.m2/repository).

    Never downloads anything: artifacts must already be present locally.
    """

    def __init__(self, root: Path, logger: logging.Logger) -> None:
        self._root = root
        self._logger = logger

    def artifact_path(self, c: MavenCoordinate) -> Path:
        name = f"{c.artifact_id}-{c.version}"
        if c.classifier:
            name += f"-{c.classifier}"
        name += f".{c.type}"
        return self._version_dir(c) / name

    def pom_path(self, c: MavenCoordinate) -> Path:
        return self._version_dir(c) / f"{c.artifact_id}-{c.version}.pom"

    def _version_dir(self, c: MavenCoordinate) -> Path:
        return self._root.joinpath(*c.group_id.split("."), c.artifact_id, c.version)

    def _locate(self, c: MavenCoordinate) -> Path:
        path = self.artifact_path(c)
        if not path.exists():
            raise ResolutionError(f"Artifact {c} not found in local repository {self._root} (looked for {path})")
        self._logger.debug("Resolved %s to %s", c, path)
        return path

    def _dependencies_of(self, c: MavenCoordinate) -> list[_PomDependency]:
        pom = self.pom_path(c)
        if not pom.is_file():
            self._logger.debug("No POM for %s at %s; assuming no dependencies", c, pom)
            return []
        try:
            return parse_pom_dependencies(pom, c)
        except ET.ParseError as e:
            raise ResolutionError(f"Invalid POM for {c} at {pom}: {e}") from e

    def resolve(
        self,
        coordinates: Sequence[MavenCoordinate],
        depth: DependencyResolutionDepth,
        allowed_scopes: Collection[str] = DEFAULT_SCOPES,
    ) -> list[Path]:
        paths: list[Path] = []
        seen: set[tuple[str, str, str | None, str]] = set()

        def key(c: MavenCoordinate) -> tuple[str, str, str | None, str]:
            return (c.group_id, c.artifact_id, c.classifier, c.type)

        queue: deque[MavenCoordinate] = deque()
        for c in coordinates:
            if key(c) in seen:
                continue
            seen.add(key(c))
            paths.append(self._locate(c))
            queue.append(c)

        if depth is DependencyResolutionDepth.DIRECT:
            return paths

        # Breadth-first: nearest declaration of a group:artifact wins.
        while queue:
            current = queue.popleft()
            for dep in self._dependencies_of(current):
                if dep.optional or dep.scope in _NON_TRANSITIVE_SCOPES:
                    continue
                if dep.scope not in allowed_scopes:
                    continue
                if key(dep.coordinate) in seen:
                    continue
                seen.add(key(dep.coordinate))
                paths.append(self._locate(dep.coordinate))
                queue.append(dep.coordinate)
        return paths
