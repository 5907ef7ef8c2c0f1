from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Literal, Union

from protobuild.errors import PluginConfigurationError


@dataclass(frozen=True)
class MavenCoordinate:
    group_id: str
    artifact_id: str
    version: str
    type: str = "jar"
    classifier: str | None = None

    @classmethod
    def parse(cls, s: str, *, default_type: str = "jar") -> "MavenCoordinate":
        parts = s.strip().split(":")
        if len(parts) < 3 or len(parts) > 5 or not all(parts):
            raise PluginConfigurationError(
                f"Invalid artifact coordinate {s!r} "
                "(expected group:artifact:version[:type[:classifier]])"
            )
        group_id, artifact_id, version = parts[:3]
        type_ = parts[3] if len(parts) > 3 else default_type
        classifier = parts[4] if len(parts) > 4 else None
        return cls(group_id, artifact_id, version, type_, classifier)

    def __str__(self) -> str:
        s = f"{self.group_id}:{self.artifact_id}:{self.version}:{self.type}"
        if self.classifier:
            s += f":{self.classifier}"
        return s


class DependencyResolutionDepth(Enum):
    DIRECT = "direct"
    TRANSITIVE = "transitive"


class Language(Enum):
    # Declaration order is the order output flags are emitted in.
    CPP = "cpp"
    CSHARP = "csharp"
    JAVA = "java"
    KOTLIN = "kotlin"
    OBJC = "objc"
    PHP = "php"
    PYI = "pyi"
    PYTHON = "python"
    RUBY = "ruby"
    RUST = "rust"

    @property
    def out_flag(self) -> str:
        return f"--{self.value}_out"


# Plugin descriptors. Each variant carries a literal `kind` tag; resolution
# dispatches on the tag (see protobuild.plugins.catalog).


@dataclass(frozen=True)
class BinaryMavenPlugin:
    coordinate: MavenCoordinate
    options: tuple[str, ...] = ()
    order: int = 0
    skip: bool = False
    kind: Literal["binary-maven"] = "binary-maven"


@dataclass(frozen=True)
class BinaryPathPlugin:
    name: str
    options: tuple[str, ...] = ()
    order: int = 0
    skip: bool = False
    optional: bool = False
    kind: Literal["binary-path"] = "binary-path"


@dataclass(frozen=True)
class BinaryUrlPlugin:
    url: str
    options: tuple[str, ...] = ()
    order: int = 0
    skip: bool = False
    optional: bool = False
    kind: Literal["binary-url"] = "binary-url"


@dataclass(frozen=True)
class JvmMavenPlugin:
    coordinate: MavenCoordinate
    main_class: str | None = None
    options: tuple[str, ...] = ()
    order: int = 0
    skip: bool = False
    kind: Literal["jvm-maven"] = "jvm-maven"


PluginDescriptor = Union[BinaryMavenPlugin, BinaryPathPlugin, BinaryUrlPlugin, JvmMavenPlugin]


def descriptor_id(descriptor: PluginDescriptor) -> str:
    """
    Stable identifier derived from the full descriptor content.

    Identical descriptors always hash to the same id; the canonical form is
    sorted-key JSON so field declaration order never matters.
    """
    canonical = json.dumps(asdict(descriptor), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ResolvedPlugin:
    id: str
    path: Path
    options: tuple[str, ...] = ()
    order: int = 0


@dataclass(frozen=True)
class ProtoFileListing:
    root: Path
    files: tuple[Path, ...]


@dataclass(frozen=True)
class GenerationRequest:
    output_directory: Path
    source_roots: tuple[Path, ...] = ()
    import_paths: tuple[Path, ...] = ()
    import_dependencies: tuple[MavenCoordinate, ...] = ()
    source_dependencies: tuple[MavenCoordinate, ...] = ()
    project_dependencies: tuple[MavenCoordinate, ...] = ()
    dependency_resolution_depth: DependencyResolutionDepth = DependencyResolutionDepth.TRANSITIVE
    binary_maven_plugins: tuple[BinaryMavenPlugin, ...] = ()
    binary_path_plugins: tuple[BinaryPathPlugin, ...] = ()
    binary_url_plugins: tuple[BinaryUrlPlugin, ...] = ()
    jvm_maven_plugins: tuple[JvmMavenPlugin, ...] = ()
    enabled_languages: frozenset[Language] = field(default_factory=frozenset)
    lite_enabled: bool = False
    fatal_warnings: bool = False
    fail_on_missing_sources: bool = True
    ignore_project_dependencies: bool = False
    register_as_compilation_root: bool = True
    protoc_version: str = "PATH"


class GenerationResult(Enum):
    SUCCEEDED = "succeeded"
    NOTHING_TO_DO = "nothing-to-do"
    NO_SOURCES = "no-sources"
    PROTOC_UNAVAILABLE = "protoc-unavailable"
    PROTOC_FAILED = "protoc-failed"

    @property
    def ok(self) -> bool:
        return self in (GenerationResult.SUCCEEDED, GenerationResult.NOTHING_TO_DO)
