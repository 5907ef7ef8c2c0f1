"""
Stable entry points for embedding protobuild in another tool.

Callers should only depend on this module and avoid importing internal
implementation details from the rest of the package.
"""

from __future__ import annotations

from protobuild.artifacts import ArtifactResolver, LocalRepositoryResolver
from protobuild.core import Context, Options, SourceRootRegistrar, build_context
from protobuild.errors import PluginConfigurationError, ProtobuildError, ResolutionError
from protobuild.generator import SourceCodeGenerator
from protobuild.model import (
    BinaryMavenPlugin,
    BinaryPathPlugin,
    BinaryUrlPlugin,
    DependencyResolutionDepth,
    GenerationRequest,
    GenerationResult,
    JvmMavenPlugin,
    Language,
    MavenCoordinate,
    ResolvedPlugin,
)
from protobuild.scratch import ScratchSpace, scratch_space

__all__ = [
    "ArtifactResolver",
    "LocalRepositoryResolver",
    "Context",
    "Options",
    "SourceRootRegistrar",
    "build_context",
    "PluginConfigurationError",
    "ProtobuildError",
    "ResolutionError",
    "SourceCodeGenerator",
    "BinaryMavenPlugin",
    "BinaryPathPlugin",
    "BinaryUrlPlugin",
    "DependencyResolutionDepth",
    "GenerationRequest",
    "GenerationResult",
    "JvmMavenPlugin",
    "Language",
    "MavenCoordinate",
    "ResolvedPlugin",
    "ScratchSpace",
    "scratch_space",
]
