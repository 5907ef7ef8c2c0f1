from __future__ import annotations

import logging
import shutil
from pathlib import Path

from protobuild.artifacts import ArtifactResolver
from protobuild.errors import ResolutionError
from protobuild.model import DependencyResolutionDepth, MavenCoordinate
from protobuild.util import make_executable, platform_classifier

PROTOC_GROUP_ID = "com.google.protobuf"
PROTOC_ARTIFACT_ID = "protoc"


class ProtocResolver:
    """
    Locates the protoc executable.

    `version` is either "PATH" (use protoc from $PATH), a path to an existing
    file, or a release version fetched from the artifact resolver.
    """

    def __init__(self, *, resolver: ArtifactResolver, logger: logging.Logger) -> None:
        self._resolver = resolver
        self._logger = logger

    def resolve(self, version: str) -> Path:
        if version.upper() == "PATH":
            found = shutil.which("protoc")
            if found is None:
                raise ResolutionError("No protoc executable was found on $PATH")
            self._logger.debug("Using protoc from $PATH at %s", found)
            return Path(found)

        as_path = Path(version)
        if as_path.is_file():
            self._logger.debug("Using protoc at %s", as_path)
            return as_path

        coordinate = MavenCoordinate(
            PROTOC_GROUP_ID,
            PROTOC_ARTIFACT_ID,
            version,
            "exe",
            platform_classifier(),
        )
        self._logger.info("Resolving protoc %s", coordinate)
        paths = self._resolver.resolve([coordinate], DependencyResolutionDepth.DIRECT)
        if not paths:
            raise ResolutionError(f"Resolving {coordinate} produced no artifacts")
        path = paths[0]
        try:
            make_executable(path)
        except OSError as e:
            raise ResolutionError(f"Setting executable bit for {path} failed") from e
        return path
