from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from protobuild.artifacts import ArtifactResolver
from protobuild.scratch import ScratchSpace
from protobuild.util import CommandRunner


class SourceRootRegistrar(Protocol):
    def register_source_root(self, path: Path) -> None: ...


class RecordingSourceRootRegistrar:
    """Registrar that simply remembers generated source roots (used by the CLI)."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger
        self.roots: list[Path] = []

    def register_source_root(self, path: Path) -> None:
        if path in self.roots:
            return
        self._logger.info("Registered generated source root %s", path)
        self.roots.append(path)


@dataclass(frozen=True)
class Options:
    dry_run: bool


@dataclass(frozen=True)
class Context:
    logger: logging.Logger
    runner: CommandRunner
    resolver: ArtifactResolver
    scratch: ScratchSpace
    registrar: SourceRootRegistrar
    options: Options


def build_context(
    *,
    resolver: ArtifactResolver,
    scratch: ScratchSpace,
    options: Options,
    logger: logging.Logger,
    registrar: SourceRootRegistrar | None = None,
) -> Context:
    runner = CommandRunner(dry_run=options.dry_run, logger=logger)
    if registrar is None:
        registrar = RecordingSourceRootRegistrar(logger)

    return Context(
        logger=logger,
        runner=runner,
        resolver=resolver,
        scratch=scratch,
        registrar=registrar,
        options=options,
    )
