from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Callable, Collection, Sequence

import pytest

from protobuild.core import Context, Options, RecordingSourceRootRegistrar
from protobuild.errors import ResolutionError
from protobuild.model import DependencyResolutionDepth, MavenCoordinate
from protobuild.scratch import ScratchSpace
from protobuild.util import RunResult


class FakeResolver:
    """Maps coordinate strings to pre-baked path lists and records calls."""

    def __init__(self, mapping: dict[str, list[Path]] | None = None) -> None:
        self.mapping = dict(mapping or {})
        self.calls: list[tuple[list[MavenCoordinate], DependencyResolutionDepth, frozenset[str]]] = []

    def resolve(
        self,
        coordinates: Sequence[MavenCoordinate],
        depth: DependencyResolutionDepth,
        allowed_scopes: Collection[str] = frozenset({"compile", "runtime", "system"}),
    ) -> list[Path]:
        self.calls.append((list(coordinates), depth, frozenset(allowed_scopes)))
        out: list[Path] = []
        for c in coordinates:
            key = str(c)
            if key not in self.mapping:
                raise ResolutionError(f"Artifact {c} not found")
            out.extend(self.mapping[key])
        return out


class FakeRunner:
    def __init__(self, returncodes: dict[str, int] | None = None) -> None:
        # Keyed by the second argument, e.g. {"--version": 1}.
        self.returncodes = dict(returncodes or {})
        self.calls: list[list[str]] = []
        self.dry_run = False

    def run(self, args, *, check=False, capture=True, cwd=None, env=None) -> RunResult:
        argv = list(args)
        self.calls.append(argv)
        key = argv[1] if len(argv) > 1 else ""
        code = self.returncodes.get(key, self.returncodes.get("*", 0))
        stdout = "libprotoc 27.0\n" if key == "--version" else ""
        return RunResult(args=argv, returncode=code, stdout=stdout, stderr="")


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("protobuild-tests")


@pytest.fixture
def scratch(tmp_path: Path, logger: logging.Logger) -> ScratchSpace:
    base = tmp_path / "scratch"
    base.mkdir()
    return ScratchSpace(base, logger)


@pytest.fixture
def fake_resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def ctx(logger, fake_runner, fake_resolver, scratch) -> Context:
    return Context(
        logger=logger,
        runner=fake_runner,
        resolver=fake_resolver,
        scratch=scratch,
        registrar=RecordingSourceRootRegistrar(logger),
        options=Options(dry_run=False),
    )


@pytest.fixture
def make_jar(tmp_path: Path) -> Callable[..., Path]:
    def _make(
        name: str,
        *,
        main_class: str | None = None,
        manifest: bool = True,
        module: bool = False,
        extra: dict[str, str] | None = None,
    ) -> Path:
        path = tmp_path / "jars" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w") as zf:
            if manifest:
                lines = ["Manifest-Version: 1.0"]
                if main_class:
                    lines.append(f"Main-Class: {main_class}")
                zf.writestr("META-INF/MANIFEST.MF", "\r\n".join(lines) + "\r\n\r\n")
            if module:
                zf.writestr("module-info.class", b"\xca\xfe\xba\xbe")
            for member, content in (extra or {}).items():
                zf.writestr(member, content)
        return path

    return _make


@pytest.fixture
def write_protos(tmp_path: Path) -> Callable[..., Path]:
    def _write(root_name: str, *rel_paths: str) -> Path:
        root = tmp_path / root_name
        root.mkdir(parents=True, exist_ok=True)
        for rel in rel_paths:
            p = root / rel
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_text('syntax = "proto3";\n', encoding="utf-8")
        return root

    return _write
