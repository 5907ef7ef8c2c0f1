from __future__ import annotations

import os
import platform
import shlex
import stat
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Sequence


def expand_path(s: str) -> Path:
    # Expand ~ and $VARS
    return Path(os.path.expandvars(os.path.expanduser(s)))


def normalize_path(p: Path) -> Path:
    # Absolute and normalized, but symlinks are left alone.
    return Path(os.path.normpath(os.path.abspath(str(p))))


def sh_join(args: Sequence[str]) -> str:
    return shlex.join(list(args))


def is_windows() -> bool:
    return os.name == "nt"


def make_executable(p: Path) -> None:
    if is_windows():
        return
    mode = p.stat().st_mode
    p.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


_OS_NAMES = {
    "linux": "linux",
    "darwin": "osx",
    "windows": "windows",
    "freebsd": "freebsd",
}

_ARCH_NAMES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch_64",
    "arm64": "aarch_64",
    "ppc64le": "ppcle_64",
    "s390x": "s390_64",
    "i386": "x86_32",
    "i686": "x86_32",
    "x86": "x86_32",
}


def platform_classifier() -> str:
    """
    Classifier used by protoc and most native protoc plugins on Maven Central,
    e.g. "linux-x86_64" or "osx-aarch_64".
    """
    system = platform.system().lower()
    machine = platform.machine().lower()
    os_name = _OS_NAMES.get(system)
    arch = _ARCH_NAMES.get(machine)
    if os_name is None or arch is None:
        raise RuntimeError(f"Unsupported platform for native artifacts: {system}/{machine}")
    return f"{os_name}-{arch}"


@dataclass(frozen=True)
class RunResult:
    args: list[str]
    returncode: int
    stdout: str
    stderr: str


class CommandRunner:
    def __init__(self, *, dry_run: bool, logger) -> None:
        self._dry_run = dry_run
        self._logger = logger

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def run(
        self,
        args: Iterable[str],
        *,
        check: bool = False,
        capture: bool = True,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> RunResult:
        argv = list(args)

        # Keep low-level process logs at DEBUG so high-level output stays readable.
        self._logger.debug("RUN %s", sh_join(argv))
        if self._dry_run:
            return RunResult(args=argv, returncode=0, stdout="", stderr="")

        merged_env = None
        if env is not None:
            merged_env = dict(os.environ)
            merged_env.update(dict(env))

        cp = subprocess.run(
            argv,
            text=True,
            capture_output=capture,
            check=False,  # we handle below to include logs
            cwd=str(cwd) if cwd is not None else None,
            env=merged_env,
        )
        if check and cp.returncode != 0:
            raise RuntimeError(
                f"Command failed ({cp.returncode}): {sh_join(argv)}\n{cp.stderr}"
            )
        return RunResult(
            args=argv,
            returncode=cp.returncode,
            stdout=cp.stdout or "",
            stderr=cp.stderr or "",
        )
