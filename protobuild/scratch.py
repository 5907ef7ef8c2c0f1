from __future__ import annotations

import logging
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


class ScratchSpace:
    """
    Run-scoped directory tree for generated launchers, downloads and
    extracted archives. Nothing in here is a stable contract across runs.
    """

    def __init__(self, base: Path, logger: logging.Logger) -> None:
        self._base = base
        self._logger = logger

    @property
    def base(self) -> Path:
        return self._base

    def directory(self, *parts: str) -> Path:
        d = self._base.joinpath(*parts)
        d.mkdir(parents=True, exist_ok=True)
        self._logger.debug("Using scratch directory %s", d)
        return d


@contextmanager
def scratch_space(logger: logging.Logger, *, base: Path | None = None) -> Iterator[ScratchSpace]:
    # An explicit base is kept after the run for inspection.
    if base is not None:
        base.mkdir(parents=True, exist_ok=True)
        yield ScratchSpace(base, logger)
        return
    with tempfile.TemporaryDirectory(prefix="protobuild-") as tmp:
        yield ScratchSpace(Path(tmp), logger)
