from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Iterable, Sequence

from protobuild.errors import ResolutionError
from protobuild.model import ProtoFileListing
from protobuild.scratch import ScratchSpace
from protobuild.util import normalize_path

PROTO_SUFFIX = ".proto"
ARCHIVE_SUFFIXES = {".jar", ".zip"}


def _raise(err: OSError) -> None:
    raise err


def _find_proto_files(root: Path) -> tuple[Path, ...]:
    found: list[Path] = []
    # os.walk swallows errors unless onerror re-raises them.
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        dirnames.sort()
        for name in filenames:
            if name.lower().endswith(PROTO_SUFFIX):
                found.append(Path(dirpath) / name)
    found.sort(key=lambda p: str(p))
    return tuple(found)


class ProtoListingCatalog:
    """
    Discovers .proto files under import/source roots.

    Roots may be directories or .jar/.zip archives; archives are extracted
    into the scratch space first.
    """

    def __init__(self, *, scratch: ScratchSpace, logger: logging.Logger) -> None:
        self._scratch = scratch
        self._logger = logger

    def _extract_archive(self, archive: Path) -> Path:
        digest = hashlib.sha256(str(archive).encode("utf-8")).hexdigest()
        archives = self._scratch.directory("archives")
        target = archives / digest
        if target.is_dir():
            return target
        self._logger.debug("Extracting %s to %s", archive, target)
        # Only a fully extracted archive is moved to its final location.
        staging = Path(tempfile.mkdtemp(prefix=f"{digest}-", dir=archives))
        try:
            with zipfile.ZipFile(archive) as zf:
                for member in zf.namelist():
                    if member.lower().endswith(PROTO_SUFFIX):
                        zf.extract(member, staging)
        except zipfile.BadZipFile as e:
            shutil.rmtree(staging, ignore_errors=True)
            raise ResolutionError(f"Failed to read archive {archive}: {e}") from e
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        staging.rename(target)
        return target

    def build_one(self, root: Path) -> ProtoFileListing | None:
        root = normalize_path(root)
        if not root.exists():
            self._logger.debug("Skipping %s as it does not exist", root)
            return None

        if root.is_file():
            if root.suffix.lower() not in ARCHIVE_SUFFIXES:
                self._logger.debug("Skipping %s as it is not a directory or archive", root)
                return None
            root = self._extract_archive(root)

        files = _find_proto_files(root)
        if not files:
            self._logger.debug("No protobuf sources found in %s", root)
            return None
        self._logger.debug("Found %d protobuf source(s) in %s", len(files), root)
        return ProtoFileListing(root=root, files=files)

    def build(self, roots: Iterable[Path]) -> list[ProtoFileListing]:
        listings: list[ProtoFileListing] = []
        for root in roots:
            listing = self.build_one(root)
            if listing is not None:
                listings.append(listing)
        return listings

    @staticmethod
    def merge(*collections: Sequence[ProtoFileListing]) -> list[ProtoFileListing]:
        # Order preserving; the first listing for a given root wins.
        seen: set[Path] = set()
        merged: list[ProtoFileListing] = []
        for collection in collections:
            for listing in collection:
                if listing.root in seen:
                    continue
                seen.add(listing.root)
                merged.append(listing)
        return merged
