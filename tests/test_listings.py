from __future__ import annotations

import os
import zipfile
from pathlib import Path

import pytest

from protobuild.errors import ResolutionError
from protobuild.listings import ProtoListingCatalog
from protobuild.model import ProtoFileListing


def test_build_lists_proto_files_sorted(scratch, logger, write_protos):
    root = write_protos("proto", "b.proto", "a.proto", "nested/c.proto", "README.md")
    (root / "README.md").write_text("hi", encoding="utf-8")

    listings = ProtoListingCatalog(scratch=scratch, logger=logger).build([root])

    assert len(listings) == 1
    assert listings[0].root == root
    assert listings[0].files == (root / "a.proto", root / "b.proto", root / "nested" / "c.proto")
    assert all(root in f.parents for f in listings[0].files)


def test_build_skips_missing_and_empty_roots(scratch, logger, tmp_path, write_protos):
    present = write_protos("present", "x.proto")
    empty = tmp_path / "empty"
    empty.mkdir()

    listings = ProtoListingCatalog(scratch=scratch, logger=logger).build(
        [tmp_path / "does-not-exist", empty, present]
    )

    assert [lst.root for lst in listings] == [present]


def test_build_normalizes_relative_roots(scratch, logger, write_protos, monkeypatch, tmp_path):
    write_protos("proto", "a.proto")
    monkeypatch.chdir(tmp_path)

    listings = ProtoListingCatalog(scratch=scratch, logger=logger).build([Path("proto/../proto")])

    assert listings[0].root == Path.cwd() / "proto"
    assert listings[0].root.is_absolute()


@pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="permissions are not enforced")
def test_build_fails_on_unreadable_root(scratch, logger, write_protos):
    root = write_protos("locked", "a.proto")
    root.chmod(0)
    try:
        with pytest.raises(PermissionError):
            ProtoListingCatalog(scratch=scratch, logger=logger).build([root])
    finally:
        root.chmod(0o755)


def test_build_extracts_archives(scratch, logger, tmp_path):
    archive = tmp_path / "deps.jar"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("google/type/date.proto", 'syntax = "proto3";\n')
        zf.writestr("com/example/Foo.class", b"\x00")

    listings = ProtoListingCatalog(scratch=scratch, logger=logger).build([archive])

    assert len(listings) == 1
    assert scratch.base in listings[0].root.parents
    assert [f.relative_to(listings[0].root).as_posix() for f in listings[0].files] == ["google/type/date.proto"]
    assert not (listings[0].root / "com").exists()


def test_corrupt_archive_fails_every_time_and_leaves_nothing_behind(scratch, logger, tmp_path):
    archive = tmp_path / "broken.jar"
    archive.write_bytes(b"not a zip file")
    catalog = ProtoListingCatalog(scratch=scratch, logger=logger)

    for _ in range(2):
        with pytest.raises(ResolutionError, match="broken.jar"):
            catalog.build([archive])

    assert list((scratch.base / "archives").iterdir()) == []


def test_archive_is_extracted_once_per_run(scratch, logger, tmp_path):
    archive = tmp_path / "deps.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("a.proto", "syntax = \"proto3\";\n")
    catalog = ProtoListingCatalog(scratch=scratch, logger=logger)

    assert catalog.build([archive]) == catalog.build([archive])
    assert len(list((scratch.base / "archives").iterdir())) == 1


def test_merge_preserves_order_and_drops_repeated_roots():
    a = ProtoFileListing(root=Path("/a"), files=(Path("/a/x.proto"),))
    b = ProtoFileListing(root=Path("/b"), files=(Path("/b/y.proto"),))
    c = ProtoFileListing(root=Path("/c"), files=(Path("/c/z.proto"),))
    a_again = ProtoFileListing(root=Path("/a"), files=(Path("/a/other.proto"),))

    merged = ProtoListingCatalog.merge([a, b], [a_again, c], [])

    assert merged == [a, b, c]


def test_merge_of_nothing_is_empty():
    assert ProtoListingCatalog.merge() == []
