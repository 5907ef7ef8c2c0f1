from __future__ import annotations

from pathlib import Path

from protobuild.invocation import ArgLineBuilder, source_files
from protobuild.model import Language, ProtoFileListing, ResolvedPlugin

PROTOC = Path("/usr/bin/protoc")
OUT = Path("out")


def _listing(root: str, *files: str) -> ProtoFileListing:
    return ProtoFileListing(root=Path(root), files=tuple(Path(root) / f for f in files))


def test_single_root_single_language():
    listing = _listing("proto", "a.proto")

    args = (
        ArgLineBuilder(PROTOC)
        .import_listings([listing])
        .output(Language.JAVA, OUT)
        .compile(source_files([listing]))
    )

    assert args == (str(PROTOC), "--java_out=out", "-Iproto", str(Path("proto") / "a.proto"))


def test_fatal_warnings_and_lite_outputs_in_language_order():
    args = (
        ArgLineBuilder(PROTOC)
        .fatal_warnings(True)
        .output(Language.PYTHON, OUT, lite=True)
        .output(Language.CPP, OUT, lite=True)
        .compile([])
    )

    assert args == (str(PROTOC), "--fatal_warnings", "--cpp_out=lite:out", "--python_out=lite:out")


def test_import_roots_are_deduplicated_in_order():
    imports = [_listing("/deps", "x.proto"), _listing("/src", "y.proto")]
    sources = [_listing("/src", "y.proto")]

    args = ArgLineBuilder(PROTOC).import_listings(imports).import_listings(sources).compile([])

    assert args == (str(PROTOC), "-I/deps", "-I/src")


def test_plugins_are_sorted_by_order_with_stable_ties():
    plugins = [
        ResolvedPlugin(id="b", path=Path("/p/b"), order=10),
        ResolvedPlugin(id="a", path=Path("/p/a"), options=("x=1", "y"), order=0),
        ResolvedPlugin(id="c", path=Path("/p/c"), order=10),
    ]

    args = ArgLineBuilder(PROTOC).plugins(plugins, OUT).compile([])

    assert args == (
        str(PROTOC),
        "--plugin=protoc-gen-a=/p/a",
        "--a_opt=x=1",
        "--a_opt=y",
        "--a_out=out",
        "--plugin=protoc-gen-b=/p/b",
        "--b_out=out",
        "--plugin=protoc-gen-c=/p/c",
        "--c_out=out",
    )


def test_flags_always_precede_sources():
    listing = _listing("/src", "a.proto", "b.proto")
    builder = (
        ArgLineBuilder(PROTOC)
        .plugins([ResolvedPlugin(id="p", path=Path("/p"))], OUT)
        .output(Language.RUST, OUT)
        .import_listings([listing])
    )

    args = builder.compile(source_files([listing]))

    flags = [i for i, a in enumerate(args[1:]) if a.startswith("-")]
    sources = [i for i, a in enumerate(args[1:]) if a.endswith(".proto")]
    assert max(flags) < min(sources)


def test_sources_are_flattened_and_deduplicated():
    a = _listing("/one", "a.proto", "b.proto")
    b = ProtoFileListing(root=Path("/one"), files=(Path("/one/b.proto"), Path("/one/c.proto")))

    assert source_files([a, b]) == [Path("/one/a.proto"), Path("/one/b.proto"), Path("/one/c.proto")]

    args = ArgLineBuilder(PROTOC).compile([Path("/x.proto"), Path("/x.proto")])
    assert args == (str(PROTOC), "/x.proto")


def test_version_probe():
    assert ArgLineBuilder(PROTOC).fatal_warnings(True).version() == (str(PROTOC), "--version")


def test_build_is_deterministic():
    def build():
        listing = _listing("/src", "a.proto")
        return (
            ArgLineBuilder(PROTOC)
            .import_listings([listing])
            .plugins([ResolvedPlugin(id="p", path=Path("/p"), options=("o",))], OUT)
            .output(Language.JAVA, OUT)
            .compile(source_files([listing]))
        )

    assert build() == build()
