from __future__ import annotations

import pytest

from protobuild.errors import PluginConfigurationError
from protobuild.model import (
    BinaryPathPlugin,
    GenerationResult,
    JvmMavenPlugin,
    MavenCoordinate,
    descriptor_id,
)


def test_coordinate_parse_and_format():
    c = MavenCoordinate.parse("io.grpc:protoc-gen-grpc-java:1.64.0:exe:osx-aarch_64")

    assert (c.group_id, c.artifact_id, c.version, c.type, c.classifier) == (
        "io.grpc",
        "protoc-gen-grpc-java",
        "1.64.0",
        "exe",
        "osx-aarch_64",
    )
    assert str(c) == "io.grpc:protoc-gen-grpc-java:1.64.0:exe:osx-aarch_64"
    assert str(MavenCoordinate.parse("a:b:1")) == "a:b:1:jar"
    assert MavenCoordinate.parse("a:b:1", default_type="exe").type == "exe"


@pytest.mark.parametrize("raw", ["a:b", "a::1", "a:b:1:jar:c:extra", ""])
def test_coordinate_parse_rejects_malformed(raw):
    with pytest.raises(PluginConfigurationError):
        MavenCoordinate.parse(raw)


def test_descriptor_id_depends_only_on_content():
    coord = MavenCoordinate.parse("com.example:gen:1.0")
    a = JvmMavenPlugin(coordinate=coord, options=("x",))
    b = JvmMavenPlugin(coordinate=MavenCoordinate.parse("com.example:gen:1.0"), options=("x",))

    assert descriptor_id(a) == descriptor_id(b)
    assert descriptor_id(a) != descriptor_id(JvmMavenPlugin(coordinate=coord, options=("y",)))
    assert descriptor_id(BinaryPathPlugin(name="p")) != descriptor_id(BinaryPathPlugin(name="p", order=1))
    assert len(descriptor_id(a)) == 64


def test_generation_result_ok():
    assert GenerationResult.SUCCEEDED.ok
    assert GenerationResult.NOTHING_TO_DO.ok
    assert not GenerationResult.NO_SOURCES.ok
    assert not GenerationResult.PROTOC_UNAVAILABLE.ok
    assert not GenerationResult.PROTOC_FAILED.ok
