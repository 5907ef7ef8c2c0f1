from __future__ import annotations

import json
import tomllib
from json import JSONDecodeError
from pathlib import Path
from typing import Any

from protobuild.errors import PluginConfigurationError
from protobuild.model import (
    BinaryMavenPlugin,
    BinaryPathPlugin,
    BinaryUrlPlugin,
    DependencyResolutionDepth,
    GenerationRequest,
    JvmMavenPlugin,
    Language,
    MavenCoordinate,
)
from protobuild.util import expand_path, normalize_path

_KNOWN_KEYS = {
    "source_roots",
    "import_paths",
    "import_dependencies",
    "source_dependencies",
    "project_dependencies",
    "dependency_resolution_depth",
    "binary_maven_plugins",
    "binary_path_plugins",
    "binary_url_plugins",
    "jvm_maven_plugins",
    "output_directory",
    "languages",
    "lite",
    "fatal_warnings",
    "fail_on_missing_sources",
    "ignore_project_dependencies",
    "register_as_compilation_root",
    "protoc_version",
}


def _require_int(value: Any, *, what: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"'{what}' must be an integer if present")
    return value


def _require_str(value: Any, *, what: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError(f"'{what}' must be a non-empty string")
    return value


def _require_bool(value: Any, *, what: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"'{what}' must be a boolean if present")
    return value


def _str_list(value: Any, *, what: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str) and value:
        return [value]
    if isinstance(value, list) and all(isinstance(x, str) and x for x in value):
        return list(value)
    raise ValueError(f"'{what}' must be a string or list of strings")


def _as_table_list(value: Any, *, what: str) -> list[dict[str, Any]]:
    if value is None:
        return []
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list) and all(isinstance(x, dict) for x in value):
        return value
    raise ValueError(f"'{what}' must be a table or array-of-tables")


def _paths(value: Any, *, what: str, base: Path) -> tuple[Path, ...]:
    out: list[Path] = []
    for s in _str_list(value, what=what):
        p = expand_path(s)
        out.append(p if p.is_absolute() else base / p)
    return tuple(out)


def _coordinates(value: Any, *, what: str, default_type: str = "jar") -> tuple[MavenCoordinate, ...]:
    out: list[MavenCoordinate] = []
    for s in _str_list(value, what=what):
        try:
            out.append(MavenCoordinate.parse(s, default_type=default_type))
        except PluginConfigurationError as e:
            raise ValueError(f"'{what}': {e}") from e
    return tuple(out)


def _plugin_common(t: dict[str, Any], *, what: str, allowed: set[str]) -> dict[str, Any]:
    extra = set(t.keys()) - allowed - {"options", "order", "skip"}
    if extra:
        raise ValueError(f"Unknown key(s) in {what}: {', '.join(sorted(extra))}")
    common: dict[str, Any] = {"options": tuple(_str_list(t.get("options"), what=f"{what}.options"))}
    if "order" in t:
        common["order"] = _require_int(t["order"], what=f"{what}.order")
    if "skip" in t:
        common["skip"] = _require_bool(t["skip"], what=f"{what}.skip")
    return common


def _plugin_coordinate(t: dict[str, Any], *, what: str, default_type: str) -> MavenCoordinate:
    raw = _require_str(t.get("coordinate"), what=f"{what}.coordinate")
    try:
        return MavenCoordinate.parse(raw, default_type=default_type)
    except PluginConfigurationError as e:
        raise ValueError(f"'{what}.coordinate': {e}") from e


def _binary_maven_plugins(value: Any) -> tuple[BinaryMavenPlugin, ...]:
    out: list[BinaryMavenPlugin] = []
    for i, t in enumerate(_as_table_list(value, what="binary_maven_plugins"), start=1):
        what = f"binary_maven_plugins[{i}]"
        common = _plugin_common(t, what=what, allowed={"coordinate"})
        out.append(BinaryMavenPlugin(coordinate=_plugin_coordinate(t, what=what, default_type="exe"), **common))
    return tuple(out)


def _binary_path_plugins(value: Any) -> tuple[BinaryPathPlugin, ...]:
    out: list[BinaryPathPlugin] = []
    for i, t in enumerate(_as_table_list(value, what="binary_path_plugins"), start=1):
        what = f"binary_path_plugins[{i}]"
        common = _plugin_common(t, what=what, allowed={"name", "optional"})
        name = _require_str(t.get("name"), what=f"{what}.name")
        optional = _require_bool(t.get("optional", False), what=f"{what}.optional")
        out.append(BinaryPathPlugin(name=name, optional=optional, **common))
    return tuple(out)


def _binary_url_plugins(value: Any) -> tuple[BinaryUrlPlugin, ...]:
    out: list[BinaryUrlPlugin] = []
    for i, t in enumerate(_as_table_list(value, what="binary_url_plugins"), start=1):
        what = f"binary_url_plugins[{i}]"
        common = _plugin_common(t, what=what, allowed={"url", "optional"})
        url = _require_str(t.get("url"), what=f"{what}.url")
        optional = _require_bool(t.get("optional", False), what=f"{what}.optional")
        out.append(BinaryUrlPlugin(url=url, optional=optional, **common))
    return tuple(out)


def _jvm_maven_plugins(value: Any) -> tuple[JvmMavenPlugin, ...]:
    out: list[JvmMavenPlugin] = []
    for i, t in enumerate(_as_table_list(value, what="jvm_maven_plugins"), start=1):
        what = f"jvm_maven_plugins[{i}]"
        common = _plugin_common(t, what=what, allowed={"coordinate", "main_class"})
        main_class = t.get("main_class")
        if main_class is not None:
            _require_str(main_class, what=f"{what}.main_class")
        out.append(
            JvmMavenPlugin(
                coordinate=_plugin_coordinate(t, what=what, default_type="jar"),
                main_class=main_class,
                **common,
            )
        )
    return tuple(out)


def _languages(value: Any) -> frozenset[Language]:
    if value is None:
        return frozenset()
    by_name = {lang.value: lang for lang in Language}

    def lookup(name: str) -> Language:
        lang = by_name.get(name.lower())
        if lang is None:
            raise ValueError(f"Unknown language {name!r} (known: {', '.join(sorted(by_name))})")
        return lang

    # Either ["java", "python"] or {java = true, python = false}.
    if isinstance(value, dict):
        return frozenset(
            lookup(k) for k, v in value.items() if _require_bool(v, what=f"languages.{k}")
        )
    return frozenset(lookup(n) for n in _str_list(value, what="languages"))


def _depth(value: Any) -> DependencyResolutionDepth:
    if value is None:
        return DependencyResolutionDepth.TRANSITIVE
    s = _require_str(value, what="dependency_resolution_depth").lower()
    try:
        return DependencyResolutionDepth(s)
    except ValueError as e:
        raise ValueError("'dependency_resolution_depth' must be 'direct' or 'transitive'") from e


def request_from_dict(obj: Any, *, base: Path) -> GenerationRequest:
    if not isinstance(obj, dict):
        raise ValueError("Config must be a table/object of generation settings.")

    unknown = set(obj.keys()) - _KNOWN_KEYS
    if unknown:
        raise ValueError(f"Unknown config key(s): {', '.join(sorted(unknown))}")

    output = obj.get("output_directory")
    output_paths = _paths(_require_str(output, what="output_directory"), what="output_directory", base=base)

    flags: dict[str, bool] = {}
    for key, field_name in (
        ("lite", "lite_enabled"),
        ("fatal_warnings", "fatal_warnings"),
        ("fail_on_missing_sources", "fail_on_missing_sources"),
        ("ignore_project_dependencies", "ignore_project_dependencies"),
        ("register_as_compilation_root", "register_as_compilation_root"),
    ):
        if key in obj:
            flags[field_name] = _require_bool(obj[key], what=key)

    protoc_version = "PATH"
    if "protoc_version" in obj:
        protoc_version = _require_str(obj["protoc_version"], what="protoc_version")

    return GenerationRequest(
        output_directory=output_paths[0],
        source_roots=_paths(obj.get("source_roots"), what="source_roots", base=base),
        import_paths=_paths(obj.get("import_paths"), what="import_paths", base=base),
        import_dependencies=_coordinates(obj.get("import_dependencies"), what="import_dependencies"),
        source_dependencies=_coordinates(obj.get("source_dependencies"), what="source_dependencies"),
        project_dependencies=_coordinates(obj.get("project_dependencies"), what="project_dependencies"),
        dependency_resolution_depth=_depth(obj.get("dependency_resolution_depth")),
        binary_maven_plugins=_binary_maven_plugins(obj.get("binary_maven_plugins")),
        binary_path_plugins=_binary_path_plugins(obj.get("binary_path_plugins")),
        binary_url_plugins=_binary_url_plugins(obj.get("binary_url_plugins")),
        jvm_maven_plugins=_jvm_maven_plugins(obj.get("jvm_maven_plugins")),
        enabled_languages=_languages(obj.get("languages")),
        protoc_version=protoc_version,
        **flags,
    )


def _load_json(text: str, path: Path) -> Any:
    try:
        return json.loads(text)
    except JSONDecodeError as e:
        raise ValueError(
            f"Invalid JSON in {path} at line {e.lineno}, column {e.colno}: {e.msg}"
        ) from e


def _load_toml(text: str, path: Path) -> Any:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {path}: {e}") from e


def _load_yaml(text: str, path: Path) -> Any:
    try:
        import yaml  # type: ignore
    except Exception as e:
        raise ValueError(
            "YAML config support requires PyYAML. Install it (e.g. 'python -m pip install pyyaml') "
            f"and retry loading {path}."
        ) from e
    try:
        return yaml.safe_load(text)
    except Exception as e:
        mark = getattr(e, "problem_mark", None)
        if mark is not None and hasattr(mark, "line") and hasattr(mark, "column"):
            line = int(mark.line) + 1
            col = int(mark.column) + 1
            raise ValueError(f"Invalid YAML in {path} at line {line}, column {col}: {e}") from e
        raise ValueError(f"Invalid YAML in {path}: {e}") from e


def load_request_file(path: Path) -> GenerationRequest:
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()

    if suffix == ".json":
        raw = _load_json(text, path)
    elif suffix == ".toml":
        raw = _load_toml(text, path)
    elif suffix in (".yaml", ".yml"):
        raw = _load_yaml(text, path)
    else:
        raise ValueError(
            f"Unsupported config format for {path} (expected .json, .toml, .yaml, .yml)."
        )
    try:
        return request_from_dict(raw, base=normalize_path(path).parent)
    except ValueError as e:
        raise ValueError(f"{path}: {e}") from e
