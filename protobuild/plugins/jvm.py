"""
Wraps pure-Java protoc plugins in a launcher script so protoc can spawn them
exactly like a native executable.

Per plugin the scratch space gets a directory named after the plugin id,
holding:

    args.txt     arguments for `java @args.txt` (class path, main class, ...)
    invoke.sh    POSIX launcher, or
    invoke.bat   Windows launcher

The launcher only passes the argument file to java; all class path and module
path entries live in args.txt.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import zipfile
from pathlib import Path
from typing import Iterable, Sequence

from protobuild.artifacts import ArtifactResolver
from protobuild.errors import PluginConfigurationError, ResolutionError
from protobuild.model import DependencyResolutionDepth, JvmMavenPlugin, ResolvedPlugin, descriptor_id
from protobuild.plugins.argfile import ArgumentFileBuilder
from protobuild.plugins.quoting import batch_quote, posix_quote
from protobuild.scratch import ScratchSpace
from protobuild.util import is_windows, make_executable, normalize_path

ALLOWED_SCOPES = frozenset({"compile", "runtime", "system"})

# JVM tuning flags for short-lived processes.
STARTUP_FLAGS = ("-Xshare:auto", "-XX:+TieredCompilation", "-XX:TieredStopAtLevel=1")

MANIFEST_PATH = "META-INF/MANIFEST.MF"

_VERSIONED_MODULE_INFO_RE = re.compile(r"^META-INF/versions/\d+/module-info\.class$")


def _archive_has_module_info(path: Path) -> bool:
    try:
        with zipfile.ZipFile(path) as zf:
            names = zf.namelist()
    except zipfile.BadZipFile:
        return False
    return any(n == "module-info.class" or _VERSIONED_MODULE_INFO_RE.match(n) for n in names)


def _directory_has_module_info(path: Path) -> bool:
    if (path / "module-info.class").is_file():
        return True
    versions = path / "META-INF" / "versions"
    if not versions.is_dir():
        return False
    return any((v / "module-info.class").is_file() for v in versions.iterdir() if v.name.isdigit())


def find_java_modules(paths: Iterable[Path]) -> list[Path]:
    """
    Return the subset of paths that are explicit JPMS modules, sorted by path
    string so the result does not depend on resolution or directory order.
    """
    modules: list[Path] = []
    for p in paths:
        if p.is_dir():
            found = _directory_has_module_info(p)
        elif p.is_file():
            found = _archive_has_module_info(p)
        else:
            found = False
        if found:
            modules.append(normalize_path(p))
    modules.sort(key=lambda p: str(p))
    return modules


def parse_manifest_main_attributes(text: str) -> dict[str, str]:
    """Main-section attributes keyed by lower-cased name; manifest names are case-insensitive."""
    attrs: dict[str, str] = {}
    last: str | None = None
    for line in text.splitlines():
        if not line:
            # End of the main section.
            break
        if line.startswith(" ") and last is not None:
            attrs[last] += line[1:]
            continue
        name, sep, value = line.partition(":")
        if not sep:
            continue
        last = name.strip().lower()
        attrs[last] = value.strip()
    return attrs


def read_manifest_main_class(jar: Path) -> str | None:
    if not zipfile.is_zipfile(jar):
        return None
    with zipfile.ZipFile(jar) as zf:
        try:
            raw = zf.read(MANIFEST_PATH)
        except KeyError:
            return None
    attrs = parse_manifest_main_attributes(raw.decode("utf-8", errors="replace"))
    return attrs.get("main-class") or None


def find_java_executable() -> Path | None:
    exe = "java.exe" if is_windows() else "java"
    java_home = os.environ.get("JAVA_HOME")
    if java_home:
        candidate = Path(java_home) / "bin" / exe
        if candidate.is_file():
            return candidate
    found = shutil.which("java")
    return Path(found) if found else None


class JvmPluginResolver:
    def __init__(
        self,
        *,
        resolver: ArtifactResolver,
        scratch: ScratchSpace,
        logger: logging.Logger,
        windows: bool | None = None,
        java_executable: Path | None = None,
    ) -> None:
        self._resolver = resolver
        self._scratch = scratch
        self._logger = logger
        self._windows = is_windows() if windows is None else windows
        self._java_executable = java_executable
        self._resolved: dict[str, ResolvedPlugin] = {}

    def resolve_plugins(self, descriptors: Sequence[JvmMavenPlugin]) -> list[ResolvedPlugin]:
        resolved: list[ResolvedPlugin] = []
        for d in descriptors:
            if d.skip:
                self._logger.info("Skipping plugin %s", d.coordinate)
                continue
            resolved.append(self.resolve_plugin(d))
        return resolved

    def resolve_plugin(self, descriptor: JvmMavenPlugin) -> ResolvedPlugin:
        plugin_id = descriptor_id(descriptor)
        cached = self._resolved.get(plugin_id)
        if cached is not None:
            return cached

        self._logger.debug("Resolving JVM plugin %s and generating a launcher script", descriptor.coordinate)
        args = self.build_arguments(descriptor)
        java = self._java()
        scratch_dir = self._scratch.directory("plugins", "jvm", plugin_id)

        if self._windows:
            script = self._write_windows_launcher(java, scratch_dir, args)
        else:
            script = self._write_posix_launcher(java, scratch_dir, args)

        plugin = ResolvedPlugin(
            id=plugin_id,
            path=script,
            options=descriptor.options,
            order=descriptor.order,
        )
        self._resolved[plugin_id] = plugin
        return plugin

    def build_arguments(self, descriptor: JvmMavenPlugin) -> ArgumentFileBuilder:
        dependencies = self._resolver.resolve(
            [descriptor.coordinate],
            DependencyResolutionDepth.TRANSITIVE,
            ALLOWED_SCOPES,
        )
        if not dependencies:
            raise ResolutionError(f"Resolving {descriptor.coordinate} produced no artifacts")

        modules = find_java_modules(dependencies)
        module_set = set(modules)
        plain = [p for p in dependencies if normalize_path(p) not in module_set]

        args = ArgumentFileBuilder()
        args.extend(STARTUP_FLAGS)
        args.add("-classpath")
        args.add(self._join_paths(plain))
        if modules:
            args.add("--module-path")
            args.add(self._join_paths(modules))
        args.add(self.determine_main_class(descriptor, dependencies[0]))
        return args

    def determine_main_class(self, descriptor: JvmMavenPlugin, plugin_path: Path) -> str:
        if descriptor.main_class:
            self._logger.debug("Using configured main class %s for %s", descriptor.main_class, descriptor.coordinate)
            return descriptor.main_class

        # Exploded directories carry no manifest we can rely on.
        if not plugin_path.is_dir():
            main_class = read_manifest_main_class(plugin_path)
            if main_class:
                self._logger.debug("Found main class %s in the manifest of %s", main_class, plugin_path)
                return main_class
            self._logger.warning("No Main-Class manifest attribute found in %s", plugin_path)

        raise PluginConfigurationError(
            f"No main class could be determined for {plugin_path}; "
            f"set 'main_class' explicitly for JVM plugin {descriptor.coordinate}"
        )

    def _java(self) -> Path:
        if self._java_executable is not None:
            return self._java_executable
        java = find_java_executable()
        if java is None:
            raise ResolutionError("No java executable found (checked $JAVA_HOME/bin and $PATH)")
        self._java_executable = java
        return java

    def _join_paths(self, paths: Iterable[Path]) -> str:
        sep = ";" if self._windows else ":"
        return sep.join(str(p) for p in paths)

    def _write_argument_file(self, scratch_dir: Path, args: ArgumentFileBuilder, encoding: str) -> Path:
        path = scratch_dir / "args.txt"
        with path.open("x", encoding=encoding, newline="") as f:
            args.write(f)
        return path

    def _write_posix_launcher(self, java: Path, scratch_dir: Path, args: ArgumentFileBuilder) -> Path:
        sh = shutil.which("sh")
        if sh is None:
            raise ResolutionError("No 'sh' found on $PATH to run JVM plugin launchers")
        arg_file = self._write_argument_file(scratch_dir, args, "utf-8")
        script = scratch_dir / "invoke.sh"
        with script.open("x", encoding="utf-8", newline="\n") as f:
            f.write(f"#!{sh}\n")
            f.write("set -o errexit\n")
            f.write(posix_quote([str(java), f"@{arg_file}"]) + "\n")
        make_executable(script)
        return script

    def _write_windows_launcher(self, java: Path, scratch_dir: Path, args: ArgumentFileBuilder) -> Path:
        # The Windows java launcher reads argument files in the default ANSI code page.
        arg_file = self._write_argument_file(scratch_dir, args, "iso-8859-1")
        script = scratch_dir / "invoke.bat"
        with script.open("x", encoding="iso-8859-1", newline="") as f:
            f.write("@echo off\r\n")
            f.write(batch_quote([str(java), f"@{arg_file}"]) + "\r\n")
            f.write("exit /b %ERRORLEVEL%\r\n")
        return script
