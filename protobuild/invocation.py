from __future__ import annotations

from pathlib import Path
from typing import Iterable

from protobuild.model import Language, ProtoFileListing, ResolvedPlugin

CompilerInvocation = tuple[str, ...]


class ArgLineBuilder:
    """
    Builds the argument list for a protoc invocation.

    protoc expects every flag before the first source file, so flags are
    collected separately and sources are only appended by `compile()`.
    """

    def __init__(self, protoc_path: Path) -> None:
        self._protoc_path = protoc_path
        self._fatal_warnings = False
        self._outputs: list[tuple[Language, Path, bool]] = []
        self._plugins: list[tuple[ResolvedPlugin, Path]] = []
        self._import_roots: list[Path] = []

    def fatal_warnings(self, enabled: bool) -> "ArgLineBuilder":
        self._fatal_warnings = enabled
        return self

    def output(self, language: Language, directory: Path, *, lite: bool = False) -> "ArgLineBuilder":
        self._outputs.append((language, directory, lite))
        return self

    def plugins(self, plugins: Iterable[ResolvedPlugin], directory: Path) -> "ArgLineBuilder":
        for p in plugins:
            self._plugins.append((p, directory))
        return self

    def import_paths(self, roots: Iterable[Path]) -> "ArgLineBuilder":
        for root in roots:
            if root not in self._import_roots:
                self._import_roots.append(root)
        return self

    def import_listings(self, listings: Iterable[ProtoFileListing]) -> "ArgLineBuilder":
        return self.import_paths(listing.root for listing in listings)

    def version(self) -> CompilerInvocation:
        return (str(self._protoc_path), "--version")

    def compile(self, sources: Iterable[Path]) -> CompilerInvocation:
        args = [str(self._protoc_path)]

        if self._fatal_warnings:
            args.append("--fatal_warnings")

        ordered_outputs = sorted(self._outputs, key=lambda o: list(Language).index(o[0]))
        for language, directory, lite in ordered_outputs:
            prefix = "lite:" if lite else ""
            args.append(f"{language.out_flag}={prefix}{directory}")

        # Stable sort: plugins with equal order keep their input order.
        for plugin, directory in sorted(self._plugins, key=lambda pd: pd[0].order):
            args.append(f"--plugin=protoc-gen-{plugin.id}={plugin.path}")
            for option in plugin.options:
                args.append(f"--{plugin.id}_opt={option}")
            args.append(f"--{plugin.id}_out={directory}")

        for root in self._import_roots:
            args.append(f"-I{root}")

        seen: set[Path] = set()
        for source in sources:
            if source in seen:
                continue
            seen.add(source)
            args.append(str(source))

        return tuple(args)


def source_files(listings: Iterable[ProtoFileListing]) -> list[Path]:
    # Flattened across listings, first occurrence wins.
    seen: set[Path] = set()
    out: list[Path] = []
    for listing in listings:
        for f in listing.files:
            if f not in seen:
                seen.add(f)
                out.append(f)
    return out
