from __future__ import annotations

import logging
from typing import Callable, Iterable, Sequence

from protobuild.errors import PluginConfigurationError
from protobuild.model import GenerationRequest, PluginDescriptor, ResolvedPlugin
from protobuild.plugins.binary import BinaryPluginResolver
from protobuild.plugins.jvm import JvmPluginResolver

# Category order of the final plugin list.
KIND_ORDER = ("binary-maven", "binary-path", "binary-url", "jvm-maven")


class PluginCatalog:
    """
    Turns plugin descriptors of every kind into ResolvedPlugins.

    Dispatch is by the descriptor's `kind` tag; every kind has exactly one
    resolver.
    """

    def __init__(
        self,
        *,
        binary: BinaryPluginResolver,
        jvm: JvmPluginResolver,
        logger: logging.Logger,
    ) -> None:
        self._logger = logger
        self._by_kind: dict[str, Callable[[Sequence], list[ResolvedPlugin]]] = {
            "binary-maven": binary.resolve_maven_plugins,
            "binary-path": binary.resolve_path_plugins,
            "binary-url": binary.resolve_url_plugins,
            "jvm-maven": jvm.resolve_plugins,
        }

    def resolve(self, request: GenerationRequest) -> list[ResolvedPlugin]:
        return self.resolve_descriptors(
            [
                *request.binary_maven_plugins,
                *request.binary_path_plugins,
                *request.binary_url_plugins,
                *request.jvm_maven_plugins,
            ]
        )

    def resolve_descriptors(self, descriptors: Iterable[PluginDescriptor]) -> list[ResolvedPlugin]:
        grouped: dict[str, list[PluginDescriptor]] = {k: [] for k in KIND_ORDER}
        for d in descriptors:
            kind = getattr(d, "kind", None)
            if kind not in grouped:
                raise PluginConfigurationError(f"Unknown plugin kind {kind!r} for {d!r}")
            grouped[kind].append(d)

        resolved: list[ResolvedPlugin] = []
        seen: set[str] = set()
        for kind in KIND_ORDER:
            if not grouped[kind]:
                continue
            for plugin in self._by_kind[kind](grouped[kind]):
                # Identical descriptors collapse into one plugin.
                if plugin.id in seen:
                    continue
                seen.add(plugin.id)
                resolved.append(plugin)
        self._logger.debug("Resolved %d plugin(s)", len(resolved))
        return resolved
