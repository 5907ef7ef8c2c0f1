from __future__ import annotations

import logging
import shutil
from dataclasses import replace
from pathlib import Path, PurePosixPath
from typing import Sequence
from urllib.parse import urlparse
from urllib.request import url2pathname

import httpx

from protobuild.artifacts import ArtifactResolver
from protobuild.errors import PluginConfigurationError, ResolutionError
from protobuild.model import (
    BinaryMavenPlugin,
    BinaryPathPlugin,
    BinaryUrlPlugin,
    DependencyResolutionDepth,
    ResolvedPlugin,
    descriptor_id,
)
from protobuild.scratch import ScratchSpace
from protobuild.util import make_executable, platform_classifier

DOWNLOAD_TIMEOUT = httpx.Timeout(connect=30.0, read=120.0, write=30.0, pool=30.0)


class _NotFound(Exception):
    pass


class BinaryPluginResolver:
    """Resolves native protoc plugins from coordinates, $PATH or URLs."""

    def __init__(
        self,
        *,
        resolver: ArtifactResolver,
        scratch: ScratchSpace,
        logger: logging.Logger,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._resolver = resolver
        self._scratch = scratch
        self._logger = logger
        self._http_client = http_client
        self._resolved_urls: dict[str, ResolvedPlugin] = {}

    def resolve_maven_plugins(self, descriptors: Sequence[BinaryMavenPlugin]) -> list[ResolvedPlugin]:
        out: list[ResolvedPlugin] = []
        for d in descriptors:
            if d.skip:
                self._logger.info("Skipping plugin %s", d.coordinate)
                continue
            out.append(self.resolve_maven_plugin(d))
        return out

    def resolve_maven_plugin(self, d: BinaryMavenPlugin) -> ResolvedPlugin:
        coordinate = d.coordinate
        if coordinate.classifier is None:
            coordinate = replace(coordinate, classifier=platform_classifier())
        self._logger.debug("Resolving binary plugin %s", coordinate)
        paths = self._resolver.resolve([coordinate], DependencyResolutionDepth.DIRECT)
        if not paths:
            raise ResolutionError(f"Resolving plugin {coordinate} produced no artifacts")
        path = paths[0]
        self._logger.debug("Ensuring %s is marked as executable", path)
        try:
            make_executable(path)
        except OSError as e:
            raise ResolutionError(f"Setting executable bit for {path} failed") from e
        return self._resolved(d, path)

    def resolve_path_plugins(self, descriptors: Sequence[BinaryPathPlugin]) -> list[ResolvedPlugin]:
        out: list[ResolvedPlugin] = []
        for d in descriptors:
            if d.skip:
                self._logger.info("Skipping plugin %s", d.name)
                continue
            found = shutil.which(d.name)
            if found is None:
                if d.optional:
                    self._logger.warning("Optional plugin %s was not found on $PATH; skipping it", d.name)
                    continue
                raise ResolutionError(f"Plugin {d.name} was not found on $PATH")
            self._logger.debug("Resolved plugin %s to %s", d.name, found)
            out.append(self._resolved(d, Path(found)))
        return out

    def resolve_url_plugins(self, descriptors: Sequence[BinaryUrlPlugin]) -> list[ResolvedPlugin]:
        out: list[ResolvedPlugin] = []
        for d in descriptors:
            if d.skip:
                self._logger.info("Skipping plugin %s", d.url)
                continue
            plugin_id = descriptor_id(d)
            cached = self._resolved_urls.get(plugin_id)
            if cached is not None:
                out.append(cached)
                continue
            target_dir = self._scratch.directory("plugins", "url", plugin_id)
            name = PurePosixPath(urlparse(d.url).path).name or "plugin"
            target = target_dir / name
            try:
                self._fetch(d.url, target)
            except _NotFound as e:
                if d.optional:
                    self._logger.warning("Optional plugin %s was not found; skipping it", d.url)
                    continue
                raise ResolutionError(f"Plugin {d.url} was not found") from e
            make_executable(target)
            plugin = self._resolved(d, target)
            self._resolved_urls[plugin_id] = plugin
            out.append(plugin)
        return out

    def _fetch(self, url: str, target: Path) -> None:
        parsed = urlparse(url)
        scheme = parsed.scheme.lower()
        self._logger.debug("Fetching %s to %s", url, target)

        if scheme == "file":
            source = Path(url2pathname(parsed.path))
            if not source.is_file():
                raise _NotFound(url)
            with source.open("rb") as src, target.open("xb") as dst:
                shutil.copyfileobj(src, dst)
            return

        if scheme in {"http", "https"}:
            client = self._http_client or httpx.Client(timeout=DOWNLOAD_TIMEOUT, follow_redirects=True)
            try:
                with client.stream("GET", url) as resp:
                    if resp.status_code == 404:
                        raise _NotFound(url)
                    resp.raise_for_status()
                    with target.open("xb") as dst:
                        for chunk in resp.iter_bytes():
                            dst.write(chunk)
            except httpx.HTTPError as e:
                raise ResolutionError(f"Failed to download plugin from {url}: {e}") from e
            finally:
                if self._http_client is None:
                    client.close()
            return

        raise PluginConfigurationError(f"Unsupported URL scheme {scheme!r} for plugin {url}")

    def _resolved(self, d: BinaryMavenPlugin | BinaryPathPlugin | BinaryUrlPlugin, path: Path) -> ResolvedPlugin:
        return ResolvedPlugin(id=descriptor_id(d), path=path, options=d.options, order=d.order)
