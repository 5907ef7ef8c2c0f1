from __future__ import annotations

from typing import Sequence

from protobuild.core import Context
from protobuild.invocation import ArgLineBuilder, CompilerInvocation, source_files
from protobuild.listings import ProtoListingCatalog
from protobuild.model import GenerationRequest, GenerationResult, Language, MavenCoordinate, ProtoFileListing
from protobuild.plugins import BinaryPluginResolver, JvmPluginResolver, PluginCatalog
from protobuild.protoc import ProtocResolver


class SourceCodeGenerator:
    """
    Collects everything protoc needs for one request and runs it.

    Resolution problems raise (ResolutionError, PluginConfigurationError,
    OSError). A protoc that cannot run or rejects the input is reported as an
    unsuccessful GenerationResult instead.
    """

    def __init__(
        self,
        ctx: Context,
        *,
        protoc: ProtocResolver | None = None,
        plugins: PluginCatalog | None = None,
        listings: ProtoListingCatalog | None = None,
    ) -> None:
        self._ctx = ctx
        self._logger = ctx.logger
        self._protoc = protoc or ProtocResolver(resolver=ctx.resolver, logger=ctx.logger)
        self._plugins = plugins or PluginCatalog(
            binary=BinaryPluginResolver(resolver=ctx.resolver, scratch=ctx.scratch, logger=ctx.logger),
            jvm=JvmPluginResolver(resolver=ctx.resolver, scratch=ctx.scratch, logger=ctx.logger),
            logger=ctx.logger,
        )
        self._listings = listings or ProtoListingCatalog(scratch=ctx.scratch, logger=ctx.logger)

    def generate(self, request: GenerationRequest) -> GenerationResult:
        protoc_path = self._protoc.resolve(request.protoc_version)
        plugins = self._plugins.resolve(request)

        source_dependency_listings = self._listings_for(
            request.source_dependencies, request, what="source dependencies"
        )
        import_listings = self._discover_import_paths(request, source_dependency_listings)
        source_listings = self._discover_compilable_sources(request, source_dependency_listings)
        sources = source_files(source_listings)

        if not sources:
            if request.fail_on_missing_sources:
                self._logger.error(
                    "No protobuf sources found. If this is unexpected, check your configuration and try again."
                )
                return GenerationResult.NO_SOURCES
            self._logger.info("No protobuf sources found; nothing to do!")
            return GenerationResult.NOTHING_TO_DO

        self._logger.info("Will generate source code for %d protobuf file(s)", len(sources))
        self._create_output_directory(request)

        builder = (
            ArgLineBuilder(protoc_path)
            .fatal_warnings(request.fatal_warnings)
            .import_listings(import_listings)
            .import_listings(source_listings)
            .plugins(plugins, request.output_directory)
        )
        for language in Language:
            if language in request.enabled_languages:
                builder.output(language, request.output_directory, lite=request.lite_enabled)

        if not self._probe(builder.version()):
            self._logger.error("Unable to execute protoc. Ensure the binary is compatible for this platform!")
            return GenerationResult.PROTOC_UNAVAILABLE

        if not self._execute(builder.compile(sources)):
            return GenerationResult.PROTOC_FAILED
        return GenerationResult.SUCCEEDED

    def _listings_for(
        self,
        coordinates: Sequence[MavenCoordinate],
        request: GenerationRequest,
        *,
        what: str,
    ) -> list[ProtoFileListing]:
        if not coordinates:
            return []
        self._logger.debug("Finding protobuf sources in %s (%s)", what, ", ".join(str(c) for c in coordinates))
        paths = self._ctx.resolver.resolve(list(coordinates), request.dependency_resolution_depth)
        return self._listings.build(paths)

    def _discover_import_paths(
        self,
        request: GenerationRequest,
        source_dependency_listings: list[ProtoFileListing],
    ) -> list[ProtoFileListing]:
        import_dependency_listings = self._listings_for(
            request.import_dependencies, request, what="import dependencies"
        )

        import_path_listings: list[ProtoFileListing] = []
        if request.import_paths:
            self._logger.debug("Finding protobuf sources in import paths (%s)", ", ".join(map(str, request.import_paths)))
            import_path_listings = self._listings.build(request.import_paths)

        project_listings: list[ProtoFileListing] = []
        if request.ignore_project_dependencies:
            self._logger.debug("Ignoring project dependencies")
        else:
            project_listings = self._listings_for(
                request.project_dependencies, request, what="project dependencies"
            )

        return self._listings.merge(
            import_dependency_listings,
            import_path_listings,
            source_dependency_listings,
            project_listings,
        )

    def _discover_compilable_sources(
        self,
        request: GenerationRequest,
        source_dependency_listings: list[ProtoFileListing],
    ) -> list[ProtoFileListing]:
        self._logger.debug("Discovering all compilable protobuf source files")
        source_root_listings = self._listings.build(request.source_roots)
        return self._listings.merge(source_root_listings, source_dependency_listings)

    def _create_output_directory(self, request: GenerationRequest) -> None:
        directory = request.output_directory
        self._logger.debug("Creating %s", directory)
        directory.mkdir(parents=True, exist_ok=True)

        if request.register_as_compilation_root:
            self._ctx.registrar.register_source_root(directory)
        else:
            self._logger.debug("Not registering %s as a compilation root", directory)

    def _probe(self, args: CompilerInvocation) -> bool:
        try:
            res = self._ctx.runner.run(args, check=False, capture=True)
        except OSError as e:
            self._logger.error("Failed to start %s: %s", args[0], e)
            return False
        if res.returncode != 0:
            self._log_output(res.stdout, res.stderr)
            return False
        if res.stdout.strip():
            self._logger.info("Using %s", res.stdout.strip())
        return True

    def _execute(self, args: CompilerInvocation) -> bool:
        self._logger.info("Invoking protoc with %d argument(s)", len(args) - 1)
        res = self._ctx.runner.run(args, check=False, capture=True)
        self._log_output(res.stdout, res.stderr)
        if res.returncode != 0:
            self._logger.error("protoc returned exit code %d", res.returncode)
            return False
        return True

    def _log_output(self, stdout: str, stderr: str) -> None:
        for line in stdout.splitlines():
            self._logger.info("protoc: %s", line)
        for line in stderr.splitlines():
            self._logger.warning("protoc: %s", line)
