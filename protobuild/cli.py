from __future__ import annotations

import argparse
import logging
from pathlib import Path

from protobuild.artifacts import LocalRepositoryResolver
from protobuild.config_loader import load_request_file
from protobuild.core import Options, build_context
from protobuild.errors import ProtobuildError
from protobuild.generator import SourceCodeGenerator
from protobuild.scratch import scratch_space


def _default_local_repository() -> Path:
    return Path.home() / ".m2" / "repository"


def _setup_logger(verbose: bool) -> logging.Logger:
    logger = logging.getLogger("protobuild")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.handlers[:] = [handler]
    logger.propagate = False
    return logger


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="protobuild")
    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Generation config file. Supported: *.json, *.toml, *.yaml, *.yml",
    )
    parser.add_argument(
        "--local-repository",
        type=Path,
        default=None,
        help="Maven-layout directory to resolve artifacts from (default: ~/.m2/repository).",
    )
    parser.add_argument(
        "--scratch-dir",
        type=Path,
        default=None,
        help="Keep generated plugin launchers in this directory instead of a temporary one.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Resolve everything and log the protoc command line, but do not run protoc.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Verbose logs.",
    )
    args = parser.parse_args(argv)

    logger = _setup_logger(args.verbose)

    config_path: Path = args.config
    if not config_path.is_file():
        logger.error("Config file not found: %s", config_path)
        return 2

    try:
        request = load_request_file(config_path)
    except ValueError as e:
        logger.error("Failed to load config @ %s: %s", config_path, e)
        return 2

    repository = args.local_repository or _default_local_repository()
    resolver = LocalRepositoryResolver(repository, logger)
    options = Options(dry_run=bool(args.dry_run))

    with scratch_space(logger, base=args.scratch_dir) as scratch:
        ctx = build_context(
            resolver=resolver,
            scratch=scratch,
            options=options,
            logger=logger,
        )
        try:
            result = SourceCodeGenerator(ctx).generate(request)
        except (ProtobuildError, OSError) as e:
            logger.error("%s", e)
            return 2

    if not result.ok:
        logger.error("Generation failed (%s)", result.value)
        return 1
    logger.info("Done.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
