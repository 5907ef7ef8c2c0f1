from __future__ import annotations


class ProtobuildError(Exception):
    """Base class for errors that abort a generation run."""


class PluginConfigurationError(ProtobuildError, ValueError):
    """
    A plugin or coordinate is configured in a way that can never work,
    e.g. a JVM plugin without a resolvable main class.

    Not retried. The message always names the offending input.
    """


class ResolutionError(ProtobuildError, RuntimeError):
    """An artifact, plugin or executable could not be located."""
