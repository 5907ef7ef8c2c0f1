"""
Plugin resolution for protoc.

Every descriptor kind ends up as a ResolvedPlugin whose path protoc can spawn
directly.
"""

from protobuild.plugins.binary import BinaryPluginResolver
from protobuild.plugins.catalog import PluginCatalog
from protobuild.plugins.jvm import JvmPluginResolver

__all__ = ["BinaryPluginResolver", "JvmPluginResolver", "PluginCatalog"]
