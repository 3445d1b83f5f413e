"""Collaborator interfaces and implementations."""

from .base import (
    BusyboxFetcher,
    InitramfsBuilder,
    IsoComposer,
    OverlayGenerator,
    PermissionNormalizer,
    RecipeEngine,
    RootfsImageBuilder,
    Toolchain,
    ToolResult,
)
from .inprocess import InProcessTools
from .local_linux import LocalLinuxTools

__all__ = [
    "BusyboxFetcher",
    "InProcessTools",
    "InitramfsBuilder",
    "IsoComposer",
    "LocalLinuxTools",
    "OverlayGenerator",
    "PermissionNormalizer",
    "RecipeEngine",
    "RootfsImageBuilder",
    "ToolResult",
    "Toolchain",
]
