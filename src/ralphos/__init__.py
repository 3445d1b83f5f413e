"""Public package entrypoint for the RalphOS Stage 00 builder."""

from .backends import InProcessTools, LocalLinuxTools, Toolchain, ToolResult
from .config import Stage00Config
from .distro import RALPH, DistroSpec, KernelSource
from .errors import (
    BuildError,
    EmptyReleaseError,
    ExternalToolError,
    MissingArtifactError,
    MissingRecipeError,
    PolicyError,
    PostconditionViolation,
    PreconditionError,
    RalphOSError,
    StageError,
    ValidationError,
    VersionMismatchError,
)
from .initramfs import InitramfsBridge, select_modules
from .iso import IsoBridge
from .kernel import KernelVerifier
from .models import BasePayload, BuildSummary, KernelArtifacts, StatusReport
from .orchestrator import PipelineState, StageOrchestrator
from .payload import PayloadResolver
from .recipe import RecipeBridge

__all__ = [
    "BasePayload",
    "BuildError",
    "BuildSummary",
    "DistroSpec",
    "EmptyReleaseError",
    "ExternalToolError",
    "InProcessTools",
    "InitramfsBridge",
    "IsoBridge",
    "KernelArtifacts",
    "KernelSource",
    "KernelVerifier",
    "LocalLinuxTools",
    "MissingArtifactError",
    "MissingRecipeError",
    "PayloadResolver",
    "PipelineState",
    "PolicyError",
    "PostconditionViolation",
    "PreconditionError",
    "RALPH",
    "RalphOSError",
    "RecipeBridge",
    "StageError",
    "StageOrchestrator",
    "Stage00Config",
    "StatusReport",
    "ToolResult",
    "Toolchain",
    "ValidationError",
    "VersionMismatchError",
    "select_modules",
]
