"""Typed Stage 00 error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across the builder and the CLI."""

    PRECONDITION = "E_PRECONDITION"
    VALIDATION = "E_VALIDATION"
    EXTERNAL_TOOL = "E_EXTERNAL_TOOL"
    POSTCONDITION = "E_POSTCONDITION"
    MISSING_ARTIFACT = "E_MISSING_ARTIFACT"
    BUILD = "E_BUILD"
    STAGE = "E_STAGE"
    POLICY = "E_POLICY"


class RalphOSError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    @property
    def message(self) -> str:
        return super().__str__()

    def __str__(self) -> str:
        lines = [f"[{self.code}] {self.message}"]
        if self.hint:
            lines.append(f"Hint: {self.hint}")
        lines.extend(f"  {key}: {value}" for key, value in self.context.items() if value)
        return "\n".join(lines)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": self.message,
            "context": {key: value for key, value in self.context.items() if value},
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class PreconditionError(RalphOSError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.PRECONDITION, hint=hint, context=context)


class MissingRecipeError(PreconditionError):
    """A required recipe file is absent from ``deps/``."""


class ValidationError(RalphOSError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.VALIDATION, hint=hint, context=context)


class EmptyReleaseError(ValidationError):
    """The kernel release file exists but holds no identifier."""


class VersionMismatchError(ValidationError):
    """The kernel release does not carry the expected version tokens."""

    field: str
    actual: str
    expected: str

    def __init__(
        self,
        message: str,
        *,
        field: str,
        actual: str,
        expected: str,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        merged = {"field": field, "actual": actual, "expected": expected, **(context or {})}
        super().__init__(message, hint=hint, context=merged)
        self.field = field
        self.actual = actual
        self.expected = expected


class ExternalToolError(RalphOSError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.EXTERNAL_TOOL, hint=hint, context=context)


class PostconditionViolation(RalphOSError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.POSTCONDITION, hint=hint, context=context)


class MissingArtifactError(RalphOSError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.MISSING_ARTIFACT, hint=hint, context=context)


class BuildError(RalphOSError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.BUILD, hint=hint, context=context)


class StageError(RalphOSError):
    """Orchestrator wrapper that names the stage a failure happened in."""

    stage: str

    def __init__(
        self,
        message: str,
        *,
        stage: str,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message,
            code=ErrorCode.STAGE,
            hint=hint,
            context={"stage": stage, **(context or {})},
        )
        self.stage = stage


class PolicyError(RalphOSError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.POLICY, hint=hint, context=context)


def format_error_chain(error: BaseException) -> str:
    """Render *error* and every chained cause, outermost first."""
    lines: list[str] = []
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        text = str(current) or type(current).__name__
        if lines:
            lines.append("Caused by:")
            lines.extend(f"    {line}" for line in text.splitlines())
        else:
            lines.extend(text.splitlines())
        current = current.__cause__ or (
            None if current.__suppress_context__ else current.__context__
        )
    return "\n".join(lines)


__all__ = [
    "BuildError",
    "EmptyReleaseError",
    "ErrorCode",
    "ExternalToolError",
    "MissingArtifactError",
    "MissingRecipeError",
    "PolicyError",
    "PostconditionViolation",
    "PreconditionError",
    "RalphOSError",
    "StageError",
    "ValidationError",
    "VersionMismatchError",
    "format_error_chain",
]
