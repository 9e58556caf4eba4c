"""Typed build error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across the build pipeline."""

    VALIDATION = "E_VALIDATION"
    PROVISIONING = "E_PROVISIONING"
    CHECKOUT = "E_CHECKOUT"
    COMPILE = "E_COMPILE"
    ASSEMBLY = "E_ASSEMBLY"
    UNSUPPORTED = "E_UNSUPPORTED"
    EXAMPLE_SYNC = "E_EXAMPLE_SYNC"


class HeliosupError(Exception):
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

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class ValidationError(HeliosupError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.VALIDATION, hint=hint, context=context)


class ProvisioningError(HeliosupError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.PROVISIONING, hint=hint, context=context)


class CheckoutError(HeliosupError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CHECKOUT, hint=hint, context=context)


class CompileError(HeliosupError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.COMPILE, hint=hint, context=context)


class AssemblyError(HeliosupError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.ASSEMBLY, hint=hint, context=context)


class UnsupportedStepError(HeliosupError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.UNSUPPORTED, hint=hint, context=context)


class ExampleSyncError(HeliosupError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.EXAMPLE_SYNC, hint=hint, context=context)


__all__ = [
    "AssemblyError",
    "CheckoutError",
    "CompileError",
    "ErrorCode",
    "ExampleSyncError",
    "HeliosupError",
    "ProvisioningError",
    "UnsupportedStepError",
    "ValidationError",
]
