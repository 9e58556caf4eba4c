"""Packages the Helios light client into native mobile libraries."""

from .config import BuildConfig, SourcePin
from .errors import (
    AssemblyError,
    CheckoutError,
    CompileError,
    ExampleSyncError,
    HeliosupError,
    ProvisioningError,
    UnsupportedStepError,
    ValidationError,
)
from .models import (
    BridgeEntryPoint,
    BridgeModule,
    BuildArtifact,
    CompileResult,
    DistributablePackage,
    LifecycleState,
    SourceCheckout,
    Unsupported,
)
from .observability import StructuredLogger
from .platforms import AndroidStrategy, AppleStrategy, PlatformFactory, get_strategy

__all__ = [
    "AndroidStrategy",
    "AppleStrategy",
    "AssemblyError",
    "BridgeEntryPoint",
    "BridgeModule",
    "BuildArtifact",
    "BuildConfig",
    "CheckoutError",
    "CompileError",
    "CompileResult",
    "DistributablePackage",
    "ExampleSyncError",
    "HeliosupError",
    "LifecycleState",
    "PlatformFactory",
    "ProvisioningError",
    "SourceCheckout",
    "SourcePin",
    "StructuredLogger",
    "Unsupported",
    "UnsupportedStepError",
    "ValidationError",
    "get_strategy",
]
