"""Core typed dataclasses for checkouts, boundary modules, artifacts and results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Literal

from heliosup.config import SourcePin
from heliosup.errors import HeliosupError

LibraryKind = Literal["staticlib", "cdylib"]
PlatformName = Literal["apple", "android"]

# Strategy hooks a platform variant may leave unimplemented.
LifecycleStep = Literal[
    "prepare_workspace",
    "boundary_source",
    "customize_manifest",
    "build_script",
    "on_build_complete",
]

ARTIFACT_SUFFIX: dict[LibraryKind, str] = {
    "staticlib": ".a",
    "cdylib": ".so",
}


class LifecycleState(StrEnum):
    INIT = "init"
    PROVISIONED = "provisioned"
    CHECKED_OUT = "checked_out"
    PATCHED = "patched"
    SOURCES_GENERATED = "sources_generated"
    BUILT = "built"
    ASSEMBLED = "assembled"
    DONE = "done"
    FAILED = "failed"


LIFECYCLE_ORDER: tuple[LifecycleState, ...] = (
    LifecycleState.INIT,
    LifecycleState.PROVISIONED,
    LifecycleState.CHECKED_OUT,
    LifecycleState.PATCHED,
    LifecycleState.SOURCES_GENERATED,
    LifecycleState.BUILT,
    LifecycleState.ASSEMBLED,
    LifecycleState.DONE,
)


@dataclass(frozen=True, slots=True)
class SourceCheckout:
    pin: SourcePin
    path: Path

    @property
    def crate_dir(self) -> Path:
        if self.pin.subdir is None:
            return self.path
        return self.path / self.pin.subdir


@dataclass(frozen=True, slots=True)
class BridgeEntryPoint:
    """One method exported across the foreign-function boundary."""

    name: str
    params: tuple[tuple[str, str], ...] = ()
    returns: str | None = None
    is_async: bool = True

    def signature(self) -> str:
        args = ", ".join(["&mut self", *(f"{name}: {kind}" for name, kind in self.params)])
        prefix = "async fn" if self.is_async else "fn"
        suffix = f" -> {self.returns}" if self.returns else ""
        return f"{prefix} {self.name}({args}){suffix}"


@dataclass(frozen=True, slots=True)
class BridgeModule:
    type_name: str
    entry_points: tuple[BridgeEntryPoint, ...]
    imports: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class BuildArtifact:
    target: str
    path: Path
    kind: LibraryKind


@dataclass(frozen=True, slots=True)
class DistributablePackage:
    platform: PlatformName
    root: Path
    paths: tuple[Path, ...] = ()


@dataclass(frozen=True, slots=True)
class Unsupported:
    """Marks a strategy hook that a platform variant does not implement yet."""

    step: LifecycleStep
    reason: str = "not implemented"


@dataclass(slots=True)
class CompileResult:
    platform: str
    state: LifecycleState
    artifacts: tuple[BuildArtifact, ...] = ()
    package: DistributablePackage | None = None
    report_path: Path | None = None
    error: HeliosupError | None = None
    unsupported: tuple[Unsupported, ...] = ()

    @property
    def ok(self) -> bool:
        return self.state is LifecycleState.DONE
