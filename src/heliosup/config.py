"""Per-run build configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from heliosup.errors import ValidationError

Network = Literal["MAINNET", "GOERLI"]

HELIOS_REPO = "https://github.com/a16z/helios"
HELIOS_COMMIT = "4c72344b55991b6296ccbb12b3c9e3ad634d593e"
RUST_OPENSSL_REPO = "https://github.com/sfackler/rust-openssl"
RUST_OPENSSL_COMMIT = "b30313a9775ed861ce9456745952e3012e5602ea"


@dataclass(frozen=True, slots=True)
class SourcePin:
    """A repository pinned to an exact commit.

    ``subdir`` names the crate inside the checkout when it is not the
    repository root (``openssl-sys`` inside ``rust-openssl``).
    """

    name: str
    url: str
    commit: str
    subdir: str | None = None


@dataclass(frozen=True, slots=True)
class BuildConfig:
    """Paths, pins and toolchain choices for one orchestrator run.

    Constructed once per run and handed to every pipeline stage; all paths
    derive from ``root`` (the consuming project directory).
    """

    root: Path = field(default_factory=Path.cwd)
    library_name: str = "helios"
    light_client: SourcePin = SourcePin(name="helios", url=HELIOS_REPO, commit=HELIOS_COMMIT)
    crypto_dependency: SourcePin = SourcePin(
        name="openssl",
        url=RUST_OPENSSL_REPO,
        commit=RUST_OPENSSL_COMMIT,
        subdir="openssl-sys",
    )
    baseline_toolchain: str = "stable"
    toolchain_channel: str = "nightly"
    network: Network = "MAINNET"
    rpc_port: int = 8545
    android_api_level: int = 21
    android_package: str = "com.helios"
    android_class: str = "HeliosModule"

    def __post_init__(self) -> None:
        if not self.library_name:
            raise ValidationError("BuildConfig requires a non-empty library_name.")
        if not 0 < self.rpc_port < 65536:
            raise ValidationError(
                "BuildConfig rpc_port is out of range.",
                context={"rpc_port": str(self.rpc_port)},
            )
        object.__setattr__(self, "root", Path(self.root).resolve())

    @property
    def build_dir(self) -> Path:
        return self.root / "build"

    @property
    def source_dir(self) -> Path:
        return self.build_dir / self.light_client.name

    @property
    def manifest_path(self) -> Path:
        return self.source_dir / "Cargo.toml"

    @property
    def crypto_checkout_dir(self) -> Path:
        return self.build_dir / self.crypto_dependency.name

    @property
    def crypto_crate_dir(self) -> Path:
        if self.crypto_dependency.subdir is None:
            return self.crypto_checkout_dir
        return self.crypto_checkout_dir / self.crypto_dependency.subdir

    @property
    def ios_dir(self) -> Path:
        return self.root / "ios"

    @property
    def android_dir(self) -> Path:
        return self.root / "android"

    @property
    def jni_libs_dir(self) -> Path:
        return self.android_dir / "src" / "main" / "jniLibs"

    @property
    def example_dir(self) -> Path:
        return self.root / "example"
