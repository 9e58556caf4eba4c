"""Shared test fixtures.

External tools never run in tests: a recording fake ``ProcessRunner`` stands
in for git, rustup, cargo, the build script and xcodebuild, and can simulate
their file-system effects.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from heliosup.config import BuildConfig
from heliosup.platforms.base import PlatformStrategy, artifact_path

HELIOS_MANIFEST = """\
[package]
name = "helios"
version = "0.1.3"
edition = "2021"

[workspace]
members = [
    "cli",
    "client",
]

[dependencies]
client = { path = "./client" }
config = { path = "./config" }
tokio = { version = "1", features = ["full"] }

[patch.crates-io]
ethers = { git = "https://github.com/ncitron/ethers-rs", branch = "fix-retry" }
"""

OPENSSL_SYS_MANIFEST = """\
[package]
name = "openssl-sys"
version = "0.9.75"

[dependencies]
libc = "0.2"

[build-dependencies]
cc = "1.0"
openssl-src = { version = "111", optional = true }
pkg-config = "0.3.9"
"""

Predicate = Callable[[tuple[str, ...]], bool]
Action = Callable[[tuple[str, ...], Path], "int | None"]


@dataclass
class FakeRunner:
    calls: list[tuple[tuple[str, ...], Path]] = field(default_factory=list)
    handlers: list[tuple[Predicate, Action]] = field(default_factory=list)

    def run(self, argv: Sequence[str], *, cwd: Path) -> int:
        command = tuple(argv)
        self.calls.append((command, cwd))
        for predicate, action in self.handlers:
            if predicate(command):
                result = action(command, cwd)
                return 0 if result is None else result
        return 0

    def on(self, predicate: Predicate, action: Action) -> None:
        self.handlers.insert(0, (predicate, action))

    def fail_on(self, predicate: Predicate, returncode: int = 1) -> None:
        self.on(predicate, lambda _argv, _cwd: returncode)

    def commands(self) -> list[str]:
        return [" ".join(argv) for argv, _ in self.calls]


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def config(tmp_path: Path) -> BuildConfig:
    root = tmp_path / "project"
    (root / "example" / "ios").mkdir(parents=True)
    return BuildConfig(root=root)


@pytest.fixture
def simulate(runner: FakeRunner, config: BuildConfig) -> Callable[[PlatformStrategy], None]:
    """Install handlers that mimic a successful toolchain run for a strategy."""

    def install(strategy: PlatformStrategy) -> None:
        runner.on(lambda argv: argv[:2] == ("git", "clone"), _clone(config))
        runner.on(lambda argv: argv[0].endswith("build.sh"), _build(config, strategy))
        runner.on(lambda argv: argv[0] == "xcodebuild", _xcframework)

    return install


def write_generated_bridge(config: BuildConfig) -> None:
    generated = config.source_dir / "generated"
    (generated / config.library_name).mkdir(parents=True, exist_ok=True)
    (generated / "SwiftBridgeCore.h").write_text(
        "#include <stdint.h>\n#include <stdbool.h>\ntypedef struct RustStr RustStr;",
        encoding="utf-8",
    )
    (generated / "SwiftBridgeCore.swift").write_text(
        "import Foundation\n\npublic class RustString {}\n",
        encoding="utf-8",
    )
    (generated / config.library_name / f"{config.library_name}.h").write_text(
        '#include <stdint.h>\n#include "SwiftBridgeCore.h"\ntypedef struct RustApp RustApp;\n'
        "void* __swift_bridge__$RustApp$new(void);",
        encoding="utf-8",
    )
    (generated / config.library_name / f"{config.library_name}.swift").write_text(
        "public class RustApp {}\n"
        "extension RustApp {\n    public func helios_start() async {}\n}\n"
        "extension RustAppRef {\n"
        "    public func helios_get_block_number() async -> RustString {}\n}",
        encoding="utf-8",
    )


def write_artifacts(config: BuildConfig, strategy: PlatformStrategy) -> None:
    for target in strategy.targets():
        path = artifact_path(config, target, strategy.library_kind())
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(f"binary for {target}".encode())


def _clone(config: BuildConfig) -> Action:
    def action(argv: tuple[str, ...], cwd: Path) -> None:
        url, destination = argv[2], Path(argv[3])
        destination.mkdir(parents=True)
        if url == config.light_client.url:
            (destination / "src").mkdir()
            (destination / "Cargo.toml").write_text(HELIOS_MANIFEST, encoding="utf-8")
        else:
            crate = destination / "openssl-sys"
            crate.mkdir()
            (crate / "Cargo.toml").write_text(OPENSSL_SYS_MANIFEST, encoding="utf-8")

    return action


def _build(config: BuildConfig, strategy: PlatformStrategy) -> Action:
    def action(argv: tuple[str, ...], cwd: Path) -> None:
        write_artifacts(config, strategy)
        if strategy.name == "apple":
            write_generated_bridge(config)

    return action


def _xcframework(argv: tuple[str, ...], cwd: Path) -> None:
    output = Path(argv[argv.index("-output") + 1])
    output.mkdir(parents=True)
    (output / "Info.plist").write_text("<plist/>", encoding="utf-8")


@pytest.fixture
def make_artifacts(config: BuildConfig) -> Callable[[PlatformStrategy], None]:
    return lambda strategy: write_artifacts(config, strategy)


@pytest.fixture
def make_generated_bridge(config: BuildConfig) -> Callable[[], None]:
    return lambda: write_generated_bridge(config)
