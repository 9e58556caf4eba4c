"""Apple platform: static libraries merged into an xcframework bundle.

The device triples are built with ``cargo lipo``; simulator triples need a
separate ``-Z build-std`` pass because the simulator ABI cannot be lipo'd
together with the device slice. Both static libraries end up as separate
slices of one xcframework, alongside a merged C header and the
swift-bridge Swift bindings.
"""

from __future__ import annotations

import shutil
import textwrap
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from heliosup.bridge import (
    CLIENT_IMPORTS,
    EXPORTED_TYPE,
    block_number_entry_point,
    render_client_impl,
    render_extern_block,
    start_entry_point,
)
from heliosup.config import BuildConfig
from heliosup.errors import AssemblyError
from heliosup.manifest import RewriteRule, apply_rules, build_dependencies_rule, build_script_rule
from heliosup.models import (
    BridgeModule,
    BuildArtifact,
    DistributablePackage,
    LibraryKind,
    PlatformName,
    Unsupported,
)
from heliosup.platforms.base import BuildContext, dedupe_targets, locate_artifacts
from heliosup.process import run_checked

SWIFT_BRIDGE_BUILD_DEPENDENCY = 'swift-bridge-build = "0.1"'
SWIFT_BRIDGE_DEPENDENCY = 'swift-bridge = {version = "0.1", features = ["async"]}'
SWIFT_BRIDGE_CORE = "SwiftBridgeCore"
GENERATED_DIR = "generated"

BUILD_RS_TEMPLATE = textwrap.dedent("""\
    use std::path::PathBuf;

    fn main() {
      let out_dir = PathBuf::from("./generated");
      let bridges = vec!["src/lib.rs"];
      for path in &bridges {
        println!("cargo:rerun-if-changed={}", path);
      }
      swift_bridge_build::parse_bridges(bridges)
        .write_all_concatenated(out_dir, env!("CARGO_PKG_NAME"));
    }
""")


@dataclass(slots=True)
class AppleStrategy:
    name: PlatformName = "apple"
    device_targets: tuple[str, ...] = ("aarch64-apple-ios",)
    simulator_targets: tuple[str, ...] = ("aarch64-apple-ios-sim",)
    availability: str = "iOS 13.0.0"

    def targets(self) -> tuple[str, ...]:
        return dedupe_targets((*self.device_targets, *self.simulator_targets))

    def helper_packages(self) -> tuple[str, ...]:
        return ("cargo-lipo",)

    def library_kind(self) -> LibraryKind:
        return "staticlib"

    def unsupported_steps(self) -> tuple[Unsupported, ...]:
        return ()

    def prepare_workspace(self, context: BuildContext) -> None:
        context.config.ios_dir.mkdir(parents=True, exist_ok=True)

    def boundary_module(self, config: BuildConfig) -> BridgeModule:
        return BridgeModule(
            type_name=EXPORTED_TYPE,
            entry_points=(start_entry_point(config), block_number_entry_point(config)),
            imports=CLIENT_IMPORTS,
        )

    def boundary_source(self, config: BuildConfig) -> str:
        module = self.boundary_module(config)
        return (
            "\n".join(module.imports)
            + "\n\n#[swift_bridge::bridge]\nmod ffi {\n"
            + render_extern_block(module, init_attribute="#[swift_bridge(init)]")
            + "\n}\n\n"
            + render_client_impl(module, config)
        )

    def companion_sources(self, config: BuildConfig) -> Mapping[str, str]:
        return {"build.rs": BUILD_RS_TEMPLATE}

    def manifest_rules(self) -> tuple[RewriteRule, ...]:
        return (
            build_dependencies_rule((SWIFT_BRIDGE_BUILD_DEPENDENCY,), (SWIFT_BRIDGE_DEPENDENCY,)),
            build_script_rule("build.rs"),
        )

    def customize_manifest(self, lines: Sequence[str]) -> tuple[str, ...]:
        return apply_rules(lines, self.manifest_rules())

    def build_script(self, config: BuildConfig) -> str:
        lines = [
            "#!/bin/bash",
            "",
            "set -e",
            "",
            "THISDIR=$(dirname $0)",
            "cd $THISDIR",
            f'export SWIFT_BRIDGE_OUT_DIR="$(pwd)/{GENERATED_DIR}"',
            "",
        ]
        if self.device_targets:
            lines.append(f"cargo lipo --release --targets {','.join(self.device_targets)}")
        lines.extend(
            f"cargo build -Z build-std --target {target} --release"
            for target in self.simulator_targets
        )
        return "\n".join(lines) + "\n"

    def on_build_complete(
        self, context: BuildContext
    ) -> tuple[tuple[BuildArtifact, ...], DistributablePackage]:
        config = context.config
        source_dir = config.source_dir
        artifacts = locate_artifacts(config, self.targets(), self.library_kind())
        header = self._write_header(config)
        bindings = self._write_bindings(config)

        xcframework = source_dir / f"lib{config.library_name}.xcframework"
        argv = ["xcodebuild", "-create-xcframework"]
        for artifact in artifacts:
            argv.extend(["-library", str(artifact.path), "-headers", str(header)])
        argv.extend(["-output", str(xcframework)])
        run_checked(
            context.runner,
            argv,
            cwd=source_dir,
            error=AssemblyError,
            operation="create_xcframework",
            hint="xcodebuild is only available on macOS with Xcode installed.",
        )
        if not xcframework.is_dir():
            raise AssemblyError(
                "xcodebuild did not produce the xcframework bundle.",
                context={"operation": "create_xcframework", "path": str(xcframework)},
            )

        ios_dir = config.ios_dir
        ios_dir.mkdir(parents=True, exist_ok=True)
        installed_bundle = ios_dir / xcframework.name
        if installed_bundle.exists():
            shutil.rmtree(installed_bundle)
        shutil.move(str(xcframework), str(installed_bundle))
        installed_bindings = Path(shutil.copyfile(bindings, ios_dir / bindings.name))
        installed_header = Path(shutil.copyfile(header, ios_dir / header.name))

        context.logger.log(
            operation="bundle_installed",
            platform=self.name,
            state=None,
            message="Installed xcframework bundle.",
            extra={"bundle": str(installed_bundle), "slices": [a.target for a in artifacts]},
        )
        package = DistributablePackage(
            platform=self.name,
            root=ios_dir,
            paths=(installed_bundle, installed_header, installed_bindings),
        )
        return artifacts, package

    def example_commands(self) -> tuple[tuple[str, tuple[str, ...]], ...]:
        return (("ios", ("pod", "install")),)

    def _write_header(self, config: BuildConfig) -> Path:
        generated = config.source_dir / GENERATED_DIR
        core_header = _require(generated / f"{SWIFT_BRIDGE_CORE}.h")
        library_header = _require(generated / config.library_name / f"{config.library_name}.h")
        # The core header already pulls in everything the generated one includes.
        lines = [
            *core_header.read_text(encoding="utf-8").split("\n"),
            *(
                line
                for line in library_header.read_text(encoding="utf-8").split("\n")
                if not line.startswith("#include")
            ),
        ]
        header = config.source_dir / f"lib{config.library_name}.h"
        header.write_text("\n".join(lines), encoding="utf-8")
        return header

    def _write_bindings(self, config: BuildConfig) -> Path:
        generated = config.source_dir / GENERATED_DIR
        core_swift = _require(generated / f"{SWIFT_BRIDGE_CORE}.swift")
        library_swift = _require(generated / config.library_name / f"{config.library_name}.swift")
        annotated = annotate_availability(
            library_swift.read_text(encoding="utf-8").split("\n"),
            self.availability,
        )
        text = core_swift.read_text(encoding="utf-8") + "\n\n" + "\n".join(annotated)
        bindings = config.source_dir / f"{SWIFT_BRIDGE_CORE}.swift"
        bindings.write_text(text.strip(), encoding="utf-8")
        return bindings


def annotate_availability(lines: Sequence[str], availability: str) -> list[str]:
    """Guard every generated ``extension`` block, since async methods need iOS 13."""
    annotated: list[str] = []
    for line in lines:
        if line.startswith("extension"):
            annotated.append(f"@available({availability}, *)")
        annotated.append(line)
    return annotated


def _require(path: Path) -> Path:
    if not path.is_file():
        raise AssemblyError(
            "Expected generated bridge file is missing.",
            hint="swift-bridge-build writes these files during the cargo build.",
            context={"operation": "assemble", "path": str(path)},
        )
    return path
