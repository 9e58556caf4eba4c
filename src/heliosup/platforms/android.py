"""Android platform: one shared library per ABI under ``jniLibs``."""

from __future__ import annotations

import shutil
import textwrap
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from heliosup.bridge import CLIENT_IMPORTS, EXPORTED_TYPE, render_client_impl, start_entry_point
from heliosup.config import BuildConfig
from heliosup.manifest import RewriteRule, apply_rules, build_dependencies_rule
from heliosup.models import (
    BridgeModule,
    BuildArtifact,
    DistributablePackage,
    LibraryKind,
    PlatformName,
    Unsupported,
)
from heliosup.platforms.base import BuildContext, dedupe_targets, locate_artifacts

JNI_DEPENDENCY = 'jni = "0.21"'

DEFAULT_ABI_DIRS: dict[str, str] = {
    "aarch64-linux-android": "arm64-v8a",
    "armv7-linux-androideabi": "armeabi-v7a",
    "i686-linux-android": "x86",
    "x86_64-linux-android": "x86_64",
}

JNI_IMPORTS = (
    "use jni::objects::{JClass, JString};",
    "use jni::sys::jlong;",
    "use jni::JNIEnv;",
    "use std::sync::OnceLock;",
)


@dataclass(slots=True)
class AndroidStrategy:
    name: PlatformName = "android"
    abi_dirs: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ABI_DIRS))

    def targets(self) -> tuple[str, ...]:
        return dedupe_targets(self.abi_dirs)

    def destinations(self, config: BuildConfig) -> dict[str, Path]:
        return {target: config.jni_libs_dir / abi for target, abi in self.abi_dirs.items()}

    def helper_packages(self) -> tuple[str, ...]:
        return ("cargo-ndk",)

    def library_kind(self) -> LibraryKind:
        return "cdylib"

    def unsupported_steps(self) -> tuple[Unsupported, ...]:
        return ()

    def prepare_workspace(self, context: BuildContext) -> None:
        for destination in self.destinations(context.config).values():
            if destination.exists():
                shutil.rmtree(destination)
            destination.mkdir(parents=True)

    def boundary_module(self, config: BuildConfig) -> BridgeModule:
        return BridgeModule(
            type_name=EXPORTED_TYPE,
            entry_points=(start_entry_point(config),),
            imports=(*CLIENT_IMPORTS, *JNI_IMPORTS),
        )

    def boundary_source(self, config: BuildConfig) -> str:
        module = self.boundary_module(config)
        return (
            "\n".join(module.imports)
            + "\n\n"
            + render_client_impl(module, config)
            + "\n"
            + render_jni_exports(module, config)
        )

    def companion_sources(self, config: BuildConfig) -> Mapping[str, str]:
        return {}

    def manifest_rules(self) -> tuple[RewriteRule, ...]:
        return (build_dependencies_rule((), (JNI_DEPENDENCY,)),)

    def customize_manifest(self, lines: Sequence[str]) -> tuple[str, ...]:
        return apply_rules(lines, self.manifest_rules())

    def build_script(self, config: BuildConfig) -> str:
        commands = [
            f"cargo ndk --target {target} --platform {config.android_api_level} build --release"
            for target in self.targets()
        ]
        return (
            "#!/bin/bash\n"
            "\n"
            "set -e\n"
            "\n"
            "THISDIR=$(dirname $0)\n"
            "cd $THISDIR\n"
            "\n"
            + " && \\\n".join(commands)
            + "\n"
        )

    def on_build_complete(
        self, context: BuildContext
    ) -> tuple[tuple[BuildArtifact, ...], DistributablePackage]:
        config = context.config
        destinations = self.destinations(config)
        # Nothing is copied unless every ABI has its library.
        artifacts = locate_artifacts(config, self.targets(), self.library_kind())
        installed: list[Path] = []
        for artifact in artifacts:
            destination = destinations[artifact.target]
            destination.mkdir(parents=True, exist_ok=True)
            installed.append(Path(shutil.copy2(artifact.path, destination / artifact.path.name)))
            context.logger.log(
                operation="library_installed",
                platform=self.name,
                state=None,
                message="Installed shared library.",
                extra={"target": artifact.target, "destination": str(destination)},
            )
        package = DistributablePackage(
            platform=self.name,
            root=config.jni_libs_dir,
            paths=tuple(installed),
        )
        return artifacts, package

    def example_commands(self) -> tuple[tuple[str, tuple[str, ...]], ...]:
        return ()


def jni_symbol(config: BuildConfig, method: str) -> str:
    """JNI export name for ``method`` on the configured Java class."""
    qualified = f"{config.android_package}.{config.android_class}"
    mangled = qualified.replace("_", "_1").replace(".", "_")
    return f"Java_{mangled}_{method}"


def render_jni_exports(module: BridgeModule, config: BuildConfig) -> str:
    start = start_entry_point(config)
    return textwrap.dedent(f"""\
        fn runtime() -> &'static tokio::runtime::Runtime {{
          static RUNTIME: OnceLock<tokio::runtime::Runtime> = OnceLock::new();
          RUNTIME.get_or_init(|| tokio::runtime::Runtime::new().unwrap())
        }}

        #[no_mangle]
        pub extern "system" fn {jni_symbol(config, "nativeCreate")}(
          _env: JNIEnv,
          _class: JClass,
        ) -> jlong {{
          Box::into_raw(Box::new({module.type_name}::new())) as jlong
        }}

        #[no_mangle]
        pub extern "system" fn {jni_symbol(config, "nativeStart")}(
          mut env: JNIEnv,
          _class: JClass,
          handle: jlong,
          untrusted_rpc_url: JString,
          consensus_rpc_url: JString,
        ) {{
          let app = unsafe {{ &mut *(handle as *mut {module.type_name}) }};
          let untrusted_rpc_url: String = env.get_string(&untrusted_rpc_url).unwrap().into();
          let consensus_rpc_url: String = env.get_string(&consensus_rpc_url).unwrap().into();
          runtime().block_on(app.{start.name}(untrusted_rpc_url, consensus_rpc_url));
        }}

        #[no_mangle]
        pub extern "system" fn {jni_symbol(config, "nativeDestroy")}(
          _env: JNIEnv,
          _class: JClass,
          handle: jlong,
        ) {{
          if handle != 0 {{
            drop(unsafe {{ Box::from_raw(handle as *mut {module.type_name}) }});
          }}
        }}
    """)
