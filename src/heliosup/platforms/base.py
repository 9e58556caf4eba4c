"""Platform strategy protocol and the shared compile lifecycle."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from heliosup.config import BuildConfig
from heliosup.errors import (
    AssemblyError,
    CompileError,
    HeliosupError,
    UnsupportedStepError,
    ValidationError,
)
from heliosup.manifest import (
    RewriteRule,
    apply_rules,
    declare_library,
    missing_triggers,
    override_rule,
    read_manifest,
    write_manifest,
)
from heliosup.models import (
    ARTIFACT_SUFFIX,
    LIFECYCLE_ORDER,
    BuildArtifact,
    CompileResult,
    DistributablePackage,
    LibraryKind,
    LifecycleState,
    PlatformName,
    SourceCheckout,
    Unsupported,
)
from heliosup.observability import StructuredLogger
from heliosup.process import ProcessRunner, SubprocessRunner, run_checked
from heliosup.report import BuildReport
from heliosup.toolchain import ToolchainManager
from heliosup.workspace import WorkspaceManager

# Rebuilds OpenSSL from a source release that supports the iOS simulator.
CRYPTO_SOURCE_RULE = RewriteRule(
    trigger="openssl-src",
    action="replace",
    lines=('openssl-src = { version = "300", optional = true }',),
    match="prefix",
)
CRYPTO_DEPENDENCY = "openssl-sys"


@dataclass(frozen=True, slots=True)
class BuildContext:
    config: BuildConfig
    runner: ProcessRunner
    logger: StructuredLogger


class PlatformStrategy(Protocol):
    name: PlatformName

    def targets(self) -> tuple[str, ...]:
        """Ordered, deduplicated target triples to install, build and assemble."""

    def helper_packages(self) -> tuple[str, ...]:
        """Cargo helper crates (cross-linking CLIs) required by the build script."""

    def library_kind(self) -> LibraryKind:
        """Crate type declared in the ``[lib]`` section."""

    def unsupported_steps(self) -> tuple[Unsupported, ...]:
        """Hooks this variant does not implement; empty for complete variants."""

    def prepare_workspace(self, context: BuildContext) -> None:
        """Platform side effects right after the build directory is recreated."""

    def boundary_source(self, config: BuildConfig) -> str:
        """Full text of the generated ``src/lib.rs``."""

    def companion_sources(self, config: BuildConfig) -> Mapping[str, str]:
        """Extra generated files, keyed by path relative to the source checkout."""

    def manifest_rules(self) -> tuple[RewriteRule, ...]:
        """Rules applied by :meth:`customize_manifest`."""

    def customize_manifest(self, lines: Sequence[str]) -> tuple[str, ...]:
        """Apply the platform's manifest rules."""

    def build_script(self, config: BuildConfig) -> str:
        """Shell script that cross-compiles every target triple."""

    def on_build_complete(
        self, context: BuildContext
    ) -> tuple[tuple[BuildArtifact, ...], DistributablePackage]:
        """Assemble artifacts and install the distributable package."""

    def example_commands(self) -> tuple[tuple[str, tuple[str, ...]], ...]:
        """Native refresh commands for the example app as ``(subdir, argv)`` pairs."""


def dedupe_targets(targets: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(targets))


def artifact_path(config: BuildConfig, target: str, kind: LibraryKind) -> Path:
    filename = f"lib{config.library_name}{ARTIFACT_SUFFIX[kind]}"
    return config.source_dir / "target" / target / "release" / filename


def locate_artifacts(
    config: BuildConfig,
    targets: Sequence[str],
    kind: LibraryKind,
) -> tuple[BuildArtifact, ...]:
    """Return one artifact per target, failing if any expected binary is missing."""
    artifacts = tuple(
        BuildArtifact(target=target, path=artifact_path(config, target, kind), kind=kind)
        for target in targets
    )
    missing = [artifact for artifact in artifacts if not artifact.path.is_file()]
    if missing:
        raise AssemblyError(
            "Compiled libraries are missing for some targets.",
            hint="Inspect the build script output; every declared target must produce a library.",
            context={
                "operation": "locate_artifacts",
                "targets": ",".join(artifact.target for artifact in missing),
                "paths": ",".join(str(artifact.path) for artifact in missing),
            },
        )
    return artifacts


@dataclass(slots=True)
class PlatformFactory:
    """Drives one platform strategy through the fixed compile lifecycle.

    ``init -> provisioned -> checked_out -> patched -> sources_generated ->
    built -> assembled -> done``. Any failure moves the factory to ``failed``
    and propagates; there is no resume, a new run starts from ``init``.

    The toolchain channel is restored only on the success path.
    """

    strategy: PlatformStrategy
    config: BuildConfig
    runner: ProcessRunner = field(default_factory=SubprocessRunner)
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    state: LifecycleState = field(init=False, default=LifecycleState.INIT)
    _toolchain: ToolchainManager | None = field(init=False, default=None, repr=False)

    def compile(self) -> CompileResult:
        unsupported = self.strategy.unsupported_steps()
        if unsupported:
            return self._unsupported_result(unsupported)

        self.state = LifecycleState.INIT
        toolchain = ToolchainManager(config=self.config, runner=self.runner)
        self._toolchain = toolchain
        context = BuildContext(config=self.config, runner=self.runner, logger=self.logger)
        targets = self.strategy.targets()
        self._log(
            "compile_start",
            message="Starting platform compile.",
            extra={"targets": list(targets)},
        )
        try:
            workspace = WorkspaceManager(config=self.config, runner=self.runner)

            workspace.prepare()
            self.strategy.prepare_workspace(context)
            toolchain.provision(targets, self.strategy.helper_packages())
            self._advance(LifecycleState.PROVISIONED)

            self._checkout(workspace)
            self._advance(LifecycleState.CHECKED_OUT)

            self._patch_manifest()
            self._advance(LifecycleState.PATCHED)

            script_path = self._generate_sources()
            self._advance(LifecycleState.SOURCES_GENERATED)

            self._build(script_path)
            toolchain.restore()
            self._advance(LifecycleState.BUILT)

            self._log("assembly_started", message="Assembling build artifacts.")
            artifacts, package = self.strategy.on_build_complete(context)
            self._advance(LifecycleState.ASSEMBLED)

            report_path = self._write_report(targets, artifacts, package)
            self._advance(LifecycleState.DONE)
        except Exception as exc:
            self._fail(exc)
            raise

        return CompileResult(
            platform=self.strategy.name,
            state=self.state,
            artifacts=artifacts,
            package=package,
            report_path=report_path,
        )

    def _checkout(self, workspace: WorkspaceManager) -> tuple[SourceCheckout, SourceCheckout]:
        light_client = workspace.checkout(self.config.light_client, self.config.source_dir)
        crypto = workspace.checkout(self.config.crypto_dependency, self.config.crypto_checkout_dir)
        crypto_manifest = crypto.crate_dir / "Cargo.toml"
        lines = read_manifest(crypto_manifest)
        self._warn_missing_triggers(crypto_manifest, lines, [CRYPTO_SOURCE_RULE])
        write_manifest(crypto_manifest, apply_rules(lines, [CRYPTO_SOURCE_RULE]))
        return light_client, crypto

    def _patch_manifest(self) -> None:
        manifest = self.config.manifest_path
        original = read_manifest(manifest)
        override = override_rule(CRYPTO_DEPENDENCY, self.config.crypto_crate_dir)
        platform_rules = self.strategy.manifest_rules()
        self._warn_missing_triggers(manifest, original, [override, *platform_rules])

        lines = apply_rules(original, [override])
        lines = declare_library(lines, self.config.library_name, self.strategy.library_kind())
        lines = self.strategy.customize_manifest(lines)
        write_manifest(manifest, lines)
        self._log(
            "manifest_patched",
            message="Patched light-client manifest.",
            extra={"path": str(manifest)},
        )

    def _generate_sources(self) -> Path:
        source_dir = self.config.source_dir
        lib_rs = source_dir / "src" / "lib.rs"
        lib_rs.parent.mkdir(parents=True, exist_ok=True)
        lib_rs.write_text(self.strategy.boundary_source(self.config), encoding="utf-8")
        generated = [lib_rs]
        for relative, text in sorted(self.strategy.companion_sources(self.config).items()):
            path = source_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
            generated.append(path)

        script_path = source_dir / "build.sh"
        script_path.write_text(self.strategy.build_script(self.config), encoding="utf-8")
        script_path.chmod(0o755)
        generated.append(script_path)
        self._log(
            "sources_generated",
            message="Wrote boundary module and build script.",
            extra={"files": [str(path.relative_to(source_dir)) for path in generated]},
        )
        return script_path

    def _build(self, script_path: Path) -> None:
        self._log(
            "build_invoked",
            message="Running build script.",
            extra={"script": str(script_path)},
        )
        run_checked(
            self.runner,
            [str(script_path)],
            cwd=self.config.source_dir,
            error=CompileError,
            operation="build_script",
            hint="Cross-compilation failed; see the cargo output above.",
        )

    def _write_report(
        self,
        targets: tuple[str, ...],
        artifacts: tuple[BuildArtifact, ...],
        package: DistributablePackage,
    ) -> Path:
        report = BuildReport.from_run(
            platform=self.strategy.name,
            config=self.config,
            targets=targets,
            artifacts=artifacts,
            package=package,
            logs=self.logger.records_for_platform(self.strategy.name),
        )
        report_path = self.config.build_dir / "report.json"
        report.to_json(report_path)
        report.to_cbor(self.config.build_dir / "report.cbor")
        self._log(
            "report_written",
            message="Wrote build report.",
            extra={"digest": report.digest()},
        )
        return report_path

    def _advance(self, next_state: LifecycleState) -> None:
        expected = LIFECYCLE_ORDER[LIFECYCLE_ORDER.index(self.state) + 1]
        if next_state is not expected:
            raise ValidationError(
                "Invalid lifecycle transition.",
                context={"from": self.state.value, "to": next_state.value},
            )
        previous = self.state
        self.state = next_state
        self._log(
            "state_transition",
            message=f"{previous.value} -> {next_state.value}",
            extra={"from": previous.value, "to": next_state.value},
        )

    def _fail(self, exc: Exception) -> None:
        failed_in = self.state
        self.state = LifecycleState.FAILED
        payload: dict[str, object]
        if isinstance(exc, HeliosupError):
            payload = exc.to_dict()
        else:
            payload = {"type": type(exc).__name__, "message": str(exc)}
        self._log(
            "compile_failed",
            message="Platform compile failed.",
            level="error",
            extra={"failed_in": failed_in.value, "error": payload},
        )
        if self._toolchain is not None and self._toolchain.channel_active:
            self._log(
                "toolchain_not_restored",
                message=(
                    f"Toolchain channel `{self.config.toolchain_channel}` may still be the "
                    f"default; run `rustup default {self.config.baseline_toolchain}` to restore it."
                ),
                level="warning",
            )

    def _unsupported_result(self, unsupported: tuple[Unsupported, ...]) -> CompileResult:
        steps = ",".join(item.step for item in unsupported)
        error = UnsupportedStepError(
            f"Platform `{self.strategy.name}` does not implement every build step.",
            hint="Implement the listed strategy hooks before compiling this platform.",
            context={"platform": self.strategy.name, "steps": steps},
        )
        self.state = LifecycleState.FAILED
        self._log("compile_unsupported", message=str(error), level="error", extra={"steps": steps})
        return CompileResult(
            platform=self.strategy.name,
            state=self.state,
            error=error,
            unsupported=unsupported,
        )

    def _warn_missing_triggers(
        self,
        manifest: Path,
        lines: Sequence[str],
        rules: Sequence[RewriteRule],
    ) -> None:
        missing = missing_triggers(lines, rules)
        if missing:
            self._log(
                "manifest_trigger_missing",
                message="Manifest rewrite triggers not found; rules were skipped.",
                level="warning",
                extra={"path": str(manifest), "triggers": list(missing)},
            )

    def _log(
        self,
        operation: str,
        *,
        message: str,
        level: str = "info",
        extra: dict[str, object] | None = None,
    ) -> None:
        self.logger.log(
            operation=operation,
            platform=self.strategy.name,
            state=self.state.value,
            message=message,
            level=level,
            extra=extra,
        )
