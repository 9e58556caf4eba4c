"""Rust toolchain provisioning via rustup and cargo."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from heliosup.config import BuildConfig
from heliosup.errors import ProvisioningError, ValidationError
from heliosup.process import ProcessRunner, run_checked


@dataclass(slots=True)
class ToolchainManager:
    config: BuildConfig
    runner: ProcessRunner
    channel_active: bool = field(init=False, default=False)

    def provision(self, targets: Sequence[str], helpers: Sequence[str]) -> None:
        """Activate the secondary channel, add ``targets`` and install ``helpers``.

        Leaves ``toolchain_channel`` active and sets :attr:`channel_active`;
        :meth:`restore` switches back.
        """
        if not targets:
            raise ValidationError("Toolchain provisioning requires at least one target triple.")
        baseline = self.config.baseline_toolchain
        channel = self.config.toolchain_channel
        self._rustup("default", baseline)
        self._rustup("install", channel)
        self._rustup("default", channel)
        self.channel_active = True
        self._rustup("--version")
        self._rustup("target", "add", *targets)
        if helpers:
            run_checked(
                self.runner,
                ["cargo", "install", *helpers],
                cwd=self.config.build_dir,
                error=ProvisioningError,
                operation="cargo_install",
                hint="Check network access to crates.io and the active toolchain.",
            )

    def restore(self) -> None:
        self._rustup("default", self.config.baseline_toolchain)
        self.channel_active = False

    def _rustup(self, *args: str) -> None:
        run_checked(
            self.runner,
            ["rustup", *args],
            cwd=self.config.build_dir,
            error=ProvisioningError,
            operation=f"rustup_{args[0].lstrip('-')}",
            hint="Install rustup and check that the requested channel/targets exist.",
        )
