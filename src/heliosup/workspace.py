"""Build workspace lifecycle and pinned source checkouts."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from heliosup.config import BuildConfig, SourcePin
from heliosup.errors import CheckoutError
from heliosup.models import SourceCheckout
from heliosup.process import ProcessRunner, run_checked


@dataclass(slots=True)
class WorkspaceManager:
    config: BuildConfig
    runner: ProcessRunner

    def prepare(self) -> Path:
        """Wipe and recreate the build directory so no state leaks between runs."""
        build_dir = self.config.build_dir
        if build_dir.exists():
            shutil.rmtree(build_dir)
        build_dir.mkdir(parents=True)
        return build_dir

    def checkout(self, pin: SourcePin, destination: Path) -> SourceCheckout:
        """Clone ``pin.url`` into ``destination`` and hard-reset to ``pin.commit``."""
        if not pin.commit:
            raise CheckoutError(
                "Source pin requires a commit.",
                context={"operation": "checkout", "repo": pin.url},
            )
        hint = "Ensure the repository is reachable and the pinned commit exists."
        run_checked(
            self.runner,
            ["git", "clone", pin.url, str(destination)],
            cwd=self.config.build_dir,
            error=CheckoutError,
            operation="git_clone",
            hint=hint,
        )
        run_checked(
            self.runner,
            ["git", "reset", "--hard", pin.commit],
            cwd=destination,
            error=CheckoutError,
            operation="git_reset",
            hint=hint,
        )
        return SourceCheckout(pin=pin, path=destination)
