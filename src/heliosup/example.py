"""Finishing step: relink the example app against the freshly built package."""

from __future__ import annotations

import shutil
from collections.abc import Sequence

from heliosup.config import BuildConfig
from heliosup.errors import ExampleSyncError
from heliosup.observability import StructuredLogger
from heliosup.process import ProcessRunner, run_checked


def refresh_example(
    config: BuildConfig,
    runner: ProcessRunner,
    native_commands: Sequence[tuple[str, Sequence[str]]] = (),
    *,
    logger: StructuredLogger | None = None,
) -> None:
    """Reinstall the package into ``example/`` and run native refresh commands."""
    example_dir = config.example_dir
    if not example_dir.is_dir():
        raise ExampleSyncError(
            "Example project directory does not exist.",
            context={"operation": "refresh_example", "path": str(example_dir)},
        )

    node_modules = example_dir / "node_modules"
    if node_modules.exists():
        shutil.rmtree(node_modules)
    (example_dir / "yarn.lock").unlink(missing_ok=True)
    run_checked(
        runner,
        ["yarn", "add", "../"],
        cwd=example_dir,
        error=ExampleSyncError,
        operation="yarn_add",
    )

    for subdir, argv in native_commands:
        run_checked(
            runner,
            list(argv),
            cwd=example_dir / subdir,
            error=ExampleSyncError,
            operation=f"{argv[0]}_{subdir}",
        )

    if logger is not None:
        logger.log(
            operation="example_refreshed",
            platform=None,
            state=None,
            message="Example project relinked.",
            extra={"native_commands": [" ".join(argv) for _, argv in native_commands]},
        )
