"""External tool execution seam.

Every step that shells out goes through a :class:`ProcessRunner`, which only
reports the exit status. The real runner inherits the parent's standard
streams so tool output reaches the operator unchanged; tests substitute a
recording fake.
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from heliosup.errors import HeliosupError


class ProcessRunner(Protocol):
    def run(self, argv: Sequence[str], *, cwd: Path) -> int:
        """Run ``argv`` to completion in ``cwd`` and return its exit status."""


@dataclass(slots=True)
class SubprocessRunner:
    def run(self, argv: Sequence[str], *, cwd: Path) -> int:
        completed = subprocess.run(list(argv), cwd=str(cwd), check=False)
        return completed.returncode


def run_checked(
    runner: ProcessRunner,
    argv: Sequence[str],
    *,
    cwd: Path,
    error: type[HeliosupError],
    operation: str,
    hint: str | None = None,
) -> None:
    """Run ``argv`` and raise ``error`` when it exits nonzero."""
    try:
        returncode = runner.run(argv, cwd=cwd)
    except FileNotFoundError as exc:
        raise error(
            f"`{argv[0]}` is not installed.",
            hint=hint or f"Install `{argv[0]}` and make sure it is on PATH.",
            context={"operation": operation, "argv": " ".join(argv), "cwd": str(cwd)},
        ) from exc
    if returncode != 0:
        raise error(
            f"`{argv[0]}` exited with status {returncode}.",
            hint=hint,
            context={
                "operation": operation,
                "argv": " ".join(argv),
                "cwd": str(cwd),
                "returncode": str(returncode),
            },
        )
