"""Fixed-platform drivers.

``heliosup-apple`` and ``heliosup-android`` each build one platform for the
project in the current directory; neither takes flags.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TextIO

from heliosup.config import BuildConfig
from heliosup.errors import HeliosupError
from heliosup.example import refresh_example
from heliosup.models import PlatformName
from heliosup.observability import StructuredLogger
from heliosup.platforms import PlatformFactory, get_strategy
from heliosup.process import ProcessRunner, SubprocessRunner


def run(
    platform: PlatformName,
    *,
    root: Path | None = None,
    runner: ProcessRunner | None = None,
    stream: TextIO | None = None,
) -> int:
    """Compile ``platform`` and refresh the example app; return a process exit code."""
    config = BuildConfig(root=root or Path.cwd())
    runner = runner or SubprocessRunner()
    logger = StructuredLogger(stream=stream)
    strategy = get_strategy(platform)
    factory = PlatformFactory(strategy=strategy, config=config, runner=runner, logger=logger)
    try:
        result = factory.compile()
        if not result.ok:
            print(f"heliosup: {result.error}", file=sys.stderr)
            return 1
        refresh_example(config, runner, strategy.example_commands(), logger=logger)
    except HeliosupError as exc:
        print(f"heliosup: [{exc.code}] {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"heliosup: {exc}", file=sys.stderr)
        return 1
    finally:
        if config.build_dir.is_dir():
            logger.to_json_lines(config.build_dir / "heliosup.log.jsonl")
    return 0


def main_apple() -> None:
    sys.exit(run("apple", stream=sys.stderr))


def main_android() -> None:
    sys.exit(run("android", stream=sys.stderr))
