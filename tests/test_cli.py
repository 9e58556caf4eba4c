import io
import json
import shutil

import pytest

from heliosup.cli import run
from heliosup.config import BuildConfig
from heliosup.errors import ValidationError
from heliosup.platforms import AndroidStrategy, AppleStrategy


def test_apple_driver_builds_and_refreshes_example(
    config: BuildConfig,
    runner,
    simulate,
) -> None:
    simulate(AppleStrategy())
    node_modules = config.example_dir / "node_modules" / "heliosup"
    node_modules.mkdir(parents=True)
    (config.example_dir / "yarn.lock").write_text("# lock", encoding="utf-8")
    stream = io.StringIO()

    exit_code = run("apple", root=config.root, runner=runner, stream=stream)

    assert exit_code == 0
    assert runner.calls[-2] == (("yarn", "add", "../"), config.example_dir)
    assert runner.calls[-1] == (("pod", "install"), config.example_dir / "ios")
    assert not node_modules.exists()
    assert not (config.example_dir / "yarn.lock").exists()
    echoed = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert echoed[-1]["operation"] == "example_refreshed"
    assert (config.build_dir / "heliosup.log.jsonl").is_file()


def test_android_driver_only_relinks_javascript_package(
    config: BuildConfig,
    runner,
    simulate,
) -> None:
    simulate(AndroidStrategy())

    exit_code = run("android", root=config.root, runner=runner)

    assert exit_code == 0
    assert runner.calls[-1] == (("yarn", "add", "../"), config.example_dir)
    assert "pod install" not in runner.commands()


def test_driver_reports_build_failure(
    config: BuildConfig,
    runner,
    simulate,
    capsys: pytest.CaptureFixture[str],
) -> None:
    simulate(AndroidStrategy())
    runner.fail_on(lambda argv: argv[0].endswith("build.sh"), returncode=101)

    exit_code = run("android", root=config.root, runner=runner)

    assert exit_code == 1
    assert "heliosup: [E_COMPILE]" in capsys.readouterr().err
    assert not any(argv[0] == "yarn" for argv, _ in runner.calls)
    log_lines = (config.build_dir / "heliosup.log.jsonl").read_text(encoding="utf-8")
    assert '"toolchain_not_restored"' in log_lines


def test_driver_reports_missing_example(
    config: BuildConfig,
    runner,
    simulate,
    capsys: pytest.CaptureFixture[str],
) -> None:
    simulate(AndroidStrategy())
    shutil.rmtree(config.example_dir)

    exit_code = run("android", root=config.root, runner=runner)

    assert exit_code == 1
    assert "heliosup: [E_EXAMPLE_SYNC]" in capsys.readouterr().err
    assert (config.jni_libs_dir / "x86" / "libhelios.so").is_file()
    assert not any(argv[0] == "yarn" for argv, _ in runner.calls)


def test_unknown_platform_is_rejected(tmp_path, runner) -> None:
    with pytest.raises(ValidationError):
        run("windows", root=tmp_path, runner=runner)

    assert runner.calls == []
