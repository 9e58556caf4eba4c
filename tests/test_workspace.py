from pathlib import Path

import pytest

from heliosup.config import BuildConfig, SourcePin
from heliosup.errors import CheckoutError
from heliosup.workspace import WorkspaceManager


def test_prepare_wipes_previous_build_directory(config: BuildConfig, runner) -> None:
    stale = config.build_dir / "helios" / "target" / "stale.a"
    stale.parent.mkdir(parents=True)
    stale.write_bytes(b"old")

    build_dir = WorkspaceManager(config=config, runner=runner).prepare()

    assert build_dir == config.build_dir
    assert build_dir.is_dir()
    assert list(build_dir.iterdir()) == []


def test_prepare_creates_missing_build_directory(config: BuildConfig, runner) -> None:
    assert not config.build_dir.exists()

    WorkspaceManager(config=config, runner=runner).prepare()

    assert config.build_dir.is_dir()


def test_checkout_clones_then_hard_resets_to_pinned_commit(config: BuildConfig, runner) -> None:
    workspace = WorkspaceManager(config=config, runner=runner)
    workspace.prepare()
    pin = SourcePin(name="helios", url="https://example.invalid/helios", commit="a" * 40)
    destination = config.build_dir / "helios"

    checkout = workspace.checkout(pin, destination)

    assert runner.calls == [
        (("git", "clone", pin.url, str(destination)), config.build_dir),
        (("git", "reset", "--hard", pin.commit), destination),
    ]
    assert checkout.path == destination
    assert checkout.crate_dir == destination


def test_checkout_crate_dir_uses_subdir(config: BuildConfig, runner) -> None:
    workspace = WorkspaceManager(config=config, runner=runner)

    checkout = workspace.checkout(config.crypto_dependency, config.crypto_checkout_dir)

    assert checkout.crate_dir == config.crypto_checkout_dir / "openssl-sys"


def test_clone_failure_aborts_before_reset(config: BuildConfig, runner) -> None:
    runner.fail_on(lambda argv: argv[:2] == ("git", "clone"), returncode=128)
    workspace = WorkspaceManager(config=config, runner=runner)

    with pytest.raises(CheckoutError) as excinfo:
        workspace.checkout(config.light_client, config.source_dir)

    assert excinfo.value.code == "E_CHECKOUT"
    assert excinfo.value.context["returncode"] == "128"
    assert excinfo.value.context["operation"] == "git_clone"
    assert [argv[1] for argv, _ in runner.calls] == ["clone"]


def test_unknown_commit_fails_checkout(config: BuildConfig, runner) -> None:
    runner.fail_on(lambda argv: argv[:2] == ("git", "reset"))
    workspace = WorkspaceManager(config=config, runner=runner)

    with pytest.raises(CheckoutError) as excinfo:
        workspace.checkout(config.light_client, config.source_dir)

    assert excinfo.value.context["operation"] == "git_reset"
    assert config.light_client.commit in excinfo.value.context["argv"]


def test_checkout_requires_commit(config: BuildConfig, runner, tmp_path: Path) -> None:
    pin = SourcePin(name="helios", url="https://example.invalid/helios", commit="")

    with pytest.raises(CheckoutError):
        WorkspaceManager(config=config, runner=runner).checkout(pin, tmp_path / "helios")

    assert runner.calls == []
