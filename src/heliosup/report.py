"""Build report export (JSON for humans, canonical CBOR for comparison)."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import cbor2

from heliosup.config import BuildConfig
from heliosup.models import BuildArtifact, DistributablePackage


@dataclass(frozen=True, slots=True)
class BuildReport:
    platform: str
    library_name: str
    pins: dict[str, dict[str, str]]
    targets: tuple[str, ...]
    artifact_digests: dict[str, str]
    installed: tuple[str, ...]
    logs: list[dict[str, Any]] = field(default_factory=list)
    schema_version: int = 1

    @classmethod
    def from_run(
        cls,
        *,
        platform: str,
        config: BuildConfig,
        targets: Sequence[str],
        artifacts: Sequence[BuildArtifact],
        package: DistributablePackage,
        logs: Sequence[dict[str, Any]] = (),
    ) -> BuildReport:
        pins = {
            pin.name: {"url": pin.url, "commit": pin.commit}
            for pin in (config.light_client, config.crypto_dependency)
        }
        digests = {
            artifact.target: hashlib.sha256(artifact.path.read_bytes()).hexdigest()
            for artifact in sorted(artifacts, key=lambda item: item.target)
        }
        installed = tuple(sorted(str(path.relative_to(config.root)) for path in package.paths))
        return cls(
            platform=platform,
            library_name=config.library_name,
            pins=pins,
            targets=tuple(targets),
            artifact_digests=digests,
            installed=installed,
            logs=list(logs),
        )

    def to_json(self, path: str | Path | None = None) -> str:
        payload = self._payload()
        payload["logs"] = self.logs
        encoded = json.dumps(payload, indent=2, sort_keys=True, default=str) + "\n"
        if path is not None:
            Path(path).write_text(encoded, encoding="utf-8")
        return encoded

    def to_cbor(self, path: str | Path | None = None) -> bytes:
        # Logs carry timestamps, so they stay out of the comparable encoding.
        encoded = cbor2.dumps(self._payload(), canonical=True)
        if path is not None:
            Path(path).write_bytes(encoded)
        return encoded

    def digest(self) -> str:
        return hashlib.sha256(self.to_cbor()).hexdigest()

    def _payload(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "platform": self.platform,
            "library_name": self.library_name,
            "pins": {name: dict(sorted(pin.items())) for name, pin in sorted(self.pins.items())},
            "targets": list(self.targets),
            "artifact_digests": dict(sorted(self.artifact_digests.items())),
            "installed": list(self.installed),
        }
