"""Line-triggered rewrites of Cargo package manifests.

Manifests are handled as tuples of lines (split on ``"\\n"``) so that joining
them back reproduces the original bytes. Every operation returns a new tuple.

A rule whose trigger line is absent is a no-op: upstream drift yields a
manifest without the intended change rather than an error. Use
:func:`missing_triggers` to find out which rules did not fire.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from heliosup.errors import ValidationError

RuleAction = Literal["insert_after", "append_to_section", "replace"]
MatchMode = Literal["exact", "prefix"]

PATCH_SECTION = "[patch.crates-io]"
PACKAGE_SECTION = "[package]"
DEPENDENCIES_SECTION = "[dependencies]"
BUILD_DEPENDENCIES_SECTION = "[build-dependencies]"
LIB_SECTION = "[lib]"

Lines = tuple[str, ...]


@dataclass(frozen=True, slots=True)
class RewriteRule:
    trigger: str
    action: RuleAction
    lines: tuple[str, ...]
    match: MatchMode = "exact"

    def matches(self, line: str) -> bool:
        if self.match == "prefix":
            return line.startswith(self.trigger)
        return line == self.trigger


def read_manifest(path: str | Path) -> Lines:
    manifest_path = Path(path)
    try:
        text = manifest_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ValidationError(
            "Manifest is not valid UTF-8.",
            context={"operation": "read_manifest", "path": str(manifest_path)},
        ) from exc
    return tuple(text.split("\n"))


def write_manifest(path: str | Path, lines: Sequence[str]) -> Path:
    manifest_path = Path(path)
    manifest_path.write_text("\n".join(lines), encoding="utf-8")
    return manifest_path


def apply_rules(lines: Sequence[str], rules: Sequence[RewriteRule]) -> Lines:
    """Apply ``rules`` in order; each fires at most once, on its first match."""
    current = tuple(lines)
    for rule in rules:
        current = _apply_rule(current, rule)
    return current


def missing_triggers(lines: Sequence[str], rules: Sequence[RewriteRule]) -> tuple[str, ...]:
    return tuple(
        rule.trigger for rule in rules if not any(rule.matches(line) for line in lines)
    )


def override_rule(dependency: str, path: str | Path) -> RewriteRule:
    return RewriteRule(
        trigger=PATCH_SECTION,
        action="insert_after",
        lines=(f'{dependency} = {{ path = "{path}" }}',),
    )


def apply_override(lines: Sequence[str], dependency: str, path: str | Path) -> Lines:
    """Redirect ``dependency`` to a local checkout under ``[patch.crates-io]``."""
    return apply_rules(lines, [override_rule(dependency, path)])


def build_script_rule(script: str = "build.rs") -> RewriteRule:
    return RewriteRule(
        trigger=PACKAGE_SECTION,
        action="append_to_section",
        lines=(f'build = "{script}"',),
    )


def declare_build_script(lines: Sequence[str], script: str = "build.rs") -> Lines:
    return apply_rules(lines, [build_script_rule(script)])


def build_dependencies_rule(
    build_dependencies: Sequence[str],
    dependencies: Sequence[str] = (),
) -> RewriteRule:
    block: list[str] = []
    if build_dependencies:
        block.extend([BUILD_DEPENDENCIES_SECTION, *build_dependencies, ""])
    block.extend([DEPENDENCIES_SECTION, *dependencies])
    return RewriteRule(trigger=DEPENDENCIES_SECTION, action="replace", lines=tuple(block))


def inject_build_dependencies(
    lines: Sequence[str],
    build_dependencies: Sequence[str],
    dependencies: Sequence[str] = (),
) -> Lines:
    """Put a ``[build-dependencies]`` block before ``[dependencies]`` and extend it."""
    return apply_rules(lines, [build_dependencies_rule(build_dependencies, dependencies)])


def declare_library(lines: Sequence[str], name: str, kind: str) -> Lines:
    """Append a ``[lib]`` section, replacing any existing one."""
    current = list(_remove_section(tuple(lines), LIB_SECTION))
    while current and not current[-1].strip():
        current.pop()
    current.extend(["", LIB_SECTION, f'name = "{name}"', f'crate-type = ["{kind}"]', ""])
    return tuple(current)


def _apply_rule(lines: Lines, rule: RewriteRule) -> Lines:
    index = next((i for i, line in enumerate(lines) if rule.matches(line)), None)
    if index is None:
        return lines
    if rule.action == "insert_after":
        return lines[: index + 1] + rule.lines + lines[index + 1 :]
    if rule.action == "replace":
        return lines[:index] + rule.lines + lines[index + 1 :]
    end = _section_end(lines, index)
    while end - 1 > index and not lines[end - 1].strip():
        end -= 1
    return lines[:end] + rule.lines + lines[end:]


def _is_section_header(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith("[") and stripped.endswith("]")


def _section_end(lines: Lines, header_index: int) -> int:
    for i in range(header_index + 1, len(lines)):
        if _is_section_header(lines[i]):
            return i
    return len(lines)


def _remove_section(lines: Lines, header: str) -> Lines:
    if header not in lines:
        return lines
    start = lines.index(header)
    end = _section_end(lines, start)
    if end == len(lines):
        while start > 0 and not lines[start - 1].strip():
            start -= 1
    return lines[:start] + lines[end:]
