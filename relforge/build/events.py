# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Typed view of cargo's `--message-format=json` output.

Cargo prints one JSON object per line; the `reason` field says what it is.
We care about three reasons:

    compiler-artifact  → a unit finished; `executable` is set for binaries
    compiler-message   → a diagnostic (we keep the rendered text)
    build-finished     → the overall verdict

Anything else is kept as an OtherEvent. Lines that are not JSON at all
(stderr merged into the stream, progress bars) parse to None.

This module does no I/O, so it can be tested against recorded transcripts
without running a compiler.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Union

REASON_ARTIFACT = "compiler-artifact"
REASON_MESSAGE = "compiler-message"
REASON_FINISHED = "build-finished"


@dataclass(frozen=True)
class CompilerArtifact:
    package_id: str
    target_name: str
    target_kinds: tuple[str, ...]
    filenames: tuple[str, ...]
    executable: Optional[str]
    is_test: bool = False
    fresh: bool = False


@dataclass(frozen=True)
class CompilerMessage:
    level: str
    rendered: str


@dataclass(frozen=True)
class BuildFinished:
    success: bool


@dataclass(frozen=True)
class OtherEvent:
    reason: str
    payload: dict = field(default_factory=dict, hash=False, compare=False)


BuildEvent = Union[CompilerArtifact, CompilerMessage, BuildFinished, OtherEvent]


def parse_event(line: str) -> Optional[BuildEvent]:
    """Parse one output line. Non-JSON lines and JSON without a reason give None."""
    stripped = line.strip()
    if not stripped.startswith("{"):
        return None
    try:
        payload = json.loads(stripped)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None

    reason = payload.get("reason")
    if not isinstance(reason, str):
        return None

    if reason == REASON_ARTIFACT:
        target = payload.get("target") or {}
        profile = payload.get("profile") or {}
        return CompilerArtifact(
            package_id=str(payload.get("package_id", "")),
            target_name=str(target.get("name", "")),
            target_kinds=tuple(target.get("kind") or ()),
            filenames=tuple(payload.get("filenames") or ()),
            executable=payload.get("executable") or None,
            is_test=bool(profile.get("test", False)),
            fresh=bool(payload.get("fresh", False)),
        )
    if reason == REASON_MESSAGE:
        message = payload.get("message") or {}
        return CompilerMessage(
            level=str(message.get("level", "")),
            rendered=str(message.get("rendered") or message.get("message") or ""),
        )
    if reason == REASON_FINISHED:
        return BuildFinished(success=bool(payload.get("success", False)))
    return OtherEvent(reason=reason, payload=payload)


def parse_events(lines: Iterable[str]) -> list[BuildEvent]:
    """Parse a transcript, dropping lines that are not events."""
    events: list[BuildEvent] = []
    for line in lines:
        event = parse_event(line)
        if event is not None:
            events.append(event)
    return events


def executable_artifacts(events: Iterable[BuildEvent]) -> list[CompilerArtifact]:
    """Artifact events that produced an executable."""
    return [
        event
        for event in events
        if isinstance(event, CompilerArtifact) and event.executable is not None
    ]


def collect_executables(events: Iterable[BuildEvent]) -> list[Path]:
    """All distinct executable paths reported, sorted."""
    return sorted({Path(artifact.executable) for artifact in executable_artifacts(events)})


def select_executable(
    events: Iterable[BuildEvent],
    package: Optional[str] = None,
) -> Optional[Path]:
    """
    Pick the one executable a build job is meant to produce.

    Candidate narrowing, each step applied only if it leaves something:
      1. drop test-profile artifacts (test harness binaries)
      2. keep binaries whose target name equals the package name

    Among what remains, the last path after sorting wins. Returns None when
    no executable was reported at all.
    """
    candidates = executable_artifacts(events)
    if not candidates:
        return None

    non_test = [artifact for artifact in candidates if not artifact.is_test]
    if non_test:
        candidates = non_test

    if package is not None:
        named = [artifact for artifact in candidates if artifact.target_name == package]
        if named:
            candidates = named

    return sorted({Path(artifact.executable) for artifact in candidates})[-1]


def diagnostics_text(lines: Iterable[str], events: Iterable[BuildEvent], limit: int = 60) -> str:
    """
    Human-readable diagnostics for a failed build.

    Rendered compiler messages come first, then raw non-JSON lines (with
    `json-render-diagnostics`, cargo prints rendered errors there). Trimmed
    to the last `limit` lines.
    """
    rendered = [
        event.rendered.rstrip()
        for event in events
        if isinstance(event, CompilerMessage) and event.level in ("error", "warning")
        and event.rendered
    ]
    raw = [line for line in lines if parse_event(line) is None and line.strip()]
    text_lines = "\n".join(rendered + raw).splitlines()
    return "\n".join(text_lines[-limit:])
