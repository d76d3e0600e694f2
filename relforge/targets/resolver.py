# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Target resolver: turns a user tag list into an ordered, deduplicated list of
concrete tags.

Rules:
  - input may be a comma-separated string or a list; whitespace is ignored
  - aggregates expand in place to their fixed member list (one level)
  - raw triples are accepted and canonicalized to their platform tag
  - unknown tags produce a resolution warning and are skipped; resolution
    never fails the run
  - order is first-seen, so logs stay diffable between runs
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from relforge.errors import Issue, IssueKind
from relforge.logging.logger import get_logger
from relforge.models import PlatformTarget
from relforge.targets.catalog import (
    AGGREGATE_TAGS,
    PLATFORM_TARGETS,
    TRIPLE_ALIASES,
    is_aggregate_tag,
    is_installer_tag,
    is_platform_tag,
)

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Result of resolving a tag list."""

    tags: tuple[str, ...]
    warnings: tuple[Issue, ...] = field(default_factory=tuple)

    @property
    def platform_targets(self) -> list[PlatformTarget]:
        return [PLATFORM_TARGETS[tag] for tag in self.tags if is_platform_tag(tag)]

    @property
    def installer_tags(self) -> list[str]:
        return [tag for tag in self.tags if is_installer_tag(tag)]


def split_tags(raw: str | Iterable[str]) -> list[str]:
    """Split comma-separated input into trimmed, non-empty tags."""
    items = [raw] if isinstance(raw, str) else list(raw)
    tags: list[str] = []
    for item in items:
        tags.extend(part.strip() for part in item.split(",") if part.strip())
    return tags


def expand_tag(tag: str) -> tuple[str, ...]:
    """
    Expand one tag to its concrete members.

    Returns an empty tuple for unknown tags.
    """
    if is_aggregate_tag(tag):
        return AGGREGATE_TAGS[tag]
    if tag in TRIPLE_ALIASES:
        return (TRIPLE_ALIASES[tag],)
    if is_platform_tag(tag) or is_installer_tag(tag):
        return (tag,)
    return ()


def resolve_targets(raw: str | Iterable[str]) -> Resolution:
    """
    Resolve a tag list into concrete platform and installer tags.

    Args:
        raw: "linux-gnu,macos-all" or ["linux-gnu", "macos-all"].

    Returns:
        Resolution with the ordered tags and any resolution warnings.
    """
    seen: set[str] = set()
    ordered: list[str] = []
    warnings: list[Issue] = []

    for tag in split_tags(raw):
        members = expand_tag(tag)
        if not members:
            _logger.warning("Unknown target tag, skipping", extra={"tag": tag})
            warnings.append(
                Issue(
                    kind=IssueKind.RESOLUTION_WARNING,
                    subject=tag,
                    message=f"unknown target tag: {tag}",
                )
            )
            continue
        for member in members:
            if member not in seen:
                seen.add(member)
                ordered.append(member)

    _logger.info(
        "Targets resolved",
        extra={"tags": ordered, "warnings": len(warnings)},
    )
    return Resolution(tags=tuple(ordered), warnings=tuple(warnings))
