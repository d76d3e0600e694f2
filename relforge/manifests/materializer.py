# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Manifest materializer: fills URL and SHA-256 placeholders in generated
package-manager manifests.

Only runs when a base download URL is known. For each manifest:

  1. pick the best already-produced artifact for it
  2. hash the artifact
  3. replace exactly the two placeholder tokens, writing through a temp
     file and an atomic replace

A manifest is either fully placeholdered or fully materialized on disk.
Re-running with the same inputs is a no-op: a manifest that already holds
the expected URL and hash is left untouched, byte for byte. Anything in
between (one token left, a token repeated, a different URL baked in) is a
ManifestError for that manifest alone.

Artifact preference:

    formula        .dmg > .tar.gz > .zip, macOS artifacts first, then any
    scoop/winget   .exe > .msi > .zip, Windows artifacts only

Within one step, candidates sort by file name and the first wins.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import quote

from relforge.errors import ManifestError
from relforge.logging.logger import get_logger
from relforge.manifests.placeholders import LOCATIONS, TOKENS
from relforge.models import Artifact, ArtifactKind, Manifest, ManifestKind
from relforge.utils.filesystem import TEMP_PREFIX, atomic_write
from relforge.utils.hashing import compute_sha256

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class PreferenceRule:
    extensions: tuple[str, ...]
    # Platform OS tags searched in order; None means "any platform".
    scopes: tuple[Optional[str], ...]


PREFERENCES: dict[ManifestKind, PreferenceRule] = {
    ManifestKind.FORMULA: PreferenceRule((".dmg", ".tar.gz", ".zip"), ("macos", None)),
    ManifestKind.JSON_MANIFEST: PreferenceRule((".exe", ".msi", ".zip"), ("windows",)),
    ManifestKind.YAML_MANIFEST: PreferenceRule((".exe", ".msi", ".zip"), ("windows",)),
}

# What may follow `<package>-` in a discovered artifact name.
NAME_OS_TAGS = ("linux", "macos", "windows")


@dataclass(frozen=True)
class MaterializeResult:
    manifest: Manifest
    artifact: Artifact
    url: str
    sha256: str
    changed: bool


def artifact_os(artifact: Artifact) -> str:
    """OS tag of an artifact, from its platform label or, failing that, its name."""
    if artifact.platform_label:
        return artifact.platform_label.split("-", 1)[0]
    name = artifact.name.lower()
    if name.endswith(".dmg") or "-macos-" in name:
        return "macos"
    if name.endswith((".exe", ".msi")) or "-windows-" in name:
        return "windows"
    if "-linux-" in name:
        return "linux"
    return ""


def belongs_to(artifact: Artifact, package: str) -> bool:
    """
    Whether an artifact was built from `package`.

    Discovered artifacts carry no package, so the file name decides. After
    the package name must come `.<ext>`, `_<version>` (deb naming), or `-`
    followed by an OS tag or a version. So `hyperdu-gui.dmg` is not an
    artifact of `hyperdu`.
    """
    if artifact.package:
        return artifact.package == package
    name = artifact.name
    if not name.startswith(package):
        return False
    rest = name[len(package):]
    if rest.startswith("."):
        return True
    if rest[:1] not in ("-", "_"):
        return False
    segment = rest[1:]
    if rest.startswith("_"):
        return segment[:1].isdigit()
    return segment.startswith(tuple(f"{tag}-" for tag in NAME_OS_TAGS)) or segment[:1].isdigit()


def select_artifact(manifest: Manifest, artifacts: Iterable[Artifact]) -> Optional[Artifact]:
    """Best artifact for `manifest` by its kind's preference rule, or None."""
    rule = PREFERENCES[manifest.kind]
    candidates = [artifact for artifact in artifacts if belongs_to(artifact, manifest.package)]
    for scope in rule.scopes:
        scoped = [a for a in candidates if scope is None or artifact_os(a) == scope]
        for extension in rule.extensions:
            matching = sorted(
                (a for a in scoped if a.name.endswith(extension)), key=lambda a: a.name
            )
            if matching:
                return matching[0]
    return None


def artifact_url(url_base: str, artifact: Artifact) -> str:
    return f"{url_base.rstrip('/')}/{quote(artifact.name)}"


def fill_tokens(text: str, manifest: Manifest, url: str, sha256: str) -> tuple[str, bool]:
    """
    Substitute both placeholders in `text`.

    Returns:
        (new text, changed). Already-materialized text with the same URL and
        hash comes back unchanged.

    Raises:
        ManifestError: Tokens are partially present, repeated, or the text was
            materialized with different values.
    """
    url_count = text.count(manifest.url_token)
    hash_count = text.count(manifest.hash_token)

    if url_count == 1 and hash_count == 1:
        filled = text.replace(manifest.url_token, url).replace(manifest.hash_token, sha256)
        return filled, True

    if url_count == 0 and hash_count == 0:
        if url in text and sha256 in text:
            return text, False
        raise ManifestError(
            f"{manifest.path.name} has no placeholders and does not match "
            f"the current URL and checksum"
        )

    raise ManifestError(
        f"{manifest.path.name} is in a partial state: "
        f"{url_count}x {manifest.url_token}, {hash_count}x {manifest.hash_token}"
    )


def materialize_manifest(manifest: Manifest, artifact: Artifact, url_base: str) -> MaterializeResult:
    """
    Fill one manifest from one artifact.

    Raises:
        ManifestError: The artifact cannot be hashed, the manifest cannot be
            read or written, or the manifest is in a partial state.
    """
    try:
        sha256 = compute_sha256(artifact.path)
    except OSError as err:
        raise ManifestError(f"cannot hash {artifact.name}: {err}") from err

    url = artifact_url(url_base, artifact)
    try:
        text = manifest.path.read_text(encoding="utf-8")
    except OSError as err:
        raise ManifestError(f"cannot read {manifest.path}: {err}") from err

    filled, changed = fill_tokens(text, manifest, url, sha256)
    if changed:
        try:
            atomic_write(manifest.path, filled)
        except OSError as err:
            raise ManifestError(f"cannot write {manifest.path}: {err}") from err

    _logger.info(
        "Manifest materialized" if changed else "Manifest already materialized",
        extra={"manifest": str(manifest.path), "artifact": artifact.name, "url": url},
    )
    return MaterializeResult(manifest, artifact, url, sha256, changed)


def materialize_all(
    manifests: Iterable[Manifest],
    artifacts: Iterable[Artifact],
    url_base: str,
) -> tuple[list[MaterializeResult], list[tuple[Manifest, ManifestError]]]:
    """
    Materialize every manifest, isolating failures per manifest.

    Returns:
        (results, failures)
    """
    artifacts = list(artifacts)
    results: list[MaterializeResult] = []
    failures: list[tuple[Manifest, ManifestError]] = []

    for manifest in manifests:
        try:
            artifact = select_artifact(manifest, artifacts)
            if artifact is None:
                rule = PREFERENCES[manifest.kind]
                raise ManifestError(
                    f"no {'/'.join(rule.extensions)} artifact for {manifest.package} "
                    f"to materialize {manifest.path.name}"
                )
            results.append(materialize_manifest(manifest, artifact, url_base))
        except ManifestError as err:
            _logger.error(
                "Manifest not materialized",
                extra={"manifest": str(manifest.path), "error": str(err)},
            )
            failures.append((manifest, err))

    return results, failures


def discover_manifests(output_dir: Path) -> list[Manifest]:
    """Manifests under brew/, scoop/ and winget/ of an existing output directory."""
    found: list[Manifest] = []
    for kind, (subdir, suffix) in LOCATIONS.items():
        directory = output_dir / subdir
        if not directory.is_dir():
            continue
        url_token, hash_token = TOKENS[kind]
        for path in sorted(directory.glob(f"*{suffix}")):
            if path.name.startswith(TEMP_PREFIX):
                continue
            found.append(
                Manifest(
                    kind=kind,
                    path=path,
                    package=path.name[: -len(suffix)],
                    url_token=url_token,
                    hash_token=hash_token,
                )
            )
    return found


def discover_artifacts(output_dir: Path) -> list[Artifact]:
    """Top-level files of an output directory, as artifacts of unknown origin."""
    artifacts: list[Artifact] = []
    for path in sorted(output_dir.iterdir()):
        if not path.is_file() or path.name.startswith((".", TEMP_PREFIX)):
            continue
        artifacts.append(Artifact(path=path, kind=ArtifactKind.ARCHIVE, platform_label="", package=""))
    return artifacts
