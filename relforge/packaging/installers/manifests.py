# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Package-manager manifest writers: Homebrew formula, Scoop JSON, Winget YAML.

These never guess a download URL or checksum. They write literal placeholder
tokens, and the materializer fills them once the artifacts exist and a base
URL is known. They need no binary and run on any host.
"""

import json
from pathlib import Path
from typing import Any

import yaml

from relforge.manifests.placeholders import LOCATIONS, TOKENS
from relforge.models import Manifest, ManifestKind
from relforge.packaging.installers.base import (
    Installer,
    InstallerOutput,
    InstallerRequest,
    summary_line,
)
from relforge.utils.filesystem import atomic_write

WINGET_MANIFEST_VERSION = "1.6.0"


def manifest_path(kind: ManifestKind, request: InstallerRequest) -> Path:
    subdir, suffix = LOCATIONS[kind]
    return request.output_dir / subdir / f"{request.package}{suffix}"


def formula_class_name(package: str) -> str:
    """Homebrew class naming: hyperdu-cli → HyperduCli."""
    parts = package.replace("_", "-").replace(".", "-").split("-")
    return "".join(part[:1].upper() + part[1:] for part in parts if part)


def _ruby_string(value: str) -> str:
    return json.dumps(value)


def formula_text(request: InstallerRequest) -> str:
    url_token, hash_token = TOKENS[ManifestKind.FORMULA]
    metadata = request.metadata
    lines = [
        f"class {formula_class_name(request.package)} < Formula",
        f"  desc {_ruby_string(summary_line(request))}",
    ]
    if metadata.homepage:
        lines.append(f"  homepage {_ruby_string(metadata.homepage)}")
    lines += [
        f'  url "{url_token}"',
        f'  sha256 "{hash_token}"',
        f"  version {_ruby_string(request.version)}",
        f"  license {_ruby_string(metadata.license)}",
        "",
        "  def install",
        f"    bin.install {_ruby_string(request.package)}",
        "  end",
        "",
        "  test do",
        f'    system "#{{bin}}/{request.package}", "--version"',
        "  end",
        "end",
    ]
    return "\n".join(lines) + "\n"


def scoop_document(request: InstallerRequest) -> dict[str, Any]:
    url_token, hash_token = TOKENS[ManifestKind.JSON_MANIFEST]
    metadata = request.metadata
    return {
        "version": request.version,
        "description": summary_line(request),
        "homepage": metadata.homepage,
        "license": metadata.license,
        # `#/<name>` renames the download, so `bin` holds whatever asset is picked.
        "url": f"{url_token}#/{request.package}.exe",
        "hash": hash_token,
        "bin": f"{request.package}.exe",
    }


def winget_identifier(request: InstallerRequest) -> str:
    publisher = request.metadata.publisher or request.package
    return f"{formula_class_name(publisher)}.{formula_class_name(request.package)}"


def winget_document(request: InstallerRequest) -> dict[str, Any]:
    url_token, hash_token = TOKENS[ManifestKind.YAML_MANIFEST]
    metadata = request.metadata
    document: dict[str, Any] = {
        "PackageIdentifier": winget_identifier(request),
        "PackageVersion": request.version,
        "PackageLocale": "en-US",
        "Publisher": metadata.publisher or metadata.maintainer,
        "PackageName": request.package,
        "License": metadata.license,
        "ShortDescription": summary_line(request),
    }
    if metadata.homepage:
        document["PackageUrl"] = metadata.homepage
    document["Installers"] = [
        {
            "Architecture": "x64",
            "InstallerType": "portable",
            "Commands": [request.package],
            "InstallerUrl": url_token,
            "InstallerSha256": hash_token,
        }
    ]
    document["ManifestType"] = "singleton"
    document["ManifestVersion"] = WINGET_MANIFEST_VERSION
    return document


class ManifestInstaller(Installer):
    """Shared plumbing: render, write atomically, report a Manifest."""

    kind: ManifestKind = ManifestKind.FORMULA
    requires_binary = False

    def render(self, request: InstallerRequest) -> str:
        raise NotImplementedError

    def build(self, request: InstallerRequest) -> InstallerOutput:
        path = manifest_path(self.kind, request)
        atomic_write(path, self.render(request))
        url_token, hash_token = TOKENS[self.kind]
        manifest = Manifest(
            kind=self.kind,
            path=path,
            package=request.package,
            url_token=url_token,
            hash_token=hash_token,
        )
        return InstallerOutput(manifests=[manifest])


class HomebrewInstaller(ManifestInstaller):
    tag = "homebrew"
    log_name = "homebrew-pack.log"
    kind = ManifestKind.FORMULA

    def render(self, request: InstallerRequest) -> str:
        return formula_text(request)


class ScoopInstaller(ManifestInstaller):
    tag = "scoop"
    log_name = "scoop-pack.log"
    kind = ManifestKind.JSON_MANIFEST

    def render(self, request: InstallerRequest) -> str:
        return json.dumps(scoop_document(request), indent=2) + "\n"


class WingetInstaller(ManifestInstaller):
    tag = "winget"
    log_name = "winget-pack.log"
    kind = ManifestKind.YAML_MANIFEST

    def render(self, request: InstallerRequest) -> str:
        return yaml.safe_dump(winget_document(request), sort_keys=False, allow_unicode=True)
