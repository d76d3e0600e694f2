# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Placeholder tokens written by the manifest sub-builders.

Each generated manifest contains exactly one URL token and one hash token
until it is materialized. The formula uses its own URL token name so a
formula can never be filled by the Scoop/Winget rule by accident.
"""

from relforge.models import ManifestKind

FORMULA_URL_TOKEN = "__URL_TARBALL__"
URL_TOKEN = "__URL__"
SHA256_TOKEN = "__SHA256__"

TOKENS: dict[ManifestKind, tuple[str, str]] = {
    ManifestKind.FORMULA: (FORMULA_URL_TOKEN, SHA256_TOKEN),
    ManifestKind.JSON_MANIFEST: (URL_TOKEN, SHA256_TOKEN),
    ManifestKind.YAML_MANIFEST: (URL_TOKEN, SHA256_TOKEN),
}

# Output subdirectory and file extension per manifest kind.
LOCATIONS: dict[ManifestKind, tuple[str, str]] = {
    ManifestKind.FORMULA: ("brew", ".rb"),
    ManifestKind.JSON_MANIFEST: ("scoop", ".json"),
    ManifestKind.YAML_MANIFEST: ("winget", ".yaml"),
}
