# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The fixed catalog of target tags.

Three kinds of tag exist:

  - platform tags name a concrete target triple (linux-musl → x86_64-unknown-linux-musl)
  - installer tags name a packaging pseudo-target (linux-deb, homebrew, ...)
  - aggregate tags name a fixed list of the other two (linux-all, all)

Aggregates are exactly one level deep: their members are only ever platform
or installer tags, never other aggregates. `all` is therefore spelled out in
full rather than written as "linux-all + macos-all + windows-all".
"""

from relforge.models import PlatformTarget, PlatformTriple


def _target(
    tag: str,
    triple: str,
    os_tag: str,
    arch: str,
    variant: str = "",
    linker: str | None = None,
    toolchain_packages: dict[str, str] | None = None,
    reduced_features: bool = False,
) -> PlatformTarget:
    return PlatformTarget(
        tag=tag,
        triple=PlatformTriple.parse(triple),
        os_tag=os_tag,
        arch=arch,
        variant=variant,
        linker=linker,
        toolchain_packages=toolchain_packages or {},
        reduced_features=reduced_features,
    )


# Package names per package manager for each cross linker. Managers missing
# from a mapping cannot provide that toolchain.
PLATFORM_TARGETS: dict[str, PlatformTarget] = {
    target.tag: target
    for target in (
        _target("linux-gnu", "x86_64-unknown-linux-gnu", "linux", "x86_64",
                linker="x86_64-linux-gnu-gcc",
                toolchain_packages={"apt-get": "gcc-x86-64-linux-gnu",
                                    "dnf": "gcc-x86_64-linux-gnu",
                                    "yum": "gcc-x86_64-linux-gnu"}),
        _target("linux-musl", "x86_64-unknown-linux-musl", "linux", "x86_64", "musl",
                linker="musl-gcc",
                toolchain_packages={"apt-get": "musl-tools", "dnf": "musl-gcc",
                                    "yum": "musl-gcc", "pacman": "musl", "zypper": "musl-devel"},
                reduced_features=True),
        _target("linux-aarch64", "aarch64-unknown-linux-gnu", "linux", "aarch64",
                linker="aarch64-linux-gnu-gcc",
                toolchain_packages={"apt-get": "gcc-aarch64-linux-gnu",
                                    "dnf": "gcc-aarch64-linux-gnu",
                                    "yum": "gcc-aarch64-linux-gnu",
                                    "pacman": "aarch64-linux-gnu-gcc",
                                    "zypper": "cross-aarch64-gcc13"},
                reduced_features=True),
        _target("windows-gnu", "x86_64-pc-windows-gnu", "windows", "x86_64",
                linker="x86_64-w64-mingw32-gcc",
                toolchain_packages={"apt-get": "mingw-w64", "dnf": "mingw64-gcc",
                                    "yum": "mingw64-gcc", "pacman": "mingw-w64-gcc",
                                    "zypper": "mingw64-cross-gcc", "brew": "mingw-w64"}),
        _target("windows-msvc", "x86_64-pc-windows-msvc", "windows", "x86_64", "msvc"),
        _target("macos-x86_64", "x86_64-apple-darwin", "macos", "x86_64"),
        _target("macos-aarch64", "aarch64-apple-darwin", "macos", "aarch64"),
    )
}

# Installer tag -> host OS family it can run on (None: any host).
INSTALLER_TAGS: dict[str, str | None] = {
    "linux-deb": "linux",
    "linux-rpm": "linux",
    "linux-appimage": "linux",
    "linux-snap": "linux",
    "linux-flatpak": "linux",
    "macos-dmg": "macos",
    "homebrew": None,
    "windows-msi": "windows",
    "scoop": None,
    "winget": None,
}

_LINUX_MEMBERS: tuple[str, ...] = (
    "linux-gnu",
    "linux-musl",
    "linux-aarch64",
    "windows-gnu",
    "linux-deb",
    "linux-rpm",
    "linux-appimage",
    "linux-snap",
    "linux-flatpak",
)
_MACOS_MEMBERS: tuple[str, ...] = ("macos-dmg", "homebrew")
_WINDOWS_MEMBERS: tuple[str, ...] = ("windows-msi", "scoop", "winget")

AGGREGATE_TAGS: dict[str, tuple[str, ...]] = {
    "linux-all": _LINUX_MEMBERS,
    "macos-all": _MACOS_MEMBERS,
    "windows-all": _WINDOWS_MEMBERS,
    "all": _LINUX_MEMBERS + _MACOS_MEMBERS + _WINDOWS_MEMBERS,
}

TRIPLE_ALIASES: dict[str, str] = {
    str(target.triple): tag for tag, target in PLATFORM_TARGETS.items()
}


def is_platform_tag(tag: str) -> bool:
    return tag in PLATFORM_TARGETS


def is_installer_tag(tag: str) -> bool:
    return tag in INSTALLER_TAGS


def is_aggregate_tag(tag: str) -> bool:
    return tag in AGGREGATE_TAGS


def target_for_triple(triple: str) -> PlatformTarget:
    """
    Catalog entry for a triple, or an ad-hoc one for triples we don't list.

    Unlisted hosts (riscv64, freebsd, ...) still get a usable label built from
    the triple's arch and os.
    """
    tag = TRIPLE_ALIASES.get(triple)
    if tag is not None:
        return PLATFORM_TARGETS[tag]
    parsed = PlatformTriple.parse(triple)
    os_tag = "macos" if parsed.os == "darwin" else parsed.os
    return PlatformTarget(tag=triple, triple=parsed, os_tag=os_tag, arch=parsed.arch)
