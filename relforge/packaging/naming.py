# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Artifact naming.

Every name is a pure function of its inputs, so re-running a release with the
same inputs writes the same files and a collision simply overwrites:

    <package>-<os>-<arch>-<flavor>.<zip|tar.gz>    archive
    <package>-<os>-<arch>-<flavor>[.exe]            raw binary
    <package>-<os>-<arch>.<zip|tar.gz>              host alias archive

`arch` carries the target variant when there is one (x86_64-musl), which
keeps musl and gnu builds of the same architecture apart.
"""

from relforge.models import CpuFlavor, PlatformTarget

ARCHIVE_EXTENSIONS: dict[str, str] = {"zip": ".zip", "tar.gz": ".tar.gz"}


def platform_arch(arch: str, variant: str = "") -> str:
    return f"{arch}-{variant}" if variant else arch


def artifact_stem(package: str, os_tag: str, arch: str, flavor: CpuFlavor | str) -> str:
    """`<package>-<os>-<arch>-<flavor>`."""
    flavor_name = flavor.value if isinstance(flavor, CpuFlavor) else flavor
    return f"{package}-{os_tag}-{arch}-{flavor_name}"


def target_stem(package: str, target: PlatformTarget, flavor: CpuFlavor) -> str:
    return artifact_stem(
        package, target.os_tag, platform_arch(target.arch, target.variant), flavor
    )


def archive_name(package: str, target: PlatformTarget, flavor: CpuFlavor, archive_format: str) -> str:
    return target_stem(package, target, flavor) + ARCHIVE_EXTENSIONS[archive_format]


def raw_binary_name(package: str, target: PlatformTarget, flavor: CpuFlavor) -> str:
    stem = target_stem(package, target, flavor)
    return stem + ".exe" if target.triple.is_windows else stem


def host_alias_name(package: str, target: PlatformTarget, archive_format: str) -> str:
    arch = platform_arch(target.arch, target.variant)
    return f"{package}-{target.os_tag}-{arch}" + ARCHIVE_EXTENSIONS[archive_format]


def binary_file_name(package: str, target: PlatformTarget) -> str:
    """Name of the binary inside archives and installers."""
    return package + ".exe" if target.triple.is_windows else package
