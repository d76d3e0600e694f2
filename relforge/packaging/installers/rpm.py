# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""RPM package via rpmbuild over a generated spec file."""

from relforge.packaging.installers.base import (
    Installer,
    InstallerOutput,
    InstallerRequest,
    summary_line,
)


def rpm_version(version: str) -> str:
    # RPM forbids "-" in Version; "~" sorts a pre-release before the release.
    return version.replace("-", "~")


def spec_file(request: InstallerRequest) -> str:
    metadata = request.metadata
    binary = request.binary
    lines = [
        "%global debug_package %{nil}",
        "%global __strip /bin/true",
        "",
        f"Name: {request.package}",
        f"Version: {rpm_version(request.version)}",
        "Release: 1",
        f"Summary: {summary_line(request)}",
        f"License: {metadata.license}",
        f"Packager: {metadata.maintainer}",
    ]
    if metadata.homepage:
        lines.append(f"URL: {metadata.homepage}")
    lines += [
        "",
        "%description",
        summary_line(request),
        "",
        "%install",
        "mkdir -p %{buildroot}%{_bindir}",
        f"install -m 0755 '{binary}' %{{buildroot}}%{{_bindir}}/{request.package}",
        "",
        "%files",
        f"%{{_bindir}}/{request.package}",
        "",
    ]
    return "\n".join(lines)


class RpmInstaller(Installer):
    tag = "linux-rpm"
    host_os = "linux"
    log_name = "rpm-pack.log"

    def build(self, request: InstallerRequest) -> InstallerOutput:
        rpmbuild = self.require_tool("rpmbuild", "install the rpm-build package")
        self.binary_of(request)

        topdir = request.work_dir / "rpmbuild"
        for sub in ("BUILD", "RPMS", "SOURCES", "SPECS", "SRPMS", "BUILDROOT"):
            (topdir / sub).mkdir(parents=True, exist_ok=True)
        spec_path = topdir / "SPECS" / f"{request.package}.spec"
        spec_path.write_text(spec_file(request), encoding="utf-8")

        self.run(
            [
                rpmbuild,
                "-bb",
                "--define",
                f"_topdir {topdir}",
                "--target",
                request.target.arch,
                str(spec_path),
            ],
            request,
        )
        outputs = self.find_outputs(topdir / "RPMS", "*.rpm")
        return InstallerOutput(files=[self.publish(path, request) for path in outputs])
