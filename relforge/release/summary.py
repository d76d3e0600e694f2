# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Human-readable end-of-run summary."""

from relforge.release.orchestrator import JobStatus, ReleaseReport


def render_summary(report: ReleaseReport) -> str:
    lines: list[str] = []
    title = "Release plan" if report.dry_run else "Release summary"
    lines.append(f"==> {title} ({report.host.triple})")
    lines.append(f"Output: {report.output_dir}")

    if report.resolution.tags:
        lines.append(f"Targets: {', '.join(report.resolution.tags)}")

    if report.jobs:
        lines.append("")
        lines.append("Builds:")
        for result in report.jobs:
            marker = {
                JobStatus.BUILT: "ok",
                JobStatus.PLANNED: "..",
                JobStatus.FAILED: "FAIL",
                JobStatus.NO_ARTIFACT: "FAIL",
            }[result.status]
            optional = "" if result.job.required else " (best-effort)"
            lines.append(f"  [{marker:>4}] {result.job.key}{optional}")

    if report.artifacts:
        lines.append("")
        lines.append("Artifacts:")
        for artifact in sorted(report.artifacts, key=lambda a: a.name):
            lines.append(f"  {artifact.name}  ({artifact.kind.value}, {artifact.platform_label})")

    if report.manifests:
        lines.append("")
        lines.append("Manifests:")
        materialized = {result.manifest.path for result in report.materialized}
        for manifest in report.manifests:
            state = "materialized" if manifest.path in materialized else "placeholders"
            relative = (
                manifest.path.relative_to(report.output_dir)
                if manifest.path.is_relative_to(report.output_dir)
                else manifest.path
            )
            lines.append(f"  {relative}  ({state})")

    if report.warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(f"  - {issue.message}" for issue in report.warnings)

    if report.errors:
        lines.append("")
        lines.append("Errors:")
        for issue in report.errors:
            suffix = "" if issue.is_fatal else " (non-fatal)"
            lines.append(f"  - {issue.message}{suffix}")

    lines.append("")
    if report.dry_run:
        lines.append(f"Planned {len(report.jobs)} build job(s); nothing was built.")
    else:
        lines.append("Status: OK" if report.succeeded else "Status: FAILED")
    return "\n".join(lines) + "\n"
