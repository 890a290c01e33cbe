"""The report produced by one pass of the status validator."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from merge_gatekeeper.validators import Status

_COUNTS_TEMPLATE = """{complete} out of {total}

Total job count:       {total}
Completed job count:   {complete}
Incompleted job count: {incomplete}
Failed job count:      {failed}
Ignored job count:     {ignored}
"""


def pretty_print_job_list(jobs: Sequence[str]) -> str:
    """Render job names as a bulleted list, or "[]" when there are none."""
    if not jobs:
        return "[]"
    return "\n".join(f"- {job}" for job in jobs)


@dataclass
class JobStatus(Status):
    """Which jobs of a ref have completed, failed, been ignored or are still running."""

    total_jobs: list[str] = field(default_factory=list)
    complete_jobs: list[str] = field(default_factory=list)
    err_jobs: list[str] = field(default_factory=list)
    ignored_jobs: list[str] = field(default_factory=list)
    succeeded: bool = False

    def detail(self) -> str:
        """Return the report as text with GitHub Actions log groups."""
        incomplete = self.incomplete_jobs()
        counts = _COUNTS_TEMPLATE.format(
            complete=len(self.complete_jobs),
            total=len(self.total_jobs),
            incomplete=len(incomplete),
            failed=len(self.err_jobs),
            ignored=len(self.ignored_jobs),
        )
        sections = (
            ("Failed jobs", self.err_jobs),
            ("Completed jobs", self.complete_jobs),
            ("Incomplete jobs", incomplete),
            ("Ignored jobs", self.ignored_jobs),
            ("All jobs", self.total_jobs),
        )
        groups = "\n".join(
            f"::group::{title}\n{pretty_print_job_list(jobs)}\n::endgroup::\n"
            for title, jobs in sections
        )
        return f"{counts}\n{groups}"

    def is_success(self) -> bool:
        return self.succeeded

    def incomplete_jobs(self) -> list[str]:
        """Jobs that are neither completed, failed nor ignored, in their original order."""
        settled = {*self.complete_jobs, *self.err_jobs, *self.ignored_jobs}
        return [job for job in self.total_jobs if job not in settled]