"""Validates that every other job reporting on a ref has succeeded."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

from merge_gatekeeper.github import CheckRun, RepoStatus
from merge_gatekeeper.multierror import MultiError
from merge_gatekeeper.status.report import JobStatus
from merge_gatekeeper.validators import Validator

SUCCESS_STATE = "success"
ERROR_STATE = "error"
FAILURE_STATE = "failure"
PENDING_STATE = "pending"

_CHECK_RUN_COMPLETED = "completed"
_SUCCESS_CONCLUSIONS = frozenset({"neutral", "success"})
_SKIPPED_CONCLUSION = "skipped"

MAX_STATUSES_PER_PAGE = 100
MAX_CHECK_RUNS_PER_PAGE = 100

_INVALID_COMBINED = "github combined status response is invalid"
_INVALID_CHECK_RUN = "github checkRun response is invalid"


class InvalidCombinedStatusResponse(ValueError):
    """A commit status came back without a context or a state."""


class InvalidCheckRunResponse(ValueError):
    """A check run came back without a name or a status."""


class ValidationFailed(Exception):
    """At least one job that is not ignored has failed."""

    def __init__(self, status: JobStatus) -> None:
        super().__init__(status.detail())
        self.status = status


class _Client(Protocol):
    def get_combined_status(
        self, owner: str, repo: str, ref: str, page: int = ..., per_page: int = ...,
        deadline: float | None = ...,
    ) -> Any: ...

    def list_check_runs_for_ref(
        self, owner: str, repo: str, ref: str, page: int = ..., per_page: int = ...,
        deadline: float | None = ...,
    ) -> Any: ...


@dataclass(frozen=True)
class GhaStatus:
    """The latest state of one job."""

    job: str
    state: str


def parse_ignored_jobs(names: str) -> list[str]:
    """Split a comma-separated list of job names, dropping blank entries."""
    return [name.strip() for name in names.split(",") if name.strip()]


@dataclass
class StatusValidator(Validator):
    """Checks the commit statuses and check runs of a ref."""

    client: _Client | None
    owner: str = ""
    repo: str = ""
    ref: str = ""
    self_job_name: str = ""
    ignored_jobs: list[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.self_job_name

    def validate(self, deadline: float | None = None) -> JobStatus:
        """Report on all jobs; raise ValidationFailed if any non-ignored job failed."""
        gha_statuses = self.list_gha_statuses(deadline)
        ignored = set(self.ignored_jobs)
        status = JobStatus(ignored_jobs=list(self.ignored_jobs), succeeded=True)

        success_count = 0
        for gha in gha_statuses:
            # Ignored jobs and this job itself count as successful whatever their state.
            if gha.job in ignored or gha.job == self.self_job_name:
                success_count += 1
                continue
            status.total_jobs.append(gha.job)
            if gha.state == SUCCESS_STATE:
                status.complete_jobs.append(gha.job)
                success_count += 1
            elif gha.state in (ERROR_STATE, FAILURE_STATE):
                status.err_jobs.append(gha.job)

        if status.err_jobs:
            raise ValidationFailed(status)
        status.succeeded = success_count == len(gha_statuses)
        return status

    def list_gha_statuses(self, deadline: float | None = None) -> list[GhaStatus]:
        """Collect the latest state of every job, statuses first, then check runs."""
        seen: set[str] = set()
        result: list[GhaStatus] = []

        # The same job may appear several times; the first entry is the latest.
        for repo_status in self._combined_statuses(deadline):
            if repo_status.context is None or repo_status.state is None:
                raise InvalidCombinedStatusResponse(
                    f"{_INVALID_COMBINED} context: {repo_status.context}, "
                    f"status: {repo_status.state}"
                )
            if repo_status.context in seen:
                continue
            seen.add(repo_status.context)
            result.append(GhaStatus(job=repo_status.context, state=repo_status.state))

        for run in self._check_runs(deadline):
            if run.name is None or run.status is None:
                raise InvalidCheckRunResponse(
                    f"{_INVALID_CHECK_RUN} name: {run.name}, status: {run.status}"
                )
            if run.name in seen:
                continue
            seen.add(run.name)

            if run.status != _CHECK_RUN_COMPLETED:
                result.append(GhaStatus(job=run.name, state=PENDING_STATE))
            elif run.conclusion in _SUCCESS_CONCLUSIONS:
                result.append(GhaStatus(job=run.name, state=SUCCESS_STATE))
            elif run.conclusion != _SKIPPED_CONCLUSION:
                result.append(GhaStatus(job=run.name, state=ERROR_STATE))
        return result

    def _combined_statuses(self, deadline: float | None) -> list[RepoStatus]:
        statuses: list[RepoStatus] = []
        page = 1
        while True:
            combined = self.client.get_combined_status(
                self.owner, self.repo, self.ref,
                page=page, per_page=MAX_STATUSES_PER_PAGE, deadline=deadline,
            )
            statuses.extend(combined.statuses)
            if combined.total_count < MAX_STATUSES_PER_PAGE:
                return statuses
            page += 1

    def _check_runs(self, deadline: float | None) -> list[CheckRun]:
        runs: list[CheckRun] = []
        page = 1
        while True:
            result = self.client.list_check_runs_for_ref(
                self.owner, self.repo, self.ref,
                page=page, per_page=MAX_CHECK_RUNS_PER_PAGE, deadline=deadline,
            )
            runs.extend(result.check_runs)
            if result.total <= len(runs):
                return runs
            page += 1


def create_validator(
    client: _Client | None,
    self_job: str = "",
    owner: str = "",
    repo: str = "",
    ref: str = "",
    ignored_jobs: str | Iterable[str] = "",
) -> StatusValidator:
    """Build a StatusValidator, raising MultiError if a required setting is missing."""
    if isinstance(ignored_jobs, str):
        ignored = parse_ignored_jobs(ignored_jobs)
    else:
        ignored = [name.strip() for name in ignored_jobs if name.strip()]

    problems: list[Exception] = []
    if not repo:
        problems.append(ValueError("repository name is empty"))
    if not owner:
        problems.append(ValueError("repository owner is empty"))
    if not ref:
        problems.append(ValueError("reference of repository is empty"))
    if not self_job:
        problems.append(ValueError("self job name is empty"))
    if client is None:
        problems.append(ValueError("github client is empty"))
    if problems:
        raise MultiError(problems)

    return StatusValidator(
        client=client,
        owner=owner,
        repo=repo,
        ref=ref,
        self_job_name=self_job,
        ignored_jobs=ignored,
    )