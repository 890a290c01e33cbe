"""A small GitHub REST client for commit statuses and check runs, with retries."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import requests

API_URL = "https://api.github.com"
DEFAULT_MAX_RETRIES = 5
DEFAULT_RETRY_DELAY = 1.0


@dataclass(frozen=True)
class RepoStatus:
    """One commit status entry."""

    context: str | None = None
    state: str | None = None


@dataclass
class CombinedStatus:
    """One page of the combined status for a ref."""

    total_count: int = 0
    statuses: list[RepoStatus] = field(default_factory=list)


@dataclass(frozen=True)
class CheckRun:
    """One check run entry."""

    name: str | None = None
    status: str | None = None
    conclusion: str | None = None


@dataclass
class CheckRunsResult:
    """One page of check runs for a ref."""

    total: int = 0
    check_runs: list[CheckRun] = field(default_factory=list)


class GitHubError(Exception):
    """A failed GitHub API call; ``status_code`` is None when no response came back."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _remaining(deadline: float | None) -> float | None:
    if deadline is None:
        return None
    return max(deadline - time.monotonic(), 0.001)


def _expired(deadline: float | None) -> bool:
    return deadline is not None and time.monotonic() >= deadline


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.reason or ""
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return resp.reason or ""


class GitHubClient:
    """Reads statuses and check runs, retrying server errors with exponential backoff."""

    def __init__(
        self,
        token: str,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        base_url: str = API_URL,
        session: requests.Session | None = None,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self._token = token
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.base_url = base_url.rstrip("/")
        self._session = session if session is not None else requests.Session()

    def get_combined_status(
        self,
        owner: str,
        repo: str,
        ref: str,
        page: int = 1,
        per_page: int = 100,
        deadline: float | None = None,
    ) -> CombinedStatus:
        """Fetch one page of the combined commit status of ``ref``."""
        data = self._get_with_retry(
            self._commit_path(owner, repo, ref, "status"),
            {"page": page, "per_page": per_page},
            deadline,
            doing="getting combined status",
            what="get combined status",
        )
        return CombinedStatus(
            total_count=data.get("total_count") or 0,
            statuses=[
                RepoStatus(context=item.get("context"), state=item.get("state"))
                for item in data.get("statuses") or []
            ],
        )

    def list_check_runs_for_ref(
        self,
        owner: str,
        repo: str,
        ref: str,
        page: int = 1,
        per_page: int = 100,
        deadline: float | None = None,
    ) -> CheckRunsResult:
        """Fetch one page of the check runs of ``ref``."""
        data = self._get_with_retry(
            self._commit_path(owner, repo, ref, "check-runs"),
            {"page": page, "per_page": per_page},
            deadline,
            doing="listing check runs",
            what="list check runs",
        )
        return CheckRunsResult(
            total=data.get("total_count") or 0,
            check_runs=[
                CheckRun(
                    name=item.get("name"),
                    status=item.get("status"),
                    conclusion=item.get("conclusion"),
                )
                for item in data.get("check_runs") or []
            ],
        )

    @staticmethod
    def _commit_path(owner: str, repo: str, ref: str, leaf: str) -> str:
        parts = (quote(owner, safe=""), quote(repo, safe=""), quote(ref, safe="/"))
        return "/repos/{}/{}/commits/{}/{}".format(*parts, leaf)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
        }

    def _get(self, path: str, params: dict[str, Any], deadline: float | None) -> dict[str, Any]:
        url = self.base_url + path
        try:
            resp = self._session.get(
                url, params=params, headers=self._headers(), timeout=_remaining(deadline)
            )
        except requests.Timeout as exc:
            raise TimeoutError(f"GET {url}: {exc}") from exc
        except requests.RequestException as exc:
            raise GitHubError(f"GET {url}: {exc}") from exc
        if not resp.ok:
            raise GitHubError(
                f"GET {url}: {resp.status_code} {_error_message(resp)}",
                status_code=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise GitHubError(f"GET {url}: invalid JSON: {exc}", status_code=resp.status_code) from exc
        if not isinstance(data, dict):
            raise GitHubError(f"GET {url}: unexpected response body", status_code=resp.status_code)
        return data

    def _get_with_retry(
        self,
        path: str,
        params: dict[str, Any],
        deadline: float | None,
        *,
        doing: str,
        what: str,
    ) -> dict[str, Any]:
        last: GitHubError | None = None
        for attempt in range(self.max_retries):
            try:
                return self._get(path, params, deadline)
            except (GitHubError, TimeoutError) as exc:
                if _expired(deadline):
                    raise TimeoutError(
                        f"context error while {doing}: context deadline exceeded"
                    ) from exc
                if isinstance(exc, TimeoutError):
                    raise
                # Only server errors, or no response at all, are worth retrying.
                if exc.status_code is not None and not 500 <= exc.status_code <= 599:
                    raise
                last = exc
            if attempt < self.max_retries - 1:
                self._backoff(self.retry_delay * (1 << attempt), deadline)
        raise GitHubError(
            f"failed to {what} after {self.max_retries} retries: {last}",
            status_code=last.status_code if last is not None else None,
        ) from last

    @staticmethod
    def _backoff(delay: float, deadline: float | None) -> None:
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining < delay:
                time.sleep(max(remaining, 0.0))
                raise TimeoutError("context deadline exceeded")
        time.sleep(delay)