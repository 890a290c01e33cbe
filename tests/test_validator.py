import pytest

from merge_gatekeeper.github import CheckRun, CheckRunsResult, CombinedStatus, GitHubError, RepoStatus
from merge_gatekeeper.multierror import MultiError
from merge_gatekeeper.status.report import JobStatus
from merge_gatekeeper.status.validator import (
    ERROR_STATE,
    FAILURE_STATE,
    PENDING_STATE,
    SUCCESS_STATE,
    GhaStatus,
    InvalidCheckRunResponse,
    InvalidCombinedStatusResponse,
    StatusValidator,
    ValidationFailed,
    create_validator,
    parse_ignored_jobs,
)


class FakeClient:
    def __init__(self, combined=None, check_runs=None):
        self._combined = combined
        self._check_runs = check_runs
        self.combined_pages = []
        self.check_run_pages = []

    def get_combined_status(self, owner, repo, ref, page=1, per_page=100, deadline=None):
        if self._combined is None:
            raise AssertionError("get_combined_status was not expected")
        self.combined_pages.append((page, per_page))
        return self._combined(page, per_page)

    def list_check_runs_for_ref(self, owner, repo, ref, page=1, per_page=100, deadline=None):
        if self._check_runs is None:
            raise AssertionError("list_check_runs_for_ref was not expected")
        self.check_run_pages.append((page, per_page))
        return self._check_runs(page, per_page)


def _statuses(*pairs):
    return lambda page, per_page: CombinedStatus(
        statuses=[RepoStatus(context=c, state=s) for c, s in pairs]
    )


def _runs(*runs):
    return lambda page, per_page: CheckRunsResult(check_runs=list(runs))


def _raise(exc):
    def fail(page, per_page):
        raise exc

    return fail


NO_RUNS = _runs()


# create_validator


def test_create_validator_with_all_options():
    client = FakeClient()
    v = create_validator(
        client,
        self_job="job",
        owner="test-owner",
        repo="test-repo",
        ref="sha",
        ignored_jobs="job-01,job-02",
    )
    assert v.client is client
    assert (v.owner, v.repo, v.ref, v.self_job_name) == ("test-owner", "test-repo", "sha", "job")
    assert v.ignored_jobs == ["job-01", "job-02"]


def test_create_validator_with_latest_values():
    v = create_validator(FakeClient(), self_job="job-01", owner="test", repo="test-repo", ref="sha-01")
    assert (v.owner, v.repo, v.ref, v.self_job_name) == ("test", "test-repo", "sha-01", "job-01")
    assert v.ignored_jobs == []


def test_create_validator_with_malformed_ignored_jobs():
    v = create_validator(
        FakeClient(), self_job="job-01", owner="test", repo="test-repo", ref="sha-01", ignored_jobs=","
    )
    assert v.ignored_jobs == []


def test_create_validator_accepts_job_list():
    v = create_validator(
        FakeClient(), self_job="s", owner="o", repo="r", ref="x", ignored_jobs=[" a ", "", "b"]
    )
    assert v.ignored_jobs == ["a", "b"]


def test_create_validator_without_options_fails():
    with pytest.raises(MultiError) as info:
        create_validator(FakeClient())
    assert [str(e) for e in info.value.errors] == [
        "repository name is empty",
        "repository owner is empty",
        "reference of repository is empty",
        "self job name is empty",
    ]
    assert str(info.value).startswith("composite error:\n\trepository name is empty")


def test_create_validator_without_client_fails():
    with pytest.raises(MultiError) as info:
        create_validator(None, self_job="job-01", owner="test", repo="test-repo", ref="sha-01")
    assert str(info.value) == "github client is empty"


def test_name_is_self_job():
    v = create_validator(
        FakeClient(), self_job="job", owner="test-owner", repo="test-repo", ref="sha",
        ignored_jobs="job-01,job-02",
    )
    assert v.name == "job"


@pytest.mark.parametrize(
    "names, expected",
    [
        ("", []),
        (",", []),
        ("job-01,job-02", ["job-01", "job-02"]),
        (" a ,, b ,", ["a", "b"]),
    ],
)
def test_parse_ignored_jobs(names, expected):
    assert parse_ignored_jobs(names) == expected


# validate


def test_validate_propagates_client_error():
    sv = StatusValidator(client=FakeClient(combined=_raise(GitHubError("err"))))
    with pytest.raises(GitHubError, match="^err$"):
        sv.validate()


def test_validate_no_jobs_succeeds():
    sv = StatusValidator(client=FakeClient(combined=_statuses(), check_runs=NO_RUNS))
    assert sv.validate() == JobStatus(succeeded=True)


def test_validate_only_self_job_succeeds():
    sv = StatusValidator(
        client=FakeClient(combined=_statuses(("self-job", PENDING_STATE)), check_runs=NO_RUNS),
        self_job_name="self-job",
    )
    assert sv.validate() == JobStatus(succeeded=True)


def test_validate_one_pending_job_is_not_success():
    sv = StatusValidator(client=FakeClient(combined=_statuses(("job", PENDING_STATE)), check_runs=NO_RUNS))
    result = sv.validate()
    assert result == JobStatus(total_jobs=["job"], succeeded=False)
    assert result.is_success() is False


@pytest.mark.parametrize("failed_state", [ERROR_STATE, FAILURE_STATE])
def test_validate_failed_job_raises(failed_state):
    sv = StatusValidator(
        client=FakeClient(
            combined=_statuses(
                ("job-01", SUCCESS_STATE), ("job-02", failed_state), ("self-job", PENDING_STATE)
            ),
            check_runs=NO_RUNS,
        ),
        self_job_name="self-job",
    )
    expected = JobStatus(
        total_jobs=["job-01", "job-02"],
        complete_jobs=["job-01"],
        err_jobs=["job-02"],
        ignored_jobs=[],
    ).detail()
    with pytest.raises(ValidationFailed) as info:
        sv.validate()
    assert str(info.value) == expected
    assert info.value.status.err_jobs == ["job-02"]


def test_validate_pending_job_is_not_success():
    sv = StatusValidator(
        client=FakeClient(
            combined=_statuses(
                ("job-01", SUCCESS_STATE), ("job-02", PENDING_STATE), ("self-job", PENDING_STATE)
            ),
            check_runs=NO_RUNS,
        ),
        self_job_name="self-job",
    )
    assert sv.validate() == JobStatus(
        total_jobs=["job-01", "job-02"], complete_jobs=["job-01"], succeeded=False
    )


def test_validate_all_success():
    sv = StatusValidator(
        client=FakeClient(
            combined=_statuses(
                ("job-01", SUCCESS_STATE), ("job-02", SUCCESS_STATE), ("self-job", PENDING_STATE)
            ),
            check_runs=NO_RUNS,
        ),
        self_job_name="self-job",
    )
    result = sv.validate()
    assert result == JobStatus(
        total_jobs=["job-01", "job-02"], complete_jobs=["job-01", "job-02"], succeeded=True
    )
    assert result.is_success() is True


@pytest.mark.parametrize("failed_state", [ERROR_STATE, FAILURE_STATE])
def test_validate_only_ignored_job_failing_succeeds(failed_state):
    sv = StatusValidator(
        client=FakeClient(
            combined=_statuses(
                ("job-01", SUCCESS_STATE), ("job-02", failed_state), ("self-job", PENDING_STATE)
            ),
            check_runs=NO_RUNS,
        ),
        self_job_name="self-job",
        ignored_jobs=["job-02", "job-03"],
    )
    assert sv.validate() == JobStatus(
        total_jobs=["job-01"],
        complete_jobs=["job-01"],
        ignored_jobs=["job-02", "job-03"],
        succeeded=True,
    )


# list_gha_statuses


def _validator(client):
    return StatusValidator(
        client=client, owner="test-owner", repo="test-repo", ref="main", self_job_name="self-job"
    )


EXPECTED_MIXED = [
    GhaStatus("job-01", SUCCESS_STATE),
    GhaStatus("job-02", PENDING_STATE),
    GhaStatus("job-03", SUCCESS_STATE),
    GhaStatus("job-04", SUCCESS_STATE),
    GhaStatus("job-05", ERROR_STATE),
]


def test_list_keeps_only_latest_of_duplicate_jobs():
    client = FakeClient(
        combined=_statuses(("job-01", SUCCESS_STATE), ("job-01", ERROR_STATE)),
        check_runs=_runs(
            CheckRun(name="job-02", status="failure"),
            CheckRun(name="job-02", status="completed", conclusion="neutral"),
            CheckRun(name="job-03", status="completed", conclusion="neutral"),
            CheckRun(name="job-04", status="completed", conclusion="success"),
            CheckRun(name="job-05", status="completed", conclusion="failure"),
            CheckRun(name="job-06", status="completed", conclusion="skipped"),
        ),
    )
    assert _validator(client).list_gha_statuses() == EXPECTED_MIXED


def test_list_maps_check_runs():
    client = FakeClient(
        combined=_statuses(("job-01", SUCCESS_STATE)),
        check_runs=_runs(
            CheckRun(name="job-02", status="failure"),
            CheckRun(name="job-03", status="completed", conclusion="neutral"),
            CheckRun(name="job-04", status="completed", conclusion="success"),
            CheckRun(name="job-05", status="completed", conclusion="failure"),
            CheckRun(name="job-06", status="completed", conclusion="skipped"),
        ),
    )
    assert _validator(client).list_gha_statuses() == EXPECTED_MIXED


def test_list_combined_status_error():
    client = FakeClient(combined=_raise(GitHubError("err")))
    with pytest.raises(GitHubError):
        _validator(client).list_gha_statuses()


def test_list_invalid_combined_status():
    client = FakeClient(combined=lambda page, per_page: CombinedStatus(statuses=[RepoStatus()]))
    with pytest.raises(InvalidCombinedStatusResponse, match="github combined status response is invalid"):
        _validator(client).list_gha_statuses()


def test_list_check_runs_error():
    client = FakeClient(combined=_statuses(), check_runs=_raise(GitHubError("error")))
    with pytest.raises(GitHubError, match="^error$"):
        _validator(client).list_gha_statuses()


def test_list_invalid_check_run():
    client = FakeClient(combined=_statuses(), check_runs=_runs(CheckRun()))
    with pytest.raises(InvalidCheckRunResponse, match="github checkRun response is invalid"):
        _validator(client).list_gha_statuses()


@pytest.mark.parametrize("count", [100, 162, 587])
def test_list_paginates_statuses(count):
    statuses = [RepoStatus(context=f"job-{i}", state=SUCCESS_STATE) for i in range(count)]
    runs = [CheckRun(name=f"job-{i}", status="completed", conclusion="neutral") for i in range(count)]

    def combined(page, per_page):
        chunk = statuses[(page - 1) * per_page : min(page * per_page, len(statuses))]
        return CombinedStatus(total_count=len(chunk), statuses=chunk)

    def check_runs(page, per_page):
        return CheckRunsResult(total=len(runs), check_runs=runs)

    client = FakeClient(combined=combined, check_runs=check_runs)
    result = _validator(client).list_gha_statuses()
    assert result == [GhaStatus(f"job-{i}", SUCCESS_STATE) for i in range(count)]
    assert client.combined_pages[0] == (1, 100)
    assert len(client.combined_pages) == count // 100 + 1
    assert client.check_run_pages == [(1, 100)]


def test_list_requests_further_check_run_pages():
    pages = {
        1: [CheckRun(name="a", status="completed", conclusion="success")],
        2: [CheckRun(name="b", status="queued")],
    }
    client = FakeClient(
        combined=_statuses(),
        check_runs=lambda page, per_page: CheckRunsResult(total=2, check_runs=pages[page]),
    )
    assert _validator(client).list_gha_statuses() == [
        GhaStatus("a", SUCCESS_STATE),
        GhaStatus("b", PENDING_STATE),
    ]
    assert client.check_run_pages == [(1, 100), (2, 100)]