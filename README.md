# merge-gatekeeper

`merge-gatekeeper` waits until every other commit status and check run
on a Git ref has finished, then reports whether they all passed. Run it
as a required job in your CI pipeline. Branch protection then needs to
require only this one check, and it covers every other job.

## Install

```
pip install .
```

## Usage

```
merge-gatekeeper validate --token "$GITHUB_TOKEN" --ref "$GITHUB_SHA" --repo owner/repo
```

`merge-gatekeeper --version` prints the installed version. Run with no
command, it prints help and exits with status 0.

Options of `validate`:

| Option | Default | Meaning |
| --- | --- | --- |
| `-t`, `--token` | (required) | GitHub token used to query the API. It may also be given before `validate`. |
| `--ref` | (required) | A commit SHA, branch name or tag name |
| `-r`, `--repo` | | Repository as `owner/name` |
| `-s`, `--self` | `merge-gatekeeper` | Name of this job. It always counts as passing. |
| `-i`, `--ignored` | | Comma-separated job names to ignore. Blank entries are dropped. |
| `--timeout` | `600` | Seconds to wait before giving up |
| `--interval` | `10` | Seconds between rounds |

When the environment variable `GITHUB_REPOSITORY` is set and not empty,
its value is used instead of `--repo`. Everything after the first `/` is
taken as the repository name.

### What a round does

Each round fetches the ref's commit statuses, then its check runs, one
page of 100 at a time.

- When a job name appears more than once, only the first entry counts.
  That entry is the most recent one.
- Check runs that are not `completed` count as pending.
- Completed check runs with a `success` or `neutral` conclusion count as
  passing. Those with a `skipped` conclusion are left out. Any other
  conclusion counts as failed.
- Ignored jobs, and the job named by `--self`, count as passing whatever
  their state.

The report of each round is written to standard error. It gives counts
and grouped lists of the failed, completed, incomplete, ignored and all
jobs, using GitHub Actions `::group::` markers.

The round then ends in one of these ways:

- If a job that is not ignored has failed, the command stops at once. It
  prints `failed to execute command: ...` followed by the report, and
  exits with status 1.
- If some jobs are still running, it prints a warning, waits `--interval`
  seconds and runs another round.
- If every job has passed, it prints `All validations were successful!`
  and exits with status 0.
- If `--timeout` runs out first, or the process receives SIGINT or
  SIGTERM, it exits with status 1.

### Retries

The API client makes up to five attempts per request. It retries on
server errors (5xx) and on requests that got no response at all. The
waits between attempts are 1, 2, 4 and 8 seconds. Any other error stops
it at once. No retry runs past the overall timeout.

## Library use

```python
from merge_gatekeeper.github import GitHubClient
from merge_gatekeeper.status.validator import create_validator
from merge_gatekeeper.cli import run_validations

client = GitHubClient("token")
validator = create_validator(
    client,
    self_job="merge-gatekeeper",
    owner="owner",
    repo="repo",
    ref="main",
    ignored_jobs="lint, docs",
)
run_validations([validator], timeout=600, interval=10)
```

The modules:

- `merge_gatekeeper.github`: `GitHubClient`, with
  `get_combined_status` and `list_check_runs_for_ref`. It returns
  `CombinedStatus` and `CheckRunsResult` objects and raises
  `GitHubError` when a request fails.
- `merge_gatekeeper.status.validator`: `create_validator`,
  `StatusValidator` and `parse_ignored_jobs`.
  - `create_validator` raises `MultiError` if the owner, repository,
    ref, self job name or client is missing.
  - `StatusValidator.validate` returns a `JobStatus`. It raises
    `ValidationFailed` if any job that is not ignored has failed.
  - It raises `InvalidCombinedStatusResponse` or
    `InvalidCheckRunResponse` when the API returns an entry that has no
    name or no state.
- `merge_gatekeeper.status.report`: `JobStatus`, with `detail()`,
  `is_success()` and `incomplete_jobs()`.
- `merge_gatekeeper.validators`: the `Validator` and `Status` abstract
  base classes, for writing validators of your own to pass to
  `run_validations`.
- `merge_gatekeeper.cli`: `run_validations`, `owner_and_repository` and
  `main`. `run_validations` raises `ValidationTimeout` on timeout and
  `RuntimeError` when a validator raises.
- `merge_gatekeeper.ticker`: `InstantTicker`, a ticker whose first tick
  comes at once.
- `merge_gatekeeper.multierror`: `MultiError`, several errors raised as
  one.

## Running the tests

```
pip install .[test]
pytest
```