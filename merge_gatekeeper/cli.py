"""Command line entry point: wait until every other job on a ref has succeeded."""

from __future__ import annotations

import argparse
import os
import signal
import sys
import threading
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from importlib.metadata import PackageNotFoundError, version
from typing import TextIO

from merge_gatekeeper.github import GitHubClient
from merge_gatekeeper.multierror import MultiError
from merge_gatekeeper.status.validator import create_validator
from merge_gatekeeper.ticker import InstantTicker
from merge_gatekeeper.validators import Validator

PROG = "merge-gatekeeper"
DEFAULT_SELF_JOB_NAME = "merge-gatekeeper"
DEFAULT_TIMEOUT = 600
DEFAULT_INTERVAL = 10


class ValidationTimeout(TimeoutError):
    """The validations did not all succeed before the timeout."""


def owner_and_repository(text: str) -> tuple[str, str]:
    """Split "owner/repo" into its parts; anything after the first slash is the repository."""
    owner, _, repo = text.partition("/")
    return owner, repo


@contextmanager
def _debug(out: TextIO, name: str) -> Iterator[None]:
    out.write(f"Start processing {name}....\n")
    try:
        yield
    finally:
        out.write(f"Finish {name} processing.\n")


def _validate(validator: Validator, deadline: float, out: TextIO) -> bool:
    with _debug(out, f"validator: {validator.name}"):
        try:
            status = validator.validate(deadline)
        except Exception as exc:
            raise RuntimeError(f"validation failed, err: {exc}") from exc
        out.write(f"{status.detail()}\n")
        return status.is_success()


def run_validations(
    validators: Sequence[Validator],
    timeout: float = DEFAULT_TIMEOUT,
    interval: float = DEFAULT_INTERVAL,
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> None:
    """Run every validator each ``interval`` seconds until all succeed.

    Raises ValidationTimeout when ``timeout`` seconds pass first, and
    RuntimeError when a validator raises.
    """
    out = sys.stdout if out is None else out
    err = sys.stderr if err is None else err
    deadline = time.monotonic() + timeout

    with InstantTicker(interval) as ticker:
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0 or ticker.tick(timeout=remaining) is None:
                raise ValidationTimeout("context deadline exceeded")
            if time.monotonic() >= deadline:
                raise ValidationTimeout("context deadline exceeded")

            results = [_validate(v, deadline, out) for v in validators]
            if all(results):
                out.write("All validations were successful!\n")
                return

            err.write("\n")
            err.write(
                "  WARNING: Validation is yet to be completed. "
                "This is most likely due to some other jobs still running.\n"
            )
            err.write(f"           Waiting for {interval:g} seconds before retrying.\n\n")


def _uint(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid non-negative integer: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"invalid non-negative integer: {text!r}")
    return value


def _package_version() -> str:
    try:
        return version("merge_gatekeeper")
    except PackageNotFoundError:
        return "0.0.0"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=PROG, description="Get more refined merge control")
    parser.add_argument("--version", action="version", version=f"{PROG} version {_package_version()}")
    parser.add_argument("-t", "--token", default=None, help="set github token")

    commands = parser.add_subparsers(dest="command")
    validate = commands.add_parser("validate", help="Validate other github actions job")
    validate.add_argument(
        "-t", "--token", default=argparse.SUPPRESS, help="set github token"
    )
    validate.add_argument(
        "-s", "--self", dest="self_job", default=DEFAULT_SELF_JOB_NAME, help="set self job name"
    )
    validate.add_argument("-r", "--repo", default="", help="set github repository")
    validate.add_argument(
        "--ref",
        required=True,
        help="set ref of github repository. the ref can be a SHA, a branch name, or tag name",
    )
    validate.add_argument(
        "--timeout", type=_uint, default=DEFAULT_TIMEOUT, help="set validate timeout second"
    )
    validate.add_argument(
        "--interval", type=_uint, default=DEFAULT_INTERVAL, help="set validate interval second"
    )
    validate.add_argument(
        "-i", "--ignored", default="", help="set ignored jobs (comma-separated list)"
    )
    return parser


def _run_validate(args: argparse.Namespace) -> None:
    full_name = os.environ.get("GITHUB_REPOSITORY") or args.repo
    owner, repo = owner_and_repository(full_name)
    if not owner or not repo:
        raise ValueError(
            f"github owner or repository is empty. owner: {owner}, repository: {repo}"
        )
    try:
        validator = create_validator(
            GitHubClient(args.token),
            self_job=args.self_job,
            owner=owner,
            repo=repo,
            ref=args.ref,
            ignored_jobs=args.ignored,
        )
    except MultiError as exc:
        raise ValueError(f"failed to create validator: {exc}") from exc
    run_validations(
        [validator],
        timeout=args.timeout,
        interval=args.interval,
        out=sys.stderr,
        err=sys.stderr,
    )


def _raise_interrupt(signum: int, frame: object) -> None:
    raise KeyboardInterrupt


@contextmanager
def _terminate_as_interrupt() -> Iterator[None]:
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, run the requested command and return the exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help(sys.stderr)
        return 0
    if args.token is None:
        parser.error('required flag(s) "token" not set')

    try:
        with _terminate_as_interrupt():
            _run_validate(args)
    except KeyboardInterrupt:
        sys.stderr.write("failed to execute command: context canceled\n")
        return 1
    except Exception as exc:
        sys.stderr.write(f"failed to execute command: {exc}\n")
        return 1
    return 0