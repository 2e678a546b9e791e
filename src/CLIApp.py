# src/CLIApp.py
# THIS CODE WILL HANDLE THE HIGH LEVEL LOGIC OF THE APP
import os
import re
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

from src.Client import GitHubClient
from src.Dispatcher import Dispatcher
from src.Display import print_results
from src.logging_utils import get_logger
from src.Metrics import (BusFactorMetric, CorrectnessMetric, LicenseMetric,
                         RampUpMetric, ResponsivenessMetric)
from src.Parser import Parser
from src.TestRunner import run_tests

logger = get_logger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[1]
REQUIREMENTS_FILE = PROJECT_ROOT / "requirements.txt"

USAGE = ("usage: python -m src.CLIApp install | test | <url_file>")

_TOKEN_RE = re.compile(r"^(ghp|gho|ghu|ghs|ghr|github_pat)_[A-Za-z0-9_]+$")
_INSTALLED_RE = re.compile(r"^Successfully installed (.+)$", re.MULTILINE)


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    raise SystemExit(1)


def _validate_env_or_exit() -> None:
    """
    Check the environment before any network call.

    Exits with status 1 when ``GITHUB_TOKEN`` is missing or malformed, or
    when ``LOG_FILE`` is not a writable ``.log`` path.
    """
    token = os.getenv("GITHUB_TOKEN", "").strip()
    if not token:
        _fail("GITHUB_TOKEN is not set")
    if not _TOKEN_RE.match(token):
        _fail("GITHUB_TOKEN does not look like a GitHub token")

    log_file = os.getenv("LOG_FILE")
    if log_file:
        path = Path(log_file)
        if path.suffix != ".log":
            _fail(f"LOG_FILE must end in .log: {log_file}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch(exist_ok=True)
        except OSError as e:
            _fail(f"LOG_FILE is not writable: {e}")


def install_dependencies() -> int:
    """Install requirements.txt with pip and report how many were added."""
    cmd = [sys.executable, "-m", "pip", "install", "-r",
           str(REQUIREMENTS_FILE)]
    logger.info("Installing dependencies: %s", " ".join(cmd))
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True,
                              check=False)
    except OSError as e:
        print(f"Error during installation: {e}", file=sys.stderr)
        return 1

    if proc.returncode != 0:
        print(f"Error during installation: {proc.stderr.strip()}",
              file=sys.stderr)
        return 1

    # Extract the number of packages installed
    match = _INSTALLED_RE.search(proc.stdout or "")
    if match:
        print(f"{len(match.group(1).split())} dependencies installed...")
    else:
        # everything was already satisfied
        print("Installed dependencies...")
    return 0


def run_test_suite() -> int:
    summary = run_tests(PROJECT_ROOT)
    coverage = summary.coverage if summary.coverage is not None else 0.0
    print(f"Total: {summary.total}")
    print(f"Passed: {summary.passed}")
    print(f"Coverage: {coverage:g}%")
    print(f"{summary.passed}/{summary.total} test cases passed. "
          f"{coverage:g}% line coverage achieved.")
    return summary.exit_code


def score_file(input_path: str) -> int:
    """
    Score every repository listed in ``input_path``.

    Returns
    -------
    int
        0 when every repository was scored, 1 if any was skipped because
        of an error.
    """
    logger.info("Starting CLI processing for %s", input_path)
    parse = Parser(input_path)
    repos = parse.getRepos()

    client = GitHubClient()
    dispatcher = Dispatcher([RampUpMetric(client),
                             CorrectnessMetric(client),
                             BusFactorMetric(client),
                             ResponsivenessMetric(client),
                             LicenseMetric(client)])
    failures = 0
    for repo_ref in repos:
        logger.debug("Dispatching metrics for %s", repo_ref.url)
        try:
            results = dispatcher.dispatch(repo_ref.as_inputs())
        except (RuntimeError, ValueError) as e:
            failures += 1
            logger.error("Scoring failed for %s: %s", repo_ref.url, e)
            print(f"Error scoring {repo_ref.url}: {e}", file=sys.stderr)
            continue
        print_results(repo_ref, results)
    logger.info("Finished processing %d repo(s), %d failed",
                len(repos), failures)
    return 1 if failures else 0


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print(USAGE, file=sys.stderr)
        raise SystemExit(1)

    command = args[0]
    if command == "install":
        return install_dependencies()
    if command == "test":
        return run_test_suite()

    _validate_env_or_exit()
    if not Path(command).is_file():
        _fail(f"input file not found: {command}")
    return score_file(command)


if __name__ == "__main__":
    sys.exit(main())
