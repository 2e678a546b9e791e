# src/TestRunner.py
# RUNS THE TEST SUITE WITH COVERAGE AND SUMMARIZES THE RESULT
import re
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from src.logging_utils import get_logger

logger = get_logger(__name__)

_COUNT_RE = re.compile(r"(\d+) (passed|failed|errors?)\b")
_COVERAGE_RE = re.compile(r"^TOTAL\b.*?(\d+(?:\.\d+)?)%\s*$")


@dataclass(frozen=True)
class TestSummary:
    """Outcome of one test run."""
    passed: int
    total: int
    coverage: Optional[float]
    exit_code: int = 0

    # Keep pytest from collecting this class
    __test__ = False


def parse_pytest_output(output: str, exit_code: int = 0) -> TestSummary:
    """
    Extract test counts and line coverage from pytest's terminal report.

    Parameters
    ----------
    output : str
        Captured stdout of a ``pytest --cov`` run.
    exit_code : int
        Exit status pytest returned.

    Returns
    -------
    TestSummary
        ``coverage`` is ``None`` when no ``TOTAL`` row was printed.

    Examples
    --------
    >>> parse_pytest_output("3 passed, 1 failed in 0.12s").total
    4
    """
    passed = failed = errors = 0
    coverage: Optional[float] = None

    for line in output.splitlines():
        stripped = line.strip().strip("=").strip()
        # Example: "3 passed, 1 failed in 0.12s"
        if " in " in stripped and ("passed" in stripped
                                   or "failed" in stripped
                                   or "error" in stripped):
            for n, word in _COUNT_RE.findall(stripped):
                if word == "passed":
                    passed = int(n)
                elif word == "failed":
                    failed = int(n)
                else:
                    errors = int(n)
        # Example: "TOTAL    123    4    96%"
        match = _COVERAGE_RE.match(line.strip())
        if match:
            coverage = float(match.group(1))

    return TestSummary(passed=passed,
                       total=passed + failed + errors,
                       coverage=coverage,
                       exit_code=exit_code)


def run_tests(root: Path) -> TestSummary:
    """
    Run ``root/tests`` with coverage over ``root/src`` in a child process.

    The child imports ``src`` after coverage starts, so module-level lines
    are measured too.

    Parameters
    ----------
    root : Path
        Project root directory.

    Returns
    -------
    TestSummary
        Parsed summary of the run.
    """
    args = [
        sys.executable, "-m", "pytest",
        "-q",               # quiet (only test results, no extra info)
        "--disable-warnings",
        "-p", "no:cacheprovider",
        f"--cov={root / 'src'}",   # measure coverage on src/
        "--cov-report=term",       # print coverage to stdout
        str(root / "tests"),
    ]
    logger.info("Running test suite: %s", " ".join(args))

    proc = subprocess.run(args, capture_output=True, text=True,
                          cwd=str(root), check=False)
    if proc.returncode != 0 and proc.stderr:
        logger.debug("pytest stderr: %s", proc.stderr.strip())

    summary = parse_pytest_output(proc.stdout or "",
                                  exit_code=proc.returncode)
    logger.info("Tests: %d/%d passed, coverage %s", summary.passed,
                summary.total, summary.coverage)
    return summary
