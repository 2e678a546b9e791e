# src/Metrics.py
# THIS CODE WILL HANDLE THE METRIC OBJECTS
from __future__ import annotations

import math
import statistics
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from src.Client import GitHubClient
from src.logging_utils import get_logger
from src.utils import (count_issues, fetch_license, fetch_readme,
                       list_closed_issues, list_contributors)

logger = get_logger(__name__)

# Ramp-up: a README of this many characters earns the full README share.
README_TARGET_CHARS = 8000
README_WEIGHT = 0.8
DOCS_WEIGHT = 0.2

# Correctness: score for repositories that never had an issue filed.
NO_ISSUES_SCORE = 0.5

# Bus factor: effective maintainers needed for a perfect score.
TARGET_MAINTAINERS = 5
CONTRIBUTOR_MAX_PAGES = 5

# Responsiveness: median close time (days) that halves the score.
RESPONSE_HALF_LIFE_DAYS = 7.0
CLOSED_ISSUE_SAMPLE = 100


@dataclass(frozen=True)
class MetricResult:
    """
    Canonical result object returned by all metrics.

    Attributes
    ----------
    metric : str
        Human-friendly metric name (e.g., "License").
    key : str
        Stable identifier/slug for the metric (e.g., "license").
    value : Any
        The score produced by the metric.
    latency_ms : float
        How long the metric took to execute (milliseconds).
    details : Optional[Mapping[str, Any]]
        Optional extra information for display or debugging.
    error : Optional[str]
        If the metric failed, put a concise error message here
        and set `value` as appropriate.
    """
    metric: str
    key: str
    value: Any
    latency_ms: float
    details: Optional[Mapping[str, Any]] = None
    error: Optional[str] = None


class Metric(ABC):
    """
    Abstract base class for metrics.

    Subclasses must implement ``compute()`` to perform the actual work.
    """

    name: str  # Human-friendly metric name (e.g., "License").
    key: str  # Identifier/slug for the metric (e.g., "license").

    @abstractmethod
    def compute(self, inputs: dict[str, Any], **kwargs: Any) -> float:
        """
        Compute the metric score from parsed inputs.

        Parameters
        ----------
        inputs : dict[str, Any]
            Parsed inputs required by the metric; at least ``owner`` and
            ``repo``.
        **kwargs : Any
            Optional per-metric tuning parameters.

        Returns
        -------
        float
            A score between 0.0 and 1.0.
        """
        raise NotImplementedError

    @staticmethod
    def _owner_repo(inputs: Mapping[str, Any]) -> tuple[str, str]:
        owner = inputs.get("owner")
        repo = inputs.get("repo")
        if not owner or not repo:
            raise ValueError("Missing required inputs: owner and repo")
        return str(owner), str(repo)


class GitHubMetric(Metric):
    """Metric backed by the GitHub REST API."""

    def __init__(self, client: Optional[GitHubClient] = None) -> None:
        self.client = client if client is not None else GitHubClient()


class RampUpMetric(GitHubMetric):
    """
    Metric estimating how quickly a new developer can get productive.

    The README carries most of the weight: its length is scored on a log
    scale that saturates at ``README_TARGET_CHARS``. The remainder comes
    from any extra documentation surface (homepage, GitHub Pages, wiki).
    """
    name = "Ramp-Up Time"
    key = "ramp_up"

    def compute(self, inputs: dict[str, Any], **kwargs: Any) -> float:
        """
        Score the repository's onboarding material.

        Parameters
        ----------
        inputs : dict[str, Any]
            Must include ``owner`` and ``repo``.
        **kwargs : Any
            ``target_chars`` overrides ``README_TARGET_CHARS``.

        Returns
        -------
        float
            Ramp-up score between 0.0 (hard to learn) and 1.0 (fast to
            learn).
        """
        owner, repo = self._owner_repo(inputs)
        target_chars = int(kwargs.get("target_chars", README_TARGET_CHARS))
        logger.info("Computing ramp-up score for %s/%s", owner, repo)

        readme = fetch_readme(self.client, owner, repo)
        repo_info = self.client.request("GET", f"/repos/{owner}/{repo}")

        readme_score = self._readme_score(readme, target_chars)
        docs_score = 1.0 if self._has_docs(repo_info) else 0.0
        logger.debug("Ramp-up signals for %s/%s: readme=%.3f docs=%.1f",
                     owner, repo, readme_score, docs_score)

        score = README_WEIGHT * readme_score + DOCS_WEIGHT * docs_score
        score = max(0.0, min(score, 1.0))
        logger.info("Ramp-up score for %s/%s: %.3f", owner, repo, score)
        return score

    @staticmethod
    def _readme_score(readme: Optional[str], target_chars: int) -> float:
        if not readme or target_chars <= 0:
            return 0.0
        # Log roll-off: the first few hundred characters count the most.
        return min(1.0, math.log1p(len(readme)) / math.log1p(target_chars))

    @staticmethod
    def _has_docs(repo_info: Any) -> bool:
        if not isinstance(repo_info, Mapping):
            return False
        return bool(repo_info.get("homepage")
                    or repo_info.get("has_pages")
                    or repo_info.get("has_wiki"))


class CorrectnessMetric(GitHubMetric):
    """
    Metric approximating correctness as the share of issues that have
    been resolved.
    """
    name = "Correctness"
    key = "correctness"

    def compute(self, inputs: dict[str, Any], **kwargs: Any) -> float:
        """
        Compute ``closed / (open + closed)`` over the repository's issues.

        Returns
        -------
        float
            Score in ``[0.0, 1.0]``; ``NO_ISSUES_SCORE`` when no issue was
            ever filed.
        """
        owner, repo = self._owner_repo(inputs)
        logger.info("Computing correctness score for %s/%s", owner, repo)

        open_count = count_issues(self.client, owner, repo, "open")
        closed_count = count_issues(self.client, owner, repo, "closed")
        total = open_count + closed_count
        logger.debug("Issues for %s/%s: open=%d closed=%d",
                     owner, repo, open_count, closed_count)

        if total == 0:
            score = NO_ISSUES_SCORE
        else:
            score = closed_count / total

        logger.info("Correctness score for %s/%s: %.3f", owner, repo, score)
        return score


class BusFactorMetric(GitHubMetric):
    """
    Metric measuring how concentrated the commit history is.

    Contributor commit counts are turned into an effective number of
    maintainers with the inverse Simpson index, ``(sum c)^2 / sum c^2``.
    One author doing all the work gives 1.0; ``n`` equal authors give
    ``n``. The score is that number over ``target_maintainers``.
    """
    name = "Bus Factor"
    key = "bus_factor"

    def compute(self, inputs: dict[str, Any], **kwargs: Any) -> float:
        """
        Score the spread of commits across contributors.

        Parameters
        ----------
        inputs : dict[str, Any]
            Must include ``owner`` and ``repo``.
        **kwargs : Any
            ``target_maintainers`` overrides ``TARGET_MAINTAINERS``.

        Returns
        -------
        float
            Score in ``[0.0, 1.0]``.
        """
        owner, repo = self._owner_repo(inputs)
        target = float(kwargs.get("target_maintainers", TARGET_MAINTAINERS))
        logger.info("Computing bus factor for %s/%s", owner, repo)

        contributors = list_contributors(self.client, owner, repo,
                                         max_pages=CONTRIBUTOR_MAX_PAGES)
        counts = [self._safe_int(c.get("contributions"))
                  for c in contributors]
        effective = self._calculate_effective_maintainers(counts)
        logger.debug("Bus factor for %s/%s: contributors=%d effective=%.2f",
                     owner, repo, len(counts), effective)

        if target <= 0:
            return 0.0
        score = max(0.0, min(effective / target, 1.0))
        logger.info("Bus factor score for %s/%s: %.3f", owner, repo, score)
        return score

    @staticmethod
    def _calculate_effective_maintainers(counts: Iterable[int]) -> float:
        positive = [c for c in counts if c > 0]
        total = sum(positive)
        if total == 0:
            return 0.0
        return total ** 2 / sum(c * c for c in positive)

    @staticmethod
    def _safe_int(value: Any) -> int:
        try:
            return max(int(value), 0)
        except (TypeError, ValueError):
            return 0


class ResponsivenessMetric(GitHubMetric):
    """
    Metric estimating how quickly maintainers close issues.

    Looks at the most recently updated closed issues and scores the median
    time to close with ``1 / (1 + median_days / half_life)``.
    """
    name = "Responsive Maintainer"
    key = "responsive_maintainer"

    def compute(self, inputs: dict[str, Any], **kwargs: Any) -> float:
        """
        Score maintainer response time.

        Parameters
        ----------
        inputs : dict[str, Any]
            Must include ``owner`` and ``repo``.
        **kwargs : Any
            ``half_life_days`` overrides ``RESPONSE_HALF_LIFE_DAYS``.

        Returns
        -------
        float
            Score in ``[0.0, 1.0]``; 0.0 when nothing was ever closed.
        """
        owner, repo = self._owner_repo(inputs)
        half_life = float(kwargs.get("half_life_days",
                                     RESPONSE_HALF_LIFE_DAYS))
        logger.info("Computing responsiveness for %s/%s", owner, repo)

        issues = list_closed_issues(self.client, owner, repo,
                                    limit=CLOSED_ISSUE_SAMPLE)
        durations = [d for d in (self._days_to_close(i) for i in issues)
                     if d is not None]
        if not durations or half_life <= 0:
            logger.info("No closed issues for %s/%s", owner, repo)
            return 0.0

        median_days = statistics.median(durations)
        score = 1.0 / (1.0 + median_days / half_life)
        logger.debug("Responsiveness for %s/%s: sample=%d median=%.2fd",
                     owner, repo, len(durations), median_days)
        logger.info("Responsiveness score for %s/%s: %.3f",
                    owner, repo, score)
        return max(0.0, min(score, 1.0))

    @staticmethod
    def _days_to_close(issue: Mapping[str, Any]) -> Optional[float]:
        created = _parse_timestamp(issue.get("created_at"))
        closed = _parse_timestamp(issue.get("closed_at"))
        if created is None or closed is None:
            return None
        return max((closed - created).total_seconds(), 0.0) / 86400.0


class LicenseMetric(GitHubMetric):
    """
    Metric that finds the repository license and assigns it
    a score from 0 to 1 using a lookup table.
    """

    name = "License"
    key = "license"

    # The below lookup table assigns scores based on
    # how much each license allows for:
    # linking, distribution, modification,
    # patent grant, private use and sublicensing.
    # Licenses that allow 5 or 6 of these are given a score of 1.0,
    # those that allow 3 or 4 are given a score of 0.75,
    # others are given a score of 0.5.

    license_scores: dict[str, float] = {
        # Permissive (1.0)
        "apache-2.0": 1.0,
        "mit": 1.0,
        "mit-0": 1.0,
        "afl-3.0": 1.0,
        "bsd-2-clause": 1.0,
        "bsd-3-clause": 1.0,
        "bsd-3-clause-clear": 1.0,
        "0bsd": 1.0,
        "isc": 1.0,
        "zlib": 1.0,
        "ms-pl": 1.0,
        "postgresql": 1.0,
        "osl-3.0": 1.0,
        "mpl-2.0": 1.0,
        "unlicense": 1.0,
        "cc0-1.0": 1.0,
        "wtfpl": 1.0,
        "ofl-1.1": 1.0,
        "ncsa": 1.0,
        "upl-1.0": 1.0,
        "bsl-1.0": 1.0,

        # Less permissive (0.75)
        "gpl-3.0": 0.75,
        "gpl-2.0": 0.75,
        "agpl-3.0": 0.75,
        "lgpl-3.0": 0.75,
        "lgpl-2.1": 0.75,
        "epl-2.0": 0.75,
        "epl-1.0": 0.75,
        "ecl-2.0": 0.75,
        "eupl-1.1": 0.75,
        "eupl-1.2": 0.75,
        "artistic-2.0": 0.75,
        "ms-rl": 0.75,
        "cc-by-4.0": 0.75,
        "cc-by-sa-4.0": 0.75,
        "odbl-1.0": 0.75,
        "lppl-1.3c": 0.75,

        # Restrictive (0.5)
        "cc-by-nc-4.0": 0.5,
        "cc-by-nc-sa-4.0": 0.5,
        "cc-by-nd-4.0": 0.5,
        "busl-1.1": 0.5,
        "sspl-1.0": 0.5,

        # GitHub could not identify the text
        "noassertion": 0.5,
        "other": 0.5,
    }

    def compute(self, inputs: dict[str, Any], **kwargs: Any) -> float:
        """
        Compute the license score from parsed inputs.

        Parameters
        ----------
        inputs : dict[str, Any]
            Must include ``owner`` and ``repo``.
        **kwargs : Any
            Optional per-metric tuning parameters.

        Returns
        -------
        float
            A score between 0.0 and 1.0; 0.0 when no license is
            detected.
        """
        owner, repo = self._owner_repo(inputs)
        logger.info("Computing license score for %s/%s", owner, repo)

        license_info = fetch_license(self.client, owner, repo)
        if license_info is None:
            logger.debug("License not specified for %s/%s", owner, repo)
            return 0.0

        spdx_id = (license_info.get("spdx_id")
                   or license_info.get("key") or "other")
        license_type = str(spdx_id).lower()
        score = self.license_scores.get(license_type,
                                        self.license_scores["other"])
        logger.debug("Found license %s with score %.2f for %s/%s",
                     license_type, score, owner, repo)
        logger.info("License score for %s/%s: %.2f", owner, repo, score)
        return score


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse GitHub's ISO 8601 timestamps (``2024-01-31T12:00:00Z``)."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
