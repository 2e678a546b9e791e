# src/utils.py
# Store any helper functions here

import re
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from src.Client import APIError, GitHubClient, NpmClient

# Matches every form the npm "repository" field uses for GitHub:
# https://, git+https://, git://, ssh://git@, git@github.com: ...
_GITHUB_REPO_RE = re.compile(
    r"github\.com[/:]([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+?)"
    r"(?:\.git)?(?:[/#?].*)?$"
)
_SHORTHAND_RE = re.compile(
    r"^(?:github:)?([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+)$"
)


def parse_github_repository(value: str) -> Optional[Tuple[str, str]]:
    """
    Extract ``(owner, repo)`` from a GitHub repository reference.

    Parameters
    ----------
    value : str
        A URL (any git transport) or a ``github:owner/repo`` /
        ``owner/repo`` shorthand.

    Returns
    -------
    Optional[Tuple[str, str]]
        The owner/repo pair, or ``None`` if ``value`` is not a GitHub
        repository reference.
    """
    value = value.strip()
    match = _GITHUB_REPO_RE.search(value)
    if match:
        return match.group(1), match.group(2)
    match = _SHORTHAND_RE.match(value)
    if match:
        return match.group(1), match.group(2)
    return None


def resolve_npm_repository(
    client: NpmClient,
    package: str,
) -> Optional[Tuple[str, str]]:
    """
    Look up the GitHub repository declared by an npm package.

    Parameters
    ----------
    client : NpmClient
        Registry client.
    package : str
        Package name, scoped names (``@scope/name``) included.

    Returns
    -------
    Optional[Tuple[str, str]]
        ``(owner, repo)``, or ``None`` when the package declares no
        repository or the repository is not hosted on GitHub.
    """
    data = client.request("GET", f"/{quote(package, safe='@')}")
    if not isinstance(data, dict):
        return None

    repository = data.get("repository")
    if isinstance(repository, dict):
        repository = repository.get("url")
    if not isinstance(repository, str) or not repository:
        return None
    return parse_github_repository(repository)


def fetch_readme(client: GitHubClient, owner: str,
                 repo: str) -> Optional[str]:
    """
    Return the raw README text of a repository, ``None`` if it has none.
    """
    try:
        text = client.request(
            "GET",
            f"/repos/{owner}/{repo}/readme",
            headers={"Accept": "application/vnd.github.raw+json"},
            raw=True,
        )
    except APIError as e:
        if e.status_code == 404:
            return None
        raise
    return text if isinstance(text, str) else None


def fetch_license(client: GitHubClient, owner: str,
                  repo: str) -> Optional[Dict[str, Any]]:
    """
    Return the ``license`` object GitHub detected for a repository.

    Returns
    -------
    Optional[Dict[str, Any]]
        Mapping with ``key``, ``spdx_id`` and ``name``; ``None`` when no
        license file was detected.
    """
    try:
        data = client.request("GET", f"/repos/{owner}/{repo}/license")
    except APIError as e:
        if e.status_code == 404:
            return None
        raise
    if not isinstance(data, dict):
        return None
    license_info = data.get("license")
    return license_info if isinstance(license_info, dict) else None


def list_contributors(
    client: GitHubClient,
    owner: str,
    repo: str,
    per_page: int = 100,
    max_pages: int = 5,
) -> List[Dict[str, Any]]:
    """
    List repository contributors, most commits first.

    Parameters
    ----------
    client : GitHubClient
        GitHub client.
    owner, repo : str
        Repository coordinates.
    per_page : int
        Page size (GitHub caps it at 100).
    max_pages : int
        Upper bound on pages walked; large projects have a long tail of
        one-commit contributors that does not move the score.

    Returns
    -------
    List[Dict[str, Any]]
        Contributor objects, each with a ``contributions`` count.
    """
    contributors: List[Dict[str, Any]] = []
    for page in range(1, max_pages + 1):
        batch = client.request(
            "GET",
            f"/repos/{owner}/{repo}/contributors",
            params={"per_page": per_page, "page": page},
        )
        # GitHub answers 204 (empty body) for empty repositories
        if not isinstance(batch, list) or not batch:
            break
        contributors.extend(c for c in batch if isinstance(c, dict))
        if len(batch) < per_page:
            break
    return contributors


def count_issues(client: GitHubClient, owner: str, repo: str,
                 state: str) -> int:
    """
    Count issues (pull requests excluded) in ``state`` via the search API.
    """
    data = client.request(
        "GET",
        "/search/issues",
        params={"q": f"repo:{owner}/{repo} type:issue state:{state}",
                "per_page": 1},
    )
    if not isinstance(data, dict):
        return 0
    try:
        return max(int(data.get("total_count", 0)), 0)
    except (TypeError, ValueError):
        return 0


def list_closed_issues(
    client: GitHubClient,
    owner: str,
    repo: str,
    limit: int = 100,
) -> List[Dict[str, Any]]:
    """
    Return up to ``limit`` most recently updated closed issues.

    The issues endpoint also returns pull requests; those are dropped.
    """
    data = client.request(
        "GET",
        f"/repos/{owner}/{repo}/issues",
        params={"state": "closed", "sort": "updated",
                "direction": "desc", "per_page": min(limit, 100)},
    )
    if not isinstance(data, list):
        return []
    return [
        issue for issue in data
        if isinstance(issue, dict) and "pull_request" not in issue
    ][:limit]
