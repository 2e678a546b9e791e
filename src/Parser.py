# src/Parser.py
# THIS CODE WILL HANDLE THE PARSER OBJECT.
# IT READS A FILE OF URLS, CLASSIFIES EACH ONE WITH A REGEX
# AND RESOLVES EVERY SUPPORTED URL TO A GITHUB OWNER/REPO PAIR

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from src.Client import APIError, NpmClient
from src.logging_utils import get_logger
from src.utils import parse_github_repository, resolve_npm_repository

logger = get_logger(__name__)


@dataclass(frozen=True)
class RepoReference:
    """
    A GitHub repository resolved from one input line.

    Attributes
    ----------
    owner : str
        Repository owner (user or organisation).
    repo : str
        Repository name.
    url : str
        The input URL exactly as it appeared in the file.
    """
    owner: str
    repo: str
    url: str

    def as_inputs(self) -> Dict[str, str]:
        """Return the mapping handed to every metric."""
        return {"owner": self.owner, "repo": self.repo, "url": self.url}


class Parser:
    """
    URL Parser to categorize input URLs into the following groups:
    - git_url : GitHub repository links
    - npm_url : npm package pages (resolved through the npm registry)
    - unknown : Any URL that does not match a known category
    """

    def __init__(self, filepath: str,
                 npm_client: Optional[NpmClient] = None):
        """
        Initialize the Parser object.

        Parameters
        ----------
        filepath : str
            Path to the file containing newline-delimited URLs.
        npm_client : Optional[NpmClient]
            Client used to resolve npm package URLs. Created lazily on the
            first npm URL when omitted.

        Notes
        -----
        The constructor reads and categorizes the URLs immediately;
        npm lookups are deferred until ``getRepos()``.
        """
        self.filepath = filepath
        self.npm_client = npm_client
        self.urls = self._loadUrls()
        self.regex_dict: Dict[str, re.Pattern] = {
            "git_url": re.compile(
                r"^https?://(?:www\.)?github\.com/"
                r"[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+"),
            "npm_url": re.compile(
                r"^https?://(?:www\.)?npmjs\.com/package/"
                r"((?:@[A-Za-z0-9_.-]+/)?[A-Za-z0-9_.-]+)"),
        }
        self.categories: List[str] = self._categorize()
        self._repos: Optional[List[RepoReference]] = None

    def _loadUrls(self) -> List[str]:
        """
        Read URLs from the provided text file.

        Returns
        -------
        list[str]
            List of non-empty, stripped URLs read from the file.
        """
        with open(self.filepath, "r", encoding="utf-8") as f:
            return [line.strip() for line in f if line.strip()]

    def _categorize(self) -> List[str]:
        """
        Categorize each URL, keeping the input order.

        Returns
        -------
        list[str]
            One category name per URL; ``"unknown"`` when no pattern
            matches.
        """
        result: List[str] = []
        for url in self.urls:
            category = "unknown"
            for name, pattern in self.regex_dict.items():
                if pattern.match(url):
                    category = name
                    break
            result.append(category)
        return result

    def _resolve(self, url: str, category: str) -> Optional[RepoReference]:
        if category == "git_url":
            pair = parse_github_repository(url)
        elif category == "npm_url":
            match = self.regex_dict["npm_url"].match(url)
            package = match.group(1) if match else ""
            if self.npm_client is None:
                self.npm_client = NpmClient()
            try:
                pair = resolve_npm_repository(self.npm_client, package)
            except APIError as e:
                logger.warning("npm lookup failed for %s: %s", package, e)
                return None
        else:
            return None

        if pair is None:
            return None
        owner, repo = pair
        return RepoReference(owner=owner, repo=repo, url=url)

    def getUrls(self) -> List[str]:
        """Return every non-empty line of the input file."""
        return list(self.urls)

    def getGithubUrls(self) -> List[str]:
        """Return the URLs that resolve to a GitHub repository."""
        return [ref.url for ref in self.getRepos()]

    def getRepos(self) -> List[RepoReference]:
        """
        Resolve every supported URL to a GitHub repository.

        Returns
        -------
        list[RepoReference]
            References in input order. URLs that do not resolve are
            skipped and logged.
        """
        if self._repos is not None:
            return list(self._repos)

        repos: List[RepoReference] = []
        for url, category in zip(self.urls, self.categories):
            ref = self._resolve(url, category)
            if ref is None:
                logger.info("Skipping %s (%s): no GitHub repository",
                            url, category)
                continue
            logger.debug("Resolved %s to %s/%s", url, ref.owner, ref.repo)
            repos.append(ref)

        self._repos = repos
        return list(repos)
