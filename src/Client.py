# src/Client.py
import os
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Mapping, Optional
from urllib.parse import quote

import requests
from dotenv import load_dotenv

load_dotenv()  # Load keys from .env file

GITHUB_API_URL = "https://api.github.com"
NPM_REGISTRY_URL = "https://registry.npmjs.org"
REQUEST_TIMEOUT = 15


class APIError(RuntimeError):
    """
    Raised when a remote API call fails.

    Attributes
    ----------
    status_code : Optional[int]
        HTTP status of the failed response, or ``None`` when the request
        never produced one (DNS failure, timeout, ...).
    """

    def __init__(self, message: str,
                 status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class Client(ABC):
    """
    Abstract client that enforces a rate-limit check before sending
    requests.

    Subclasses must implement:
      - ``can_send() -> bool``
      - ``_send(...): Any``
    """

    @abstractmethod
    def can_send(self) -> bool:
        """
        Return whether a request is currently allowed.

        Returns
        -------
        bool
            True if allowed (rate limit respected), False otherwise.
        """
        ...

    @abstractmethod
    def _send(self, *args: Any, **kwargs: Any) -> Any:
        """
        Do the actual request (HTTP, API call, etc.).

        Returns
        -------
        Any
            Response payload (implementation-defined by subclass).
        """
        ...

    def request(self, *args: Any, **kwargs: Any) -> Any:
        """
        Public entrypoint: check ``can_send()`` then delegate to ``_send()``.

        Returns
        -------
        Any
            Whatever ``_send(...)`` returns.

        Raises
        ------
        RuntimeError
            If the rate limit is exceeded.
        """
        if not self.can_send():
            msg = "Rate limit exceeded: request not allowed right now."
            raise RuntimeError(msg)
        return self._send(*args, **kwargs)


class WindowedHTTPClient(Client):
    """
    HTTP client with a per-class (process-local) sliding-window limiter.

    Notes
    -----
    - Every concrete subclass gets its own ``request_history`` so GitHub
      and npm traffic are counted separately; all instances of one
      subclass share the same window.
    - A request is counted when it is allowed (during ``can_send``), even
      if the subsequent network call fails.
    """
    _lock = threading.Lock()
    request_history: Deque[float] = deque()
    service_name = "HTTP"

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._lock = threading.Lock()
        cls.request_history = deque()

    def __init__(self,
                 max_requests: int,
                 base_url: str,
                 window_seconds: float = 60.0) -> None:
        super().__init__()
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.base_url = base_url.rstrip("/")

    def can_send(self) -> bool:
        """
        Determine whether the request limit has been reached.

        Returns
        -------
        bool
            True if a request is allowed; False otherwise.
        """
        now = time.monotonic()
        cutoff = now - self.window_seconds

        cls = type(self)
        with cls._lock:
            hist = cls.request_history
            while hist and hist[0] <= cutoff:
                hist.popleft()

            if len(hist) < self.max_requests:
                hist.append(now)
                return True
        return False

    def _headers(self) -> dict[str, str]:
        return {}

    def _send(self, method: str, path: str,
              headers: Optional[Mapping[str, str]] = None,
              raw: bool = False,
              **kwargs: Any) -> Any:
        """
        Perform an HTTP request against ``base_url``.

        Parameters
        ----------
        method : str
            HTTP method (e.g., "GET").
        path : str
            API path starting with "/".
        headers : Optional[Mapping[str, str]]
            Extra headers merged over the client defaults.
        raw : bool
            Return the response body as text without trying JSON.
        **kwargs : Any
            Additional keyword arguments passed to ``requests.request``.

        Returns
        -------
        Any
            Parsed JSON when possible, otherwise response text. Always
            text when ``raw`` is set.

        Raises
        ------
        APIError
            If the request fails or the response is not OK.
        """
        url = f"{self.base_url}{path}"
        merged = self._headers()
        if headers:
            merged.update(headers)
        try:
            resp = requests.request(method=method,
                                    url=url,
                                    headers=merged,
                                    timeout=REQUEST_TIMEOUT,
                                    **kwargs)
        except requests.RequestException as e:
            raise APIError(
                f"{self.service_name} request failed: {e}") from e

        if not resp.ok:
            msg = (f"{self.service_name} error {resp.status_code} "
                   f"for {path}: {resp.text}")
            raise APIError(msg, status_code=resp.status_code)

        if raw:
            return resp.text

        # Try to parse JSON, else return text
        try:
            return resp.json()
        except ValueError:
            return resp.text


class GitHubClient(WindowedHTTPClient):
    """
    Client for the GitHub REST API.

    The token is taken from the ``token`` argument or, when omitted, from
    the ``GITHUB_TOKEN`` environment variable.

    Examples
    --------
    >>> client = GitHubClient()
    >>> client.request("GET", "/repos/lodash/lodash")["stargazers_count"]
    """
    service_name = "GitHub API"

    def __init__(self,
                 max_requests: int = 5000,
                 token: Optional[str] = None,
                 base_url: str = GITHUB_API_URL,
                 window_seconds: float = 3600.0) -> None:
        super().__init__(max_requests, base_url, window_seconds)
        # Prefer explicit token; otherwise fall back to env var
        if token is None:
            env_token = os.getenv("GITHUB_TOKEN")
            if not env_token:
                raise ValueError(
                    "Missing token: set GITHUB_TOKEN or pass token"
                )
            self.token = env_token
        else:
            self.token = token

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28"}


class NpmClient(WindowedHTTPClient):
    """Client for the public npm registry (no authentication)."""
    service_name = "npm registry"

    def __init__(self,
                 max_requests: int = 300,
                 base_url: str = NPM_REGISTRY_URL,
                 window_seconds: float = 60.0) -> None:
        super().__init__(max_requests, base_url, window_seconds)

    def _headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}


@dataclass(frozen=True)
class PackageRating:
    """Scores returned by a package registry's ``rate`` endpoint."""
    BusFactor: float
    Correctness: float
    RampUp: float
    ResponsiveMaintainer: float
    LicenseScore: float
    GoodPinningPractice: float = 0.0
    PullRequest: float = 0.0
    NetScore: float = 0.0

    @classmethod
    def from_payload(cls, payload: Any) -> "PackageRating":
        if not isinstance(payload, Mapping):
            raise RuntimeError("Unexpected registry response format")
        required = ("BusFactor", "Correctness", "RampUp",
                    "ResponsiveMaintainer", "LicenseScore")
        missing = [k for k in required if k not in payload]
        if missing:
            raise RuntimeError(
                f"Registry rating missing fields: {', '.join(missing)}")
        values = {k: float(payload[k]) for k in required}
        for optional in ("GoodPinningPractice", "PullRequest", "NetScore"):
            values[optional] = float(payload.get(optional, 0.0))
        return cls(**values)


class RegistryClient(WindowedHTTPClient):
    """
    Client for a package registry exposing ``GET /package/{id}/rate``.

    The base URL is taken from the ``base_url`` argument or the
    ``REGISTRY_URL`` environment variable.
    """
    service_name = "Registry API"
    RATE_PATH = "/package/{id}/rate"

    def __init__(self,
                 max_requests: int = 100,
                 base_url: Optional[str] = None,
                 window_seconds: float = 60.0) -> None:
        if base_url is None:
            base_url = os.getenv("REGISTRY_URL")
            if not base_url:
                raise ValueError(
                    "Missing registry URL: set REGISTRY_URL or pass base_url"
                )
        super().__init__(max_requests, base_url, window_seconds)

    def _headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    def package_rate(self, package_id: str,
                     authorization: str) -> PackageRating:
        """
        Fetch the rating of one package.

        Parameters
        ----------
        package_id : str
            Registry identifier of the package.
        authorization : str
            Value sent in the ``X-Authorization`` header.

        Returns
        -------
        PackageRating
            Parsed rating.

        Raises
        ------
        APIError
            If the registry answers with a non-2xx status.
        RuntimeError
            If the body is not a rating object.
        """
        path = self.RATE_PATH.format(
            id=quote(package_id, safe=""))
        payload = self.request("GET", path,
                               headers={"X-Authorization": authorization})
        return PackageRating.from_payload(payload)
