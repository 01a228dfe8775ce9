"""Shared HTTP plumbing for upstream providers."""

import requests

from .exceptions import TransientUpstreamError

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class TimeoutSession(requests.Session):
    """requests session that applies a default timeout to every call."""

    def __init__(self, timeout: float):
        super().__init__()
        self.timeout = timeout
        self.headers.update({"User-Agent": USER_AGENT, "Accept-Language": "en-US,en;q=0.9"})

    def request(self, method, url, **kwargs):
        kwargs.setdefault("timeout", self.timeout)
        return super().request(method, url, **kwargs)


def get(session: requests.Session, url: str, **kwargs) -> requests.Response:
    """GET that maps request failures, 429 and 5xx to TransientUpstreamError."""
    try:
        response = session.get(url, **kwargs)
    except requests.RequestException as e:
        raise TransientUpstreamError(f"Request to {url} failed: {type(e).__name__}: {e}") from e

    if response.status_code == 429 or response.status_code >= 500:
        raise TransientUpstreamError(f"Upstream returned {response.status_code} for {url}")
    return response
