"""
Upstream fetcher for the embed proxy.

GETs a third-party player page with a randomized browser User-Agent,
following redirects so the effective URL of the real player is known.
"""
import random
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import requests
import urllib3

from config import DEFAULT_TIMEOUT
from errors import InvalidURL, UpstreamUnavailable
from log_sink import LogSink

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
]

_SCHEME_RE = re.compile(r'^[A-Za-z][A-Za-z0-9+.\-]*$')


def validate_url(url):
    """Reject anything that is not an absolute URL. No allow-list is applied."""
    if not url or any(ch.isspace() for ch in url):
        raise InvalidURL(url)
    try:
        parsed = urlparse(url)
        # Accessing .port raises ValueError for garbage like "http://host:abc"
        parsed.port
    except ValueError:
        raise InvalidURL(url)
    if not parsed.scheme or not _SCHEME_RE.match(parsed.scheme) or not parsed.netloc:
        raise InvalidURL(url)
    if not parsed.hostname:
        raise InvalidURL(url)
    return url


@dataclass
class UpstreamRequest:
    """One upstream GET: what was asked for and where it ended up"""
    url: str
    effective_url: Optional[str] = None
    status_code: Optional[int] = None
    body: str = ''


class UpstreamFetcher:
    """Fetch a player page server-side"""

    def __init__(self, timeout=DEFAULT_TIMEOUT, verify_tls=False, user_agents=None,
                 sink=None, rng=None):
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.user_agents = list(user_agents or USER_AGENTS)
        self.sink = sink or LogSink()
        self._rng = rng or random.Random()

        if not verify_tls:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def pick_user_agent(self):
        return self._rng.choice(self.user_agents)

    def fetch(self, url):
        """GET url and return an UpstreamRequest with the post-redirect URL"""
        validate_url(url)
        upstream = UpstreamRequest(url=url)

        self.sink.request('fetch', 'GET', url)
        try:
            resp = requests.get(
                url,
                headers={
                    'User-Agent': self.pick_user_agent(),
                    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
                },
                allow_redirects=True,
                verify=self.verify_tls,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            self.sink.request('fetch', 'GET', url, "✗ timeout")
            raise UpstreamUnavailable(url, f"timed out after {self.timeout}s")
        except requests.exceptions.RequestException as e:
            self.sink.request('fetch', 'GET', url, f"✗ {e}")
            raise UpstreamUnavailable(url, str(e))

        upstream.status_code = resp.status_code
        upstream.effective_url = resp.url or url
        upstream.body = resp.text or ''

        if not upstream.body:
            self.sink.request('fetch', 'GET', url, f"✗ empty body ({resp.status_code})")
            raise UpstreamUnavailable(url, "empty response body")

        if resp.status_code >= 400:
            self.sink.warning(f"Upstream {url} answered {resp.status_code}, serving body anyway")
        if upstream.effective_url != url:
            self.sink.debug(f"Redirected {url} -> {upstream.effective_url}")

        self.sink.request('fetch', 'GET', url, f"✓ {len(upstream.body)}b")
        return upstream
