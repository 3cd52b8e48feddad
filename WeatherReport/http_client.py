"""HTTP transport with bounded retries and IPv4 -> IPv6 -> alternate URL fallback."""
import logging
import socket
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, Optional

import requests
import urllib3.util.connection as urllib3_connection
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

# Primary stack first, then the secondary one
ADDRESS_FAMILIES = (
    ("ipv4", socket.AF_INET),
    ("ipv6", socket.AF_INET6),
)


@contextmanager
def pinned_address_family(family: int) -> Iterator[None]:
    """Restrict urllib3's name resolution to one address family."""
    original = urllib3_connection.allowed_gai_family
    urllib3_connection.allowed_gai_family = lambda: family
    try:
        yield
    finally:
        urllib3_connection.allowed_gai_family = original


class HttpFetcher:
    """
    Small GET-only client used by every external call.

    Each URL is tried over IPv4, then IPv6; optional fallback URLs (e.g. a
    plain-HTTP variant) are tried the same way. Every address family has its
    own session, so a kept-alive IPv4 socket is never reused for the IPv6
    attempt. Connect and read timeouts plus a fixed retry count bound the
    wall-clock time of every call.
    Network failures never raise: an empty string means "no usable body".
    """

    def __init__(
        self,
        connect_timeout: float = 3.0,
        read_timeout: float = 6.0,
        retries: int = 2,
        sessions: Optional[Dict[str, requests.Session]] = None,
    ):
        self.timeout = (connect_timeout, read_timeout)
        self.retries = retries
        self.sessions = sessions or {name: self._build_session(retries) for name, _ in ADDRESS_FAMILIES}

    @staticmethod
    def _build_session(retries: int) -> requests.Session:
        retry = Retry(
            total=retries,
            connect=retries,
            read=retries,
            status=retries,
            backoff_factor=0,
            status_forcelist=(500, 502, 503, 504),
            allowed_methods=("GET",),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        session = requests.Session()
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def get_text(
        self,
        url: str,
        params: Optional[Dict[str, object]] = None,
        headers: Optional[Dict[str, str]] = None,
        fallback_urls: Iterable[str] = (),
        encoding: Optional[str] = None,
    ) -> str:
        """
        Body of the first successful attempt, or "" when all failed.

        ``encoding`` overrides the charset guessed from the response headers
        (text/* without a charset would otherwise decode as ISO-8859-1).
        """
        for candidate in (url, *fallback_urls):
            for family_name, family in ADDRESS_FAMILIES:
                body = self._attempt(candidate, params, headers, family_name, family, encoding)
                if body:
                    return body
        logging.debug(f"All attempts failed for {url}")
        return ""

    def _attempt(self, url, params, headers, family_name, family, encoding=None) -> str:
        session = self.sessions[family_name]
        try:
            with pinned_address_family(family):
                response = session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logging.debug(f"GET {url} over {family_name} failed: {e}")
            return ""

        if not response.ok:
            logging.debug(f"GET {url} over {family_name}: HTTP {response.status_code}")
            return ""

        if encoding:
            response.encoding = encoding
        body = response.text or ""
        logging.debug(f"GET {url} over {family_name}: len={len(body)}")
        return body
