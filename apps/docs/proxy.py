"""
Fetching remote documents on behalf of the viewer.

Google Drive share links are rewritten to their direct-download form so
the PDF viewer receives the file bytes instead of the Drive HTML page.
"""
import ipaddress
import logging
import re
from typing import Iterator, Tuple
from urllib.parse import urlsplit

import httpx

logger = logging.getLogger(__name__)

DRIVE_LINK_RE = re.compile(r'drive\.google\.com/(?:file/d/|uc\?id=)([\w-]+)')

# Some hosts refuse requests without a browser User-Agent
BROWSER_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)

DEFAULT_CONTENT_TYPE = 'application/pdf'
DEFAULT_CONTENT_DISPOSITION = 'inline; filename="document.pdf"'
PROXY_TIMEOUT = 30.0


class ProxyError(Exception):
    """Raised when the upstream document cannot be fetched."""
    pass


def rewrite_drive_url(url: str) -> str:
    """Turn a Drive share link into a direct download link; other URLs pass through."""
    match = DRIVE_LINK_RE.search(url)
    if not match:
        return url
    return f"https://drive.google.com/uc?export=download&id={match.group(1)}"


def is_public_host(host: str) -> bool:
    """
    False for localhost names and for loopback, private, link-local or
    reserved IP literals. Other hostnames are not resolved.
    """
    host = (host or '').strip('[]').rstrip('.').lower()
    if not host or host == 'localhost' or host.endswith('.localhost'):
        return False
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return True
    return address.is_global and not address.is_multicast


def is_fetchable_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in ('http', 'https') and is_public_host(parts.hostname)


def _check_request_host(request: httpx.Request) -> None:
    # Runs for every hop, so redirects cannot reach internal hosts either
    if not is_public_host(request.url.host):
        raise ProxyError(f"Refusing to fetch internal host {request.url.host}")


def open_upstream(url: str) -> Tuple[httpx.Client, httpx.Response]:
    """
    Start a streaming GET for a document.

    The caller owns the returned client and response and must close them,
    directly or through UpstreamBody.

    Raises:
        ProxyError: If the request cannot be sent
    """
    client = httpx.Client(
        timeout=PROXY_TIMEOUT,
        follow_redirects=True,
        event_hooks={'request': [_check_request_host]},
    )
    try:
        request = client.build_request('GET', url, headers={'User-Agent': BROWSER_USER_AGENT})
        response = client.send(request, stream=True)
    except (httpx.HTTPError, ProxyError) as e:
        client.close()
        logger.error(f"Upstream fetch failed for {url}: {e}")
        raise ProxyError(str(e))
    return client, response


class UpstreamBody:
    """
    Streaming response body that owns the upstream connection.

    Django calls close() when the response is closed, whether or not
    iteration ever started.
    """

    def __init__(self, client: httpx.Client, response: httpx.Response):
        self.client = client
        self.response = response

    def __iter__(self) -> Iterator[bytes]:
        return self.response.iter_bytes()

    def close(self) -> None:
        close_upstream(self.client, self.response)


def close_upstream(client: httpx.Client, response: httpx.Response) -> None:
    response.close()
    client.close()
