"""Single-URL status checks.

A non-200 response is a normal, classified outcome rather than an error
path. Only the absence of any response (timeouts, DNS failures, resets) or a
request that cannot be built becomes a ``transport_failure``.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from .document import CheckOutcome
from .settings import DEFAULT_USER_AGENT

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

NO_RESPONSE = "No response received"


def build_client(
    *,
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the shared async client used for status checks and fetches."""
    return httpx.AsyncClient(
        headers={"User-Agent": user_agent or DEFAULT_USER_AGENT},
        timeout=timeout,
        follow_redirects=False,
        transport=transport,
    )


async def check_url_async(
    client: httpx.AsyncClient,
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    method: str = "GET",
) -> CheckOutcome:
    """Request *url* once and classify the result.

    Returns:
        ``CheckOutcome`` with kind ``ok`` for a 200, ``http_status`` for any
        other response, ``transport_failure`` when no response was obtained.
    """
    try:
        response = await client.request(method, url, timeout=timeout)
    except (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError) as exc:
        LOGGER.debug("No response from %s: %r", url, exc)
        return CheckOutcome(
            url=url,
            kind="transport_failure",
            error=f"{NO_RESPONSE} ({type(exc).__name__})",
        )
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
        # Request could not be constructed or sent (bad URL, unsupported scheme).
        LOGGER.debug("Request setup failed for %s: %s", url, exc)
        return CheckOutcome(url=url, kind="transport_failure", error=str(exc) or repr(exc))

    if response.status_code == 200:
        return CheckOutcome(url=url, kind="ok", status=200)
    return CheckOutcome(url=url, kind="http_status", status=response.status_code)
