"""Shared httpx plumbing for the chess platform clients."""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

import httpx

from chessfocus.config import HTTP_TIMEOUT, USER_AGENT
from chessfocus.errors import check_response, transport_error


@asynccontextmanager
async def client_scope(
    client: Optional[httpx.AsyncClient] = None,
) -> AsyncIterator[httpx.AsyncClient]:
    """Reuse the caller's client, or open a short-lived one with our defaults."""
    if client is not None:
        yield client
        return

    async with httpx.AsyncClient(
        timeout=HTTP_TIMEOUT,
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
    ) as new_client:
        yield new_client


async def get(
    client: httpx.AsyncClient,
    url: str,
    what: str,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[dict] = None,
) -> httpx.Response:
    """GET that only returns 2xx responses; everything else is a taxonomy error."""
    try:
        response = await client.get(url, headers=headers, params=params)
    except httpx.HTTPError as e:
        raise transport_error(e, what) from e
    return check_response(response, what)
