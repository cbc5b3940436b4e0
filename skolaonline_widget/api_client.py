#!/usr/bin/env python3
"""
API client for the Škola OnLine widget.

This module provides the HTTP plumbing shared by the token exchange and the
``ApiClient`` that fetches the account identity and the raw timetable.
"""

from datetime import date
from typing import Any, Dict, Optional, Type

import backoff  # Using backoff decorator for retries
import httpx

from skolaonline_widget import logger, request_retry_config
from skolaonline_widget.constants import (
    DEFAULT_HEADERS,
    REQUEST_TIMEOUT,
    TIMETABLE_URL,
    USER_URL,
)
from skolaonline_widget.models import RawScheduleDocument, UserIdentity
from skolaonline_widget.utils.date_utils import format_api_query_datetime, week_end_for
from skolaonline_widget.utils.error_utils import (
    FetchError,
    IdentityFetchError,
    IncompleteProfile,
    ScheduleSyncError,
    handle_errors,
)

# Transport failures worth a quick second attempt. Timeouts are not retried so
# a single call stays bounded by the configured timeout.
RETRYABLE_ERRORS = (httpx.ConnectError, httpx.ReadError, httpx.RemoteProtocolError)

def create_httpx_client(timeout: float = REQUEST_TIMEOUT) -> httpx.AsyncClient:
    """
    Create an AsyncClient for API requests.

    Args:
        timeout: Timeout in seconds applied to connect, read, write and pool waits

    Returns:
        httpx.AsyncClient: The configured client
    """
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        verify=True,
        headers=DEFAULT_HEADERS,
    )

def _on_backoff_handler(details):
    exception = details.get('exception')
    wait_time = details.get('wait', 0)
    tries = details.get('tries', 0)
    logger.warning(f"Retrying request in {wait_time:.1f}s after {tries} tries. Error: {exception}")

@backoff.on_exception(
    backoff.expo,
    RETRYABLE_ERRORS,
    max_tries=lambda: request_retry_config["max_tries"],
    max_time=lambda: request_retry_config["max_time"],
    on_backoff=_on_backoff_handler,
    logger=None
)
async def send_request(client: httpx.AsyncClient, method: str, url: str, **kwargs) -> httpx.Response:
    """Send one request, retrying transport failures per ``request_retry_config``."""
    return await client.request(method, url, **kwargs)

async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    error_class: Type[ScheduleSyncError],
    timeout: float = REQUEST_TIMEOUT,
    **kwargs
) -> Dict[str, Any]:
    """
    Perform a request and decode its JSON object body.

    Any failure (transport error, timeout, non-200 status, non-object body) is
    raised as ``error_class``.

    Args:
        client: The HTTP client
        method: HTTP method
        url: Absolute URL
        error_class: Exception type raised on failure
        timeout: Request timeout in seconds
        **kwargs: Passed on to ``httpx.AsyncClient.request``

    Returns:
        dict: The decoded body
    """
    try:
        response = await send_request(client, method, url, timeout=timeout, **kwargs)
    except httpx.TimeoutException as e:
        raise error_class(f"Request to {url} timed out after {timeout:.0f}s") from e
    except httpx.HTTPError as e:
        raise error_class(f"Request to {url} failed: {e}") from e

    if response.status_code != 200:
        raise error_class(f"Request to {url} returned HTTP {response.status_code}")

    try:
        body = response.json()
    except ValueError as e:
        raise error_class(f"Response from {url} is not valid JSON") from e

    if not isinstance(body, dict):
        raise error_class(f"Response from {url} is not a JSON object")
    return body

def _clean_id(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()

class ApiClient:
    """Client for the Škola OnLine identity and timetable endpoints."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = REQUEST_TIMEOUT):
        self._owns_client = client is None
        self._client = client or create_httpx_client(timeout)
        self.timeout = timeout

    @property
    def http_client(self) -> httpx.AsyncClient:
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _auth_headers(self, access_token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    @handle_errors(error_category="fetch_errors", error_class=IdentityFetchError,
                   error_message="Identity request failed: {error}")
    async def fetch_identity(self, access_token: str) -> UserIdentity:
        """
        Fetch the person and school year the access token belongs to.

        Args:
            access_token: Bearer token from the token exchange

        Returns:
            UserIdentity: The person id and school year id

        Raises:
            IdentityFetchError: If the request fails or times out
            IncompleteProfile: If either id is blank
        """
        body = await request_json(
            self._client, "GET", USER_URL, IdentityFetchError,
            timeout=self.timeout,
            headers=self._auth_headers(access_token),
        )

        person_id = _clean_id(body.get("personID"))
        school_year_id = _clean_id(body.get("schoolYearId"))
        if not person_id or not school_year_id:
            raise IncompleteProfile(
                f"Identity response is missing personID or schoolYearId "
                f"(personID={person_id!r}, schoolYearId={school_year_id!r})"
            )

        logger.debug(f"Fetched identity for person {person_id}, school year {school_year_id}")
        return UserIdentity(person_id=person_id, school_year_id=school_year_id)

    @handle_errors(error_category="fetch_errors", error_class=FetchError,
                   error_message="Timetable request failed: {error}")
    async def fetch_timetable(
        self,
        access_token: str,
        person_id: str,
        school_year_id: str,
        week_start: date,
        week_end: Optional[date] = None
    ) -> RawScheduleDocument:
        """
        Fetch the raw timetable for a Monday..Friday window.

        Args:
            access_token: Bearer token from the token exchange
            person_id: Student id from ``fetch_identity``
            school_year_id: School year id from ``fetch_identity``
            week_start: Monday of the window
            week_end: Friday of the window (derived from week_start when omitted)

        Returns:
            RawScheduleDocument: The parsed document

        Raises:
            FetchError: If the request fails, times out or the body is malformed
        """
        week_end = week_end or week_end_for(week_start)
        params = {
            "StudentId": person_id,
            "SchoolYearId": school_year_id,
            "DateFrom": format_api_query_datetime(week_start),
            "DateTo": format_api_query_datetime(week_end),
        }
        logger.info(f"Fetching timetable for {week_start.isoformat()} .. {week_end.isoformat()}")

        body = await request_json(
            self._client, "GET", TIMETABLE_URL, FetchError,
            timeout=self.timeout,
            params=params,
            headers=self._auth_headers(access_token),
        )
        document = RawScheduleDocument.from_dict(body)
        logger.debug(f"Timetable response contains {len(document.days)} days")
        return document
