"""API client for the ChargePoint station-info endpoint.

This module provides functions to fetch raw station payloads, one GET per
upstream device id, and to validate the HTTP responses.
"""

import asyncio
import logging
from typing import Any

import httpx
from homeassistant.core import HomeAssistant
from homeassistant.helpers.httpx_client import create_async_httpx_client
from httpx_retries import Retry, RetryTransport

from .const import API_URL, DEFAULT_REQUEST_TIMEOUT, USER_AGENT

_LOGGER = logging.getLogger(__name__)

# HTTP status codes
HTTP_BAD_REQUEST = 400
HTTP_NOT_FOUND = 404


class ChargePointApiError(Exception):
    """Base exception for ChargePoint API errors."""


class ChargePointApiResponseError(ChargePointApiError):
    """Exception raised when the API answers with an unusable response."""


def create_headers() -> dict[str, str]:
    """Create HTTP headers for station-info requests.

    Returns:
        Dictionary containing HTTP headers for API requests.

    """
    return {
        "accept": "application/json, text/plain, */*",
        "accept-language": "de-DE,de;q=0.9,en;q=0.8",
        "user-agent": USER_AGENT,
    }


def is_http_error(status: int) -> bool:
    """Check if HTTP status code indicates an error.

    Args:
        status: HTTP status code to check.

    Returns:
        True if status code is 400 or higher, False otherwise.

    """
    return status >= HTTP_BAD_REQUEST


def validate_response(response: httpx.Response) -> dict[str, Any]:
    """Validate HTTP response and return parsed JSON data.

    Args:
        response: HTTP response object to validate.

    Returns:
        Parsed JSON object from response.

    Raises:
        ChargePointApiResponseError: If the status is an error or the body
            is not a JSON object.

    """
    if is_http_error(response.status_code):
        if response.status_code == HTTP_NOT_FOUND:
            error_msg = "Station not found"
        else:
            error_msg = f"Request failed: {response.status_code}"
        raise ChargePointApiResponseError(error_msg)

    try:
        data = response.json()
    except ValueError as err:
        error_msg = f"Invalid JSON in response: {err}"
        raise ChargePointApiResponseError(error_msg) from err

    if not isinstance(data, dict):
        error_msg = f"Unexpected response type: {type(data).__name__}"
        raise ChargePointApiResponseError(error_msg)

    return data


def create_session_client(hass: HomeAssistant) -> httpx.AsyncClient:
    """Create HTTP client with retry logic for the station-info API.

    Args:
        hass: Home Assistant instance.

    Returns:
        Configured httpx AsyncClient with retry transport.

    """
    base_client = create_async_httpx_client(hass, timeout=DEFAULT_REQUEST_TIMEOUT)
    retry = Retry(total=2, backoff_factor=0.5)
    base_client._transport = RetryTransport(  # noqa: SLF001
        transport=base_client._transport,  # noqa: SLF001
        retry=retry,
    )
    return base_client


async def async_get_station_info(
    session: httpx.AsyncClient,
    device_id: str,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> dict[str, Any]:
    """Fetch the raw station-info payload of one upstream device.

    The timeout is a single deadline shared by every retry attempt.

    Args:
        session: HTTP client session.
        device_id: Upstream device identifier.
        timeout: Overall deadline in seconds.

    Returns:
        Raw JSON payload as a dictionary.

    Raises:
        ChargePointApiResponseError: If the response is unusable.
        httpx.RequestError: On connection errors and timeouts.

    """
    _LOGGER.debug("Fetching station info for device %s", device_id)
    try:
        async with asyncio.timeout(timeout):
            response = await session.get(
                API_URL,
                params={"deviceId": device_id},
                headers=create_headers(),
                timeout=timeout,
            )
    except TimeoutError as err:
        error_msg = f"Station info for device {device_id} timed out after {timeout}s"
        raise httpx.ReadTimeout(error_msg) from err
    data = validate_response(response)
    _LOGGER.debug(
        "Received station info for device %s with %d ports",
        device_id,
        len(data.get("ports") or []),
    )
    return data
