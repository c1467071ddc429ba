"""
AirKorea (Korea Environment Corporation) API Connector.

Fetches the real-time measurements for one station from the
"measurements by station" endpoint. Every failure mode is raised as a
FetchError carrying its kind, so the caller can report it per station.
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from pipeline.config import AIRKOREA_BASE_URL, REQUEST_TIMEOUT
from pipeline.errors import FetchError, FetchErrorKind
from pipeline.ingestion.models import NORMAL_RESULT_MSG, RawReading, Target

logger = logging.getLogger(__name__)

# Static query parameters sent with every request
RETURN_TYPE = "json"
NUM_OF_ROWS = "1000"
PAGE_NO = "1"
DATA_TERM = "DAILY"
API_VERSION = "1.0"


def build_params(api_key: str, station_name: str) -> dict:
    return {
        "serviceKey": api_key,
        "returnType": RETURN_TYPE,
        "numOfRows": NUM_OF_ROWS,
        "pageNo": PAGE_NO,
        "stationName": station_name,
        "dataTerm": DATA_TERM,
        "ver": API_VERSION,
    }


def _read_text_quietly(resp: httpx.Response) -> str:
    try:
        resp.read()
        return resp.text
    except httpx.HTTPError:
        return ""


def fetch_reading(
    target: Target,
    api_key: str,
    client: httpx.Client,
    base_url: str = AIRKOREA_BASE_URL,
    timeout: Optional[float] = REQUEST_TIMEOUT,
) -> RawReading:
    """
    Fetch and parse the latest measurements for one station.

    Args:
        target: Station to query (external_name is sent as stationName).
        api_key: AirKorea service key shared by every request.
        client: httpx client shared across the batch.
        base_url: Endpoint to call.
        timeout: Per-request timeout in seconds; None disables it.

    Returns:
        RawReading with the upstream envelope.

    Raises:
        FetchError: transport failure, non-2xx status, unreadable body,
            malformed JSON, or a resultMsg other than NORMAL_CODE.
    """
    request = client.build_request(
        "GET",
        base_url,
        params=build_params(api_key, target.external_name),
        timeout=timeout,
    )

    try:
        resp = client.send(request, stream=True)
    except httpx.HTTPError as e:
        raise FetchError(FetchErrorKind.TRANSPORT, f"Request failed: {e!r}") from e

    try:
        if not resp.is_success:
            body = _read_text_quietly(resp)
            raise FetchError(
                FetchErrorKind.NON_SUCCESS_STATUS,
                f"Received non-success status code: {resp.status_code}\n"
                f"Headers: {dict(resp.headers)}\n"
                f"Response text: {body}",
                status_code=resp.status_code,
                headers=resp.headers,
                body=body,
            )

        try:
            resp.read()
            text = resp.text
        except httpx.HTTPError as e:
            raise FetchError(
                FetchErrorKind.BODY_READ, f"Failed to read response text: {e!r}"
            ) from e
    finally:
        resp.close()

    try:
        payload = RawReading.model_validate_json(text)
    except ValidationError as e:
        raise FetchError(
            FetchErrorKind.MALFORMED_JSON,
            f"Failed to parse JSON response: {e.errors()[0]['msg']}\n"
            f"Response text: {text}",
            body=text,
        ) from e

    result_msg = payload.result_msg
    if result_msg is not None and result_msg != NORMAL_RESULT_MSG:
        raise FetchError(
            FetchErrorKind.UPSTREAM_REPORTED, f"API returned an error: {result_msg}"
        )

    logger.debug(
        "AirKorea payload fetched for station %s: %d item(s)",
        target.external_name, len(payload.items),
    )
    return payload
