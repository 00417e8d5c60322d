"""Request handlers that relay flight plans to the upstream endpoint."""

import json
import logging
from typing import Any, NamedTuple, Optional, Union

import requests

from .config import ALLOWED_ORIGIN, UPSTREAM_TIMEOUT, UPSTREAM_URL, cors_headers
from .utils import NOT_JSON, decode_body, get_form_field, try_parse_json

logger = logging.getLogger(__name__)

TEXT_PLAIN = "text/plain; charset=utf-8"


class RelayResponse(NamedTuple):
    """Status, body and headers to send back to the browser.

    Relay-generated bodies are text; upstream bodies stay raw bytes.
    """
    status: int
    body: Union[str, bytes]
    headers: dict


def _wrap(raw: Optional[str]) -> dict:
    return {"payload": raw}


def extract_payload(content_type: str, body: bytes) -> Any:
    """Turn an inbound body into the JSON value to forward.

    JSON bodies are parsed as-is, multipart bodies contribute their
    ``payload`` field, anything else is read as text. Text that does not
    parse as JSON is wrapped as ``{"payload": <text>}``.
    """
    content_type = content_type or ""
    media_type = content_type.lower()

    if "application/json" in media_type:
        raw = decode_body(body)
    elif "multipart/form-data" in media_type:
        raw = get_form_field(body, content_type, "payload")
        if raw is None:
            logger.warning("Multipart request has no payload field")
            raw = ""
    else:
        raw = decode_body(body)

    parsed = try_parse_json(raw)
    if parsed is NOT_JSON:
        return _wrap(raw)
    return parsed


def serialize_payload(payload: Any) -> str:
    """Serialize a payload for the upstream; equal input gives equal output."""
    return json.dumps(payload, allow_nan=False)


class Relay:
    """Forwards flight plans upstream and answers with CORS headers."""

    def __init__(self, upstream_url: str = UPSTREAM_URL, allowed_origin: str = ALLOWED_ORIGIN,
                 timeout: Optional[float] = UPSTREAM_TIMEOUT, session: Optional[requests.Session] = None):
        self.upstream_url = upstream_url
        self.allowed_origin = allowed_origin
        self.timeout = timeout
        self.session = session

    def respond(self, status: int, body: Union[str, bytes] = "", content_type: Optional[str] = TEXT_PLAIN) -> RelayResponse:
        headers = cors_headers(self.allowed_origin)
        if content_type:
            headers["Content-Type"] = content_type
        return RelayResponse(status, body, headers)

    def handle_preflight(self) -> RelayResponse:
        """OPTIONS - answer the browser preflight without touching upstream."""
        return self.respond(204, content_type=None)

    def handle_other(self, method: str) -> RelayResponse:
        """Any method other than OPTIONS or POST."""
        logger.info(f"Rejected {method} request")
        return self.respond(405, "Method Not Allowed")

    def handle_forward(self, content_type: str, body: bytes) -> RelayResponse:
        """POST - forward the extracted payload and pass the upstream reply through."""
        payload = extract_payload(content_type, body)
        data = serialize_payload(payload)

        http = self.session or requests
        try:
            response = http.post(
                self.upstream_url,
                data=data.encode("utf-8"),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            logger.warning(f"Upstream timeout: {self.upstream_url}")
            return self.respond(504, "Gateway Timeout")
        except requests.exceptions.RequestException as e:
            logger.error(f"Upstream request failed: {e}")
            return self.respond(502, "Bad Gateway")

        logger.info(f"Forwarded {len(data)} bytes upstream -> {response.status_code}")
        return self.respond(
            response.status_code,
            response.content,
            response.headers.get("Content-Type") or TEXT_PLAIN,
        )
