"""Utility functions for the relay system."""

import json
import math
import re
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Marker returned by try_parse_json when the text is not JSON
NOT_JSON = object()


def decode_body(body: bytes) -> str:
    """Decode a request body as UTF-8, replacing undecodable bytes."""
    return body.decode('utf-8', errors='replace')


def _reject_constant(name):
    raise ValueError(f"{name} is not valid JSON")


def _finite_float(text):
    value = float(text)
    if math.isinf(value):
        raise ValueError(f"{text} overflows a float")
    return value


def try_parse_json(text: Optional[str]) -> Any:
    """Parse strict JSON text, returning NOT_JSON instead of raising.

    NaN, Infinity and numbers that overflow to infinity are rejected so the
    result always serializes back to valid JSON.
    """
    if text is None:
        return NOT_JSON
    try:
        return json.loads(text, parse_constant=_reject_constant, parse_float=_finite_float)
    except (ValueError, TypeError):
        return NOT_JSON


def get_boundary(content_type: str) -> Optional[str]:
    """Extract the multipart boundary from a Content-Type header."""
    boundary_match = re.search(r'boundary=([^;]+)', content_type, re.IGNORECASE)
    if not boundary_match:
        return None

    boundary = boundary_match.group(1).strip()
    # Remove quotes if present
    if boundary.startswith('"') and boundary.endswith('"'):
        boundary = boundary[1:-1]
    return boundary or None


def get_form_field(body: bytes, content_type: str, name: str) -> Optional[str]:
    """Read a single text field from a multipart/form-data body.

    Returns None when the boundary is missing or no part carries the field.
    """
    boundary = get_boundary(content_type)
    if boundary is None:
        logger.debug("No multipart boundary in Content-Type: %s", content_type)
        return None

    # Parse multipart: split on boundary
    parts = body.split(f"--{boundary}".encode())
    field_re = re.compile(r'(?:^|[;\s])name="?' + re.escape(name) + r'"?(;|\s|$)')

    for part in parts:
        # Skip empty parts and closing boundary
        if not part.strip() or part.strip() == b'--':
            continue

        # Split headers from body (separated by a blank line)
        header_end = part.find(b'\r\n\r\n')
        sep_len = 4
        if header_end == -1:
            header_end = part.find(b'\n\n')
            sep_len = 2
        if header_end == -1:
            continue

        header_section = decode_body(part[:header_end])
        value = part[header_end + sep_len:]

        # Strip the line break that precedes the next boundary
        if value.endswith(b'\r\n'):
            value = value[:-2]
        elif value.endswith(b'\n'):
            value = value[:-1]

        for header in header_section.splitlines():
            if header.lower().startswith('content-disposition') and field_re.search(header):
                return decode_body(value)

    return None
