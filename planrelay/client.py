"""Client side of the relay: submit a flight plan with one form fallback.

The planning page first tries a plain JSON POST. Browsers send a preflight
for that, so when it fails the page retries once with a multipart body whose
only field, ``payload``, holds the JSON text. That request carries no custom
headers and skips the preflight. The relay accepts both shapes.
"""

import json
import logging

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


def submit_json(url: str, plan, timeout=DEFAULT_TIMEOUT) -> requests.Response:
    """POST the plan as application/json."""
    return requests.post(url, json=plan, timeout=timeout)


def submit_form(url: str, plan, timeout=DEFAULT_TIMEOUT) -> requests.Response:
    """POST the plan as multipart/form-data with a single payload field."""
    return requests.post(url, files={"payload": (None, json.dumps(plan))}, timeout=timeout)


def submit_plan(url: str, plan, timeout=DEFAULT_TIMEOUT) -> requests.Response:
    """Try a JSON POST, then fall back to the form body once.

    Errors from the fallback attempt propagate to the caller.
    """
    try:
        response = submit_json(url, plan, timeout=timeout)
        if response.ok:
            return response
        logger.warning(f"JSON submit returned {response.status_code}, retrying as form data")
    except requests.exceptions.RequestException as e:
        logger.warning(f"JSON submit failed ({e}), retrying as form data")

    return submit_form(url, plan, timeout=timeout)
