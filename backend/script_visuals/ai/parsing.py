"""Extraction of the JSON payload from free-form model replies."""

from __future__ import annotations

import json
import logging
import re

from pydantic import ValidationError

from ..errors import ParseError
from ..models import ScriptData

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```json[ \t]*\r?\n(.*?)\r?\n[ \t]*```", re.DOTALL)


def extract_json_payload(text: str) -> str:
    """Return the part of ``text`` that should hold the JSON object.

    A fenced ```json block wins. Otherwise the span from the first ``{`` to
    the last ``}`` is used. When neither applies the text comes back unchanged
    and parsing decides.
    """
    if not text:
        return ""

    match = _FENCED_JSON.search(text)
    if match and match.group(1):
        return match.group(1)

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        return text[start : end + 1]
    return text


def parse_script_payload(text: str) -> ScriptData:
    payload = extract_json_payload(text)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse JSON response from API: %s", exc)
        raise ParseError() from exc

    try:
        return ScriptData.model_validate(data)
    except ValidationError as exc:
        logger.error("Script JSON does not match the expected shape: %s", exc)
        raise ParseError() from exc
