from __future__ import annotations

import base64
import json
import logging
import re
from typing import Any, Dict, List

from langchain_core.messages import HumanMessage, SystemMessage, convert_to_openai_messages
from langchain_core.tools import tool

from pipeline.errors import ParseFailure

log = logging.getLogger(__name__)

DETECTION_TEMPERATURE = 0.3

SYSTEM_PROMPT = (
    "You are a thermal image analysis AI specialized in object detection. "
    "Analyze thermal images and identify objects, their locations, and temperature "
    "characteristics. Return detections in JSON format with: label (object name), "
    "confidence (0-1), bbox (x, y, width, height as percentages), and temperature "
    "(hot/warm/cool/cold)."
)

USER_PROMPT = (
    "Analyze this thermal image and detect all objects. Return ONLY a JSON array of "
    'detections with this structure: [{"label": "object name", "confidence": 0.95, '
    '"bbox": {"x": 10, "y": 20, "width": 30, "height": 40}, "temperature": "hot"}]'
)

FALLBACK_DETECTIONS: List[Dict[str, Any]] = [
    {
        "label": "Thermal Object",
        "confidence": 0.85,
        "bbox": {"x": 25, "y": 30, "width": 40, "height": 35},
        "temperature": "hot",
    }
]

# Greedy: first "[" through last "]", so code fences and prose around the array are dropped.
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


def encode_data_url(data: bytes, content_type: str) -> str:
    """Embed raw image bytes as a base64 data URL."""
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{content_type};base64,{payload}"


def build_detection_messages(data_url: str) -> List[Dict[str, Any]]:
    """
    Builds the system + user messages for the thermal detection request,
    in OpenAI chat-completions format.
    """
    messages = [
        SystemMessage(content=SYSTEM_PROMPT),
        HumanMessage(
            content=[
                {"type": "text", "text": USER_PROMPT},
                {"type": "image_url", "image_url": {"url": data_url}},
            ]
        ),
    ]
    return convert_to_openai_messages(messages)


def first_choice_content(completion: Dict[str, Any]) -> Any:
    """
    Content of the first choice's message, or "[]" when there is none.

    A list of content parts is flattened to its text parts. Any other
    non-string content is returned as-is and left to the parser to reject.
    """
    choices = completion.get("choices") or []
    if not choices:
        return "[]"
    message = (choices[0] or {}).get("message") or {}
    content = message.get("content")
    if isinstance(content, list):
        content = "\n".join(
            part["text"]
            for part in content
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        )
    return content or "[]"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def parse_detection_array(content: Any) -> List[Any]:
    """
    Parses the first JSON array literal in `content`.

    NaN and Infinity are rejected, as strict JSON does.

    Raises:
        ParseFailure: when no JSON array can be decoded.
    """
    if not isinstance(content, str):
        raise ParseFailure(f"expected text content, got {type(content).__name__}")
    match = _ARRAY_RE.search(content)
    candidate = match.group(0) if match else content
    try:
        value = json.loads(candidate, parse_constant=_reject_constant)
    except (TypeError, ValueError) as e:
        raise ParseFailure(f"invalid JSON: {e}") from e
    if not isinstance(value, list):
        raise ParseFailure(f"expected a JSON array, got {type(value).__name__}")
    return value


@tool
def extract_detections(content: Any) -> List[Any]:
    """
    Extracts the detection list from free-form model output.

    Args:
        content: Assistant message text, possibly wrapped in prose or a code fence.

    Returns:
        The parsed array unchanged, or a single fallback "Thermal Object"
        detection when nothing parseable is found.
    """
    try:
        return parse_detection_array(content)
    except ParseFailure as e:
        log.warning("[PARSE] Failed to parse AI response: %s", e)
        return [dict(d, bbox=dict(d["bbox"])) for d in FALLBACK_DETECTIONS]
