"""
claude_client.py — Anthropic Messages API calls that return structured JSON

The model is forced to answer through a single tool whose input_schema is
the JSON Schema we want back, so the reply is the tool input, not prose.

Model tiers:
  - fast:  vendor reply parsing (high volume, short inputs)
  - smart: RFP drafting and proposal comparison

Business Rules:
- No API key means no call; callers get None and choose a fallback
- Any transport error, non-200 status or missing tool block is logged and
  returned as None, never raised
- The static system prompt is marked cacheable

Called by: services/extraction.py (ClaudeExtractor)
Depends on: config.py (anthropic_api_key), httpx
"""

import json
import re
from typing import Any

import httpx
from loguru import logger

from ..config import settings

API_URL = "https://api.anthropic.com/v1/messages"
API_VERSION = "2023-06-01"
TOOL_NAME = "record_result"

MODELS = {
    "fast": "claude-haiku-4-5-20251001",
    "smart": "claude-sonnet-4-5-20250929",
}

_FENCE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


def build_request(
    prompt: str,
    schema: dict,
    *,
    system: str = "",
    model_tier: str = "fast",
    max_tokens: int = 1024,
    temperature: float = 0.2,
) -> dict[str, Any]:
    """Messages API body that forces one call of the result tool."""
    body: dict[str, Any] = {
        "model": MODELS.get(model_tier, MODELS["fast"]),
        "max_tokens": max_tokens,
        "temperature": temperature,
        "messages": [{"role": "user", "content": prompt}],
        "tools": [
            {
                "name": TOOL_NAME,
                "description": "Record the extracted data in the required shape.",
                "input_schema": schema,
            }
        ],
        "tool_choice": {"type": "tool", "name": TOOL_NAME},
    }
    if system:
        body["system"] = [
            {"type": "text", "text": system, "cache_control": {"type": "ephemeral"}}
        ]
    return body


def tool_input(response_body: dict) -> dict | None:
    """The input of the first result-tool block, if the model produced one."""
    for block in response_body.get("content") or []:
        if block.get("type") == "tool_use" and block.get("name") == TOOL_NAME:
            data = block.get("input")
            return data if isinstance(data, dict) else None
    return None


async def claude_structured(
    prompt: str,
    schema: dict,
    *,
    system: str = "",
    model_tier: str = "fast",
    max_tokens: int = 1024,
    temperature: float = 0.2,
    timeout: int = 30,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict | None:
    """Send one prompt and return the schema-shaped dict, or None."""
    if not settings.anthropic_api_key:
        return None

    body = build_request(
        prompt,
        schema,
        system=system,
        model_tier=model_tier,
        max_tokens=max_tokens,
        temperature=temperature,
    )
    headers = {
        "x-api-key": settings.anthropic_api_key,
        "anthropic-version": API_VERSION,
        "content-type": "application/json",
    }

    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            resp = await client.post(API_URL, headers=headers, json=body)
    except httpx.HTTPError as e:
        logger.warning("Claude request failed: {}", e)
        return None

    if resp.status_code != 200:
        logger.warning("Claude API {}: {}", resp.status_code, resp.text[:200])
        return None

    try:
        result = tool_input(resp.json())
    except ValueError:
        logger.warning("Claude API returned a non-JSON body")
        return None

    if result is None:
        logger.warning("Claude response had no {} block", TOOL_NAME)
    return result


def safe_json_parse(text: str) -> dict | list | None:
    """Parse JSON that may be wrapped in a code fence or surrounded by prose."""
    if not text:
        return None

    cleaned = _FENCE.sub("", text.strip())
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    for opener, closer in (("{", "}"), ("[", "]")):
        start, end = cleaned.find(opener), cleaned.rfind(closer)
        if start == -1 or end <= start:
            continue
        try:
            return json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError:
            continue

    logger.debug("Unparseable JSON text: {}", text[:100])
    return None
