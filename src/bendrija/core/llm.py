from __future__ import annotations

import json
import re
from typing import Any

import httpx

from bendrija.core.config import settings


class UpstreamError(Exception):
    """The document-analysis service refused or failed the request."""

    status_code = 503
    detail = "Document analysis service is unavailable"

    def __init__(self, message: str | None = None, *, upstream_status: int | None = None) -> None:
        super().__init__(message or self.detail)
        self.upstream_status = upstream_status


class UpstreamRateLimited(UpstreamError):
    status_code = 429
    detail = "Document analysis rate limit reached, try again later"


class UpstreamQuotaExceeded(UpstreamError):
    status_code = 402
    detail = "Document analysis credits are exhausted"


class UpstreamUnavailable(UpstreamError):
    pass


def llm_available() -> bool:
    return bool(settings.openai_api_key)


def classify_upstream_status(status_code: int) -> type[UpstreamError]:
    if status_code == 429:
        return UpstreamRateLimited
    if status_code == 402:
        return UpstreamQuotaExceeded
    return UpstreamUnavailable


def chat_completion(payload: dict[str, Any], *, timeout: float) -> str | None:
    """
    POST a chat-completions request and return the assistant message content.

    Returns ``None`` on timeout, refusal or an unreadable response body. Raises an
    :class:`UpstreamError` subclass when the service answers with an error status or
    cannot be reached at all.
    """
    headers = {
        "Authorization": f"Bearer {settings.openai_api_key}",
        "Content-Type": "application/json",
    }
    url = settings.openai_base_url.rstrip("/") + "/chat/completions"

    try:
        resp = _post(url, headers=headers, payload=payload, timeout=timeout)
    except httpx.HTTPStatusError as e:
        status_code = e.response.status_code if e.response is not None else 0
        # Some models/endpoints don't support Structured Outputs; fall back to JSON mode.
        fmt = payload.get("response_format") or {}
        if status_code in {400, 422} and fmt.get("type") == "json_schema":
            retry = {**payload, "response_format": {"type": "json_object"}}
            try:
                resp = _post(url, headers=headers, payload=retry, timeout=timeout)
            except httpx.HTTPStatusError as retry_err:
                retry_status = (
                    retry_err.response.status_code if retry_err.response is not None else 0
                )
                raise classify_upstream_status(retry_status)(
                    upstream_status=retry_status
                ) from retry_err
        else:
            raise classify_upstream_status(status_code)(upstream_status=status_code) from e

    if resp is None:
        return None

    try:
        raw = resp.json()
        msg = raw["choices"][0]["message"]
    except (ValueError, KeyError, IndexError, TypeError):
        return None
    if not isinstance(msg, dict) or msg.get("refusal"):
        return None

    tool_calls = msg.get("tool_calls")
    if isinstance(tool_calls, list) and tool_calls:
        args = (tool_calls[0].get("function") or {}).get("arguments")
        if isinstance(args, str) and args.strip():
            return args

    content = msg.get("content")
    if not isinstance(content, str) or not content.strip():
        return None
    return content


def _post(
    url: str, *, headers: dict[str, str], payload: dict[str, Any], timeout: float
) -> httpx.Response | None:
    try:
        resp = httpx.post(
            url,
            headers=headers,
            json=payload,
            timeout=timeout,
            follow_redirects=True,
        )
    except httpx.TimeoutException:
        return None
    except httpx.TransportError as e:
        raise UpstreamUnavailable(str(e)) from e
    resp.raise_for_status()
    return resp


def truncate_text(text: str, *, max_chars: int) -> str:
    t = (text or "").replace("\u202f", " ").replace("\xa0", " ").strip()
    if not t:
        return ""
    if max_chars <= 0 or len(t) <= max_chars:
        return t
    return t[: max_chars - 20].rstrip() + "\n\n[TRUNCATED]"


def strip_code_fence(content: str) -> str:
    m = re.search(r"```(?:json)?\s*([\s\S]*?)```", content or "")
    return m.group(1).strip() if m else (content or "").strip()


def parse_json_object(content: str) -> Any:
    c = strip_code_fence(content)
    if not c:
        return None
    try:
        return json.loads(c)
    except ValueError:
        pass

    # Fallback: extract the first {...} block.
    m = re.search(r"\{.*\}", c, re.S)
    if not m:
        return None
    try:
        return json.loads(m.group(0))
    except ValueError:
        return None
