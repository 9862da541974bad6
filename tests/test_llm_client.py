from __future__ import annotations

import httpx
import pytest

from bendrija.core import llm
from bendrija.core.llm import (
    UpstreamQuotaExceeded,
    UpstreamRateLimited,
    UpstreamUnavailable,
    chat_completion,
)

_URL = "https://llm.example.com/v1/chat/completions"


def _response(status: int, body: dict | None = None) -> httpx.Response:
    return httpx.Response(status, json=body or {}, request=httpx.Request("POST", _URL))


def _ok(content: str) -> httpx.Response:
    return _response(200, {"choices": [{"message": {"content": content}}]})


@pytest.mark.parametrize(
    ("status", "error"),
    [(429, UpstreamRateLimited), (402, UpstreamQuotaExceeded), (500, UpstreamUnavailable)],
)
def test_error_statuses_are_classified(monkeypatch, status, error):
    monkeypatch.setattr(llm.httpx, "post", lambda *a, **kw: _response(status))
    with pytest.raises(error) as exc:
        chat_completion({"model": "m", "messages": []}, timeout=1)
    assert exc.value.upstream_status == status
    assert exc.value.status_code in {429, 402, 503}


def test_structured_output_rejection_retries_in_json_mode(monkeypatch):
    formats: list[str] = []

    def _post(url, *, headers, json, timeout, follow_redirects):
        formats.append(json["response_format"]["type"])
        if json["response_format"]["type"] == "json_schema":
            return _response(400)
        return _ok('{"slips": []}')

    monkeypatch.setattr(llm.httpx, "post", _post)
    payload = {"model": "m", "messages": [], "response_format": {"type": "json_schema"}}
    assert chat_completion(payload, timeout=1) == '{"slips": []}'
    assert formats == ["json_schema", "json_object"]


def test_timeout_and_refusal_yield_none(monkeypatch):
    def _timeout(*a, **kw):
        raise httpx.ReadTimeout("slow")

    monkeypatch.setattr(llm.httpx, "post", _timeout)
    assert chat_completion({"model": "m"}, timeout=1) is None

    monkeypatch.setattr(
        llm.httpx,
        "post",
        lambda *a, **kw: _response(200, {"choices": [{"message": {"refusal": "no"}}]}),
    )
    assert chat_completion({"model": "m"}, timeout=1) is None


def test_tool_call_arguments_are_returned(monkeypatch):
    body = {
        "choices": [
            {
                "message": {
                    "content": None,
                    "tool_calls": [{"function": {"arguments": '{"vendor_name": "UAB X"}'}}],
                }
            }
        ]
    }
    monkeypatch.setattr(llm.httpx, "post", lambda *a, **kw: _response(200, body))
    assert chat_completion({"model": "m"}, timeout=1) == '{"vendor_name": "UAB X"}'


def test_connection_failure_is_unavailable(monkeypatch):
    def _refused(*a, **kw):
        raise httpx.ConnectError("refused")

    monkeypatch.setattr(llm.httpx, "post", _refused)
    with pytest.raises(UpstreamUnavailable):
        chat_completion({"model": "m"}, timeout=1)
