import asyncio
import json

import httpx
import pytest

from festpass.chat import (
    ChatProxy, GeminiGenerator, TextGenerator, clean_message,
    MAX_MESSAGE_LENGTH,
)
from festpass.content import CHAT_PREAMBLE
from festpass.errors import ChatNotConfigured, InvalidRequest, UpstreamError


def _generate(handler, api_key="k-123", message="When does it start?"):
    async def go():
        async with httpx.AsyncClient(
            transport=httpx.MockTransport(handler)
        ) as http:
            gen = GeminiGenerator(http, api_key=api_key, model="test-model",
                                  base_url="https://gemini.test/v1beta")
            return await ChatProxy(gen).reply(message)
    return asyncio.run(go())


def test_gemini_request_shape_and_reply():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"candidates": [{"content": {
            "parts": [{"text": "It starts on "}, {"text": "20 November."}],
        }}]})

    assert _generate(handler) == "It starts on 20 November."
    assert seen["path"] == "/v1beta/models/test-model:generateContent"
    assert seen["key"] == "k-123"
    assert seen["body"]["systemInstruction"]["parts"][0]["text"] == CHAT_PREAMBLE
    assert seen["body"]["contents"][0]["parts"][0]["text"] == (
        "When does it start?"
    )


def test_missing_key_is_a_configuration_error():
    def handler(request):
        raise AssertionError("must not be called")

    with pytest.raises(ChatNotConfigured):
        _generate(handler, api_key="")


@pytest.mark.parametrize("response", [
    httpx.Response(500, text="internal"),
    httpx.Response(200, json={"candidates": []}),
    httpx.Response(200, text="not json"),
])
def test_backend_failures_are_upstream_errors(response):
    with pytest.raises(UpstreamError):
        _generate(lambda request: response)


def test_unreachable_backend_is_upstream_error():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(UpstreamError):
        _generate(handler)


@pytest.mark.parametrize("message", [None, "", "   ", 7,
                                     "x" * (MAX_MESSAGE_LENGTH + 1)])
def test_bad_messages_rejected(message):
    with pytest.raises(InvalidRequest):
        clean_message(message)


def test_message_at_limit_is_accepted():
    assert clean_message("x" * MAX_MESSAGE_LENGTH) == "x" * MAX_MESSAGE_LENGTH


def test_proxy_forwards_trimmed_message_with_preamble():
    class Echo(TextGenerator):
        async def generate(self, preamble, message):
            return f"{len(preamble)}:{message}"

    out = asyncio.run(ChatProxy(Echo(), preamble="abc").reply("  hi  "))
    assert out == "3:hi"
