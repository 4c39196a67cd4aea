import json

import httpx
import pytest

from rota.services.extraction import ExtractionError, GeminiClient


def _answer(payload) -> httpx.Response:
    return httpx.Response(
        200,
        json={"candidates": [{"content": {"parts": [{"text": json.dumps(payload)}]}}]},
    )


def _client(handler, api_key="key") -> GeminiClient:
    return GeminiClient(
        api_key=api_key,
        base_url="https://gemini.test",
        file_model="file-model",
        text_model="text-model",
        transport=httpx.MockTransport(handler),
    )


def test_parse_text_returns_records():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return _answer([{"name": "Maria", "address": "Rua A, 10", "phone": "84 98888-0000"}])

    records = _client(handler).parse_text("Maria, Rua A 10, 84 98888-0000")

    assert seen["url"] == "https://gemini.test/v1beta/models/text-model:generateContent"
    assert seen["key"] == "key"
    assert seen["body"]["generationConfig"]["responseMimeType"] == "application/json"
    assert records[0].name == "Maria"
    assert records[0].phone == "84 98888-0000"


def test_parse_file_sends_inline_data_to_file_model():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["parts"] = json.loads(request.content)["contents"][0]["parts"]
        return _answer([{"name": "Ana"}])

    records = _client(handler).parse_file(b"%PDF-1.4", "application/pdf")

    assert "file-model" in seen["url"]
    assert seen["parts"][0]["inline_data"] == {"mime_type": "application/pdf", "data": "JVBERi0xLjQ="}
    assert [record.name for record in records] == ["Ana"]


def test_suggest_order_returns_addresses():
    client = _client(lambda request: _answer(["Rua B", "Rua A"]))

    assert client.suggest_order(["Rua A", "Rua B"]) == ["Rua B", "Rua A"]


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(200, json={"candidates": []}),
        httpx.Response(200, json={"candidates": [{"content": {"parts": ["oops"]}}]}),
        httpx.Response(200, json=[]),
        httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "not json"}]}}]}),
        httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "{\"a\": 1}"}]}}]}),
    ],
)
def test_failures_raise_extraction_error(response):
    client = _client(lambda request: response)

    with pytest.raises(ExtractionError):
        client.parse_text("qualquer coisa")


def test_missing_api_key():
    with pytest.raises(ExtractionError):
        _client(lambda request: _answer([]), api_key="").suggest_order(["Rua A"])
