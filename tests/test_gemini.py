"""Tests for the Gemini client using httpx.MockTransport."""

import base64
import json

import httpx
import numpy as np
import pytest

from docindex.embedders import GeminiEmbedder
from docindex.errors import AuthError, MalformedInput, ProviderError, TransientProviderError
from docindex.providers.gemini import EXTRACT_PROMPT, GeminiClient


def make_client(handler, limiter, **kwargs) -> GeminiClient:
    return GeminiClient(
        api_key="test-key",
        limiter=limiter,
        retry_backoff=0.0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def generation_body(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class Recorder:
    """Handler that replays scripted responses and records requests."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


class TestEmbed:
    def test_success(self, limiter):
        handler = Recorder(httpx.Response(200, json={"embedding": {"values": [0.1, 0.2, 0.3]}}))
        client = make_client(handler, limiter)

        assert client.embed("hello") == [0.1, 0.2, 0.3]

        request = handler.requests[0]
        assert request.url.path == "/v1beta/models/text-embedding-004:embedContent"
        assert request.headers["x-goog-api-key"] == "test-key"
        body = json.loads(request.content)
        assert body["model"] == "models/text-embedding-004"
        assert body["content"]["parts"][0]["text"] == "hello"

    def test_retries_once_after_429(self, limiter):
        handler = Recorder(
            httpx.Response(429, json={"error": {"message": "slow down"}}),
            httpx.Response(200, json={"embedding": {"values": [1.0]}}),
        )

        assert make_client(handler, limiter).embed("hello") == [1.0]
        assert len(handler.requests) == 2

    def test_second_429_is_transient_error(self, limiter):
        handler = Recorder(httpx.Response(429), httpx.Response(429))

        with pytest.raises(TransientProviderError) as exc_info:
            make_client(handler, limiter).embed("hello")

        assert exc_info.value.status_code == 429
        assert len(handler.requests) == 2

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_error_not_retried(self, limiter, status):
        handler = Recorder(httpx.Response(status, json={"error": {"message": "bad key"}}))

        with pytest.raises(AuthError):
            make_client(handler, limiter).embed("hello")
        assert len(handler.requests) == 1

    def test_invalid_key_reported_as_bad_request(self, limiter):
        body = {
            "error": {
                "code": 400,
                "message": "API key not valid. Please pass a valid API key.",
                "status": "INVALID_ARGUMENT",
                "details": [
                    {
                        "@type": "type.googleapis.com/google.rpc.ErrorInfo",
                        "reason": "API_KEY_INVALID",
                    }
                ],
            }
        }
        handler = Recorder(httpx.Response(400, json=body))

        with pytest.raises(AuthError):
            make_client(handler, limiter).embed("hello")
        assert len(handler.requests) == 1

    def test_unauthenticated_status_is_auth_error(self, limiter):
        body = {"error": {"code": 400, "message": "no", "status": "UNAUTHENTICATED"}}
        handler = Recorder(httpx.Response(400, json=body))

        with pytest.raises(AuthError):
            make_client(handler, limiter).generate("hi")

    def test_other_invalid_argument_is_not_auth(self, limiter):
        body = {
            "error": {
                "code": 400,
                "message": "Request payload size exceeds the limit",
                "status": "INVALID_ARGUMENT",
            }
        }
        handler = Recorder(httpx.Response(400, json=body))

        with pytest.raises(ProviderError) as exc_info:
            make_client(handler, limiter).embed("hello")
        assert not isinstance(exc_info.value, AuthError)

    def test_server_error_is_transient(self, limiter):
        handler = Recorder(httpx.Response(503, text="unavailable"))

        with pytest.raises(TransientProviderError):
            make_client(handler, limiter).embed("hello")

    def test_client_error(self, limiter):
        handler = Recorder(httpx.Response(400, text="bad request"))

        with pytest.raises(ProviderError) as exc_info:
            make_client(handler, limiter).embed("hello")
        assert not isinstance(exc_info.value, (AuthError, TransientProviderError))

    def test_transport_failure_is_transient(self, limiter):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransientProviderError):
            make_client(handler, limiter).embed("hello")

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="<html>not json</html>"),
            httpx.Response(200, json={"embedding": {}}),
            httpx.Response(200, json={"unexpected": True}),
        ],
    )
    def test_malformed_body(self, limiter, response):
        with pytest.raises(MalformedInput):
            make_client(Recorder(response), limiter).embed("hello")


class TestGenerate:
    def test_plain_prompt(self, limiter):
        handler = Recorder(httpx.Response(200, json=generation_body("  The answer.  ")))
        client = make_client(handler, limiter, generation_model="gemini-test")

        assert client.generate("Question?") == "The answer."
        request = handler.requests[0]
        assert request.url.path == "/v1beta/models/gemini-test:generateContent"
        parts = json.loads(request.content)["contents"][0]["parts"]
        assert parts == [{"text": "Question?"}]

    def test_no_text_is_malformed(self, limiter):
        handler = Recorder(httpx.Response(200, json={"candidates": [{"content": {"parts": []}}]}))

        with pytest.raises(MalformedInput):
            make_client(handler, limiter).generate("Question?")

    def test_small_pdf_sent_inline(self, tmp_path, limiter):
        pdf = tmp_path / "scan.pdf"
        pdf.write_bytes(b"%PDF-1.4 fake content")
        handler = Recorder(httpx.Response(200, json=generation_body("Transcribed text")))

        text = make_client(handler, limiter).extract_document(pdf, inline_size_limit=1024)

        assert text == "Transcribed text"
        parts = json.loads(handler.requests[0].content)["contents"][0]["parts"]
        assert parts[0]["inlineData"]["mimeType"] == "application/pdf"
        assert base64.b64decode(parts[0]["inlineData"]["data"]) == b"%PDF-1.4 fake content"
        assert parts[1]["text"] == EXTRACT_PROMPT

    def test_large_pdf_uploaded_then_referenced(self, tmp_path, limiter):
        pdf = tmp_path / "big.pdf"
        pdf.write_bytes(b"%PDF-1.4 " + b"x" * 100)
        handler = Recorder(
            httpx.Response(200, json={"file": {"uri": "https://files.example/abc", "mimeType": "application/pdf"}}),
            httpx.Response(200, json=generation_body("Transcribed big file")),
        )

        text = make_client(handler, limiter).extract_document(pdf, inline_size_limit=10)

        assert text == "Transcribed big file"
        upload, generate = handler.requests
        assert upload.url.path == "/upload/v1beta/files"
        parts = json.loads(generate.content)["contents"][0]["parts"]
        assert parts[0] == {
            "fileData": {"mimeType": "application/pdf", "fileUri": "https://files.example/abc"}
        }


class TestGeminiEmbedder:
    def test_blank_text_skips_provider(self, limiter):
        handler = Recorder(httpx.Response(200, json={"embedding": {"values": [1.0, 2.0]}}))
        embedder = GeminiEmbedder(make_client(handler, limiter), dimension=2)

        vectors = embedder.embed(["   ", "real text"])

        assert vectors.shape == (2, 2)
        np.testing.assert_array_equal(vectors[0], [0.0, 0.0])
        np.testing.assert_allclose(vectors[1], [1.0, 2.0])
        assert len(handler.requests) == 1

    def test_dimension_mismatch(self, limiter):
        handler = Recorder(httpx.Response(200, json={"embedding": {"values": [1.0, 2.0, 3.0]}}))
        embedder = GeminiEmbedder(make_client(handler, limiter), dimension=2)

        with pytest.raises(MalformedInput):
            embedder.embed(["text"])

    def test_model_name(self, limiter):
        client = make_client(Recorder(), limiter, embedding_model="text-embedding-004")
        assert GeminiEmbedder(client).model_name == "text-embedding-004"
