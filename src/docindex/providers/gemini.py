"""HTTP client for the Gemini embedding, generation and file APIs."""

import base64
import logging
import threading
import time
from pathlib import Path
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, Field, ValidationError

from docindex.errors import (
    AuthError,
    IndexingCancelled,
    MalformedInput,
    ProviderError,
    TransientProviderError,
)
from docindex.ratelimit import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"
EXTRACT_PROMPT = (
    "Extract all text from this PDF document. Return only the extracted text content, "
    "preserving the structure and formatting as much as possible."
)

ResponseT = TypeVar("ResponseT", bound=BaseModel)

# An invalid key comes back as 400 INVALID_ARGUMENT with one of these reasons
AUTH_STATUSES = {"UNAUTHENTICATED", "PERMISSION_DENIED"}
AUTH_REASONS = {"API_KEY_INVALID", "API_KEY_EXPIRED"}


# Response structures


class EmbeddingValues(BaseModel):
    values: list[float]


class EmbedResponse(BaseModel):
    embedding: EmbeddingValues


class Part(BaseModel):
    text: Optional[str] = None


class Content(BaseModel):
    parts: list[Part] = Field(default_factory=list)


class Candidate(BaseModel):
    content: Optional[Content] = None


class GenerateResponse(BaseModel):
    candidates: list[Candidate] = Field(default_factory=list)

    def first_text(self) -> str:
        for candidate in self.candidates:
            if candidate.content is None:
                continue
            texts = [p.text for p in candidate.content.parts if p.text]
            if texts:
                return "".join(texts).strip()
        raise MalformedInput("Generation response contained no text")


class UploadedFile(BaseModel):
    uri: str
    name: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, alias="mimeType")


class UploadResponse(BaseModel):
    file: UploadedFile


class ErrorDetail(BaseModel):
    reason: Optional[str] = None


class ErrorStatus(BaseModel):
    code: Optional[int] = None
    message: str = ""
    status: Optional[str] = None
    details: list[ErrorDetail] = Field(default_factory=list)

    @property
    def is_auth_failure(self) -> bool:
        if self.status in AUTH_STATUSES:
            return True
        return any(d.reason in AUTH_REASONS for d in self.details)


class ErrorResponse(BaseModel):
    error: ErrorStatus


class GeminiClient:
    """Thin synchronous client; every request passes through the rate limiter.

    On HTTP 429 the client sleeps ``retry_backoff`` seconds and retries
    exactly once. 401/403 raise AuthError, 5xx and transport failures raise
    TransientProviderError, undecodable bodies raise MalformedInput.
    """

    def __init__(
        self,
        api_key: str,
        limiter: RateLimiter,
        embedding_model: str = "text-embedding-004",
        generation_model: str = "gemini-2.5-flash",
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 600.0,
        retry_backoff: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.limiter = limiter
        self.embedding_model = embedding_model
        self.generation_model = generation_model
        self.retry_backoff = retry_backoff
        self._http = httpx.Client(
            base_url=base_url,
            headers={"x-goog-api-key": api_key},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "GeminiClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def embed(self, text: str, cancel: Optional[threading.Event] = None) -> list[float]:
        """Embed one piece of text."""
        body = {
            "model": f"models/{self.embedding_model}",
            "content": {"parts": [{"text": text}]},
        }
        response = self._post(
            f"/v1beta/models/{self.embedding_model}:embedContent", cancel, json=body
        )
        return _decode(response, EmbedResponse).embedding.values

    def generate(
        self,
        prompt: str,
        inline_data: Optional[bytes] = None,
        file_uri: Optional[str] = None,
        mime_type: str = "application/pdf",
        cancel: Optional[threading.Event] = None,
    ) -> str:
        """Run a generation request, optionally with one binary attachment.

        Args:
            prompt: Instruction text
            inline_data: Raw bytes sent base64-encoded in the request body
            file_uri: URI of a file previously returned by upload_file
            mime_type: MIME type of the attachment
        """
        parts: list[dict[str, Any]] = []
        if inline_data is not None:
            parts.append(
                {
                    "inlineData": {
                        "mimeType": mime_type,
                        "data": base64.b64encode(inline_data).decode("ascii"),
                    }
                }
            )
        elif file_uri is not None:
            parts.append({"fileData": {"mimeType": mime_type, "fileUri": file_uri}})
        parts.append({"text": prompt})

        response = self._post(
            f"/v1beta/models/{self.generation_model}:generateContent",
            cancel,
            json={"contents": [{"parts": parts}]},
        )
        return _decode(response, GenerateResponse).first_text()

    def upload_file(
        self,
        path: Path,
        mime_type: str = "application/pdf",
        cancel: Optional[threading.Event] = None,
    ) -> str:
        """Upload a file and return the URI to reference it by."""
        data = path.read_bytes()
        response = self._post(
            "/upload/v1beta/files",
            cancel,
            files={"file": (path.name, data, mime_type)},
        )
        return _decode(response, UploadResponse).file.uri

    def extract_document(
        self,
        path: Path,
        inline_size_limit: int,
        cancel: Optional[threading.Event] = None,
    ) -> str:
        """Ask the model to transcribe a PDF.

        Files under ``inline_size_limit`` bytes are sent inline; larger files
        are uploaded first and referenced by URI.
        """
        size = path.stat().st_size
        if size < inline_size_limit:
            return self.generate(EXTRACT_PROMPT, inline_data=path.read_bytes(), cancel=cancel)

        logger.info(f"Uploading {path.name} ({size / (1024 * 1024):.1f} MB) for extraction")
        uri = self.upload_file(path, cancel=cancel)
        return self.generate(EXTRACT_PROMPT, file_uri=uri, cancel=cancel)

    def _post(
        self, url: str, cancel: Optional[threading.Event], **kwargs: Any
    ) -> httpx.Response:
        response = self._send(url, cancel, **kwargs)
        if response.status_code == 429:
            logger.warning(f"Rate limit exceeded, retrying in {self.retry_backoff:.0f} seconds...")
            _pause(self.retry_backoff, cancel)
            response = self._send(url, cancel, **kwargs)
        _raise_for_status(response)
        return response

    def _send(
        self, url: str, cancel: Optional[threading.Event], **kwargs: Any
    ) -> httpx.Response:
        with self.limiter.slot(cancel):
            try:
                return self._http.post(url, **kwargs)
            except httpx.TransportError as e:
                raise TransientProviderError(f"Provider unreachable: {e}") from e


def _pause(seconds: float, cancel: Optional[threading.Event]) -> None:
    if cancel is None:
        time.sleep(seconds)
    elif cancel.wait(seconds):
        raise IndexingCancelled("Cancelled during retry backoff")


def _raise_for_status(response: httpx.Response) -> None:
    status = response.status_code
    if status < 400:
        return
    detail = response.text[:500]
    if status == 429:
        raise TransientProviderError(
            "Rate limit exceeded. Please wait before indexing more files.", status
        )
    if status in (401, 403) or _is_auth_failure(response):
        raise AuthError(f"Authentication failed ({status}). Check the Gemini API key.", status)
    if status >= 500:
        raise TransientProviderError(f"Provider unavailable ({status}): {detail}", status)
    raise ProviderError(f"Provider error ({status}): {detail}", status)


def _is_auth_failure(response: httpx.Response) -> bool:
    try:
        body = ErrorResponse.model_validate(response.json())
    except (ValueError, ValidationError):
        return False
    return body.error.is_auth_failure


def _decode(response: httpx.Response, model: type[ResponseT]) -> ResponseT:
    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError) as e:
        raise MalformedInput(f"Unexpected {model.__name__} payload: {e}") from e
