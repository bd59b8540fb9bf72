"""Wiring: builds the shared services from settings."""

import logging
from dataclasses import dataclass
from typing import Optional

from docindex.answer import Answerer
from docindex.chunkers import WordChunker
from docindex.config import Settings
from docindex.embedders import GeminiEmbedder
from docindex.errors import ConfigError
from docindex.extractors import ExtractorRegistry, default_registry
from docindex.extractors.pdf import (
    CloudFallbackStage,
    LocalOcrStage,
    PdfExtractor,
    TesseractOcrEngine,
)
from docindex.indexer import FilePipeline, Indexer
from docindex.protocols import EmbeddingProvider
from docindex.providers import GeminiClient
from docindex.ratelimit import RateLimiter
from docindex.search import VectorSearch
from docindex.storage import IndexStore

logger = logging.getLogger(__name__)

EMBEDDING_MODEL_KEY = "embedding_model"


@dataclass
class Services:
    settings: Settings
    store: IndexStore
    registry: ExtractorRegistry
    embedder: EmbeddingProvider
    indexer: Indexer
    search: VectorSearch
    client: Optional[GeminiClient] = None

    @property
    def answerer(self) -> Answerer:
        if self.client is None:
            raise ConfigError("Answering questions requires a Gemini API key")
        return Answerer(self.search, self.client)

    def close(self) -> None:
        if self.client is not None:
            self.client.close()


def build_client(settings: Settings, limiter: RateLimiter) -> Optional[GeminiClient]:
    provider = settings.provider
    if not provider.api_key:
        return None
    return GeminiClient(
        api_key=provider.api_key,
        limiter=limiter,
        embedding_model=provider.embedding_model,
        generation_model=provider.generation_model,
        base_url=provider.base_url,
        timeout=provider.timeout,
        retry_backoff=provider.retry_backoff,
    )


def build_embedder(settings: Settings, client: Optional[GeminiClient]) -> EmbeddingProvider:
    if settings.provider.embedding_provider == "sentence-transformers":
        # Deferred: importing sentence-transformers loads torch
        from docindex.embedders.sentence_transformer import SentenceTransformerEmbedder

        return SentenceTransformerEmbedder(settings.provider.local_embedding_model)
    if client is None:
        raise ConfigError("Gemini embeddings require an API key")
    return GeminiEmbedder(client)


def build_registry(settings: Settings, client: Optional[GeminiClient]) -> ExtractorRegistry:
    ocr = settings.ocr
    ocr_stage = None
    if ocr.enabled:
        ocr_stage = LocalOcrStage(TesseractOcrEngine(ocr.languages), dpi=ocr.dpi)
    cloud_stage = None
    if settings.provider.cloud_fallback and client is not None:
        cloud_stage = CloudFallbackStage(client, inline_size_limit=ocr.inline_size_limit)
    pdf = PdfExtractor(
        ocr_stage=ocr_stage,
        cloud_stage=cloud_stage,
        min_text_length=ocr.min_text_length,
        signature_scan_bytes=ocr.signature_scan_bytes,
        max_probe_pages=ocr.max_probe_pages,
    )
    return default_registry(pdf)


def check_embedding_model(store: IndexStore, model_name: str) -> None:
    """Record the embedding model; warn when the index was built with another."""
    previous = store.get_metadata(EMBEDDING_MODEL_KEY)
    if previous and previous != model_name:
        logger.warning(
            f"Index was built with {previous}, now using {model_name}. "
            "Existing vectors will not match; run 'docindex reindex'."
        )
    store.set_metadata(EMBEDDING_MODEL_KEY, model_name)


def build_services(settings: Settings) -> Services:
    """Validate settings and construct every component.

    One rate limiter is created here and shared by every caller of the
    Gemini API.
    """
    settings.validate()

    limiter = RateLimiter(settings.provider.min_interval)
    client = build_client(settings, limiter)
    embedder = build_embedder(settings, client)
    registry = build_registry(settings, client)

    store = IndexStore(settings.storage.database)
    store.initialize()
    check_embedding_model(store, embedder.model_name)

    indexing = settings.indexing
    pipeline = FilePipeline(store, registry, WordChunker(indexing.chunk_size), embedder)
    indexer = Indexer(
        pipeline,
        max_concurrent_files=indexing.max_concurrent_files,
        max_concurrent_pdfs=indexing.max_concurrent_pdfs,
        pdf_task_delay=indexing.pdf_task_delay,
        max_scan_depth=indexing.max_scan_depth,
    )
    return Services(
        settings=settings,
        store=store,
        registry=registry,
        embedder=embedder,
        indexer=indexer,
        search=VectorSearch(store, embedder),
        client=client,
    )
