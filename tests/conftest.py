"""Shared test fixtures for docindex."""

import hashlib
import re
import threading
from pathlib import Path
from typing import Optional

import numpy as np
import pytest

from docindex.chunkers import WordChunker
from docindex.extractors import DelimitedTextExtractor, ExtractorRegistry, PlainTextExtractor
from docindex.indexer import FilePipeline, Indexer
from docindex.models import ExtractionResult
from docindex.ratelimit import RateLimiter
from docindex.storage import IndexStore


class FakeEmbedder:
    """Deterministic bag-of-words embedder: texts sharing words score higher."""

    def __init__(self, dimension: int = 256):
        self._dimension = dimension
        self.calls: list[str] = []
        self._lock = threading.Lock()

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return "fake-embedder"

    def vector(self, text: str) -> np.ndarray:
        vec = np.zeros(self._dimension, dtype=np.float32)
        for word in re.findall(r"\w+", text.lower()):
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % self._dimension
            vec[bucket] += 1.0
        return vec

    def embed(self, texts: list[str], cancel: Optional[threading.Event] = None) -> np.ndarray:
        with self._lock:
            self.calls.extend(texts)
        return np.vstack([self.vector(t) for t in texts]) if texts else np.zeros((0, self._dimension))


class CountingExtractor:
    """Wraps an extractor and counts extract() calls per path."""

    def __init__(self, inner):
        self.inner = inner
        self.calls: list[Path] = []
        self._lock = threading.Lock()

    @property
    def extensions(self) -> frozenset[str]:
        return self.inner.extensions

    def can_handle(self, path: Path) -> bool:
        return self.inner.can_handle(path)

    def extract(self, path: Path, cancel: Optional[threading.Event] = None) -> ExtractionResult:
        with self._lock:
            self.calls.append(path)
        return self.inner.extract(path, cancel=cancel)


@pytest.fixture
def store(tmp_path: Path) -> IndexStore:
    """An initialized store in a temporary directory."""
    index_store = IndexStore(tmp_path / "index.db")
    index_store.initialize()
    return index_store


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def limiter() -> RateLimiter:
    """Rate limiter that never waits."""
    return RateLimiter(min_interval=0.0)


@pytest.fixture
def text_extractor() -> CountingExtractor:
    return CountingExtractor(PlainTextExtractor())


@pytest.fixture
def registry(text_extractor: CountingExtractor) -> ExtractorRegistry:
    return ExtractorRegistry([text_extractor, DelimitedTextExtractor()])


@pytest.fixture
def pipeline(store, registry, embedder) -> FilePipeline:
    return FilePipeline(store, registry, WordChunker(1000), embedder)


@pytest.fixture
def indexer(pipeline) -> Indexer:
    return Indexer(pipeline, max_concurrent_files=4, max_concurrent_pdfs=2, pdf_task_delay=0.0)


@pytest.fixture
def docs_dir(tmp_path: Path) -> Path:
    """A folder of sample documents."""
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "fruit.txt").write_text(
        "Apples and pears grow in the orchard behind the old farmhouse.", encoding="utf-8"
    )
    (docs / "invoice.csv").write_text("item,amount\nlaptop,1200\nmonitor,300\n", encoding="utf-8")
    sub = docs / "notes"
    sub.mkdir()
    (sub / "meeting.md").write_text(
        "# Meeting\nBudget review for the marketing team on Tuesday.", encoding="utf-8"
    )
    return docs


def fifty_words() -> str:
    return " ".join(f"word{i}" for i in range(50))
