"""Per-file indexing pipeline and the concurrent batch scheduler."""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

from docindex.errors import AuthError, IndexingCancelled, MalformedInput, ProviderError
from docindex.extractors import ExtractorRegistry
from docindex.hashing import ChangeDetector, compute_digest
from docindex.models import (
    Chunk,
    ChunkEmbedding,
    ExtractionResult,
    FileOutcome,
    FileRecord,
    FileStatus,
    IndexReport,
)
from docindex.protocols import ChunkingStrategy, EmbeddingProvider
from docindex.scanner import DEFAULT_MAX_DEPTH, scan_folder
from docindex.storage import IndexStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]
StatusCallback = Callable[[str], None]


def _check_cancel(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise IndexingCancelled("Indexing cancelled")


class FilePipeline:
    """Runs one file through hash, extract, chunk, embed and persist.

    Nothing is written until every chunk has been embedded in memory; the
    record and its chunks are then replaced in a single transaction, so a
    cancelled or crashed run leaves the previous state intact.
    """

    def __init__(
        self,
        store: IndexStore,
        registry: ExtractorRegistry,
        chunker: ChunkingStrategy,
        embedder: EmbeddingProvider,
    ):
        self.store = store
        self.registry = registry
        self.chunker = chunker
        self.embedder = embedder
        self.detector = ChangeDetector(store)

    def process(
        self,
        path: Path | str,
        force: bool = False,
        cancel: Optional[threading.Event] = None,
    ) -> FileOutcome:
        """Index a single file.

        Raises:
            AuthError: the provider rejected the credentials
            IndexingCancelled: ``cancel`` was set between stages
        """
        path = Path(path)
        key = str(path)
        _check_cancel(cancel)

        if not path.is_file():
            existing = self.store.get_file_by_path(key)
            if existing is not None and existing.id is not None:
                self.store.delete_file(existing.id)
                logger.info(f"Removed index entry for missing file {key}")
            return FileOutcome(key, FileStatus.MISSING, message="File no longer exists")

        extractor = self.registry.get_extractor(path)
        if extractor is None:
            return FileOutcome(key, FileStatus.FAILED, message=f"Unsupported file type: {path.suffix}")

        digest = compute_digest(path)
        if not self.detector.needs_index(key, digest, force):
            logger.debug(f"Unchanged: {key}")
            return FileOutcome(key, FileStatus.UNCHANGED)

        _check_cancel(cancel)
        result = self._extract(path, extractor, cancel)

        _check_cancel(cancel)
        chunks = self.chunker.chunk(result.text, key)
        embeddings, failed_chunks = self._embed(path, chunks, cancel)

        _check_cancel(cancel)
        st = path.stat()
        record = FileRecord(
            path=key,
            name=path.name,
            file_type=path.suffix.lower(),
            size=st.st_size,
            modified_at=datetime.fromtimestamp(st.st_mtime),
            content_hash=digest,
            extracted_text=result.text,
        )
        self.store.replace_file(record, embeddings)

        return self._outcome(key, result, chunks, embeddings, failed_chunks)

    def _extract(self, path: Path, extractor, cancel: Optional[threading.Event]) -> ExtractionResult:
        try:
            return extractor.extract(path, cancel=cancel)
        except (AuthError, IndexingCancelled):
            raise
        except MalformedInput as e:
            logger.warning(f"Could not parse {path.name}: {e}")
        except Exception as e:
            logger.error(f"Extraction failed for {path.name}: {e}")
        return ExtractionResult(text="", method="none")

    def _embed(
        self,
        path: Path,
        chunks: list[Chunk],
        cancel: Optional[threading.Event],
    ) -> tuple[list[ChunkEmbedding], int]:
        embeddings: list[ChunkEmbedding] = []
        failed = 0
        for chunk in chunks:
            _check_cancel(cancel)
            try:
                vector = self.embedder.embed([chunk.text], cancel=cancel)[0]
            except (AuthError, IndexingCancelled):
                raise
            except (ProviderError, MalformedInput) as e:
                logger.error(f"Embedding failed for chunk {chunk.chunk_index} of {path.name}: {e}")
                failed += 1
                continue
            embeddings.append(
                ChunkEmbedding(
                    file_id=0,  # assigned when persisted
                    chunk_index=chunk.chunk_index,
                    chunk_text=chunk.text,
                    embedding=vector,
                )
            )
        return embeddings, failed

    @staticmethod
    def _outcome(
        key: str,
        result: ExtractionResult,
        chunks: list[Chunk],
        embeddings: list[ChunkEmbedding],
        failed_chunks: int,
    ) -> FileOutcome:
        counts = {"chunks": len(chunks), "embeddings": len(embeddings)}
        if result.is_empty:
            if result.encryption is not None and result.encryption.detected:
                logger.warning(f"{key}: indexed without content, {result.encryption.description}")
                return FileOutcome(
                    key, FileStatus.ENCRYPTED, message=result.encryption.description or "", **counts
                )
            return FileOutcome(key, FileStatus.EMPTY, message="No text extracted", **counts)

        problems = []
        if failed_chunks:
            problems.append(f"{failed_chunks} chunk(s) not embedded")
        if result.failed_pages:
            pages = ", ".join(str(p) for p in result.failed_pages)
            problems.append(f"OCR failed on page(s) {pages}")
        if problems:
            return FileOutcome(key, FileStatus.PARTIAL, message="; ".join(problems), **counts)
        return FileOutcome(key, FileStatus.INDEXED, message=f"via {result.method}", **counts)


class Indexer:
    """Schedules the pipeline over many files with two bounded worker pools.

    PDFs go to a small pool (their OCR and cloud stages are heavy) and wait
    ``pdf_task_delay`` seconds before starting; every other file goes to a
    wide pool. Completion order across files is not defined.
    """

    def __init__(
        self,
        pipeline: FilePipeline,
        max_concurrent_files: int = 50,
        max_concurrent_pdfs: int = 2,
        pdf_task_delay: float = 1.0,
        max_scan_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.pipeline = pipeline
        self.store = pipeline.store
        self.max_concurrent_files = max_concurrent_files
        self.max_concurrent_pdfs = max_concurrent_pdfs
        self.pdf_task_delay = pdf_task_delay
        self.max_scan_depth = max_scan_depth

    def index_folder(
        self,
        folder: Path | str,
        progress: Optional[ProgressCallback] = None,
        status: Optional[StatusCallback] = None,
        cancel: Optional[threading.Event] = None,
        force: bool = False,
    ) -> IndexReport:
        """Scan a folder, drop records of deleted files under it, index the rest."""
        root = Path(folder).absolute()
        if status:
            status(f"Scanning {root}...")
        files = scan_folder(root, self.pipeline.registry.supported_extensions(), self.max_scan_depth)
        logger.info(f"Found {len(files)} supported files in {root}")

        removed = self.prune_missing(under=root)
        if removed:
            logger.info(f"Removed {removed} index entries for deleted files")

        return self.index_files(files, progress=progress, status=status, cancel=cancel, force=force)

    def index_files(
        self,
        paths: Iterable[Path | str],
        progress: Optional[ProgressCallback] = None,
        status: Optional[StatusCallback] = None,
        cancel: Optional[threading.Event] = None,
        force: bool = False,
    ) -> IndexReport:
        """Index the given files concurrently.

        Per-file errors are recorded as FAILED and never abort the batch. An
        AuthError becomes the report's ``fatal_error`` and sets ``cancel``,
        so files not yet started finish as CANCELLED.
        """
        files = [Path(p).absolute() for p in paths]
        cancel = cancel or threading.Event()
        report = IndexReport(total=len(files))
        if not files:
            if progress:
                progress(1.0)
            return report

        lock = threading.Lock()
        total = len(files)

        def run(path: Path, delay: float) -> None:
            outcome = self._run_one(path, delay, force, cancel, report, lock)
            with lock:
                report.outcomes.append(outcome)
                done = len(report.outcomes)
                if progress:
                    progress(done / total)
                if status:
                    status(f"Processed {done}/{total} files")

        pdfs = [p for p in files if p.suffix.lower() == ".pdf"]
        others = [p for p in files if p.suffix.lower() != ".pdf"]
        logger.info(f"Indexing {total} files ({len(pdfs)} PDFs)")

        with ThreadPoolExecutor(
            max_workers=self.max_concurrent_pdfs, thread_name_prefix="docindex-pdf"
        ) as pdf_pool, ThreadPoolExecutor(
            max_workers=self.max_concurrent_files, thread_name_prefix="docindex-file"
        ) as file_pool:
            futures = [pdf_pool.submit(run, p, self.pdf_task_delay) for p in pdfs]
            futures += [file_pool.submit(run, p, 0.0) for p in others]
            for future in as_completed(futures):
                future.result()

        if report.fatal_error:
            logger.error(f"Indexing stopped: {report.fatal_error}")
        elif cancel.is_set():
            logger.info("Indexing cancelled")
        logger.info(report.summary())
        return report

    def _run_one(
        self,
        path: Path,
        delay: float,
        force: bool,
        cancel: threading.Event,
        report: IndexReport,
        lock: threading.Lock,
    ) -> FileOutcome:
        key = str(path)
        if delay > 0 and cancel.wait(delay):
            return FileOutcome(key, FileStatus.CANCELLED)
        if cancel.is_set():
            return FileOutcome(key, FileStatus.CANCELLED)

        try:
            outcome = self.pipeline.process(path, force=force, cancel=cancel)
        except IndexingCancelled:
            return FileOutcome(key, FileStatus.CANCELLED)
        except AuthError as e:
            with lock:
                if report.fatal_error is None:
                    report.fatal_error = str(e)
            cancel.set()
            return FileOutcome(key, FileStatus.FAILED, message=str(e))
        except Exception as e:
            logger.error(f"Error indexing {path}: {e}")
            return FileOutcome(key, FileStatus.FAILED, message=str(e))

        if outcome.status is FileStatus.INDEXED:
            logger.info(f"Indexed {path.name} ({outcome.embeddings} chunks)")
        elif outcome.status in (FileStatus.PARTIAL, FileStatus.EMPTY):
            logger.warning(f"{path.name}: {outcome.status.value}, {outcome.message}")
        return outcome

    def index_file(self, path: Path | str, force: bool = False) -> FileOutcome:
        """Index one file synchronously; errors propagate to the caller."""
        return self.pipeline.process(Path(path).absolute(), force=force)

    def prune_missing(self, under: Optional[Path | str] = None) -> int:
        """Delete records (and their chunks) whose files no longer exist.

        Args:
            under: Only consider records inside this folder

        Returns:
            Number of records removed
        """
        prefix = os.path.join(str(Path(under).absolute()), "") if under else ""
        removed = 0
        for record in self.store.list_files(prefix):
            if record.id is not None and not Path(record.path).exists():
                self.store.delete_file(record.id)
                logger.debug(f"Pruned {record.path}")
                removed += 1
        return removed
