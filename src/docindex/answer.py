"""Question answering grounded in the top search results."""

import logging
from dataclasses import dataclass, field

from docindex.models import SearchResult
from docindex.providers.gemini import GeminiClient
from docindex.search import DEFAULT_TOP_K, VectorSearch

logger = logging.getLogger(__name__)

FILE_CONTENT_LIMIT = 1500
NO_RESULTS_ANSWER = "No indexed documents match this question."

SYSTEM_PROMPT = (
    "You answer questions about the user's indexed documents. Use only the "
    "search results below. Name the files you relied on. If the results do "
    "not contain the answer, say so."
)


@dataclass
class Answer:
    text: str
    sources: list[SearchResult] = field(default_factory=list)


def build_prompt(question: str, results: list[SearchResult]) -> str:
    lines = [SYSTEM_PROMPT, "", "=== MOST RELEVANT SEARCH RESULTS ===", ""]
    for result in results:
        content = result.file.extracted_text
        if len(content) > FILE_CONTENT_LIMIT:
            content = content[:FILE_CONTENT_LIMIT] + "... [truncated]"
        lines.extend(
            [
                f"File: {result.file.name} ({result.file.file_type})",
                f"Relevance Score: {result.score:.3f}",
                f"Matched Content: {result.chunk_text}",
                "File Content:",
                content,
                "",
                "---",
                "",
            ]
        )
    lines.append(f"Question: {question}")
    return "\n".join(lines)


class Answerer:
    """Retrieves the best chunks and asks the generation model to answer from them."""

    def __init__(self, search: VectorSearch, client: GeminiClient):
        self.search = search
        self.client = client

    def ask(self, question: str, k: int = DEFAULT_TOP_K) -> Answer:
        results = self.search.search(question, k=k)
        if not results:
            return Answer(text=NO_RESULTS_ANSWER)

        logger.debug(f"Answering from {len(results)} chunks")
        text = self.client.generate(build_prompt(question, results))
        return Answer(text=text, sources=results)
