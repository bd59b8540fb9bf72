"""Tests for grounded question answering."""

from datetime import datetime

from docindex.answer import NO_RESULTS_ANSWER, Answerer, build_prompt
from docindex.models import FileRecord, SearchResult


class FakeSearch:
    def __init__(self, results):
        self.results = results
        self.queries = []

    def search(self, query, k=5):
        self.queries.append((query, k))
        return self.results[:k]


class FakeClient:
    def __init__(self, reply="It was approved in March."):
        self.reply = reply
        self.prompts = []

    def generate(self, prompt, **kwargs):
        self.prompts.append(prompt)
        return self.reply


def result(name: str, chunk: str, text: str = "", score: float = 0.9) -> SearchResult:
    record = FileRecord(
        path=f"/docs/{name}",
        name=name,
        file_type=".txt",
        size=10,
        modified_at=datetime(2024, 1, 1),
        content_hash="h",
        extracted_text=text or chunk,
    )
    return SearchResult(file=record, score=score, chunk_text=chunk, chunk_index=0)


def test_no_results_skips_provider():
    client = FakeClient()

    answer = Answerer(FakeSearch([]), client).ask("When was the budget approved?")

    assert answer.text == NO_RESULTS_ANSWER
    assert answer.sources == []
    assert client.prompts == []


def test_answer_uses_results():
    hits = [result("minutes.txt", "Budget approved on 3 March")]
    client = FakeClient()
    search = FakeSearch(hits)

    answer = Answerer(search, client).ask("When was the budget approved?", k=3)

    assert answer.text == "It was approved in March."
    assert answer.sources == hits
    assert search.queries == [("When was the budget approved?", 3)]
    assert "minutes.txt" in client.prompts[0]
    assert "Budget approved on 3 March" in client.prompts[0]


def test_prompt_truncates_long_files():
    prompt = build_prompt("q?", [result("big.txt", "chunk", text="z" * 5000)])

    assert "... [truncated]" in prompt
    assert "z" * 1501 not in prompt
    assert prompt.endswith("Question: q?")
