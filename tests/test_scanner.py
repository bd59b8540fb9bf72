"""Tests for recursive folder scanning."""

import os

import pytest

from docindex.scanner import scan_folder, should_skip_dir

EXTENSIONS = {".txt", ".pdf", ".docx"}


@pytest.fixture
def tree(tmp_path):
    (tmp_path / "a.txt").write_text("a")
    (tmp_path / "b.PDF").write_bytes(b"%PDF")
    (tmp_path / "c.exe").write_bytes(b"MZ")
    (tmp_path / ".hidden.txt").write_text("h")
    deep = tmp_path / "reports" / "2024"
    deep.mkdir(parents=True)
    (deep / "q1.docx").write_bytes(b"PK")
    for skipped in [".git", ".svn", "$RECYCLE.BIN", "#recycle", "System Volume Information"]:
        folder = tmp_path / skipped
        folder.mkdir()
        (folder / "skip.txt").write_text("skip")
    return tmp_path


def test_finds_supported_files_recursively(tree):
    found = scan_folder(tree, EXTENSIONS)

    assert [p.relative_to(tree).as_posix() for p in found] == [
        ".hidden.txt",
        "a.txt",
        "b.PDF",
        "reports/2024/q1.docx",
    ]


def test_max_depth_limits_descent(tree):
    found = scan_folder(tree, EXTENSIONS, max_depth=1)

    assert "reports/2024/q1.docx" not in [p.relative_to(tree).as_posix() for p in found]
    assert len(found) == 3


@pytest.mark.parametrize(
    "name,skipped",
    [
        ("$Recycle.Bin", True),
        ("$WinREAgent", True),
        ("#recycle", True),
        ("RECYCLER", True),
        (".git", True),
        (".venv", False),
        ("build", False),
        ("env", False),
        ("Invoices", False),
        ("build-notes", False),
    ],
)
def test_should_skip_dir(name, skipped):
    assert should_skip_dir(name) is skipped


def test_unreadable_subtree_is_skipped(tree, monkeypatch):
    real_scandir = os.scandir
    blocked = str(tree / "reports")

    def guarded(path):
        if str(path) == blocked:
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", guarded)

    found = scan_folder(tree, EXTENSIONS)

    assert [p.name for p in found] == [".hidden.txt", "a.txt", "b.PDF"]


def test_not_a_folder(tmp_path):
    with pytest.raises(NotADirectoryError):
        scan_folder(tmp_path / "missing", EXTENSIONS)


def test_document_folders_with_build_names_are_scanned(tmp_path):
    for folder, name in [("build", "plan.txt"), ("env", "report.txt"), ("dist", "memo.txt")]:
        (tmp_path / folder).mkdir()
        (tmp_path / folder / name).write_text("quarterly plan")

    found = scan_folder(tmp_path, {".txt"})

    assert [p.relative_to(tmp_path).as_posix() for p in found] == [
        "build/plan.txt",
        "dist/memo.txt",
        "env/report.txt",
    ]
