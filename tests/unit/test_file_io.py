"""Unit tests for core.file_io: locked append, atomic rewrite, line reads."""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path

import pytest

from marketplace_catalog.core.file_io import atomic_write_lines, read_lines, safe_append_line


class TestSafeAppendLine:
    """Tests for safe_append_line utility."""

    def test_appends_multiple_lines(self, tmp_path: Path) -> None:
        path = tmp_path / "test.jsonl"
        for n in (1, 2, 3):
            safe_append_line(path, json.dumps({"n": n}))

        lines = path.read_text().strip().split("\n")
        assert [json.loads(line) for line in lines] == [{"n": 1}, {"n": 2}, {"n": 3}]

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        path = tmp_path / "a" / "b" / "test.jsonl"
        safe_append_line(path, '{"nested": true}')
        assert path.exists()

    def test_concurrent_writes_no_corruption(self, tmp_path: Path) -> None:
        """20 threads writing simultaneously; all lines must be valid JSON."""
        path = tmp_path / "concurrent.jsonl"
        n_threads = 20

        def writer(thread_id: int) -> None:
            for i in range(10):
                safe_append_line(path, json.dumps({"thread": thread_id, "seq": i}))

        threads = [threading.Thread(target=writer, args=(tid,)) for tid in range(n_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        parsed = [json.loads(line) for line in path.read_text().strip().split("\n")]
        assert len({(d["thread"], d["seq"]) for d in parsed}) == n_threads * 10


class TestAtomicWriteLines:
    def test_replaces_content(self, tmp_path: Path) -> None:
        path = tmp_path / "products.txt"
        path.write_text("old\n")

        atomic_write_lines(path, ["1,a", "2,b"])

        assert path.read_text() == "1,a\n2,b\n"

    def test_failure_leaves_target_and_no_temp_file(self, tmp_path: Path) -> None:
        path = tmp_path / "products.txt"
        path.write_text("keep\n")

        def lines():
            yield "partial"
            raise RuntimeError("encoder blew up")

        with pytest.raises(RuntimeError):
            atomic_write_lines(path, lines())

        assert path.read_text() == "keep\n"
        assert os.listdir(tmp_path) == ["products.txt"]


class TestReadLines:
    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert read_lines(tmp_path / "nope.txt") == []

    def test_skips_blank_lines(self, tmp_path: Path) -> None:
        path = tmp_path / "users.txt"
        path.write_text("1,bob,pw,USER\n\n   \n2,eve,pw,ADMIN\n")
        assert read_lines(path) == ["1,bob,pw,USER", "2,eve,pw,ADMIN"]
