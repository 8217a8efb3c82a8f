import logging

import pytest

from askrepo.chunker import Chunk, chunk_file, chunk_text, read_source_text
from askrepo.config import Config


def _lines(count: int) -> str:
    return "\n".join(f"line {idx}" for idx in range(1, count + 1)) + "\n"


def _ranges(chunks):
    return [(chunk.line_start, chunk.line_end) for chunk in chunks]


def test_chunk_text_overlapping_windows():
    chunks = chunk_text("a.py", _lines(100), window_size=40, overlap=5)

    assert _ranges(chunks) == [(1, 40), (36, 75), (71, 100)]
    for previous, current in zip(chunks, chunks[1:]):
        assert current.line_start == previous.line_end - 5 + 1
    assert all(chunk.line_end - chunk.line_start + 1 <= 40 for chunk in chunks)


def test_chunk_text_stops_when_window_reaches_end():
    assert _ranges(chunk_text("a.py", _lines(75), 40, 5)) == [(1, 40), (36, 75)]
    assert _ranges(chunk_text("a.py", _lines(40), 40, 5)) == [(1, 40)]


def test_chunk_text_short_and_empty_files():
    chunks = chunk_text("short.md", "one line only", 40, 5)
    assert len(chunks) == 1
    assert chunks[0].line_start == 1
    assert chunks[0].line_end == 1
    assert chunks[0].text == "one line only"
    assert chunk_text("empty.md", "", 40, 5) == []


def test_chunk_text_tokens_are_per_chunk():
    text = "def retryBackoff():\n    pass\n" + "\n" * 3 + "cache_lookup()\n"
    chunks = chunk_text("a.py", text, window_size=3, overlap=0)

    assert "retry" in chunks[0].tokens
    assert "cache" not in chunks[0].tokens
    assert "cache" in chunks[-1].tokens
    assert isinstance(chunks[0].tokens, frozenset)


def test_chunk_text_keeps_tokenless_chunks():
    chunks = chunk_text("blank.txt", "  \n  \n", 40, 5)
    assert len(chunks) == 1
    assert chunks[0].tokens == frozenset()


@pytest.mark.parametrize("overlap", [-1, 40, 41])
def test_chunk_text_rejects_invalid_overlap(overlap):
    with pytest.raises(ValueError):
        chunk_text("a.py", _lines(10), window_size=40, overlap=overlap)


def test_chunk_roundtrip_dict():
    chunk = chunk_text("pkg/mod.py", "def cacheLookup(): pass", 40, 5)[0]
    assert Chunk.from_dict(chunk.to_dict()) == chunk


def test_chunk_from_dict_retokenizes_when_tokens_missing():
    chunk = Chunk.from_dict({"path": "a.py", "line_start": 1, "line_end": 1, "text": "retryBackoff"})
    assert chunk.tokens == frozenset({"retry", "backoff"})


def test_chunk_from_dict_accepts_start_end_keys():
    chunk = Chunk.from_dict({"path": "a.py", "start": 4, "end": 7, "tokens": ["cache", "lookup"]})
    assert (chunk.line_start, chunk.line_end, chunk.text) == (4, 7, "")
    assert chunk.tokens == frozenset({"cache", "lookup"})


def test_read_source_text(tmp_path):
    text_file = tmp_path / "a.py"
    text_file.write_text("print('hello world')\n", encoding="utf-8")
    binary_file = tmp_path / "blob.py"
    binary_file.write_bytes(b"abc\x00def")
    empty_file = tmp_path / "empty.py"
    empty_file.write_bytes(b"")

    assert read_source_text(text_file) == "print('hello world')\n"
    assert read_source_text(binary_file) is None
    assert read_source_text(empty_file) == ""
    assert read_source_text(tmp_path / "missing.py") is None


def test_chunk_file_uses_relative_posix_path(tmp_path):
    nested = tmp_path / "pkg" / "mod.py"
    nested.parent.mkdir()
    nested.write_text(_lines(50), encoding="utf-8")

    chunks = chunk_file(tmp_path, nested, Config(chunk_lines=30, chunk_overlap=10))

    assert chunks is not None
    assert {chunk.path for chunk in chunks} == {"pkg/mod.py"}
    assert _ranges(chunks) == [(1, 30), (21, 50)]


def test_chunk_file_skips_oversized_and_binary(tmp_path, caplog):
    big = tmp_path / "big.txt"
    big.write_text("x" * 2048, encoding="utf-8")
    blob = tmp_path / "blob.txt"
    blob.write_bytes(b"\x00\x01\x02")
    config = Config(max_file_kb=1)

    with caplog.at_level(logging.WARNING, logger="askrepo"):
        assert chunk_file(tmp_path, big, config) is None
        assert chunk_file(tmp_path, blob, config) is None

    messages = " ".join(record.getMessage() for record in caplog.records)
    assert "big.txt" in messages
    assert "blob.txt" in messages
