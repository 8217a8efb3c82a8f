import json

import pytest

import askrepo.cache as cache
from askrepo.config import Config
from askrepo.services.index_service import build_index
from askrepo.services.search_service import (
    QueryRequest,
    QueryStatus,
    Source,
    make_excerpt,
    perform_query,
)
from askrepo.text import Messages


@pytest.fixture
def indexed(tmp_path):
    (tmp_path / "retry.py").write_text(
        "def retryBackoff(attempt):\n    return min(2 ** attempt, 60)\n", encoding="utf-8"
    )
    (tmp_path / "cache.py").write_text("class CacheStore:\n    pass\n", encoding="utf-8")
    (tmp_path / "notes.md").write_text("Release notes for the project.\n", encoding="utf-8")
    build_index(tmp_path, Config())
    return tmp_path


def _query(root, question, **kwargs):
    return perform_query(QueryRequest(root=root, question=question, **kwargs))


def test_query_without_index_needs_setup(tmp_path):
    response = _query(tmp_path, "anything at all")

    assert response.status == QueryStatus.NEEDS_SETUP
    assert response.answer == Messages.ANSWER_NEEDS_SETUP
    assert response.to_dict() == {
        "answer": Messages.ANSWER_NEEDS_SETUP,
        "sources": [],
        "status": "needs_setup",
    }


@pytest.mark.parametrize("question", ["", "   ", None])
def test_blank_question_is_rejected(tmp_path, question):
    with pytest.raises(ValueError, match="question"):
        _query(tmp_path, question)


def test_invalid_top_k_is_rejected(indexed):
    with pytest.raises(ValueError):
        _query(indexed, "retry", top_k=0)


def test_unique_identifier_is_the_only_result(indexed):
    response = _query(indexed, "retry backoff")

    assert response.status == QueryStatus.OK
    assert [source.path for source in response.sources] == ["retry.py"]
    source = response.sources[0]
    assert (source.line_start, source.line_end) == (1, 2)
    assert "retryBackoff" in source.excerpt
    assert source.score > 0
    assert response.answer.startswith("Found 1 relevant excerpt for")


def test_no_match_returns_no_results(indexed):
    response = _query(indexed, "kubernetes deployment")

    assert response.status == QueryStatus.NO_RESULTS
    assert response.sources == []
    assert response.answer == Messages.ANSWER_NO_RESULTS.format(question="kubernetes deployment")


def test_top_k_limits_sources(tmp_path):
    for idx in range(8):
        (tmp_path / f"mod{idx}.py").write_text(f"cache_value_{idx} = 1\n", encoding="utf-8")
    build_index(tmp_path, Config())

    assert len(_query(tmp_path, "cache").sources) == 5
    assert len(_query(tmp_path, "cache", top_k=2).sources) == 2
    assert len(_query(tmp_path, "cache", config=Config(max_results=3)).sources) == 3


def test_make_excerpt_truncates():
    assert make_excerpt("x" * 400, 400) == "x" * 400
    assert make_excerpt("x" * 401, 400) == "x" * 400 + "..."
    assert make_excerpt("short", 400) == "short"


def test_long_chunk_excerpt_is_bounded(tmp_path):
    (tmp_path / "long.py").write_text(
        "\n".join(f"token_value_{idx} = 'retry'" for idx in range(40)) + "\n", encoding="utf-8"
    )
    build_index(tmp_path, Config())

    source = _query(tmp_path, "retry").sources[0]

    assert len(source.excerpt) == 403
    assert source.excerpt.endswith("...")


def test_changed_file_is_flagged_stale(indexed):
    target = indexed / "retry.py"
    target.write_text("def retryBackoff(attempt):\n    return 1\n# changed\n", encoding="utf-8")

    response = _query(indexed, "retry backoff")

    assert response.sources[0].stale is True
    assert response.stale_count == 1
    assert response.to_dict()["sources"][0]["stale"] is True
    assert "re-run askrepo setup" in response.answer


def test_deleted_file_is_stale_but_still_returned(indexed):
    (indexed / "retry.py").unlink()

    response = _query(indexed, "retry backoff")

    assert [source.path for source in response.sources] == ["retry.py"]
    assert response.sources[0].stale is True


def test_fresh_source_omits_stale_key(indexed):
    payload = _query(indexed, "cache store").to_dict()
    assert "stale" not in payload["sources"][0]
    assert payload["sources"][0]["lines"] == [1, 2]


def test_legacy_index_uses_uniform_weights(tmp_path):
    cache.ensure_index_dir(tmp_path)
    chunks = [
        {"path": "b.py", "line_start": 1, "line_end": 1, "text": "cache lookup"},
        {"path": "a.py", "line_start": 1, "line_end": 1, "text": "cache lookup"},
        {"path": "c.py", "line_start": 1, "line_end": 1, "text": "cache"},
    ]
    cache.index_file_path(tmp_path).write_text(json.dumps({"chunks": chunks}), encoding="utf-8")
    cache.mtime_file_path(tmp_path).write_text(
        json.dumps({"files": {"a.py": 1.0, "b.py": 1.0, "c.py": 1.0}}), encoding="utf-8"
    )

    response = _query(tmp_path, "cache lookup")

    assert [source.path for source in response.sources] == ["a.py", "b.py", "c.py"]
    assert [source.score for source in response.sources] == [2.0, 2.0, 1.0]


def test_source_to_dict():
    source = Source(path="a.py", line_start=3, line_end=9, excerpt="x", score=1.234567)
    assert source.to_dict() == {"path": "a.py", "lines": [3, 9], "excerpt": "x", "score": 1.2346}


def test_tokens_only_chunk_excerpt_is_read_from_file(tmp_path):
    source = tmp_path / "retry.py"
    source.write_text(
        "import time\ndef retryBackoff(attempt):\n    time.sleep(attempt)\n", encoding="utf-8"
    )
    mtime_ms = source.stat().st_mtime_ns // 1_000_000
    cache.ensure_index_dir(tmp_path)
    cache.index_file_path(tmp_path).write_text(
        json.dumps(
            {
                "version": 1,
                "generated": "2023-05-01T00:00:00Z",
                "chunks": [{"path": "retry.py", "start": 2, "end": 3, "tokens": ["retry", "backoff"]}],
            }
        ),
        encoding="utf-8",
    )
    cache.mtime_file_path(tmp_path).write_text(
        json.dumps({"version": 1, "files": {"retry.py": mtime_ms}}), encoding="utf-8"
    )

    response = _query(tmp_path, "retry backoff")

    assert response.status == QueryStatus.OK
    assert response.sources[0].to_dict() == {
        "path": "retry.py",
        "lines": [2, 3],
        "excerpt": "def retryBackoff(attempt):\n    time.sleep(attempt)",
        "score": 2.0,
    }
