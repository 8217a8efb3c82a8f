import json

import pytest

from askrepo import config as config_module
from askrepo.errors import ConfigError


def test_defaults():
    cfg = config_module.Config()

    assert cfg.chunk_lines == 40
    assert cfg.chunk_overlap == 5
    assert cfg.max_results == 5
    assert cfg.max_file_kb == 500
    assert cfg.max_file_bytes == 500 * 1024
    assert cfg.excerpt_chars == 400
    assert ".py" in cfg.extensions and ".toml" in cfg.extensions
    assert len(cfg.extensions) == 14
    assert cfg.include_hidden is False
    assert cfg.respect_gitignore is True


def test_load_config_missing_file_returns_defaults(tmp_path):
    assert config_module.load_config(tmp_path) == config_module.Config()


def test_load_config_invalid_json(tmp_path):
    path = config_module.config_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_text("{oops", encoding="utf-8")

    with pytest.raises(ConfigError):
        config_module.load_config(tmp_path)


def test_save_and_load_roundtrip(tmp_path):
    cfg = config_module.config_from_json({"chunk_lines": 60, "exclude_patterns": ["tests/**"]})

    saved = config_module.save_config(cfg, tmp_path)

    assert saved == tmp_path / ".askrepo" / "config.json"
    assert json.loads(saved.read_text(encoding="utf-8"))["chunk_lines"] == 60
    assert config_module.load_config(tmp_path) == cfg


def test_config_from_json_coerces_values():
    cfg = config_module.config_from_json(
        '{"max_results": "7", "extensions": "PY, md", "include_hidden": "yes", "chunk_overlap": 0}'
    )

    assert cfg.max_results == 7
    assert cfg.extensions == (".md", ".py")
    assert cfg.include_hidden is True
    assert cfg.chunk_overlap == 0


@pytest.mark.parametrize(
    "payload",
    [
        {"chunk_lines": 0},
        {"chunk_lines": True},
        {"chunk_overlap": -1},
        {"max_results": "many"},
        {"extensions": []},
        {"extensions": [1]},
        {"include_hidden": "maybe"},
        {"unknown_field": 1},
        {"chunk_lines": 10, "chunk_overlap": 10},
        "[1, 2]",
        "not json",
    ],
)
def test_config_from_json_rejects_invalid(payload):
    with pytest.raises(ConfigError):
        config_module.config_from_json(payload)


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)


def test_update_config_from_json_merges(tmp_path):
    config_module.update_config_from_json(tmp_path, {"chunk_lines": 80})
    cfg = config_module.update_config_from_json(tmp_path, {"max_results": 9})

    assert cfg.chunk_lines == 80
    assert cfg.max_results == 9

    replaced = config_module.update_config_from_json(tmp_path, {"max_results": 2}, replace_all=True)
    assert replaced.chunk_lines == 40
    assert config_module.clear_config(tmp_path) is True
    assert config_module.clear_config(tmp_path) is False


def test_parse_assignment():
    assert config_module.parse_assignment("chunk_lines=60") == ("chunk_lines", 60)
    assert config_module.parse_assignment("extensions=.py,.md") == ("extensions", ".py,.md")
    assert config_module.parse_assignment('exclude_patterns=["a/**"]') == ("exclude_patterns", ["a/**"])
    with pytest.raises(ConfigError):
        config_module.parse_assignment("chunk_lines")


def test_resolve_root_precedence(tmp_path, monkeypatch):
    explicit = tmp_path / "explicit"
    explicit.mkdir()
    from_env = tmp_path / "env"
    from_env.mkdir()
    cwd = tmp_path / "cwd"
    cwd.mkdir()
    monkeypatch.chdir(cwd)

    monkeypatch.setenv(config_module.ENV_ROOT, str(from_env))
    assert config_module.resolve_root(explicit) == explicit.resolve()
    assert config_module.resolve_root(None) == from_env.resolve()

    monkeypatch.delenv(config_module.ENV_ROOT)
    assert config_module.resolve_root(None) == cwd.resolve()


def test_resolve_root_reads_dotenv(tmp_path, monkeypatch):
    target = tmp_path / "corpus"
    target.mkdir()
    (tmp_path / ".env").write_text(f"ASKREPO_ROOT={target}\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    # setenv first so teardown removes the value load_dotenv writes
    monkeypatch.setenv(config_module.ENV_ROOT, "unused")
    monkeypatch.delenv(config_module.ENV_ROOT)

    assert config_module.resolve_root(None) == target.resolve()


def test_resolve_root_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        config_module.resolve_root(tmp_path / "missing")
