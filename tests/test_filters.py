# Module map: logid_core.filters -> RedactionPipeline, load_filter_config, resolve_patterns
from __future__ import annotations

import json

import pytest

from logid_core.errors import FilterConfigError
from logid_core.filters import DEFAULT_PATTERNS, RedactionPipeline, load_filter_config, resolve_patterns


@pytest.fixture()
def pipeline():
    return RedactionPipeline()


def test_defaults_used_without_patterns(pipeline):
    assert pipeline.patterns == DEFAULT_PATTERNS


def test_removes_compliance_markers(pipeline):
    assert pipeline.redact("start _compliance_nlp_log end") == "start end"
    assert pipeline.redact("_compliance_source=footprint only") == "only"


def test_removes_json_fields(pipeline):
    text = 'req "LogID": "0217abc" "Addr": "10.1.1.1:80" "Client": "web" done'
    assert pipeline.redact(text) == "req done"


def test_user_extra_spans_lines(pipeline):
    text = 'a "user_extra": "{\n  \\"k\\": 1\n}" b'
    assert pipeline.redact(text) == "a b"


def test_collapse_runs_after_removal(pipeline):
    # the marker sits between runs of spaces; one space must remain in its place
    assert pipeline.redact("foo _compliance_nlp_log   bar") == "foo bar"
    assert pipeline.redact("foo\t_compliance_whitelist_log\t\tbar") == "foo bar"


def test_blank_lines_collapse_to_two_newlines(pipeline):
    assert pipeline.redact("a\n\n\n\nb") == "a\n\nb"
    assert pipeline.redact("a\n \n\t\n  \nb") == "a\n\nb"
    assert pipeline.redact("a\n\nb") == "a\n\nb"


def test_trims(pipeline):
    assert pipeline.redact("  _compliance_nlp_log  text \n") == "text"


@pytest.mark.parametrize(
    "text",
    [
        "foo _compliance_nlp_log   bar",
        'x "LogID": "1" y\n\n\n\nz',
        "  plain message  ",
        "_compliance_nlp_log_compliance_nlp_log",
    ],
)
def test_idempotent(pipeline, text):
    once = pipeline.redact(text)
    assert pipeline.redact(once) == once


def test_custom_patterns_in_order():
    p = RedactionPipeline([r"secret-\d+", r"token"])
    assert p.redact("a secret-42 b token c") == "a b c"


def test_invalid_pattern_fails_construction():
    with pytest.raises(FilterConfigError) as ei:
        RedactionPipeline(["ok", "(unclosed"])
    assert ei.value.pattern == "(unclosed"


@pytest.mark.parametrize("key", ["msg_filters", "_msg_filters", "patterns"])
def test_config_keys(tmp_path, key):
    path = tmp_path / "filters.json"
    path.write_text(json.dumps({key: ["alpha", "beta"]}), encoding="utf-8")
    assert load_filter_config(str(path)) == ["alpha", "beta"]


def test_primary_key_wins(tmp_path):
    path = tmp_path / "filters.json"
    path.write_text(json.dumps({"patterns": ["legacy"], "msg_filters": ["primary"]}), encoding="utf-8")
    assert load_filter_config(str(path)) == ["primary"]


def test_missing_file_and_unknown_keys_fall_back(tmp_path):
    assert load_filter_config(str(tmp_path / "none.json")) is None
    path = tmp_path / "filters.json"
    path.write_text(json.dumps({"rules": ["x"]}), encoding="utf-8")
    assert load_filter_config(str(path)) is None
    assert resolve_patterns(str(path)) == DEFAULT_PATTERNS


def test_bad_config_is_an_error(tmp_path):
    path = tmp_path / "filters.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(FilterConfigError):
        load_filter_config(str(path))
    path.write_text(json.dumps({"msg_filters": "x"}), encoding="utf-8")
    with pytest.raises(FilterConfigError):
        load_filter_config(str(path))


def test_from_config_env_var(tmp_path, monkeypatch):
    path = tmp_path / "filters.json"
    path.write_text(json.dumps({"msg_filters": ["drop-me"]}), encoding="utf-8")
    monkeypatch.setenv("LOGID_FILTER_CONFIG", str(path))
    p = RedactionPipeline.from_config()
    assert p.patterns == ["drop-me"]
    assert p.redact("keep drop-me this") == "keep this"


def test_from_config_default_path(temp_cwd):
    (temp_cwd / "reference").mkdir()
    (temp_cwd / "reference" / "message_filters.json").write_text(
        json.dumps({"_msg_filters": ["internal"]}), encoding="utf-8"
    )
    assert RedactionPipeline.from_config().patterns == ["internal"]
