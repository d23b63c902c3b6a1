# ==============================
# Tests: Pattern Table + Scanner
# ==============================
from __future__ import annotations

from typing import Any, List

import pytest
from pydantic import ValidationError

from pict_template.contracts.template_schema import RenderErrorCode, TemplateRenderError
from pict_template.host.meta_template import Match, MetaTemplate


class Recorder:
    """Minimal capability object: render + render_async, no base class."""

    def __init__(self, label: str) -> None:
        self.label = label
        self.calls: List[Any] = []

    def render(self, template_hash, record, context_array=None, scope=None, state=None):
        self.calls.append((template_hash, record, context_array, scope, state))
        return f"{self.label}({template_hash})"

    def render_async(self, template_hash, record, callback, context_array=None, scope=None, state=None):
        return callback(None, self.render(template_hash, record, context_array, scope, state))


def _table(*pairs) -> MetaTemplate:
    table = MetaTemplate()
    for start, end, owner in pairs:
        table.add_pattern_both(start, end, owner.render, owner.render_async, owner)
    return table


def test_unmatched_text_is_untouched() -> None:
    r = Recorder("r")
    table = _table(("{{", "}}", r))
    assert table.parse_string("no tags here } {") == "no tags here } {"
    assert r.calls == []


def test_empty_template_and_empty_table() -> None:
    assert MetaTemplate().parse_string("{{x}}") == "{{x}}"
    r = Recorder("r")
    assert _table(("{{", "}}", r)).parse_string("") == ""


def test_spans_pass_arguments_through() -> None:
    r = Recorder("r")
    table = _table(("{{", "}}", r))
    record = {"a": 1}
    context = [{"b": 2}]
    scope = {}
    assert table.parse_string("x {{one}} y {{ two }}", record, context, scope, "st") == "x r(one) y r( two )"
    assert r.calls[0] == ("one", record, context, scope, "st")


def test_longest_start_wins() -> None:
    short = Recorder("short")
    long = Recorder("long")
    table = _table(("{", "}", short), ("{~", "~}", long))
    assert table.parse_string("{a} {~b~}") == "short(a) long(b)"


def test_missing_end_is_literal() -> None:
    r = Recorder("r")
    table = _table(("{{", "}}", r))
    assert table.parse_string("a {{b}} c {{d") == "a r(b) c {{d"


def test_unclosed_start_does_not_hide_later_spans() -> None:
    r = Recorder("r")
    angle = Recorder("angle")
    table = _table(("{{", "}}", r), ("{>", "<}", angle))
    assert table.parse_string("x {> y {{a}}") == "x {> y r(a)"
    assert table.parse_string("{{ {>b<}") == "{{ angle(b)"


def test_unclosed_longer_start_falls_back_to_shorter_one() -> None:
    short = Recorder("short")
    long = Recorder("long")
    table = _table(("{", "}", short), ("{~", "~}", long))
    assert table.parse_string("{~a}") == "short(~a)"


def test_same_start_with_different_ends_coexist() -> None:
    tilde = Recorder("tilde")
    brace = Recorder("brace")
    table = _table(("{~D:", "~}", tilde), ("{~D:", "}", brace))
    assert len(table.patterns()) == 2
    assert table.has_pattern("{~D:", "~}")
    assert table.has_pattern("{~D:", "}")
    assert table.parse_string("{~D:a~} {~D:b}") == "tilde(a) brace(b)"


def test_same_pair_replaces_previous_handlers() -> None:
    first = Recorder("first")
    second = Recorder("second")
    table = _table(("{{", "}}", first), ("{{", "}}", second))
    assert len(table.patterns()) == 1
    assert table.parse_string("{{x}}") == "second(x)"
    assert first.calls == []


def test_empty_delimiters_are_rejected() -> None:
    r = Recorder("r")
    with pytest.raises(TemplateRenderError) as missing_start:
        _table(("", "}}", r))
    assert missing_start.value.code == RenderErrorCode.INVALID_PATTERN
    assert missing_start.value.error.details == {"start": "", "end": "}}"}
    assert isinstance(missing_start.value.__cause__, ValidationError)

    with pytest.raises(TemplateRenderError) as missing_end:
        _table(("{{", "", r))
    assert missing_end.value.code == RenderErrorCode.INVALID_PATTERN
    assert MetaTemplate().patterns() == []


def test_none_and_non_string_renders_are_coerced() -> None:
    class Odd(Recorder):
        def render(self, template_hash, record, context_array=None, scope=None, state=None):
            return None if template_hash == "none" else 42

    odd = Odd("odd")
    table = _table(("<", ">", odd))
    assert table.parse_string("[<none>][<num>]") == "[][42]"


def test_segments_split_literals_and_matches() -> None:
    r = Recorder("r")
    table = _table(("{{", "}}", r))
    segments = table.segments("a{{b}}c")
    assert segments[0] == "a"
    assert isinstance(segments[1], Match) and segments[1].template_hash == "b"
    assert segments[2] == "c"


def test_async_matches_sync_output() -> None:
    r = Recorder("r")
    table = _table(("{{", "}}", r))
    results = []
    table.parse_string_async("x {{one}} y {{two}}", lambda e, c: results.append((e, c)), {"a": 1})
    assert results == [(None, table.parse_string("x {{one}} y {{two}}", {"a": 1}))]


def test_async_deferred_provider_completes_in_order() -> None:
    pending = []

    class Deferred(Recorder):
        def render_async(self, template_hash, record, callback, context_array=None, scope=None, state=None):
            pending.append(lambda: callback(None, f"late({template_hash})"))

    d = Deferred("d")
    table = _table(("{{", "}}", d))
    results = []
    table.parse_string_async("1{{a}}2{{b}}3", lambda e, c: results.append((e, c)))

    assert results == []
    while pending:
        pending.pop(0)()
    assert results == [(None, "1late(a)2late(b)3")]


def test_async_error_stops_and_is_reported_once() -> None:
    class Failing(Recorder):
        def render_async(self, template_hash, record, callback, context_array=None, scope=None, state=None):
            if template_hash == "bad":
                return callback(RuntimeError("nope"), None)
            return super().render_async(template_hash, record, callback, context_array, scope, state)

    f = Failing("f")
    table = _table(("{{", "}}", f))
    results = []
    table.parse_string_async("{{ok}}{{bad}}{{never}}", lambda e, c: results.append((e, c)))

    assert len(results) == 1
    error, content = results[0]
    assert isinstance(error, RuntimeError)
    assert content is None
    assert [c[0] for c in f.calls] == ["ok"]


def test_async_provider_exception_becomes_render_error() -> None:
    class Raising(Recorder):
        def render(self, template_hash, record, context_array=None, scope=None, state=None):
            raise KeyError(template_hash)

    r = Raising("r")
    table = _table(("{{", "}}", r))
    results = []
    table.parse_string_async("a {{boom}}", lambda e, c: results.append((e, c)))

    assert len(results) == 1
    error, content = results[0]
    assert isinstance(error, TemplateRenderError)
    assert error.code == RenderErrorCode.PROVIDER_ERROR
    assert error.error.details["template_hash"] == "boom"
    assert isinstance(error.__cause__, KeyError)
    assert content is None


def test_async_ignores_duplicate_delivery() -> None:
    class Chatty(Recorder):
        def render_async(self, template_hash, record, callback, context_array=None, scope=None, state=None):
            callback(None, "one")
            callback(None, "two")

    c = Chatty("c")
    table = _table(("{{", "}}", c))
    results = []
    table.parse_string_async("{{x}}", lambda e, content: results.append((e, content)))
    assert results == [(None, "one")]


def test_async_provider_exception_is_logged_with_template_hash(caplog) -> None:
    class Raising(Recorder):
        def render_async(self, template_hash, record, callback, context_array=None, scope=None, state=None):
            raise RuntimeError("broken")

    r = Raising("r")
    table = _table(("{{", "}}", r))
    with caplog.at_level("WARNING", logger="pict_template.host.meta_template"):
        table.parse_string_async("{{Record.a}}", lambda e, c: None)

    record = next(rec for rec in caplog.records if "Provider raised" in rec.getMessage())
    assert record.template_hash == "Record.a"
    assert record.provider == "Raising"
