import json

import pytest

from thunderbird_bridge.core.sanitizer import sanitize_json


def test_raw_newline_in_string_round_trips():
    raw = '{"result": "line one\nline two"}'
    with pytest.raises(ValueError):
        json.loads(raw)

    decoded = json.loads(sanitize_json(raw))

    assert decoded["result"] == "line one\nline two"


def test_short_escapes_used_for_common_controls():
    raw = '"a\tb\rc\x08d\x0ce"'
    assert sanitize_json(raw) == '"a\\tb\\rc\\bd\\fe"'


def test_other_controls_use_unicode_escape():
    raw = '{"body": "x\x01y\x1fz"}'
    sanitized = sanitize_json(raw)

    assert sanitized == '{"body": "x\\u0001y\\u001fz"}'
    assert json.loads(sanitized)["body"] == "x\x01y\x1fz"


def test_escaped_quote_does_not_end_string():
    raw = '{"subject": "say \\"hi\\"\nthere", "n": 1}'
    decoded = json.loads(sanitize_json(raw))

    assert decoded == {"subject": 'say "hi"\nthere', "n": 1}


def test_escaped_backslash_before_closing_quote():
    raw = '{"path": "C:\\\\", "note": "a\nb"}'
    decoded = json.loads(sanitize_json(raw))

    assert decoded == {"path": "C:\\", "note": "a\nb"}


def test_whitespace_outside_strings_is_untouched():
    raw = '{\n\t"a": 1,\r\n  "b": [true, null]\n}'
    assert sanitize_json(raw) == raw


def test_valid_json_is_unchanged():
    raw = json.dumps({"messages": [{"subject": "Re: hi", "body": "x\ny"}]})
    assert sanitize_json(raw) == raw


def test_empty_input():
    assert sanitize_json("") == ""
