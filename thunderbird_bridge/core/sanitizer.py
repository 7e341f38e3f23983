"""
Repair pass for JSON emitted by the Thunderbird extension.

The extension sometimes writes message bodies straight into JSON string
values, leaving raw newlines, tabs and other control characters in place.
Those are illegal inside JSON strings, so a strict parser rejects the whole
document. ``sanitize_json`` escapes them, and only them, so that a second
parse attempt can succeed.
"""

_SHORT_ESCAPES = {
    "\b": "\\b",
    "\t": "\\t",
    "\n": "\\n",
    "\f": "\\f",
    "\r": "\\r",
}


def _escape_control(ch: str) -> str:
    return _SHORT_ESCAPES.get(ch) or f"\\u{ord(ch):04x}"


def sanitize_json(text: str) -> str:
    """
    Escape raw control characters (below 0x20) found inside string literals.

    Text outside string literals, including structural whitespace, is passed
    through untouched. A backslash inside a string consumes the following
    character so that an escaped quote does not end the literal.
    """
    out = []
    in_string = False
    escaped = False

    for ch in text:
        if not in_string:
            if ch == '"':
                in_string = True
            out.append(ch)
            continue

        if escaped:
            # The character after a backslash belongs to the escape sequence
            escaped = False
            out.append(_escape_control(ch) if ch < " " else ch)
            continue

        if ch == "\\":
            escaped = True
            out.append(ch)
        elif ch == '"':
            in_string = False
            out.append(ch)
        elif ch < " ":
            out.append(_escape_control(ch))
        else:
            out.append(ch)

    return "".join(out)
