"""Key/value parsing for dnsmasq .conf lines.

A config line is a long option without the leading ``--``: ``key=value``,
or a bare ``key`` for flag options. A ``#`` that starts a word begins a
comment; a ``#`` inside a word (for example in a tag) does not.

Parsing here knows nothing about option semantics. The option registry
decides what a key means and the resolution engine how repeated keys merge.
"""


def strip_comment(line: str) -> str:
    """Strip a dnsmasq-style comment from a line.

    The comment starts at the first ``#`` at line start or preceded by
    whitespace and runs to the end of the line.

    Args:
        line: Raw config line.

    Returns:
        The line without its comment, right-trimmed.
    """
    for index, char in enumerate(line):
        if char == "#" and (index == 0 or line[index - 1].isspace()):
            return line[:index].rstrip()
    return line.rstrip()


def parse_directive(line: str) -> tuple[str, str] | None:
    """Parse a config line into its key and value.

    Args:
        line: Raw config line.

    Returns:
        ``(key, value)`` with both trimmed; value is ``""`` for key-only
        lines. None for blank lines, comment lines and lines with an
        empty key.
    """
    text = strip_comment(line).lstrip()
    if not text or text.startswith("#"):
        return None

    key, sep, value = text.partition("=")
    key = key.strip()
    if not key:
        return None
    return key, value.strip() if sep else ""
