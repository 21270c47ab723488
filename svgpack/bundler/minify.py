"""Conservative whitespace and comment minifiers for logic and style bundles.

Both minifiers are lexical: they understand strings, comments and (for
JavaScript) regular-expression and template literals well enough to never
rewrite their contents, and otherwise only drop comments and redundant
whitespace. Line breaks in JavaScript are kept so automatic semicolon
insertion behaves exactly as in the source. Anything the scanner cannot
classify raises :class:`TransformError` so callers can fall back to the
original text.
"""

from __future__ import annotations

import re
from typing import List

from ..errors import TransformError

_REGEX_PRECEDERS = set("(,=:[!&|?{};+-*%<>~^")
_REGEX_KEYWORDS = re.compile(
    r"(?:^|[^\w$])(?:return|typeof|case|do|else|in|of|new|delete|void|throw|instanceof|yield|await)$"
)
_CSS_TIGHT = set("{};,>")


def _is_word(char: str) -> bool:
    return char.isalnum() or char in "_$\\" or ord(char) > 127


def _js_needs_space(prev: str, nxt: str) -> bool:
    if _is_word(prev) and _is_word(nxt):
        return True
    if (prev, nxt) in {("+", "+"), ("-", "-")}:
        return True
    return prev == "/" or nxt == "/"


def minify_js(source: str) -> str:
    """Strip comments and redundant whitespace from JavaScript source."""
    out: List[str] = []
    pending = ""
    index = 0
    length = len(source)

    def emit(text: str) -> None:
        nonlocal pending
        if pending and out:
            if pending == "\n":
                out.append("\n")
            elif _js_needs_space(out[-1][-1], text[0]):
                out.append(" ")
        pending = ""
        out.append(text)

    while index < length:
        char = source[index]

        if char in " \t\r\f\v\u00a0\ufeff":
            if pending != "\n":
                pending = " "
            index += 1
            continue
        if char == "\n":
            pending = "\n"
            index += 1
            continue

        if char == "/" and index + 1 < length and source[index + 1] == "/":
            end = source.find("\n", index)
            index = length if end == -1 else end
            continue

        if char == "/" and index + 1 < length and source[index + 1] == "*":
            end = source.find("*/", index + 2)
            if end == -1:
                raise TransformError("Unterminated block comment in JavaScript")
            comment = source[index : end + 2]
            if comment.startswith("/*!"):
                emit(comment)
                pending = "\n"
            elif "\n" in comment:
                pending = "\n"
            elif pending != "\n":
                pending = " "
            index = end + 2
            continue

        if char in "'\"":
            end = _scan_string(source, index, char)
            emit(source[index:end])
            index = end
            continue

        if char == "`":
            end = _scan_template(source, index)
            emit(source[index:end])
            index = end
            continue

        if char == "/" and _regex_allowed(out):
            end = _scan_regex(source, index)
            emit(source[index:end])
            index = end
            continue

        emit(char)
        index += 1

    return "".join(out).strip()


def _regex_allowed(out: List[str]) -> bool:
    tail = "".join(out[-16:]).rstrip()
    if not tail:
        return True
    if tail[-1] in _REGEX_PRECEDERS:
        return True
    return bool(_REGEX_KEYWORDS.search(tail))


def _scan_string(source: str, start: int, quote: str) -> int:
    index = start + 1
    while index < len(source):
        char = source[index]
        if char == "\\":
            index += 2
            continue
        if char == quote:
            return index + 1
        if char == "\n":
            break
        index += 1
    raise TransformError(f"Unterminated string literal starting at offset {start}")


def _scan_template(source: str, start: int) -> int:
    index = start + 1
    while index < len(source):
        char = source[index]
        if char == "\\":
            index += 2
            continue
        if char == "`":
            return index + 1
        if source.startswith("${", index):
            index = _scan_template_expression(source, index + 2)
            continue
        index += 1
    raise TransformError(f"Unterminated template literal starting at offset {start}")


def _scan_template_expression(source: str, start: int) -> int:
    depth = 1
    index = start
    while index < len(source):
        char = source[index]
        if char in "'\"":
            index = _scan_string(source, index, char)
            continue
        if char == "`":
            raise TransformError("Nested template literals are not supported by the minifier")
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
        index += 1
    raise TransformError(f"Unterminated template expression starting at offset {start}")


def _scan_regex(source: str, start: int) -> int:
    index = start + 1
    in_class = False
    while index < len(source):
        char = source[index]
        if char == "\\":
            index += 2
            continue
        if char == "\n":
            break
        if in_class:
            if char == "]":
                in_class = False
        elif char == "[":
            in_class = True
        elif char == "/":
            return index + 1
        index += 1
    raise TransformError(f"Unterminated regular expression starting at offset {start}")


def minify_css(source: str) -> str:
    """Strip comments and redundant whitespace from CSS source."""
    out: List[str] = []
    pending = False
    depth = 0
    index = 0
    length = len(source)

    def emit(text: str) -> None:
        nonlocal pending
        if pending and out and text[0] not in _CSS_TIGHT:
            prev = out[-1][-1]
            # Inside a block a space after ':' is always redundant; before it may be a selector.
            if prev not in _CSS_TIGHT and not (depth > 0 and prev == ":"):
                out.append(" ")
        pending = False
        out.append(text)

    while index < length:
        char = source[index]

        if char.isspace():
            pending = True
            index += 1
            continue

        if source.startswith("/*", index):
            end = source.find("*/", index + 2)
            if end == -1:
                raise TransformError("Unterminated comment in CSS")
            comment = source[index : end + 2]
            if comment.startswith("/*!"):
                emit(comment)
            else:
                pending = True
            index = end + 2
            continue

        if char in "'\"":
            end = _scan_string(source, index, char)
            emit(source[index:end])
            index = end
            continue

        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth < 0:
                raise TransformError("Unbalanced '}' in CSS")
            if out and out[-1] == ";":
                out.pop()
            pending = False

        emit(char)
        index += 1

    if depth != 0:
        raise TransformError("Unbalanced '{' in CSS")
    return "".join(out).strip()


__all__ = ["minify_css", "minify_js"]
