"""Repair rules for almost-JSON produced by language models.

Each rule is a pure ``str -> str`` function that fixes one kind of damage.
Rules are applied in order by repair_json(); adding a new fix means writing
one function and listing it in default_rules(). Rules that touch structure
only rewrite text outside double-quoted string literals, so the content of
comments and code snippets inside values survives unchanged.
"""

from __future__ import annotations

import functools
import re
from collections.abc import Callable, Iterable, Sequence

RepairRule = Callable[[str], str]

# Chat-template control tokens that some local models leak into replies.
DEFAULT_SENTINEL_TOKENS: tuple[str, ...] = (
    "<|im_start|>",
    "<|im_end|>",
    "<|endoftext|>",
    "<|eot_id|>",
    "<|start_header_id|>",
    "<|end_header_id|>",
    "<|end|>",
    "<|assistant|>",
    "<s>",
    "</s>",
    "[INST]",
    "[/INST]",
)

_REASONING_RE = re.compile(r"<(think|thinking|reasoning)>.*?</\1>", re.DOTALL | re.IGNORECASE)
_LINE_COMMENT_RE = re.compile(r"(?<![:\\])//[^\n]*")
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_SINGLE_QUOTED_RE = re.compile(r"'((?:[^'\\\n]|\\.)*)'")
_UNQUOTED_KEY_RE = re.compile(r"([{,\n][ \t]*)([A-Za-z_À-ɏ][\w\-À-ɏ]*)(\s*):")
_BARE_VALUE_RE = re.compile(r"(:[ \t]*)([^\s,{}\[\]\"][^,{}\[\]\"\n]*?)([ \t]*)(?=[,}\]\n]|$)")
_JSON_LITERAL_RE = re.compile(r"(?:true|false|null|-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")

_VALUE_END = set('"}]0123456789el')
_VALUE_START = set('"{[0123456789-tfn')
_CLOSERS = {"{": "}", "[": "]"}


def _split_strings(text: str) -> list[tuple[bool, str]]:
    """Split text into (is_string_literal, chunk) parts on double quotes."""
    parts: list[tuple[bool, str]] = []
    start = i = 0
    n = len(text)
    while i < n:
        if text[i] != '"':
            i += 1
            continue
        if i > start:
            parts.append((False, text[start:i]))
        j = i + 1
        while j < n and text[j] != '"':
            j += 2 if text[j] == "\\" else 1
        end = min(j + 1, n)
        parts.append((True, text[i:end]))
        start = i = end
    if start < n:
        parts.append((False, text[start:]))
    return parts


def _outside_strings(text: str, fix: Callable[[str], str]) -> str:
    return "".join(chunk if is_string else fix(chunk) for is_string, chunk in _split_strings(text))


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def strip_reasoning_blocks(text: str) -> str:
    """Drop <think>…</think> style reasoning sections."""
    return _REASONING_RE.sub("", text)


def strip_sentinel_tokens(text: str, tokens: Iterable[str] = DEFAULT_SENTINEL_TOKENS) -> str:
    for token in tokens:
        if token:
            text = text.replace(token, "")
    return text


def strip_comments(text: str) -> str:
    """Remove // line comments and /* block */ comments."""

    def fix(chunk: str) -> str:
        return _LINE_COMMENT_RE.sub("", _BLOCK_COMMENT_RE.sub("", chunk))

    return _outside_strings(text, fix)


def convert_single_quotes(text: str) -> str:
    """Turn 'single-quoted' keys and values into double-quoted strings."""

    def replace(match: re.Match) -> str:
        inner = match.group(1).replace("\\'", "'").replace('"', '\\"')
        return f'"{inner}"'

    return _outside_strings(text, lambda chunk: _SINGLE_QUOTED_RE.sub(replace, chunk))


def quote_unquoted_keys(text: str) -> str:
    """{nota: 8} → {"nota": 8}"""
    return _outside_strings(text, lambda chunk: _UNQUOTED_KEY_RE.sub(r'\1"\2"\3:', chunk))


def quote_bare_values(text: str) -> str:
    """{"nota": oito} → {"nota": "oito"}; true, false, null and numbers are kept."""

    def replace(match: re.Match) -> str:
        value = match.group(2).strip()
        if _JSON_LITERAL_RE.fullmatch(value):
            return match.group(0)
        escaped = value.replace("\\", "\\\\")
        return f'{match.group(1)}"{escaped}"{match.group(3)}'

    return _outside_strings(text, lambda chunk: _BARE_VALUE_RE.sub(replace, chunk))


def insert_missing_commas(text: str) -> str:
    """Add the comma between a value and a member that starts on a new line."""
    out: list[str] = []
    in_string = False
    escaped = False
    last = ""
    newline_since_last = False
    for ch in text:
        if in_string:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
                last = '"'
                newline_since_last = False
            continue
        if ch.isspace():
            if ch == "\n":
                newline_since_last = True
            out.append(ch)
            continue
        if newline_since_last and last in _VALUE_END and ch in _VALUE_START:
            # Place the comma right after the previous value, before the line break.
            idx = len(out)
            while idx > 0 and out[idx - 1].isspace():
                idx -= 1
            out.insert(idx, ",")
        out.append(ch)
        if ch == '"':
            in_string = True
        else:
            last = ch
        newline_since_last = False
    return "".join(out)


def remove_trailing_commas(text: str) -> str:
    """[1, 2,] → [1, 2]"""
    return _outside_strings(text, lambda chunk: _TRAILING_COMMA_RE.sub(r"\1", chunk))


def close_unbalanced_brackets(text: str) -> str:
    """Close a string, object or array left open when a reply was cut short."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif stack and ch == stack[-1]:
            stack.pop()

    if not stack and not in_string:
        return text
    if in_string:
        text += '"'
    text = text.rstrip()
    if text.endswith(","):
        text = text[:-1]
    elif text.endswith(":"):
        text += " null"
    return text + "".join(reversed(stack))


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def cleanup_rules(sentinel_tokens: Sequence[str] = DEFAULT_SENTINEL_TOKENS) -> tuple[RepairRule, ...]:
    """Rules that clean the whole reply before any JSON is looked for."""
    return (
        strip_reasoning_blocks,
        functools.partial(strip_sentinel_tokens, tokens=tuple(sentinel_tokens)),
    )


def default_rules(sentinel_tokens: Sequence[str] = DEFAULT_SENTINEL_TOKENS) -> tuple[RepairRule, ...]:
    return cleanup_rules(sentinel_tokens) + (
        strip_comments,
        convert_single_quotes,
        quote_unquoted_keys,
        quote_bare_values,
        insert_missing_commas,
        remove_trailing_commas,
        close_unbalanced_brackets,
    )


def apply_rules(text: str, rules: Iterable[RepairRule]) -> str:
    for rule in rules:
        text = rule(text)
    return text


def repair_json(text: str, rules: Iterable[RepairRule] | None = None) -> str:
    """Run every repair rule over text, in order."""
    return apply_rules(text, default_rules() if rules is None else rules)
