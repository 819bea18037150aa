"""Lexical splitting of formula text into string tokens."""

from __future__ import annotations

OPERATORS = frozenset("+-*/^%(),:<>=")

# A comparison char followed by one of these merges into a two-char token.
_MERGE_FIRST = frozenset("<>=")
_MERGE_SECOND = frozenset("=>")

QUOTES = frozenset("\"'")


def tokenize(text: str) -> list[str]:
    """Split formula text (leading ``=`` already stripped) into tokens.

    - Quoted literals (single or double quotes) are kept verbatim, quotes
      included, and end at the next occurrence of the same quote.
    - Each operator/punctuation char is its own token; ``<``, ``>`` or ``=``
      followed by ``=`` or ``>`` becomes one two-char token, which also
      yields the odd ``=>``.
    - Whitespace ends the current token and is dropped.
    - Everything else accumulates until one of the above.

    Examples:
        ``"A1 + 2*B3"`` -> ``["A1", "+", "2", "*", "B3"]``
        ``"x>=\\"a b\\""`` -> ``["x", ">=", "\\"a b\\""]``
    """
    tokens: list[str] = []
    current = ""
    quote: str | None = None
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]

        if quote is not None:
            current += ch
            if ch == quote:
                tokens.append(current)
                current = ""
                quote = None
        elif ch in QUOTES:
            if current:
                tokens.append(current)
            current = ch
            quote = ch
        elif ch in OPERATORS:
            if current:
                tokens.append(current)
                current = ""
            if ch in _MERGE_FIRST and i + 1 < n and text[i + 1] in _MERGE_SECOND:
                tokens.append(ch + text[i + 1])
                i += 1
            else:
                tokens.append(ch)
        elif ch.isspace():
            if current:
                tokens.append(current)
                current = ""
        else:
            current += ch
        i += 1

    if current:
        tokens.append(current)

    return tokens


def opens_quote(text: str, i: int) -> bool:
    """True when the quote char at ``text[i]`` starts a quoted literal.

    Used by the comma and parenthesis scanners.  A quote opens a literal
    only where an operand can begin: at the start of *text*, or after an
    operator, comma or ``(`` (whitespace skipped).  The apostrophe in
    ``it's`` is plain text.
    """
    if text[i] not in QUOTES:
        return False
    j = i - 1
    while j >= 0 and text[j].isspace():
        j -= 1
    return j < 0 or (text[j] in OPERATORS and text[j] != ")")


def is_quoted(token: str) -> bool:
    """True when *token* is a complete quoted literal."""
    return len(token) >= 2 and token[0] in QUOTES and token[-1] == token[0]


def unquote(token: str) -> str:
    return token[1:-1]
