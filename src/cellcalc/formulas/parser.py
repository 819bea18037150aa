"""Lark-based parser for plain (non function-call) arithmetic formulas.

The grammar sits on top of :func:`tokenize` through a custom lexer, so the
token rules stay in one place.  It deliberately accepts only:

- operands: number literals, quoted strings, cell addresses, bare text
- ``*`` and ``/`` binding tighter than ``+`` and ``-``, each left-associative

Parentheses, unary minus, ``^``, ``%`` and comparisons are not part of the
plain-expression language; a token stream using them is a parse error.
"""

from __future__ import annotations

import re
from typing import Any, Iterator

from lark import Lark, Token, Tree
from lark.lexer import Lexer

from cellcalc.formulas.errors import FormulaParseError
from cellcalc.formulas.tokenizer import OPERATORS, is_quoted, tokenize
from cellcalc.formulas.values import parse_float_prefix

GRAMMAR = r"""
start: additive

?additive: multiplicative
    | additive ADD_OP multiplicative  -> binop

?multiplicative: operand
    | multiplicative MUL_OP operand   -> binop

?operand: NUMBER  -> number
    | STRING      -> string
    | CELL        -> cell_ref
    | TEXT        -> text

%declare ADD_OP MUL_OP NUMBER STRING CELL TEXT
"""

CELL_TOKEN_RE = re.compile(r"^([A-Z]+)(\d+)$", re.IGNORECASE)


def _is_word(token: str) -> bool:
    return token not in OPERATORS and not is_quoted(token) and token[0] not in "<>="


def fold_calls(tokens: list[str]) -> list[str]:
    """Collapse ``NAME ( ... )`` runs into one opaque token.

    ``["SUM", "(", "A1", ":", "A2", ")", "+", "1"]`` becomes
    ``["SUM(A1:A2)", "+", "1"]``.  An unbalanced group is left alone.
    """
    out: list[str] = []
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        if _is_word(tok) and i + 1 < len(tokens) and tokens[i + 1] == "(":
            depth = 0
            for j in range(i + 1, len(tokens)):
                if tokens[j] == "(":
                    depth += 1
                elif tokens[j] == ")":
                    depth -= 1
                    if depth == 0:
                        out.append("".join(tokens[i : j + 1]))
                        i = j + 1
                        break
            else:
                out.append(tok)
                i += 1
            continue
        out.append(tok)
        i += 1
    return out


def classify(token: str) -> str:
    """Map a raw token to its grammar terminal name."""
    if token in ("+", "-"):
        return "ADD_OP"
    if token in ("*", "/"):
        return "MUL_OP"
    if token in OPERATORS or token[0] in "<>=":
        return "OTHER"
    if is_quoted(token):
        return "STRING"
    if CELL_TOKEN_RE.match(token):
        return "CELL"
    if parse_float_prefix(token) is not None:
        return "NUMBER"
    return "TEXT"


class ExpressionLexer(Lexer):
    """Feeds :func:`tokenize` output to the LALR parser."""

    def __init__(self, lexer_conf: Any) -> None:
        pass

    def lex(self, data: str) -> Iterator[Token]:
        for index, tok in enumerate(fold_calls(tokenize(data))):
            yield Token(classify(tok), tok, start_pos=index)


_parser = Lark(GRAMMAR, parser="lalr", lexer=ExpressionLexer, start="start")


def parse_expression(text: str) -> Tree:
    """Parse expression text (without the leading ``=``) into a Lark Tree.

    Raises:
        FormulaParseError: If the token stream is not a valid expression.
    """
    try:
        return _parser.parse(text)
    except Exception as exc:
        token = getattr(exc, "token", None)
        pos = getattr(token, "start_pos", None)
        raise FormulaParseError(str(exc), position=pos) from exc
