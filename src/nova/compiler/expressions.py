"""Quote-aware splitting and key-expression parsing.

Only string-literal concatenation and path-variable substitution are
supported. Nested parentheses inside call arguments are not.
"""

from collections.abc import Collection

from nova.compiler.segments import KeyExpression, Literal, Variable

_QUOTES = ('"', "'")


def split_quoted(text: str, sep: str) -> list[str]:
    """Split *text* on *sep*, ignoring separators inside quotes.

    Quotes are kept in the pieces. A trailing empty piece is dropped::

        split_quoted('"a,b", c', ",")  -> ['"a,b"', ' c']
        split_quoted('"x"+U1', "+")   -> ['"x"', 'U1']
    """
    pieces: list[str] = []
    current: list[str] = []
    quote: str | None = None
    for ch in text:
        if quote is not None:
            current.append(ch)
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
            current.append(ch)
        elif ch == sep:
            pieces.append("".join(current))
            current = []
        else:
            current.append(ch)
    if current:
        pieces.append("".join(current))
    return pieces


def is_quoted(token: str) -> bool:
    """True for a single quoted literal such as ``"j:"``, not ``"j"+"x"``."""
    return (
        len(token) >= 2
        and token[0] in _QUOTES
        and token[-1] == token[0]
        and token[0] not in token[1:-1]
    )


def parse_expression(source: str, variables: Collection[str]) -> KeyExpression:
    """Classify each ``+``-separated token as a literal or a path variable.

    Quoted tokens are literals. Bare tokens naming one of *variables* are
    substituted per request. Any other bare token is kept verbatim.
    """
    parts: list[Literal | Variable] = []
    for raw in split_quoted(source, "+"):
        token = raw.strip()
        if not token:
            continue
        if is_quoted(token):
            parts.append(Literal(token[1:-1]))
        elif token in variables:
            parts.append(Variable(token))
        else:
            parts.append(Literal(token))
    return KeyExpression(tuple(parts), source=source.strip())


def parse_arguments(source: str, variables: Collection[str]) -> tuple[KeyExpression, ...]:
    """Parse a comma-separated argument list into key expressions."""
    return tuple(parse_expression(arg, variables) for arg in split_quoted(source, ","))
