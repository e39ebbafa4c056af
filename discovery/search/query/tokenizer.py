"""Phrase tokenizer and token classifier.

A double quote that is not escaped opens or closes an exact phrase. The
quote characters stay part of the phrase token, so classification can
tell exact phrases from plain terms afterwards. Text outside quotes is
kept as one token per run between phrases (it is not split on spaces).
"""

import re

from ..models import QueryToken, TokenType

QUOTE = '"'
ESCAPE = "\\"

# Unescaped wildcard characters
WILDCARD_PATTERN = re.compile(r"(?<!\\)[*?]")


def tokenize(phrase: str | None) -> list[str]:
    """Split a phrase into plain runs and quoted phrases.

    Never raises. An opening quote without a closing one does not start a
    token of its own: the rest of the phrase is appended to the previous
    token instead.

    Examples:
        >>> tokenize('foo "bar baz" qux')
        ['foo', '"bar baz"', 'qux']
        >>> tokenize('foo "bar')
        ['foo "bar']
    """
    tokens: list[str] = []
    if not phrase:
        return tokens

    token = ""
    last = len(phrase) - 1
    for i, char in enumerate(phrase):
        if char == QUOTE and i != 0 and phrase[i - 1] != ESCAPE:
            if token.startswith(QUOTE):
                token += char
                # "" is dropped
                if len(token) > 2:
                    tokens.append(token)
                token = ""
            else:
                _append_trimmed(tokens, token)
                token = char
        else:
            token += char
            if i == last:
                _append_trimmed(tokens, token, unclosed=token.startswith(QUOTE))
                token = ""

    return tokens


def _append_trimmed(tokens: list[str], token: str, unclosed: bool = False) -> None:
    token = token.strip()
    if not token:
        return
    if unclosed and tokens:
        tokens[-1] = f"{tokens[-1]} {token}"
    else:
        tokens.append(token)


def is_quoted(term: str | None) -> bool:
    """Check if a term is longer than two chars and wrapped in double quotes."""
    return term is not None and len(term) > 2 and term[0] == QUOTE and term[-1] == QUOTE


def contains_wildcards(term: str | None) -> bool:
    """Check if a term contains an unescaped ``*`` or ``?``."""
    return term is not None and WILDCARD_PATTERN.search(term) is not None


def classify(token: str) -> TokenType:
    """Classify a single token."""
    if not is_quoted(token):
        return TokenType.PLAIN
    if contains_wildcards(token):
        return TokenType.COMPLEX
    return TokenType.EXACT


def to_query_tokens(phrase: str | None) -> list[QueryToken]:
    """Tokenize and classify a phrase."""
    return [QueryToken(token, classify(token)) for token in tokenize(phrase)]


def count_words(text: str) -> int:
    return len(text.split())
