"""Re-applies a backend spell correction to the original phrase."""

import logging

from .models import QueryToken, TokenType
from .query.tokenizer import count_words, to_query_tokens

logger = logging.getLogger(__name__)


def apply_spell_correction(phrase: str | None, corrected: str | None) -> str | None:
    """Rewrite the plain parts of a phrase with words from a correction.

    Quoted tokens are never corrected and are copied from the original
    phrase. Each plain token takes as many words from the correction as
    it had itself; a correction running short keeps the token's remaining
    words. A correction as long as the whole phrase also repeats the
    quoted words, which are skipped then. A shorter one was made for the
    plain tokens only.

    Example:
        >>> apply_spell_correction('foo "bar baz" qux', "fox bar baz quux")
        'fox "bar baz" quux'
        >>> apply_spell_correction('foo "bar" baz', "fox bar")
        'fox "bar" bar'

    Args:
        phrase: The phrase as typed by the user
        corrected: The backend's collated correction

    Returns:
        The corrected phrase, or ``phrase`` if there is nothing to apply
    """
    if not phrase or not corrected:
        return phrase

    words = corrected.split()
    tokens = to_query_tokens(phrase)
    covers_phrase = len(words) == sum(_word_count(token) for token in tokens)

    result = []
    for token in tokens:
        if token.type is TokenType.PLAIN:
            original = token.text.split()
            replacement, words = words[: len(original)], words[len(original) :]
            if replacement:
                result.append(" ".join(replacement + original[len(replacement) :]))
            else:
                result.append(token.text)
        else:
            if covers_phrase:
                words = words[_word_count(token) :]
            result.append(token.text)

    corrected_phrase = " ".join(result)
    logger.debug("Applied correction %r to %r: %r", corrected, phrase, corrected_phrase)
    return corrected_phrase


def _word_count(token: QueryToken) -> int:
    if token.type is TokenType.PLAIN:
        return count_words(token.text)
    return count_words(token.text[1:-1])
