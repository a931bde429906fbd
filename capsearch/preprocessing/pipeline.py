"""Deterministic text preprocessing shared by indexing and querying."""

from __future__ import annotations

import re
import unicodedata

from nltk.stem import PorterStemmer

from capsearch.config.settings import PreprocessingSettings, get_settings

_STOPWORDS = {
    "a", "an", "and", "are", "as", "at", "be", "but", "by", "for", "from",
    "in", "is", "it", "of", "on", "or", "that", "the", "this", "to",
    "was", "were", "with",
}

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def normalize_words(text: str | None) -> list[str]:
    """NFKC, lowercase and split on anything that is not a letter or digit."""
    if not text:
        return []
    value = unicodedata.normalize("NFKC", text).lower()
    return _NON_ALNUM_RE.sub(" ", value).split()


def is_stopword(word: str) -> bool:
    return word in _STOPWORDS


class TextPreprocessor:
    """
    Tokenizer used for both item fields and query keywords.

    Steps: normalize, length filter, stopword removal, Porter stemming.
    Documents and queries go through the same steps so that their
    terms meet in the index.
    """

    def __init__(self, settings: PreprocessingSettings | None = None) -> None:
        self._settings = settings or get_settings().preprocessing
        self._stemmer = PorterStemmer()

    def preprocess(self, text: str | None) -> list[str]:
        lo = self._settings.min_token_length
        hi = self._settings.max_token_length
        return [
            self._stemmer.stem(t)
            for t in normalize_words(text)
            if lo <= len(t) <= hi and not is_stopword(t)
        ]
