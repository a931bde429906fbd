from capsearch.preprocessing.pipeline import TextPreprocessor, normalize_words

__all__ = [
    "TextPreprocessor",
    "normalize_words",
]
