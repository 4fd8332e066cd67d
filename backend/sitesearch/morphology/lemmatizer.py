import logging
import re
from collections import Counter
from typing import Protocol

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[^\W\d_]+")


class Lemmatizer(Protocol):
    """Morphological analysis the indexer and the query engine rely on."""

    def is_valid_word(self, word: str) -> bool: ...

    def is_function_word(self, word: str) -> bool: ...

    def normal_forms(self, word: str) -> list[str]: ...


class NltkLemmatizer:
    """
    English lemmatizer backed by WordNet.

    Words unknown to WordNet are not indexed. Prepositions, conjunctions and
    interjections are detected with the perceptron part-of-speech tagger.
    """

    RESOURCES = {
        "wordnet": "corpora/wordnet",
        "omw-1.4": "corpora/omw-1.4",
        "averaged_perceptron_tagger_eng": "taggers/averaged_perceptron_tagger_eng",
    }
    FUNCTION_TAGS = ("IN", "CC", "UH", "TO")
    WORDNET_POS = ("v", "n", "a", "r")

    def __init__(self, download: bool = True):
        if download:
            self.ensure_resources()

    @classmethod
    def ensure_resources(cls) -> None:
        import nltk

        for name, path in cls.RESOURCES.items():
            try:
                nltk.data.find(path)
            except LookupError:
                logger.info(f"Downloading nltk resource {name}")
                nltk.download(name, quiet=True)

    def is_valid_word(self, word: str) -> bool:
        from nltk.corpus import wordnet

        return word.isalpha() and bool(wordnet.synsets(word))

    def is_function_word(self, word: str) -> bool:
        from nltk import pos_tag

        (_, tag), = pos_tag([word])
        return tag in self.FUNCTION_TAGS

    def normal_forms(self, word: str) -> list[str]:
        from nltk.corpus import wordnet

        forms: list[str] = []
        for pos in self.WORDNET_POS:
            base = wordnet.morphy(word, pos)
            if base and base not in forms:
                forms.append(base)
        return forms


class LemmaCollector:
    """Turns text into lemma counts using a Lemmatizer."""

    def __init__(self, lemmatizer: Lemmatizer):
        self.lemmatizer = lemmatizer

    @staticmethod
    def words(text: str) -> list[str]:
        return _WORD_RE.findall(text.lower())

    def is_indexable(self, word: str) -> bool:
        if not word or not self.lemmatizer.is_valid_word(word):
            return False
        return not self.lemmatizer.is_function_word(word)

    def first_normal_form(self, word: str) -> str | None:
        word = word.lower()
        if not self.is_indexable(word):
            return None
        forms = self.lemmatizer.normal_forms(word)
        return forms[0].lower() if forms else None

    def collect_lemmas(self, text: str) -> dict[str, int]:
        """Map each lemma of ``text`` to its number of occurrences."""
        counts: Counter[str] = Counter()
        for word in self.words(text):
            lemma = self.first_normal_form(word)
            if lemma:
                counts[lemma] += 1
        return dict(counts)

    def lemma_set(self, text: str) -> set[str]:
        return set(self.collect_lemmas(text))
