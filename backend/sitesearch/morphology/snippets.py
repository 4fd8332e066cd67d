from html import escape

from sitesearch.morphology.lemmatizer import LemmaCollector

SNIPPET_RADIUS = 5  # words kept on each side of a match
SNIPPET_MAX_LENGTH = 150
SNIPPET_SEPARATOR = " ... "


def build_snippet(text: str, lemmas: set[str], collector: LemmaCollector) -> str:
    """
    Fragments of ``text`` around the words whose lemma is in ``lemmas``.

    Each match is shown in bold with up to SNIPPET_RADIUS words around it.
    Fragments are joined with an ellipsis until the snippet grows past
    SNIPPET_MAX_LENGTH characters.
    """
    tokens = text.split()
    matches: dict[int, bool] = {}

    def is_match(index: int) -> bool:
        if index not in matches:
            words = collector.words(tokens[index])
            matches[index] = bool(words) and collector.first_normal_form(words[0]) in lemmas
        return matches[index]

    fragments: list[str] = []
    i = 0
    while i < len(tokens):
        if not is_match(i):
            i += 1
            continue

        start, end = max(i - SNIPPET_RADIUS, 0), min(i + SNIPPET_RADIUS + 1, len(tokens))
        fragments.append(
            " ".join(
                f"<b>{escape(tokens[j])}</b>" if is_match(j) else escape(tokens[j])
                for j in range(start, end)
            )
        )
        if len(SNIPPET_SEPARATOR.join(fragments)) > SNIPPET_MAX_LENGTH:
            break
        i = end

    if not fragments:
        return ""
    return SNIPPET_SEPARATOR.join(fragments) + " ..."
