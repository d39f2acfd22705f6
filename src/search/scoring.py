"""Relevance scoring and snippet helpers.

The score is a heuristic for ordering results inside one search call.
It is not comparable across calls with different queries.
"""

EXACT_MATCH_SCORE = 100.0
SUBSTRING_SCORE = 50.0
WORD_SCORE = 10.0
POSITION_BONUS = 20.0
MIN_WORD_LENGTH = 2
CONTEXT_RADIUS = 50
CONTEXT_FALLBACK_LENGTH = 150


def query_words(query: str) -> list[str]:
    """Lowercased query words long enough to score or highlight."""
    return [w for w in query.lower().split() if len(w) >= MIN_WORD_LENGTH]


def calculate_score(content: str | None, query: str | None) -> float:
    """Score how well content matches a query.

    Additive, case-insensitive:
    - +100 if content equals the query
    - +50 if content contains the query
    - +10 for every query word of length >= 2 found in content
      (repeated words count every time)
    - position bonus max(0, 20 - index / 10) for the first occurrence
      of the full query

    Args:
        content: Text to score
        query: Free-text query

    Returns:
        Relevance score, 0.0 for empty content or query
    """
    if not content or not query:
        return 0.0

    lower_content = content.lower()
    lower_query = query.lower()
    score = 0.0

    if lower_content == lower_query:
        score += EXACT_MATCH_SCORE

    index = lower_content.find(lower_query)
    if index != -1:
        score += SUBSTRING_SCORE

    for word in query_words(query):
        if word in lower_content:
            score += WORD_SCORE

    if index != -1:
        score += max(0.0, POSITION_BONUS - index / 10)

    return score


def get_highlights(content: str | None, query: str | None) -> list[str]:
    """Every occurrence of every query word in content, in original casing.

    Occurrences may overlap and are not deduplicated.
    """
    if not content or not query:
        return []

    lower_content = content.lower()
    highlights: list[str] = []
    for word in query_words(query):
        index = lower_content.find(word)
        while index != -1:
            highlights.append(content[index : index + len(word)])
            index = lower_content.find(word, index + 1)
    return highlights


def get_context(content: str | None, query: str | None) -> str:
    """Window of +/-50 characters around the first match of the query.

    Ellipsized on whichever side was truncated. Without a match the
    leading 150 characters are returned.
    """
    if not content:
        return ""

    index = content.lower().find(query.lower()) if query else -1
    if index == -1:
        return content[:CONTEXT_FALLBACK_LENGTH]

    start = max(0, index - CONTEXT_RADIUS)
    end = min(len(content), index + len(query) + CONTEXT_RADIUS)

    context = content[start:end]
    if start > 0:
        context = "..." + context
    if end < len(content):
        context = context + "..."
    return context
