"""
Fuzzy ranking of vault items against free text.

Scoring follows the skim/fzf family of subsequence matchers:
- every matched character earns SCORE_MATCH
- matches at word starts, camelCase humps and after delimiters earn bonuses
- contiguous runs earn at least BONUS_CONSECUTIVE per character
- gaps cost a start penalty plus a per-character extension penalty
- smart case: a query with an uppercase letter matches case-sensitively,
  otherwise case is ignored but a folded match costs a point
"""

from dataclasses import dataclass
from typing import Iterable

from catalog import CatalogItem, IndexedItem

SCORE_MATCH = 16
SCORE_GAP_START = -3
SCORE_GAP_EXTENSION = -1
BONUS_BOUNDARY = SCORE_MATCH // 2
BONUS_NON_WORD = SCORE_MATCH // 2
BONUS_CAMEL = BONUS_BOUNDARY + SCORE_GAP_EXTENSION
BONUS_CONSECUTIVE = -(SCORE_GAP_START + SCORE_GAP_EXTENSION)
BONUS_FIRST_CHAR_MULTIPLIER = 2
PENALTY_CASE_MISMATCH = -1

DELIMITERS = frozenset("/,:;|_-. ")

_UNREACHABLE = -(1 << 30)

# Character classes
_NON_WORD, _DELIMITER, _LOWER, _UPPER, _DIGIT = range(5)


@dataclass(frozen=True)
class Candidate:
    handle: int
    item: CatalogItem
    score: int


def _char_class(c: str) -> int:
    if c.islower():
        return _LOWER
    if c.isupper():
        return _UPPER
    if c.isdigit():
        return _DIGIT
    if c in DELIMITERS or c.isspace():
        return _DELIMITER
    if c.isalpha():
        return _LOWER
    return _NON_WORD


def _bonus(prev: int, cur: int) -> int:
    if cur in (_LOWER, _UPPER, _DIGIT):
        if prev in (_NON_WORD, _DELIMITER):
            return BONUS_BOUNDARY
        if (prev == _LOWER and cur == _UPPER) or (prev != _DIGIT and cur == _DIGIT):
            return BONUS_CAMEL
        return 0
    return BONUS_NON_WORD


def _bonuses(text: str) -> list[int]:
    bonuses = []
    prev = _DELIMITER
    for c in text:
        cur = _char_class(c)
        bonuses.append(_bonus(prev, cur))
        prev = cur
    return bonuses


def _is_subsequence(query: list[str], text: list[str]) -> bool:
    it = iter(text)
    return all(c in it for c in query)


def fuzzy_score(query: str, text: str) -> int:
    """Best alignment score of query inside text; 0 means no match."""
    if not query or not text:
        return 0

    case_sensitive = any(c.isupper() for c in query)
    # folded per character so indices keep lining up with text
    folded_query = list(query) if case_sensitive else [c.lower() for c in query]
    folded_text = list(text) if case_sensitive else [c.lower() for c in text]
    if not _is_subsequence(folded_query, folded_text):
        return 0

    bonuses = _bonuses(text)
    n = len(text)

    # row[j]: best score with the current query char matched at text[j]
    prev_row: list[int] = []
    for i, qc in enumerate(folded_query):
        row = [_UNREACHABLE] * n
        gapped = _UNREACHABLE
        for j in range(n):
            if j >= 2 and i > 0:
                gapped = max(
                    gapped + SCORE_GAP_EXTENSION,
                    prev_row[j - 2] + SCORE_GAP_START,
                )
            if folded_text[j] != qc:
                continue

            gain = SCORE_MATCH
            if not case_sensitive and text[j] != query[i]:
                gain += PENALTY_CASE_MISMATCH

            if i == 0:
                row[j] = gain + bonuses[j] * BONUS_FIRST_CHAR_MULTIPLIER
                continue

            best = _UNREACHABLE
            if j >= 1 and prev_row[j - 1] > _UNREACHABLE // 2:
                best = prev_row[j - 1] + gain + max(bonuses[j], BONUS_CONSECUTIVE)
            if gapped > _UNREACHABLE // 2:
                best = max(best, gapped + gain + bonuses[j])
            row[j] = best
        prev_row = row

    best = max(prev_row)
    if best <= _UNREACHABLE // 2:
        return 0
    return max(best, 0)


def score(query: str, item: CatalogItem) -> int:
    """Best of the title score and every domain score"""
    return max(
        [fuzzy_score(query, item.title)]
        + [fuzzy_score(query, domain) for domain in item.domains]
    )


def rank(query: str, index: Iterable[IndexedItem], limit: int) -> list[Candidate]:
    candidates = []
    for entry in index:
        s = score(query, entry.item)
        if s > 0:
            candidates.append(Candidate(entry.handle, entry.item, s))
    # sort is stable, so equal scores keep catalog order
    candidates.sort(key=lambda c: -c.score)
    return candidates[:limit]
