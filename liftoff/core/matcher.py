"""
Fuzzy subsequence matching.

The index only depends on the ``Matcher`` call shape:

    matcher(name, pattern) -> Optional[int]

``None`` means no match. Any callable with that shape can replace
``fuzzy_score``.

The default heuristic finds the first occurrence of the pattern as a
subsequence, then walks backwards from the end of that occurrence to
find the shortest window that still contains it, and scores the
window. Matches get a flat score, boundaries and camel humps get a
bonus, runs of adjacent matches keep a bonus, gaps cost a little, and
every character before the window costs one point (capped).
"""

from typing import Callable, Optional

Matcher = Callable[[str, str], Optional[int]]

SCORE_MATCH = 16
SCORE_GAP_START = -3
SCORE_GAP_EXTENSION = -1

BONUS_BOUNDARY = 8
BONUS_CAMEL = 7
BONUS_CONSECUTIVE = 4
BONUS_FIRST_CHAR_MULTIPLIER = 2

MAX_LEADING_PENALTY = 8

SEPARATORS = frozenset(" -_./:\\")


def _char_bonus(name: str, index: int) -> int:
    if index == 0:
        return BONUS_BOUNDARY
    prev, cur = name[index - 1], name[index]
    if prev in SEPARATORS and cur not in SEPARATORS:
        return BONUS_BOUNDARY
    if prev.islower() and cur.isupper():
        return BONUS_CAMEL
    if not prev.isdigit() and cur.isdigit():
        return BONUS_CAMEL
    return 0


def _find_window(text: str, pattern: str) -> Optional[tuple]:
    """Return (start, end) of the tightest window ending at the first full match."""
    pidx = 0
    end = -1
    for i, ch in enumerate(text):
        if ch == pattern[pidx]:
            pidx += 1
            if pidx == len(pattern):
                end = i + 1
                break
    if end < 0:
        return None

    pidx = len(pattern) - 1
    start = 0
    for i in range(end - 1, -1, -1):
        if text[i] == pattern[pidx]:
            pidx -= 1
            if pidx < 0:
                start = i
                break
    return start, end


def fuzzy_score(name: str, pattern: str, smart_case: bool = False) -> Optional[int]:
    """
    Score ``pattern`` against ``name``.

    Matching is case-sensitive. With ``smart_case`` it is case-insensitive
    unless the pattern contains an uppercase character. An empty pattern
    matches everything with a score of 0.
    """
    if not pattern:
        return 0

    if not smart_case or any(ch.isupper() for ch in pattern):
        text, pat = name, pattern
    else:
        text, pat = name.lower(), pattern.lower()
    # lower() can change the length of some non-ASCII strings
    bonus_source = name if len(text) == len(name) else text

    window = _find_window(text, pat)
    if window is None:
        return None
    start, end = window

    score = 0
    pidx = 0
    prev_matched = False
    in_gap = False
    run_bonus = 0
    for i in range(start, end):
        if pidx < len(pat) and text[i] == pat[pidx]:
            bonus = _char_bonus(bonus_source, i)
            if prev_matched:
                run_bonus = max(run_bonus, bonus, BONUS_CONSECUTIVE)
                bonus = run_bonus
            else:
                run_bonus = bonus
            if pidx == 0:
                bonus *= BONUS_FIRST_CHAR_MULTIPLIER
            score += SCORE_MATCH + bonus
            pidx += 1
            prev_matched = True
            in_gap = False
        else:
            score += SCORE_GAP_EXTENSION if in_gap else SCORE_GAP_START
            prev_matched = False
            in_gap = True

    score -= min(start, MAX_LEADING_PENALTY)
    return score

