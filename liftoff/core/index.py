"""In-memory candidate index with history merge and fuzzy ranking."""

from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from loguru import logger

from .matcher import Matcher, fuzzy_score
from .models import Candidate
from .history import UsageHistory


class CandidateIndex:
    """
    Ordered collection of candidates for one launcher session.

    Lifecycle: ``build`` -> ``merge_history`` -> ``sort_score`` -> ``search``
    per keystroke. ``search`` is a full recomputation over every candidate
    and may be called at any point; before ``merge_history`` and
    ``sort_score`` it simply ranks without learned scores.
    """

    def __init__(
        self,
        candidates: Optional[Iterable[Candidate]] = None,
        matcher: Matcher = fuzzy_score
    ):
        self._candidates: List[Candidate] = list(candidates or [])
        self.matcher = matcher

    @classmethod
    def build(
        cls,
        stdin: Optional[Sequence[Candidate]] = None,
        files: Optional[Sequence[Candidate]] = None,
        path: Optional[Sequence[Candidate]] = None,
        matcher: Matcher = fuzzy_score
    ) -> "CandidateIndex":
        """
        Concatenate per-source results in the fixed order stdin, files, path.

        No cross-source deduplication happens here.
        """
        candidates: List[Candidate] = []
        for chunk in (stdin, files, path):
            if chunk:
                candidates.extend(chunk)
        return cls(candidates, matcher=matcher)

    def merge_history(self, history: UsageHistory) -> None:
        """
        Blend usage counts into the index.

        For every record the first candidate with the same name gets
        ``base_score = num_used``; later same-name candidates are collapsed
        into it. Unknown names are appended as synthetic candidates.
        """
        positions: Dict[str, int] = {}
        for i, candidate in enumerate(self._candidates):
            positions.setdefault(candidate.name, i)

        collapse = set()
        added = 0
        for record in history.records:
            pos = positions.get(record.name)
            if pos is None:
                positions[record.name] = len(self._candidates)
                self._candidates.append(Candidate(
                    name=record.name,
                    value=record.value,
                    base_score=record.num_used
                ))
                added += 1
            else:
                self._candidates[pos].base_score = record.num_used
                collapse.add(record.name)

        if collapse:
            self._candidates = [
                c for i, c in enumerate(self._candidates)
                if c.name not in collapse or positions[c.name] == i
            ]

        logger.debug(
            f"Merged {len(history.records)} history records "
            f"({added} new candidates)"
        )

    def sort_score(self) -> None:
        """Stable sort, most used first."""
        self._candidates.sort(key=lambda c: c.base_score, reverse=True)

    def search(self, query: str) -> List[Candidate]:
        """
        Rank every candidate against ``query``.

        Rank key is ``fuzzy_score + base_score``; non-matching candidates
        are dropped. Ties keep index order.
        """
        scored = []
        for candidate in self._candidates:
            score = self.matcher(candidate.name, query)
            if score is not None:
                scored.append((score + candidate.base_score, candidate))

        scored.sort(key=lambda x: x[0], reverse=True)
        return [c for _, c in scored]

    def candidates(self) -> List[Candidate]:
        """Current order, used for the initial (empty query) screen."""
        return list(self._candidates)

    def get(self, name: str) -> Optional[Candidate]:
        for candidate in self._candidates:
            if candidate.name == name:
                return candidate
        return None

    def __len__(self) -> int:
        return len(self._candidates)

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self._candidates)

    def __contains__(self, name: object) -> bool:
        return any(c.name == name for c in self._candidates)
