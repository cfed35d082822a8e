"""Launcher session: startup pipeline and the APIs the front end uses."""

from functools import partial
from pathlib import Path
from typing import List, Optional, TextIO

from loguru import logger

from .config import Config, search_path_from_env
from .errors import HistoryLoadError, HistorySaveError, SessionError
from .history import UsageHistory
from .index import CandidateIndex
from .ingest import IngestionCoordinator, IngestionRequest
from .matcher import fuzzy_score
from .models import Candidate


class LauncherSession:
    """
    Owns the candidate index and usage history for one launcher run.

    Startup: ingest sources, load history, merge, sort. After that the
    UI reads ``candidates()`` and ``search()``; the execution side calls
    ``record_launch()`` once a launch is known not to have failed.
    History is saved at most once per session.
    """

    def __init__(self, config: Config, stdin: Optional[TextIO] = None):
        self.config = config
        self.stdin = stdin
        self.index: Optional[CandidateIndex] = None
        self.history: Optional[UsageHistory] = None
        self.ready = False
        self._saved = False

    def _request(self) -> IngestionRequest:
        sources = self.config.sources
        search_path = sources.search_path
        if sources.from_path and search_path is None:
            search_path = search_path_from_env()
        return IngestionRequest(
            from_path=sources.from_path,
            search_path=search_path,
            files=list(sources.files),
            from_stdin=sources.from_stdin,
            stdin=self.stdin
        )

    def _load_history(self) -> Optional[UsageHistory]:
        settings = self.config.history
        if not settings.enabled:
            logger.debug("History disabled")
            return None

        path = settings.resolved_path()
        try:
            return UsageHistory.load(path, settings.decrease_interval)
        except HistoryLoadError as e:
            logger.error(f"{e}; history is read-only for this session")
            return None

    async def start(self) -> None:
        """Build the index. Raises IngestionError if any source fails."""
        matcher = fuzzy_score
        if self.config.search.smart_case:
            matcher = partial(fuzzy_score, smart_case=True)

        coordinator = IngestionCoordinator(
            self._request(),
            max_workers=self.config.performance.max_scan_workers,
            matcher=matcher
        )
        self.history = self._load_history()
        index = await coordinator.ingest(self.history)

        self.index = index
        self.ready = True
        logger.info(f"Session ready with {len(index)} candidates")

    def _require_ready(self) -> CandidateIndex:
        if not self.ready or self.index is None:
            raise SessionError("Session not started")
        return self.index

    def candidates(self) -> List[Candidate]:
        """Base view: every candidate, most used first."""
        return self._require_ready().candidates()

    def search(self, query: str) -> List[Candidate]:
        """Ranked, filtered view for the current query."""
        return self._require_ready().search(query)

    def select(self, query: str) -> Candidate:
        """Top match for ``query``, or the literal query when nothing matches."""
        results = self.search(query)
        if results:
            return results[0]
        if not query.strip():
            raise SessionError("Nothing to select")
        return Candidate(name=query, value=query)

    def record_launch(self, name: str, value: str, succeeded: bool = True) -> bool:
        """
        Count a launch and persist history.

        Failed launches are never counted. Returns True when history was
        written; a save failure is logged, not raised.
        """
        if not succeeded:
            logger.debug(f"Launch of {name} failed, history unchanged")
            return False
        if self.history is None:
            return False
        if self._saved:
            raise SessionError("History already saved for this session")

        self.history.increment(name, value)
        self._saved = True
        try:
            self.history.save()
        except HistorySaveError as e:
            logger.warning(str(e))
            return False
        return True

    @property
    def history_path(self) -> Optional[Path]:
        return self.history.path if self.history is not None else None
