"""Concurrent multi-source ingestion into a CandidateIndex."""

import asyncio
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, TextIO, Tuple

from loguru import logger

from .errors import IngestionError, SourceError
from .history import UsageHistory
from .index import CandidateIndex
from .matcher import Matcher, fuzzy_score
from .models import Candidate
from .sources import FileSource, PathScan, StdinSource


@dataclass
class IngestionRequest:
    """Which sources to read. Only requested kinds are run."""
    from_path: bool = False
    search_path: Optional[List[Path]] = None
    files: List[Path] = field(default_factory=list)
    from_stdin: bool = False
    stdin: Optional[TextIO] = None


class IngestionCoordinator:
    """
    Runs one job per requested source kind and joins them.

    Filesystem work runs on a bounded thread pool, stdin on its own
    thread. The coordinator waits for every job; the first failure
    aborts the whole build and no index is produced.

    Concatenation order is fixed: stdin, files, path.
    """

    def __init__(
        self,
        request: IngestionRequest,
        max_workers: int = 4,
        matcher: Matcher = fuzzy_score
    ):
        self.request = request
        self.max_workers = max_workers
        self.matcher = matcher
        self.source_latencies: Dict[str, float] = {}

    def _sources(self) -> list:
        sources = []
        if self.request.from_stdin:
            sources.append(StdinSource(self.request.stdin))
        if self.request.files:
            sources.append(FileSource(self.request.files))
        if self.request.from_path:
            sources.append(PathScan(self.request.search_path))
        return sources

    async def _timed(self, source, executor) -> Tuple[str, List[Candidate], float]:
        start = time.perf_counter()
        results = await source.run(executor)
        latency = (time.perf_counter() - start) * 1000
        return source.kind, results, latency

    async def collect(self) -> Dict[str, List[Candidate]]:
        """Run every requested source concurrently; fail fast on the first error."""
        try:
            sources = self._sources()
        except SourceError as e:
            raise IngestionError(f"Ingestion failed: {e}", source=e.source) from e

        if not sources:
            logger.warning("No candidate sources requested")
            return {}

        executor = ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="liftoff-scan"
        )
        tasks = [asyncio.create_task(self._timed(s, executor)) for s in sources]
        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

            failures = [
                task.exception() for task in tasks
                if task in done and task.exception() is not None
            ]
            if failures:
                for error in failures:
                    logger.error(f"Source job failed: {error}")
                first = failures[0]
                source = getattr(first, "source", None)
                raise IngestionError(f"Ingestion failed: {first}", source=source) from first

            results: Dict[str, List[Candidate]] = {}
            for task in tasks:
                kind, candidates, latency = task.result()
                results[kind] = candidates
                self.source_latencies[kind] = latency
                logger.debug(f"Source {kind}: {len(candidates)} candidates in {latency:.1f}ms")
            return results
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    async def build(self) -> CandidateIndex:
        """Join all sources into an index, without history."""
        results = await self.collect()
        return CandidateIndex.build(
            stdin=results.get(StdinSource.kind),
            files=results.get(FileSource.kind),
            path=results.get(PathScan.kind),
            matcher=self.matcher
        )

    async def ingest(self, history: Optional[UsageHistory] = None) -> CandidateIndex:
        """Build, merge ``history`` when given, and sort most used first."""
        start = time.perf_counter()
        index = await self.build()
        if history is not None:
            index.merge_history(history)
        index.sort_score()
        logger.info(
            f"Indexed {len(index)} candidates in "
            f"{(time.perf_counter() - start) * 1000:.1f}ms"
        )
        return index
