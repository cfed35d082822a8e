"""
Candidate sources.

Each source reads exactly one kind of origin and returns a complete,
ordered list of candidates or raises SourceError. Sources share no
state with each other.
"""

import asyncio
import os
import stat
import sys
from concurrent.futures import Executor
from pathlib import Path
from typing import Dict, List, Optional, Sequence, TextIO

import aiofiles
from loguru import logger

from .errors import SearchPathError, SourceError
from .models import Candidate
from .parser import LineParser


EXECUTABLE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def scan_directory(directory: Path) -> List[str]:
    """
    Names of executable regular files in one directory, in listing order.

    Directories that do not exist are treated as empty, like a shell
    treats dangling search path entries. Any other failure to list the
    directory raises SourceError.
    """
    names = []
    try:
        with os.scandir(directory) as entries:
            for entry in entries:
                try:
                    st = entry.stat()
                except OSError:
                    # dangling symlink or entry removed while listing
                    continue
                if stat.S_ISREG(st.st_mode) and st.st_mode & EXECUTABLE_BITS:
                    names.append(entry.name)
    except (FileNotFoundError, NotADirectoryError):
        logger.debug(f"Skipping missing search path entry: {directory}")
        return []
    except OSError as e:
        raise SourceError("path", f"cannot read directory {directory}: {e}") from e
    return names


class PathScan:
    """Executables found on an ordered list of directories."""

    kind = "path"

    def __init__(self, directories: Optional[Sequence[Path]]):
        if directories is None:
            raise SearchPathError()
        self.directories = [Path(d) for d in directories]

    @staticmethod
    def merge(per_directory: Sequence[List[str]]) -> List[Candidate]:
        """First directory wins for duplicate names; result sorted by name."""
        seen: Dict[str, Candidate] = {}
        for names in per_directory:
            for name in names:
                if name not in seen:
                    seen[name] = Candidate(name=name, value=name, base_score=0)
        return [seen[name] for name in sorted(seen)]

    def scan(self) -> List[Candidate]:
        """Blocking scan of every directory in order."""
        return self.merge([scan_directory(d) for d in self.directories])

    async def run(self, executor: Optional[Executor] = None) -> List[Candidate]:
        """Scan directories concurrently on ``executor``, merge in list order."""
        loop = asyncio.get_running_loop()
        jobs = [
            loop.run_in_executor(executor, scan_directory, directory)
            for directory in self.directories
        ]
        per_directory = await asyncio.gather(*jobs)
        candidates = self.merge(per_directory)
        logger.debug(
            f"Path scan found {len(candidates)} executables in "
            f"{len(self.directories)} directories"
        )
        return candidates


class FileSource:
    """Entries read from one or more files, in the given order.

    A read failure on any file fails the whole source.
    """

    kind = "file"

    def __init__(self, paths: Sequence[Path]):
        self.paths = [Path(p) for p in paths]

    async def _read_file(self, path: Path, executor: Optional[Executor] = None) -> List[Candidate]:
        parser = LineParser(str(path))
        try:
            async with aiofiles.open(path, "r", encoding="utf-8", executor=executor) as f:
                text = await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise SourceError(self.kind, f"cannot read {path}: {e}") from e

        candidates = parser.parse_lines(text.splitlines())
        if parser.malformed:
            logger.warning(f"{path}: skipped {parser.malformed} malformed lines")
        return candidates

    async def run(self, executor: Optional[Executor] = None) -> List[Candidate]:
        """Read each file in one call on ``executor``; files stay in list order."""
        candidates: List[Candidate] = []
        for path in self.paths:
            candidates.extend(await self._read_file(path, executor))
        logger.debug(f"Read {len(candidates)} entries from {len(self.paths)} files")
        return candidates


class StdinSource:
    """Entries piped in on a line-delimited stream, read until EOF."""

    kind = "stdin"

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def read(self) -> List[Candidate]:
        """Blocking read of the whole stream."""
        stream = self.stream if self.stream is not None else sys.stdin
        parser = LineParser("<stdin>")
        try:
            candidates = parser.parse_lines(stream)
        except (OSError, UnicodeDecodeError) as e:
            raise SourceError(self.kind, f"cannot read stream: {e}") from e
        return candidates

    async def run(self, executor: Optional[Executor] = None) -> List[Candidate]:
        # Runs on the default executor so it never occupies a scan worker.
        candidates = await asyncio.to_thread(self.read)
        logger.debug(f"Read {len(candidates)} entries from stdin")
        return candidates
