"""
Entry-line parser shared by file and stdin sources.

Grammar (one entry per line, surrounding whitespace ignored):

    %base_score=<uint>      directive, applies to following entries
    name                    entry, value defaults to name
    name=value              entry with explicit payload
    name="value"            quoted payload, kept verbatim
    "name"=value            quoted name, may contain '='

Blank lines are ignored. Anything else is malformed and is reported to
the caller, which logs and skips it.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from loguru import logger

from .errors import ParseError
from .models import Candidate


QUOTE = '"'
SEPARATOR = "="
DIRECTIVE_PREFIX = "%"

_DIRECTIVE_RE = re.compile(r"^%(?P<key>[A-Za-z_]+)\s*=\s*(?P<value>\S*)$")


class LineKind(Enum):
    """What a single line turned out to be."""
    IGNORED = "ignored"
    DIRECTIVE = "directive"
    ENTRY = "entry"
    MALFORMED = "malformed"


@dataclass
class ParsedLine:
    """Result of parsing one line."""
    kind: LineKind
    name: Optional[str] = None
    value: Optional[str] = None
    base_score: Optional[int] = None
    error: Optional[str] = None


def _read_quoted(text: str, start: int, line: str) -> tuple:
    """Read a double-quoted token starting at ``text[start]``.

    Returns the token contents and the index just past the closing quote.
    """
    end = text.find(QUOTE, start + 1)
    if end == -1:
        raise ParseError("unterminated quoted string", line, start)
    contents = text[start + 1:end]
    if not contents:
        raise ParseError("empty quoted string", line, start)
    return contents, end + 1


def _parse_directive(text: str, line: str) -> ParsedLine:
    match = _DIRECTIVE_RE.match(text)
    if match is None:
        raise ParseError("invalid directive", line)
    key, raw = match.group("key"), match.group("value")
    if key != "base_score":
        raise ParseError(f"unknown directive '{key}'", line)
    if not raw.isdigit():
        raise ParseError(f"base_score must be a non-negative integer, got '{raw}'", line)
    return ParsedLine(kind=LineKind.DIRECTIVE, base_score=int(raw))


def _parse_value(text: str, line: str, offset: int) -> str:
    value = text.strip()
    if not value:
        raise ParseError("missing value after '='", line, offset)
    if value.startswith(QUOTE):
        contents, end = _read_quoted(value, 0, line)
        if value[end:].strip():
            raise ParseError("trailing characters after quoted value", line, offset + end)
        return contents
    if QUOTE in value:
        raise ParseError("unexpected quote in value", line, offset + value.index(QUOTE))
    return value


def parse_line_strict(line: str) -> ParsedLine:
    """Parse one line, raising ParseError when it is malformed."""
    text = line.strip()
    if not text:
        return ParsedLine(kind=LineKind.IGNORED)

    if text.startswith(DIRECTIVE_PREFIX):
        return _parse_directive(text, line)

    if text.startswith(QUOTE):
        name, pos = _read_quoted(text, 0, line)
        rest = text[pos:].lstrip()
        if rest and not rest.startswith(SEPARATOR):
            raise ParseError("expected '=' after quoted name", line, pos)
        value_offset = pos + 1
        rest = rest[1:] if rest else None
    else:
        name, sep, rest = text.partition(SEPARATOR)
        if QUOTE in name:
            raise ParseError("unexpected quote in name", line, name.index(QUOTE))
        name = name.strip()
        value_offset = len(name) + 1
        if not sep:
            rest = None

    if not name:
        raise ParseError("empty name", line)

    if rest is None:
        return ParsedLine(kind=LineKind.ENTRY, name=name, value=name)
    return ParsedLine(
        kind=LineKind.ENTRY,
        name=name,
        value=_parse_value(rest, line, value_offset),
    )


def parse_line(line: str) -> ParsedLine:
    """Parse one line; malformed input yields a MALFORMED result instead of raising."""
    try:
        return parse_line_strict(line)
    except ParseError as e:
        return ParsedLine(kind=LineKind.MALFORMED, error=str(e))


class LineParser:
    """
    Stateful parser for one stream (a single file or stdin).

    Tracks the running base score set by ``%base_score`` directives.
    A new parser must be created for every stream so the score starts
    at 0 again.
    """

    def __init__(self, source: str = "<stream>"):
        self.source = source
        self.base_score = 0
        self.line_number = 0
        self.malformed = 0

    def feed(self, line: str) -> Optional[Candidate]:
        """Consume one line, returning a Candidate for entry lines."""
        self.line_number += 1
        parsed = parse_line(line.rstrip("\r\n"))

        if parsed.kind is LineKind.ENTRY:
            return Candidate(name=parsed.name, value=parsed.value, base_score=self.base_score)

        if parsed.kind is LineKind.DIRECTIVE:
            self.base_score = parsed.base_score
            logger.debug(f"{self.source}:{self.line_number}: base_score set to {self.base_score}")
        elif parsed.kind is LineKind.MALFORMED:
            self.malformed += 1
            logger.warning(f"Skipping malformed line {self.source}:{self.line_number}: {parsed.error}")
        return None

    def parse_lines(self, lines: Iterable[str]) -> List[Candidate]:
        """Parse every line of the stream, dropping non-entries."""
        candidates = []
        for line in lines:
            candidate = self.feed(line)
            if candidate is not None:
                candidates.append(candidate)
        return candidates
