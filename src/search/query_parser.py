"""Search query parser.

Splits a raw query string into the free text used for matching and the
structured operators embedded in it (``from:``, ``in:``, ``has:``,
``before:``, ``after:``, quoted phrases and ``NOT`` exclusions).

Extraction is a single fold over an ordered list of passes. Each pass
owns one pattern and a handler that records the operator and returns
the text that replaces the match, so precedence between operators is
the order of ``OPERATOR_PASSES`` and nothing else.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

import dateparser
import structlog

from src.search.schemas import ParsedQuery, SearchOperators

logger = structlog.get_logger()

DATE_SETTINGS: dict = {
    "TIMEZONE": "UTC",
    "RETURN_AS_TIMEZONE_AWARE": True,
    "PREFER_DAY_OF_MONTH": "first",
}


@dataclass
class _OperatorState:
    """Mutable accumulator threaded through the passes of one parse."""

    strip_invalid_dates: bool = False
    from_: list[str] = field(default_factory=list)
    in_: list[str] = field(default_factory=list)
    has: list[str] = field(default_factory=list)
    before: datetime | None = None
    after: datetime | None = None
    exact: bool = False
    exclude: list[str] = field(default_factory=list)

    def to_operators(self) -> SearchOperators:
        return SearchOperators(
            from_=self.from_,
            in_=self.in_,
            has=self.has,
            before=self.before,
            after=self.after,
            exact=self.exact,
            exclude=self.exclude,
        )


Handler = Callable[[re.Match[str], _OperatorState], str]


@dataclass(frozen=True)
class OperatorPass:
    """One extraction step: a pattern plus what to do with each match."""

    name: str
    pattern: re.Pattern[str]
    handler: Handler
    first_only: bool = False

    def apply(self, text: str, state: _OperatorState) -> str:
        return self.pattern.sub(
            lambda match: self.handler(match, state),
            text,
            count=1 if self.first_only else 0,
        )


def parse_operator_date(raw: str) -> datetime | None:
    """Parse the value of a before:/after: operator.

    Args:
        raw: Token value, e.g. "2024-01-15" or "yesterday"

    Returns:
        Timezone-aware UTC datetime, or None if the value is not a date
    """
    try:
        return dateparser.parse(raw, settings=DATE_SETTINGS)
    except Exception:
        # dateparser can raise various exceptions on malformed input
        return None


def _collector(attr: str, prefix_chars: str = "", lower: bool = False) -> Handler:
    def handle(match: re.Match[str], state: _OperatorState) -> str:
        value = match.group(1).lstrip(prefix_chars)
        if not value:
            return match.group(0)
        getattr(state, attr).append(value.lower() if lower else value)
        return " "

    return handle


def _date_setter(attr: str) -> Handler:
    def handle(match: re.Match[str], state: _OperatorState) -> str:
        parsed = parse_operator_date(match.group(1))
        if parsed is None:
            logger.warning(
                "unparseable date operator",
                token=match.group(0),
                stripped=state.strip_invalid_dates,
            )
            return " " if state.strip_invalid_dates else match.group(0)
        setattr(state, attr, parsed)
        return " "

    return handle


def _unquote(match: re.Match[str], state: _OperatorState) -> str:
    state.exact = True
    return match.group(1)


def _token(pattern: str) -> re.Pattern[str]:
    # Operators only start at a token boundary, so "within:x" is plain text
    return re.compile(rf"(?<!\S){pattern}", re.IGNORECASE)


OPERATOR_PASSES: tuple[OperatorPass, ...] = (
    OperatorPass("exact", re.compile(r'"([^"]+)"'), _unquote),
    OperatorPass("from", _token(r"from:(\S+)"), _collector("from_", "@")),
    OperatorPass("in", _token(r"in:(\S+)"), _collector("in_", "#")),
    OperatorPass("has", _token(r"has:(\S+)"), _collector("has", lower=True)),
    OperatorPass("before", _token(r"before:(\S+)"), _date_setter("before"), True),
    OperatorPass("after", _token(r"after:(\S+)"), _date_setter("after"), True),
    OperatorPass("not", _token(r"NOT\s+(\S+)"), _collector("exclude")),
    OperatorPass("minus", _token(r"-(\S+)"), _collector("exclude")),
)


def parse_search_query(query: str, strip_invalid_dates: bool = False) -> ParsedQuery:
    """Parse a raw search query into free text and operators.

    Never raises: tokens that do not form a valid operator stay in the
    free text. A before:/after: token whose value is not a date is left
    in place unless ``strip_invalid_dates`` is set.

    Args:
        query: Raw search query string
        strip_invalid_dates: Drop unparseable date tokens from the free text

    Returns:
        ParsedQuery with the collapsed base query and the operators

    Example:
        >>> parsed = parse_search_query('"hello" from:@jane in:#general')
        >>> parsed.base_query, parsed.operators.from_, parsed.operators.in_
        ('hello', ['jane'], ['general'])
    """
    state = _OperatorState(strip_invalid_dates=strip_invalid_dates)
    text = query or ""
    for operator_pass in OPERATOR_PASSES:
        text = operator_pass.apply(text, state)

    return ParsedQuery(
        base_query=" ".join(text.split()),
        operators=state.to_operators(),
    )
