"""SQL helpers shared by the search repositories.

Text matching uses GLOB with per-character case classes (``[eE]``,
``[éÉ]``) instead of ``LOWER() LIKE``, because SQLite only folds ASCII
case. Patterns are built here; clauses only ever bind them as parameters.
"""

import json
from datetime import UTC, datetime
from typing import Any

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

GLOB_SPECIAL = frozenset("*?[")

# Complement of ASCII word characters; SQL-side word boundary for exact phrases
NON_WORD_CLASS = "[^0-9A-Za-z_]"


def _case_variants(char: str) -> list[str]:
    candidates = (
        char,
        char.lower(),
        char.upper(),
        char.lower().upper(),
        char.upper().lower(),
    )
    return sorted({c for c in candidates if len(c) == 1})


def glob_literal(value: str) -> str:
    """GLOB body matching value literally, ignoring case (Unicode-aware)."""
    parts: list[str] = []
    for char in value:
        if char in GLOB_SPECIAL:
            parts.append(f"[{char}]")
            continue
        variants = _case_variants(char)
        parts.append(f"[{''.join(variants)}]" if len(variants) > 1 else char)
    return "".join(parts)


def contains_pattern(value: str) -> str:
    """GLOB pattern for a case-insensitive substring match."""
    return f"*{glob_literal(value)}*"


def prefix_pattern(value: str) -> str:
    """GLOB pattern for a case-insensitive prefix match."""
    return f"{glob_literal(value)}*"


def equals_pattern(value: str) -> str:
    """GLOB pattern for a case-insensitive whole-value match."""
    return glob_literal(value)


def phrase_pattern(value: str) -> str:
    """GLOB pattern for a phrase bounded by non-word characters.

    Meant for columns padded with a space on both sides (see ``phrase_match``).
    """
    return f"*{NON_WORD_CLASS}{glob_literal(value)}{NON_WORD_CLASS}*"


def matches(column: str) -> str:
    """Case-insensitive GLOB clause for a column."""
    return f"{column} GLOB ?"


def not_matches(column: str) -> str:
    """Negated GLOB clause; NULL columns count as not containing the term."""
    return f"COALESCE({column}, '') NOT GLOB ?"


def phrase_match(column: str) -> str:
    """GLOB clause for ``phrase_pattern`` against a space-padded column."""
    return f"(' ' || COALESCE({column}, '') || ' ') GLOB ?"


def placeholders(values: list[Any]) -> str:
    """Comma-separated ``?`` list for an IN clause."""
    return ", ".join("?" for _ in values)


def format_timestamp(value: datetime) -> str:
    """Render a datetime the way SQLite's CURRENT_TIMESTAMP does (UTC)."""
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp back into an aware UTC datetime."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def utcnow() -> datetime:
    """Current time truncated to the stored timestamp resolution."""
    return datetime.now(UTC).replace(microsecond=0)


def dump_json(value: Any) -> str | None:
    """Serialize a JSON column value, keeping NULL for None."""
    if value is None:
        return None
    return json.dumps(value)


def load_json(value: str | None, default: Any = None) -> Any:
    """Deserialize a JSON column value."""
    if not value:
        return default
    return json.loads(value)
