"""
Dividend Schedule Parser

Turns the free-text "dividend months" field of a bond into a set of
calendar months plus the number of payments per year.

Accepted inputs:
- "1,7" / "1, 7" / "1，7"      (half- or full-width comma)
- "1月、7月"                    (ideographic comma, month marker)
- "3/9" / "3月/9月"             (slash)
- "6" / "6月"                   (single month)

Rules are evaluated in order and the first matching one decides how the
text is split. Anything that yields no valid month falls back to the
default semiannual schedule: two payments with no calendar placement.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import re
from dataclasses import dataclass
from typing import Callable, FrozenSet, Iterable, Optional, Tuple

from core.config import DEFAULT_PAYMENT_COUNT, MONTH_LIST_SEPARATORS, MONTH_MARKER
from utils.logging_config import setup_logger

logger = setup_logger(__name__)

_DIGITS = re.compile(r"[+]?[0-9]+")


@dataclass(frozen=True)
class DividendSchedule:
    """Parsed dividend months and the implied payments per year."""
    months: FrozenSet[int]
    payment_count: int
    is_default: bool = False

    def pays_in(self, month: int) -> bool:
        return month in self.months


DEFAULT_SCHEDULE = DividendSchedule(
    months=frozenset(),
    payment_count=DEFAULT_PAYMENT_COUNT,
    is_default=True,
)


def _parse_month_token(token: str) -> Optional[int]:
    cleaned = token.strip()
    if cleaned.endswith(MONTH_MARKER):
        cleaned = cleaned[:-len(MONTH_MARKER)].strip()

    if not _DIGITS.fullmatch(cleaned):
        return None

    month = int(cleaned)
    if 1 <= month <= 12:
        return month
    return None


def _collect(tokens: Iterable[str]) -> FrozenSet[int]:
    months = (_parse_month_token(token) for token in tokens)
    return frozenset(m for m in months if m is not None)


def _split_on_commas(text: str) -> FrozenSet[int]:
    normalized = text
    for separator in MONTH_LIST_SEPARATORS[1:]:
        normalized = normalized.replace(separator, MONTH_LIST_SEPARATORS[0])
    return _collect(normalized.split(MONTH_LIST_SEPARATORS[0]))


def _split_on_slash(text: str) -> FrozenSet[int]:
    return _collect(text.split("/"))


def _single_month(text: str) -> FrozenSet[int]:
    return _collect([text])


def _has_comma(text: str) -> bool:
    return any(separator in text for separator in MONTH_LIST_SEPARATORS)


def _has_slash(text: str) -> bool:
    return "/" in text


def _always(text: str) -> bool:
    return True


# (name, applies, extract) - first rule whose predicate matches wins
_RULES: Tuple[Tuple[str, Callable[[str], bool], Callable[[str], FrozenSet[int]]], ...] = (
    ("comma list", _has_comma, _split_on_commas),
    ("slash list", _has_slash, _split_on_slash),
    ("single month", _always, _single_month),
)


def parse_months(text: Optional[str]) -> DividendSchedule:
    """
    Parse a dividend-month specification.

    Args:
        text: Free text as entered by the user (may be None or blank)

    Returns:
        DividendSchedule. payment_count is the number of distinct months,
        or DEFAULT_PAYMENT_COUNT when the text is blank or yields no
        valid month. A single valid month therefore means one payment
        while unparseable text means two.
    """
    if text is None or not text.strip():
        return DEFAULT_SCHEDULE

    for name, applies, extract in _RULES:
        if applies(text):
            months = extract(text)
            logger.debug(f"Dividend months {text!r} read as {name}: {sorted(months)}")
            break
    else:
        months = frozenset()

    if not months:
        logger.debug(f"Unparseable dividend months {text!r}, using default schedule")
        return DEFAULT_SCHEDULE

    return DividendSchedule(months=months, payment_count=max(len(months), 1))
