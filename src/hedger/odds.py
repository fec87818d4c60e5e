"""Odds normalisation helpers.

Every odds notation a bettor might type is parsed into canonical American
odds. Downstream fee and solver code only ever sees American odds, so the
notation a wager was entered in never leaks past this module.

Supported notations, in detection order:
    25%      percent (implied probability)
    25c/25k  contract cents (1-99)
    5/2      fractional
    2.5/0.25 decimal odds, or a contract price when below 1
    +150     explicitly signed American
    even/ev  even money
    150      bare integer (1-99 cents, 100 even, >=101 American)
"""

import logging
import math
import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

log = logging.getLogger(__name__)

EVEN_MONEY = 100
SIGN_CHOICES = ("+", "-")

_DASHES = re.compile("[−–—]")
_WHITESPACE = re.compile(r"\s+")
_SIGNED_INT = re.compile(r"^[+-]\d+$")
_BARE_INT = re.compile(r"^\d+$")
_DECIMAL_WITH_CENTS = re.compile(r"\d*\.\d*[ck]$")
_PERCENT_WITH_CENTS = re.compile(r"\d+%[ck]")


class OddsFormat(str, Enum):
    """Display notations supported by format_odds."""

    AMERICAN = "american"
    DECIMAL = "decimal"
    CONTRACT = "kalshi"
    PERCENT = "percent"


class OddsError(Enum):
    """Reason an odds string was rejected."""

    MIXED_FORMAT = "Invalid format: mixed tokens"
    AMERICAN_RANGE = "American odds must be ≤-100 or ≥+100"
    INVALID_DECIMAL = "Decimal 1.00 is invalid"
    CONTRACT_BOUND = "Contract cents must be between 1c and 99c"
    NEGATIVE_DECIMAL = "Negative decimal is invalid"
    UNPARSEABLE = "Invalid odds format"

    @property
    def message(self) -> str:
        return self.value


@dataclass(frozen=True)
class ParsedOdds:
    """Canonical odds plus the notation they were recognised as."""

    american: float | None
    kind: str | None = None

    @property
    def is_contract_price(self) -> bool:
        return self.american is not None and self.kind in ("cents", "price", "bare_cents")


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------


def to_decimal(american: float) -> float:
    """Convert American odds to decimal odds.

    Raises:
        ValueError: If odds are zero or not finite.
    """
    if american == 0 or not math.isfinite(american):
        raise ValueError(f"bad odds: {american}")
    return 1 + american / 100 if american > 0 else 1 + 100 / abs(american)


def to_american(decimal: float) -> int:
    """Convert decimal odds to American odds.

    Even money (2.0, within 1e-6) maps to exactly +100 so that repeated
    conversions do not drift.

    Raises:
        ValueError: If decimal odds are not finite or not greater than 1.
    """
    if not math.isfinite(decimal) or decimal <= 1:
        raise ValueError(f"Invalid decimal odds: {decimal}")
    if abs(decimal - 2.0) < 1e-6:
        return EVEN_MONEY
    american = (decimal - 1) * 100 if decimal > 2 else -100 / (decimal - 1)
    if not math.isfinite(american):
        raise ValueError(f"Decimal odds out of range: {decimal}")
    return round(american)


def implied_probability(american: float) -> float:
    """Implied win probability (0-1) of American odds."""
    if not math.isfinite(american):
        raise ValueError(f"Invalid American odds: {american}")
    if american >= 100:
        return 100 / (american + 100)
    return abs(american) / (abs(american) + 100)


def profit_per_dollar(american: float) -> float:
    """Profit won per $1 staked at American odds."""
    if american == 0 or not math.isfinite(american):
        raise ValueError(f"Invalid American odds: {american}")
    return american / 100 if american > 0 else 100 / abs(american)


def probability_to_american(p: float) -> int:
    """Convert an implied probability in (0, 1) to American odds.

    Uses round() rather than truncation; exactly 0.5 is even money.

    Raises:
        ValueError: If p is outside (0, 1) or too close to either end to
            give finite odds.
    """
    if not 0 < p < 1:
        raise ValueError(f"Probability must be in (0, 1), got {p}")
    if abs(p - 0.5) < 1e-6:
        return EVEN_MONEY
    american = -(p / (1 - p)) * 100 if p > 0.5 else ((1 - p) / p) * 100
    if not math.isfinite(american):
        raise ValueError(f"Probability too extreme for American odds: {p}")
    return round(american)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _to_float(s: str) -> float | None:
    try:
        value = float(s)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _normalize(raw: object) -> str:
    t = str(raw).strip().lower()
    t = _DASHES.sub("-", t)
    return _WHITESPACE.sub("", t)


def _is_mixed(t: str) -> bool:
    has_percent = "%" in t
    has_cents = t.endswith(("c", "k"))
    has_fraction = "/" in t
    if sum((has_percent, has_cents, has_fraction)) > 1:
        return True
    return bool(_DECIMAL_WITH_CENTS.search(t) or _PERCENT_WITH_CENTS.search(t))


def _parse_percent(t: str, sign: str) -> ParsedOdds | None:
    percent = _to_float(t[:-1])
    if percent is None or percent <= 0 or percent >= 100:
        return None
    return ParsedOdds(probability_to_american(percent / 100), "percent")


def _parse_cents(t: str, sign: str) -> ParsedOdds | None:
    cents = _to_float(t[:-1])
    if cents is None or cents <= 0 or cents >= 100:
        return None
    return ParsedOdds(probability_to_american(cents / 100), "cents")


def _parse_fraction(t: str, sign: str) -> ParsedOdds | None:
    parts = t.split("/")
    if len(parts) != 2:
        return None
    num, den = _to_float(parts[0]), _to_float(parts[1])
    if num is None or den is None or num <= 0 or den <= 0:
        return None
    decimal = 1 + num / den
    if not math.isfinite(decimal) or decimal <= 1:
        return None
    return ParsedOdds(to_american(decimal), "fraction")


def _parse_decimal(t: str, sign: str) -> ParsedOdds | None:
    if t.startswith("-"):
        return None
    value = _to_float(t)
    if value is None or value <= 0:
        return None
    if value < 1:
        return ParsedOdds(probability_to_american(value), "price")
    if value == 1:
        return None
    return ParsedOdds(to_american(value), "decimal")


def _parse_signed(t: str, sign: str) -> ParsedOdds | None:
    if not _SIGNED_INT.match(t):
        return None
    american = int(t)
    if abs(american) == EVEN_MONEY:
        return ParsedOdds(EVEN_MONEY, "american")
    if -100 < american < 100:
        return None
    return ParsedOdds(american, "american")


def _parse_token(t: str, sign: str) -> ParsedOdds | None:
    return ParsedOdds(EVEN_MONEY, "even")


def _parse_bare(t: str, sign: str) -> ParsedOdds | None:
    num = int(t)
    if num <= 0:
        return None
    if num <= 99:
        return ParsedOdds(probability_to_american(num / 100), "bare_cents")
    if num == 100:
        return ParsedOdds(EVEN_MONEY, "american")
    return ParsedOdds(-num if sign == "-" else num, "american")


# Ordered (name, predicate, parser) rules. The first matching predicate owns
# the input: if its parser rejects it, later rules are not consulted.
_RULES: tuple[tuple[str, Callable[[str], bool], Callable[[str, str], ParsedOdds | None]], ...] = (
    ("percent", lambda t: t.endswith("%"), _parse_percent),
    ("cents", lambda t: t.endswith(("c", "k")), _parse_cents),
    ("fraction", lambda t: "/" in t, _parse_fraction),
    ("decimal", lambda t: "." in t, _parse_decimal),
    ("signed", lambda t: t.startswith(("+", "-")), _parse_signed),
    ("token", lambda t: t in ("even", "ev"), _parse_token),
    ("bare", lambda t: bool(_BARE_INT.match(t)), _parse_bare),
)


def parse_with_kind(raw: object, sign_preference: str = "+") -> ParsedOdds:
    """Parse an odds string and report which notation it was read as.

    Args:
        raw: Raw user input. None and blank strings parse to nothing.
        sign_preference: "+" or "-", the sign given to bare integers >= 101.

    Returns:
        ParsedOdds with american=None when the input is rejected.
    """
    if sign_preference not in SIGN_CHOICES:
        raise ValueError(f"sign_preference must be '+' or '-', got {sign_preference!r}")
    if raw is None:
        return ParsedOdds(None)
    t = _normalize(raw)
    if not t or t == "-":
        return ParsedOdds(None)
    if _is_mixed(t):
        log.debug("Rejected mixed-format odds %r", raw)
        return ParsedOdds(None)

    for name, matches, parser in _RULES:
        if matches(t):
            try:
                parsed = parser(t, sign_preference)
            except ValueError as e:
                log.debug("Rejected %s odds %r: %s", name, raw, e)
                return ParsedOdds(None)
            if parsed is None:
                log.debug("Rejected %s odds %r", name, raw)
                return ParsedOdds(None)
            return parsed
    log.debug("Unrecognised odds %r", raw)
    return ParsedOdds(None)


def parse(raw: object, sign_preference: str = "+") -> float | None:
    """Parse odds in any supported notation into canonical American odds.

    Returns None for anything that cannot be parsed; never raises on bad input.
    """
    return parse_with_kind(raw, sign_preference).american


def validate(raw: object, sign_preference: str = "+") -> OddsError | None:
    """Explain why an odds string is rejected, or None if it is acceptable.

    Empty input is treated as "not entered yet" and is not an error.
    """
    if raw is None or str(raw).strip() == "":
        return None
    t = _normalize(raw)

    if _is_mixed(t):
        return OddsError.MIXED_FORMAT
    if _SIGNED_INT.match(t) and -100 < int(t) < 100:
        return OddsError.AMERICAN_RANGE
    if "." in t and not t.startswith("-") and _to_float(t) == 1:
        return OddsError.INVALID_DECIMAL
    if t.endswith(("c", "k")):
        cents = _to_float(t[:-1])
        if cents is not None and (cents <= 0 or cents >= 100):
            return OddsError.CONTRACT_BOUND
    if t.startswith("-") and "." in t:
        value = _to_float(t)
        if value is not None and value < 0:
            return OddsError.NEGATIVE_DECIMAL

    if parse(raw, sign_preference) is None:
        return OddsError.UNPARSEABLE
    return None


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------


def _plain_number(x: float) -> str:
    if float(x).is_integer():
        return str(int(x))
    return repr(float(x))


def format_odds(american: float | None, fmt: OddsFormat | str) -> str:
    """Render canonical American odds in a display notation.

    Returns an empty string for missing or non-finite odds.
    """
    if american is None or not math.isfinite(american):
        return ""
    fmt = OddsFormat(fmt)

    if fmt is OddsFormat.AMERICAN:
        text = _plain_number(american)
        return f"+{text}" if american > 0 else text
    if fmt is OddsFormat.DECIMAL:
        return f"{to_decimal(american):.2f}"
    p = implied_probability(american)
    if fmt is OddsFormat.CONTRACT:
        return f"{round(p * 100)}c"
    return f"{p * 100:.1f}%"
