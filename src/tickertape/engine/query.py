"""Query analysis for context-aware data compaction.

Extracts years, date ranges, relative time periods, tickers and calculation
intent from a free-text query so the compactor can keep the data points the
query is actually about.

All functions here are pure. Anything relative to "now" takes an optional
``now`` argument; when omitted the current local time is used.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import MINYEAR, datetime, timedelta, timezone

# Keywords suggesting the answer needs a complete series for calculations
CALCULATION_KEYWORDS: tuple[str, ...] = (
    "return", "returns", "cagr", "annualized", "growth rate",
    "volatility", "standard deviation", "sharpe", "beta", "alpha",
    "correlation", "moving average", "ma", "sma", "ema",
    "trend", "regression", "performance", "compare", "comparison",
    "drawdown", "max drawdown", "high", "low", "range",
    "ytd", "mtd", "qtd", "year to date", "month to date",
    "total return", "price return", "cumulative",
)

COMMON_TICKERS: frozenset[str] = frozenset({
    "AAPL", "MSFT", "GOOGL", "GOOG", "AMZN", "META", "NVDA", "TSLA",
    "AMD", "INTC", "IBM", "ORCL", "CRM", "ADBE", "NFLX", "PYPL",
    "SPY", "QQQ", "IWM", "DIA", "VTI", "VOO", "ARKK",
    "JPM", "BAC", "WFC", "GS", "MS", "C", "V", "MA", "AXP",
    "JNJ", "PFE", "UNH", "MRK", "ABBV", "LLY", "BMY",
    "XOM", "CVX", "COP", "SLB", "OXY",
    "DIS", "CMCSA", "T", "VZ", "TMUS",
    "WMT", "COST", "TGT", "HD", "LOW", "NKE", "SBUX",
    "BA", "CAT", "GE", "HON", "MMM", "UPS", "FDX",
    "BTC", "ETH", "BNB", "XRP", "SOL", "ADA", "DOGE",
})

# Uppercase words that match the ticker pattern but are not tickers
TICKER_EXCLUSIONS: frozenset[str] = frozenset({
    "THE", "AND", "FOR", "NOT", "ARE", "BUT", "HAS", "HAD", "WAS", "CAN",
    "ALL", "HER", "HIS", "ITS", "OUR", "WHO", "HOW", "WHY", "DID", "GET",
    "NOW", "NEW", "OLD", "TOP", "LOW", "HIGH", "USD", "EUR", "GBP", "JPY",
    "YTD", "MTD", "QTD", "TTM", "MOM", "YOY", "QOQ", "API", "IPO", "CEO",
    "CFO", "COO", "CTO", "GDP", "CPI", "PPI", "PMI", "PCE", "FED", "SEC",
    "FCF", "EPS", "ROE", "ROA", "ROI", "PER", "DAY", "FY23", "FY24", "FY25",
})

_YEAR_PATTERN = re.compile(r"\b(19[89]\d|20[0-3]\d)\b")
_FISCAL_YEAR_PATTERN = re.compile(r"\bFY['’]?(\d{4}|\d{2})\b", re.IGNORECASE)
_TICKER_PATTERN = re.compile(r"\b([A-Z]{1,5})\b")
_DOLLAR_TICKER_PATTERN = re.compile(r"\$([A-Z]{1,5})\b")

_RANGE_ENDPOINT = r"(\d{4}[-/]\d{1,2}[-/]\d{1,2}|\w+\s+\d{1,2},?\s+\d{4}|\d{4})"
_RANGE_PATTERN = re.compile(
    rf"(?:from|between)\s+{_RANGE_ENDPOINT}\s+(?:to|and)\s+{_RANGE_ENDPOINT}",
    re.IGNORECASE,
)
_RELATIVE_RANGE_PATTERN = re.compile(
    r"(?:past|last)\s+(\d+)\s+(year|month|week|day)s?", re.IGNORECASE
)

_PERIOD_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"past\s+\d+\s+(?:year|month|week|day)s?",
        r"last\s+\d+\s+(?:year|month|week|day)s?",
        r"\d+[-\s]?year",
        r"ytd|year[\s-]?to[\s-]?date",
        r"mtd|month[\s-]?to[\s-]?date",
        r"qtd|quarter[\s-]?to[\s-]?date",
        r"ttm|trailing\s+twelve\s+months?",
        r"last\s+(?:quarter|q[1-4])",
        r"(?:q[1-4]|first|second|third|fourth)\s+quarter",
        r"\bq[1-4]\b",
        r"all[\s-]?time",
        r"since\s+(?:inception|ipo|listing)",
    )
)
_KEYWORD_PERIODS = ("yesterday", "today", "this week", "this month", "this year")

_DATE_PREFIX = re.compile(r"^\d{4}[-/]\d{1,2}[-/]\d{1,2}")
_BARE_YEAR = re.compile(r"\d{4}")
_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%Y%m%dT%H%M%S",
    "%Y%m%dT%H%M",
    "%Y-%m",
    "%Y/%m",
)


@dataclass(frozen=True)
class DateRange:
    """An explicit or relative date span mentioned in a query."""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class QueryContext:
    """Temporal and entity context extracted from a query.

    Attributes:
        years: Specific years mentioned, sorted and unique.
        date_ranges: Explicit ("from A to B") and relative ("past 2 years") spans.
        time_periods: Period phrases such as "ytd" or "last quarter".
        tickers: Stock tickers mentioned.
        requires_full_data: Whether the query likely needs a complete series.
        calculation_keywords: Keywords suggesting calculations are needed.
    """

    years: tuple[int, ...] = ()
    date_ranges: tuple[DateRange, ...] = ()
    time_periods: tuple[str, ...] = ()
    tickers: tuple[str, ...] = ()
    requires_full_data: bool = False
    calculation_keywords: tuple[str, ...] = ()


def analyze_query(query: str, *, now: datetime | None = None) -> QueryContext:
    """Analyze a query to extract context for smart data compaction.

    Args:
        query: Free-text user query.
        now: Reference instant for relative periods ("past 2 years").

    Returns:
        An immutable QueryContext.
    """
    now = now or datetime.now()
    lowered = query.lower()

    years = _extract_years(query)
    date_ranges = _extract_date_ranges(query, now)
    time_periods = _extract_time_periods(query)
    tickers = _extract_tickers(query)
    calculation_keywords = tuple(kw for kw in CALCULATION_KEYWORDS if kw in lowered)

    requires_full_data = (
        bool(calculation_keywords)
        or any(
            "year" in p or "annual" in p or "all time" in p or "all-time" in p
            for p in time_periods
        )
        or len(years) > 1
        or bool(date_ranges)
    )

    return QueryContext(
        years=years,
        date_ranges=date_ranges,
        time_periods=time_periods,
        tickers=tickers,
        requires_full_data=requires_full_data,
        calculation_keywords=calculation_keywords,
    )


def _extract_years(query: str) -> tuple[int, ...]:
    years = {int(m.group(1)) for m in _YEAR_PATTERN.finditer(query)}
    for match in _FISCAL_YEAR_PATTERN.finditer(query):
        year = int(match.group(1))
        if year < 100:
            year += 2000 if year < 50 else 1900
        years.add(year)
    return tuple(sorted(years))


def _extract_date_ranges(query: str, now: datetime) -> tuple[DateRange, ...]:
    ranges: list[DateRange] = []

    for match in _RANGE_PATTERN.finditer(query):
        start = parse_date(match.group(1))
        end = parse_date(match.group(2))
        if start is not None and end is not None:
            ranges.append(DateRange(start=start, end=end))

    for match in _RELATIVE_RANGE_PATTERN.finditer(query):
        amount = int(match.group(1))
        unit = match.group(2).lower()
        ranges.append(DateRange(start=_shift_back(now, unit, amount), end=now))

    return tuple(ranges)


def _extract_time_periods(query: str) -> tuple[str, ...]:
    lowered = query.lower()
    periods: list[str] = []
    for pattern in _PERIOD_PATTERNS:
        periods.extend(m.group(0).lower() for m in pattern.finditer(query))
    periods.extend(kw for kw in _KEYWORD_PERIODS if kw in lowered)
    return tuple(dict.fromkeys(periods))


def _extract_tickers(query: str) -> tuple[str, ...]:
    tickers: list[str] = [
        m.group(1)
        for m in _TICKER_PATTERN.finditer(query)
        if m.group(1) in COMMON_TICKERS and m.group(1) not in TICKER_EXCLUSIONS
    ]
    tickers.extend(m.group(1) for m in _DOLLAR_TICKER_PATTERN.finditer(query))
    return tuple(dict.fromkeys(tickers))


def _shift_back(moment: datetime, unit: str, amount: int) -> datetime:
    """Move *moment* back by *amount* calendar units, clamping the day of month.

    Shifts past the earliest representable date return ``datetime.min``.
    """
    try:
        if unit == "day":
            return moment - timedelta(days=amount)
        if unit == "week":
            return moment - timedelta(weeks=amount)
    except OverflowError:
        return datetime.min
    months = amount * 12 if unit == "year" else amount
    index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(index, 12)
    if year < MINYEAR:
        return datetime.min
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def parse_date(value: str) -> datetime | None:
    """Leniently parse a date string.

    Accepts ISO 8601 (with optional time and offset), ``YYYY/MM/DD``,
    long-form dates ("January 5, 2024"), compact timestamps
    ("20240115T1230"), ``YYYY-MM`` and bare years. Offset-aware values are
    converted to naive UTC so they compare with naive values.

    Returns:
        The parsed datetime, or None if the value is not recognizable.
    """
    text = value.strip()
    if not text:
        return None

    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        cleaned = " ".join(text.replace(",", " ").split())
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(cleaned, fmt)
                break
            except ValueError:
                continue
        if parsed is None and _BARE_YEAR.fullmatch(text) and int(text) >= MINYEAR:
            parsed = datetime(int(text), 1, 1)

    if parsed is not None and parsed.tzinfo is not None:
        try:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        except (OverflowError, ValueError):
            return None
    return parsed


def looks_like_date(value: str) -> bool:
    """Return True if *value* starts like a calendar date or parses as one."""
    return bool(_DATE_PREFIX.match(value)) or parse_date(value) is not None


def is_date_relevant(
    date_str: str,
    context: QueryContext,
    tolerance_years: int = 1,
    *,
    now: datetime | None = None,
) -> bool:
    """Check whether a date falls within the query's relevant years or ranges.

    Unparseable dates are kept. With no explicit years or ranges in the
    context, only the last three years count as relevant.
    """
    date = parse_date(date_str)
    if date is None:
        return True

    year = date.year

    if not context.years and not context.date_ranges:
        current_year = (now or datetime.now()).year
        return year >= current_year - 3

    if any(abs(year - y) <= tolerance_years for y in context.years):
        return True

    for date_range in context.date_ranges:
        start_year = date_range.start.year - tolerance_years
        end_year = date_range.end.year + tolerance_years
        if start_year <= year <= end_year:
            return True

    return False


def get_min_relevant_date(context: QueryContext, *, now: datetime | None = None) -> datetime:
    """Return the earliest date that should be kept for this query.

    Defaults to two years before now, pulled earlier by the earliest range
    start or the earliest explicit year.
    """
    min_date = _shift_back(now or datetime.now(), "year", 2)

    if context.date_ranges:
        earliest = min(r.start for r in context.date_ranges)
        if earliest < min_date:
            min_date = earliest

    if context.years:
        year_date = datetime(min(context.years), 1, 1)
        if year_date < min_date:
            min_date = year_date

    return min_date
