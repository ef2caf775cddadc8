"""Extract dated events from academic calendar text.

Calendars arrive as loosely formatted Turkish/English text, one event per
line, e.g.::

    15-19 Eylül 2025      Ders Kayıtları
    29 Ekim 2025          Cumhuriyet Bayramı
    19 Aralık 2025 - 3 Ocak 2026   Yarıyıl Tatili

Each line is matched against three date shapes in priority order, the date
text is cut out to form the event name, and the name is classified through
ordered keyword tables. Undated lines below a dated one (Word tables, one
cell per line) become events of that date. The output depends only on the
text and the academic year.
"""
import logging
import re
import unicodedata
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Callable

from calendar_app.core.validators import parse_academic_year

logger = logging.getLogger(__name__)


def fold(text: str) -> str:
    """Lowercase and strip diacritics so "KAYIT", "Kayıt" and "kayit" compare equal."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower().replace("ı", "i")


# ── Month names ──────────────────────────────────────────────────────────────

_MONTH_NAMES = {
    1: ("ocak", "oca", "january", "jan"),
    2: ("şubat", "şub", "february", "feb"),
    3: ("mart", "mar", "march"),
    4: ("nisan", "nis", "april", "apr"),
    5: ("mayıs", "may"),
    6: ("haziran", "haz", "june", "jun"),
    7: ("temmuz", "tem", "july", "jul"),
    8: ("ağustos", "ağu", "august", "aug"),
    9: ("eylül", "eyl", "september", "sept", "sep"),
    10: ("ekim", "eki", "october", "oct"),
    11: ("kasım", "kas", "november", "nov"),
    12: ("aralık", "ara", "december", "dec"),
}

# Keys are folded, which also covers the diacritic-free spellings (subat, eylul, ...)
MONTHS: dict[str, int] = {
    fold(name): number for number, names in _MONTH_NAMES.items() for name in names
}


def resolve_month(word: str) -> int | None:
    return MONTHS.get(fold(word).rstrip("."))


# ── Date patterns ────────────────────────────────────────────────────────────

_DAY = r"(?<!\d)(\d{1,2})"
_MONTH = r"([^\W\d_]+\.?)"
_YEAR = r"(\d{4})(?!\d)"
_DASH = r"\s*[-–—]\s*"

RANGE_SAME_MONTH_RE = re.compile(rf"{_DAY}{_DASH}(\d{{1,2}})\s+{_MONTH}\s+{_YEAR}")
SINGLE_DATE_RE = re.compile(rf"{_DAY}\s+{_MONTH}\s+{_YEAR}")
CROSS_MONTH_RANGE_RE = re.compile(
    rf"{_DAY}\s+{_MONTH}\s+{_YEAR}{_DASH}(\d{{1,2}})\s+{_MONTH}\s+{_YEAR}"
)


@dataclass(frozen=True)
class DateMatch:
    start_date: date
    end_date: date
    span: tuple[int, int]
    method: str


def _safe_date(year: str, month_word: str, day: str) -> date | None:
    month = resolve_month(month_word)
    if month is None:
        return None
    try:
        return date(int(year), month, int(day))
    except ValueError:
        return None


def _match_same_month_range(line: str) -> DateMatch | None:
    for m in RANGE_SAME_MONTH_RE.finditer(line):
        start = _safe_date(m.group(4), m.group(3), m.group(1))
        end = _safe_date(m.group(4), m.group(3), m.group(2))
        if start and end:
            return DateMatch(start, end, m.span(), "range_same_month")
    return None


def _match_single_date(line: str) -> DateMatch | None:
    # Either endpoint of a full cross-month range is not a single date
    taken = [m.span() for m in CROSS_MONTH_RANGE_RE.finditer(line)]
    for m in SINGLE_DATE_RE.finditer(line):
        if any(lo <= m.start() < hi for lo, hi in taken):
            continue
        day = _safe_date(m.group(3), m.group(2), m.group(1))
        if day:
            return DateMatch(day, day, m.span(), "single_date")
    return None


def _match_cross_month_range(line: str) -> DateMatch | None:
    for m in CROSS_MONTH_RANGE_RE.finditer(line):
        start = _safe_date(m.group(3), m.group(2), m.group(1))
        end = _safe_date(m.group(6), m.group(5), m.group(4))
        if start and end:
            return DateMatch(start, end, m.span(), "cross_month_range")
    return None


DATE_MATCHERS: tuple[Callable[[str], DateMatch | None], ...] = (
    _match_same_month_range,
    _match_single_date,
    _match_cross_month_range,
)


def match_date(line: str) -> DateMatch | None:
    """First matcher that resolves wins; results are never combined."""
    for matcher in DATE_MATCHERS:
        found = matcher(line)
        if found is not None:
            return found
    return None


# ── Decorative lines ─────────────────────────────────────────────────────────

_BORDER_PATTERNS = (
    re.compile(r"^\+[-=+]+\+$"),
    re.compile(r"^\|[\s|]*\|$"),
    re.compile(r"^[-=_*~#+]{3,}"),
    re.compile(r"^[\W_]+$"),
)

# Matched against folded text
_HEADING_PATTERNS = (
    re.compile(r"akademik\s+takvim"),
    re.compile(r"academic\s+calendar"),
    re.compile(r"lisans.*programlari"),
    re.compile(r"undergraduate.*programs"),
    re.compile(r"^(fall|spring|summer)\s+(semester|term)\b[\s\d-]*$"),
    re.compile(r"^(guz|bahar|yaz)\s+(yariyili|donemi|okulu)\b[\s\d-]*$"),
    re.compile(r"^summer\s+school\b[\s\d-]*$"),
)

_FORMATTING_ONLY = re.compile(
    r"^([\s*|+\-=]+|baslik|header|title|gun|day|date|tarih|olay|event|etkinlik)$"
)


def is_decorative(line: str, has_date: bool | None = None) -> bool:
    """Banner borders, table rules and section titles never carry events.

    Heading patterns only apply to lines without a date, so "15 Mayıs 2026
    Akademik Takvim Komisyonu" stays an event.
    """
    if any(p.search(line) for p in _BORDER_PATTERNS):
        return True
    if has_date is None:
        has_date = match_date(line) is not None
    if has_date:
        return False
    folded = fold(line)
    if any(p.search(folded) for p in _HEADING_PATTERNS):
        return True
    letters = [ch for ch in line if ch.isalpha()]
    has_digit = any(ch.isdigit() for ch in line)
    return len(letters) >= 4 and not has_digit and line.upper() == line


def clean_event_name(text: str) -> str:
    text = text.replace("*", "").replace("|", " ")
    text = re.sub(r"\s+", " ", text)
    return text.strip(" \t-–—*")


# ── Classification tables ────────────────────────────────────────────────────

Predicate = Callable[[str], bool]


def contains_any(*keywords: str) -> Predicate:
    folded = tuple(fold(k) for k in keywords)
    return lambda text: any(k in text for k in folded)


HOLIDAY_KEYWORDS = contains_any(
    "bayram", "tatil", "holiday", "break", "yılbaşı", "yeni yıl", "new year", "noel", "christmas",
)
BLOCKING_KEYWORDS = contains_any(
    "holiday", "tatil", "bayram", "break",
    "christmas", "noel",
    "republic day", "cumhuriyet",
    "new year", "yeni yıl", "yılbaşı",
    "memorial day", "atatürk",
    "national sovereignty", "ulusal egemenlik",
    "labor day", "labour day", "emek ve dayanışma",
    "peace and freedom", "barış ve özgürlük",
    "victory day", "zafer",
)
NEGATION_PHRASES = contains_any(
    "attendance will be taken", "yoklama alınacak",
    "not an official holiday", "resmi tatil değil",
    "application", "başvuru",
    "submission", "teslim",
    "announcement", "açıklanması", "duyuru",
    "registration", "kayıt",
    "orientation", "oryantasyon",
    "exam", "sınav",
    "first day", "last day", "derslerin",
    "course selection", "ders seçim",
)

# (predicate, event_type); first match wins
EVENT_TYPE_RULES: tuple[tuple[Predicate, str], ...] = (
    (HOLIDAY_KEYWORDS, "holiday"),
    (contains_any("sınav", "exam", "midterm", "vize", "bütünleme"), "exam_period"),
    (
        contains_any(
            "kayıt", "registration", "enrolment", "enrollment", "başvuru", "application",
            "ders seçim", "course selection", "add/drop", "add-drop", "ekle-bırak",
        ),
        "registration",
    ),
    (contains_any("oryantasyon", "orientation"), "orientation"),
    (
        contains_any(
            "derslerin başlaması", "derslerin başlangıcı", "classes begin", "classes start",
            "first day of classes", "beginning of classes",
        ),
        "semester_start",
    ),
    (
        contains_any(
            "derslerin son günü", "derslerin sona ermesi", "last day of classes",
            "classes end", "end of classes",
        ),
        "semester_end",
    ),
    (contains_any("mezuniyet", "graduation", "commencement"), "graduation"),
)

# (predicate, affects_request_creation); negation precedes affirmation
AFFECTS_REQUEST_RULES: tuple[tuple[Predicate, bool], ...] = (
    (NEGATION_PHRASES, False),
    (BLOCKING_KEYWORDS, True),
)

RECURRING_RULES: tuple[tuple[Predicate, str], ...] = (
    (contains_any("ramazan", "şeker bayramı", "kurban", "eid"), "religious_holiday"),
    (
        contains_any(
            "cumhuriyet", "republic day", "atatürk", "ulusal egemenlik", "national sovereignty",
            "zafer bayramı", "victory day", "emek ve dayanışma", "labor day", "labour day",
            "demokrasi ve milli birlik", "democracy and national unity",
        ),
        "national_holiday",
    ),
    (contains_any("yeni yıl", "yılbaşı", "new year", "noel", "christmas"), "international_holiday"),
)

HIGH_PRIORITY_TYPES = {"holiday", "exam_period", "semester_start", "semester_end"}

# extraction_method of events taken from an undated line under a dated one
GROUPED_METHOD = "grouped_line"


def _first_result(rules, text: str, default):
    for predicate, result in rules:
        if predicate(text):
            return result
    return default


def classify_event_type(text: str) -> str:
    return _first_result(EVENT_TYPE_RULES, fold(text), "academic_event")


def affects_request_creation(text: str) -> bool:
    return _first_result(AFFECTS_REQUEST_RULES, fold(text), False)


def recurring_type(event_name: str) -> str:
    return _first_result(RECURRING_RULES, fold(event_name), "none")


def priority_level(event_type: str) -> str:
    return "high" if event_type in HIGH_PRIORITY_TYPES else "medium"


# ── Extraction ───────────────────────────────────────────────────────────────

@dataclass
class ExtractedEvent:
    event_type: str
    event_name: str
    start_date: date
    end_date: date
    is_recurring: bool
    recurring_type: str
    affects_request_creation: bool
    description: str
    priority_level: str
    source_line: str
    extraction_method: str


@dataclass
class ExtractionSummary:
    total: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    blocking: int = 0
    non_blocking: int = 0
    earliest: date | None = None
    latest: date | None = None

    def as_dict(self) -> dict:
        return {
            "total_events": self.total,
            "events_by_type": dict(self.by_type),
            "blocking": self.blocking,
            "non_blocking": self.non_blocking,
            "earliest": self.earliest.isoformat() if self.earliest else None,
            "latest": self.latest.isoformat() if self.latest else None,
        }


@dataclass
class ExtractionResult:
    events: list[ExtractedEvent]
    summary: ExtractionSummary
    lines_scanned: int = 0
    lines_skipped: int = 0


def in_academic_year(found: DateMatch, start_year: int, end_year: int) -> bool:
    if found.start_date > found.end_date:
        return False
    return all(start_year <= d.year <= end_year for d in (found.start_date, found.end_date))


def build_event(name_text: str, found: DateMatch, source_line: str, method: str) -> ExtractedEvent | None:
    event_name = clean_event_name(name_text)
    if len(event_name) <= 3 or not any(ch.isalpha() for ch in event_name):
        return None
    if _FORMATTING_ONLY.match(fold(event_name)):
        return None

    event_type = classify_event_type(source_line)
    recurring = recurring_type(event_name)
    return ExtractedEvent(
        event_type=event_type,
        event_name=event_name,
        start_date=found.start_date,
        end_date=found.end_date,
        is_recurring=recurring != "none",
        recurring_type=recurring,
        affects_request_creation=affects_request_creation(source_line),
        description=f"Extracted from: {source_line}",
        priority_level=priority_level(event_type),
        source_line=source_line,
        extraction_method=method,
    )


def extract_event_from_line(line: str, start_year: int, end_year: int) -> ExtractedEvent | None:
    found = match_date(line)
    if found is None or not in_academic_year(found, start_year, end_year):
        return None
    lo, hi = found.span
    return build_event(line[:lo] + " " + line[hi:], found, line, found.method)


def extract_events(text: str, academic_year: str) -> ExtractionResult:
    """Scan line by line; undated lines inherit the last accepted date range.

    Word tables come out of mammoth one cell per line ("29 Ekim 2025" then
    "Cumhuriyet Bayramı"), so an undated line after a dated one is an event
    of that date. A dated line outside the academic year ends the carry.
    """
    start_year, end_year = parse_academic_year(academic_year)
    events: list[ExtractedEvent] = []
    scanned = skipped = 0
    carried: DateMatch | None = None

    for raw_line in (text or "").splitlines():
        line = raw_line.strip()
        if not line:
            continue
        scanned += 1
        found = match_date(line)
        if is_decorative(line, has_date=found is not None):
            skipped += 1
            continue

        if found is not None:
            carried = found if in_academic_year(found, start_year, end_year) else None
            if carried is None:
                continue
            lo, hi = found.span
            event = build_event(line[:lo] + " " + line[hi:], found, line, found.method)
        elif carried is not None:
            event = build_event(line, carried, line, GROUPED_METHOD)
        else:
            continue
        if event is not None:
            events.append(event)

    summary = summarize(events)
    logger.info(
        "Extracted %d events for %s from %d lines (%d decorative); %d blocking",
        summary.total, academic_year, scanned, skipped, summary.blocking,
    )
    return ExtractionResult(events=events, summary=summary, lines_scanned=scanned, lines_skipped=skipped)


def summarize(events: list[ExtractedEvent]) -> ExtractionSummary:
    if not events:
        return ExtractionSummary()
    blocking = sum(1 for e in events if e.affects_request_creation)
    return ExtractionSummary(
        total=len(events),
        by_type=dict(Counter(e.event_type for e in events)),
        blocking=blocking,
        non_blocking=len(events) - blocking,
        earliest=min(e.start_date for e in events),
        latest=max(e.end_date for e in events),
    )
