"""Due-date normalisation for values proposed by the completion service."""

import logging
import re
from datetime import date, datetime, time

from dateutil import parser as dateutil_parser
from dateutil.relativedelta import relativedelta


logger = logging.getLogger(__name__)

# Words that may surround a date without changing its meaning ("due by Dec 20").
_FILLER_WORDS = frozenset({"by", "on", "due", "the", "of", "before", "until", "this", "at"})

_EXPLICIT_YEAR = re.compile(r"\b\d{4}\b")


def normalize_due_date(value: object, *, today: date | None = None) -> str | None:
    """Normalise a proposed due date to YYYY-MM-DD.

    ISO strings are parsed strictly. Anything else ("friday", "Dec 20") is
    parsed relative to today, and is rejected when parsing had to skip words
    that carry meaning: "in 3 days" would otherwise read as the 3rd of the
    month. A month and day that already passed this year roll over to next
    year. Unparseable or empty values yield None.

    Args:
        value: Raw due date from the completion service
        today: Reference date for relative expressions (defaults to today)

    Returns:
        Normalised date string or None
    """
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text or text.lower() in {"null", "none", "n/a"}:
        return None

    try:
        return dateutil_parser.isoparse(text).date().isoformat()
    except ValueError:
        pass

    reference_day = today or date.today()
    reference = datetime.combine(reference_day, time())
    try:
        parsed, skipped = dateutil_parser.parse(text, default=reference, fuzzy_with_tokens=True)
    except (ValueError, OverflowError):
        logger.warning("due_date_unparseable", extra={"value": text})
        return None

    ignored_words = {word.strip(".,!?").lower() for token in skipped for word in token.split()}
    ignored_words.discard("")
    if ignored_words - _FILLER_WORDS:
        logger.warning("due_date_ambiguous", extra={"value": text, "skipped": sorted(ignored_words)})
        return None

    result = parsed.date()
    if result < reference_day and not _EXPLICIT_YEAR.search(text):
        result += relativedelta(years=1)
    return result.isoformat()


def fallback_due_date(today: date | None = None) -> str:
    """Last-resort due date used when a task must be created without one."""
    return (today or date.today()).isoformat()
