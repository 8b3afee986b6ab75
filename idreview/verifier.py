# idreview/verifier.py
import re
import unicodedata

from idreview.models import MatchResult

DATE_PATTERN = re.compile(
    r"\b\d{1,2}[/.\-]\d{1,2}[/.\-]\d{2,4}\b"
    r"|\b\d{4}[/.\-]\d{1,2}[/.\-]\d{1,2}\b",
    re.ASCII,
)
DATE_SEPARATORS = re.compile(r"[/.\-]")
NON_ALNUM = re.compile(r"[^a-z\d\s]", re.ASCII)
WHITESPACE = re.compile(r"\s+")

FULL_MATCH = "full_match"
PARTIAL_MATCH = "partial_match"
NO_MATCH = "no_match"

BADGE_LABELS = {
    FULL_MATCH: "All fields match",
    PARTIAL_MATCH: "Partial match, review manually",
    NO_MATCH: "No match",
}


def normalize_text(text):
    """
    Makes OCR output and profile fields comparable: lower case, no accents,
    no punctuation, single spaces.
    """
    if not text:
        return ""

    decomposed = unicodedata.normalize("NFD", str(text).lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    cleaned = NON_ALNUM.sub(" ", stripped)
    return WHITESPACE.sub(" ", cleaned).strip()


def extract_date(text):
    """
    Returns the first date found in the text as YYYY-MM-DD, or None.

    A leading 4-digit group is read as year-month-day, anything else as
    day-month-year. Two-digit years always land in the 2000s and the
    numbers are not range checked.
    """
    if not text:
        return None

    match = DATE_PATTERN.search(text)
    if not match:
        return None

    found = match.group(0)
    first, second, third = (int(part) for part in DATE_SEPARATORS.split(found))
    if re.match(r"\d{4}", found):
        year, month, day = first, second, third
    else:
        day, month, year = first, second, third
        if year < 100:
            year += 2000

    return f"{year}-{month:02d}-{day:02d}"


def badge_for(score):
    if score >= 3:
        return FULL_MATCH
    if score >= 1:
        return PARTIAL_MATCH
    return NO_MATCH


class Verifier:
    """Compares recognized document text with a request's ground truth."""

    def contains_name(self, normalized_text, value):
        if not value:
            return False
        # Plain containment: "mario" is found inside an OCR token like "mariox"
        return normalize_text(value) in normalized_text

    def match(self, recognized_text, request):
        normalized = normalize_text(recognized_text)

        name_matched = self.contains_name(normalized, request.first_name)
        last_name_matched = self.contains_name(normalized, request.last_name)

        extracted_date = extract_date(recognized_text or "")
        birth_date = request.birth_date[:10] if request.birth_date else None
        date_matched = birth_date is not None and extracted_date == birth_date

        return MatchResult(
            name_matched=name_matched,
            last_name_matched=last_name_matched,
            date_matched=date_matched,
            extracted_date=extracted_date,
            score=int(name_matched) + int(last_name_matched) + int(date_matched),
        )
