# scouting/parsing/fields.py
import re
from typing import Dict, Iterable, List, Optional, Pattern, Sequence

from loguru import logger

from scouting.models.refresh import ParsedFields
from .regions import ALL_REGIONS

ORDINAL = r"(\d+)(?i:st|nd|rd|th)"

# Labeled rating forms, highest priority first
RATING_PATTERNS = (
    r"\bMHR\s*Rating[:\s]+([0-9]+(?:\.[0-9]+)?)",
    r"\bPower\s*Rating[:\s]+([0-9]+(?:\.[0-9]+)?)",
    r"\bRating[:\s]+([0-9]+(?:\.[0-9]+)?)",
)

LABELED_RECORD = (
    r"\b(?:Overall(?:\s+Record)?|Season(?:\s+Record)?|Record|W[-\s]*L[-\s]*T)"
    r"\s*[:\s]+(\d{1,3})\s*-\s*(\d{1,3})\s*-\s*(\d{1,3})"
)
RECORD_TRIPLET = r"\b(\d{1,3})-(\d{1,3})-(\d{1,3})\b"
YEAR_SUFFIX = re.compile(r"\d{4}[-/]?$")
MAX_RECORD_COMPONENT = 200

NAME_REGION_HINT = re.compile(r"\(([A-Z]{2})\)")


class FieldParser:
    """Pulls rating, record and ranks out of normalized MHR page text.

    Every method is pure: the same text (and hints) always gives the same value.
    Rating is only read from labeled forms; an unlabeled decimal is never taken
    as a rating.
    """

    def __init__(
        self,
        level_pattern: str = r"\d{1,2}U",
        regions: Optional[Dict[str, str]] = None,
    ):
        self.level_pattern = level_pattern
        self.regions = dict(regions if regions is not None else ALL_REGIONS)
        level = f"(?i:{level_pattern})"

        self._rating_rx: List[Pattern[str]] = [
            re.compile(p, re.IGNORECASE) for p in RATING_PATTERNS
        ]
        self._record_labeled_rx = re.compile(LABELED_RECORD, re.IGNORECASE)
        self._record_triplet_rx = re.compile(RECORD_TRIPLET)
        self._national_rx = re.compile(
            rf"{ORDINAL}\s+(?i:USA|United\s+States)\s+{level}\b"
        )
        # Full names match in any case; two-letter codes only in upper case so
        # words like "in" or "on" are never read as Indiana / Ontario.
        self._region_name_rx = [
            re.compile(rf"{ORDINAL}\s+(?i:{_label_pattern(name)})\s+{level}\b")
            for name in self.regions.values()
        ]
        self._region_abbr_rx = [
            re.compile(rf"{ORDINAL}\s+{re.escape(abbr)}\s+{level}\b")
            for abbr in self.regions
        ]
        self._loose_rx = re.compile(
            rf"{ORDINAL}\s+([A-Za-z .'\-()]+?)\s+{level}\b", re.IGNORECASE
        )
        self._level = level

    # --- individual fields -------------------------------------------------

    def parse_rating(self, text: str) -> Optional[float]:
        for rx in self._rating_rx:
            m = rx.search(text)
            if m:
                return float(m.group(1))
        return None

    def parse_record(self, text: str) -> Optional[str]:
        labeled = self._record_labeled_rx.search(text)
        if labeled:
            return "-".join(str(int(g)) for g in labeled.groups())

        best = None
        best_total = 0
        for m in self._record_triplet_rx.finditer(text):
            if YEAR_SUFFIX.search(text[: m.start()]):
                continue  # tail of a date such as 2025-10-01
            parts = [int(g) for g in m.groups()]
            if any(p > MAX_RECORD_COMPONENT for p in parts):
                continue
            total = sum(parts)
            # Most games played is the overall line; earliest wins ties
            if total > best_total:
                best, best_total = parts, total
        if best is None:
            return None
        return "-".join(str(p) for p in best)

    def parse_national_rank(self, text: str) -> Optional[int]:
        m = self._national_rx.search(text)
        return int(m.group(1)) if m else None

    def parse_state_rank(
        self, text: str, hints: Sequence[str] = ()
    ) -> Optional[int]:
        for rx in self._region_name_rx:
            m = rx.search(text)
            if m:
                return int(m.group(1))
        for rx in self._region_abbr_rx:
            m = rx.search(text)
            if m:
                return int(m.group(1))
        for hint in hints:
            if not hint or not str(hint).strip():
                continue
            rx = re.compile(
                rf"{ORDINAL}\s+(?i:{_label_pattern(str(hint))})\s+{self._level}\b"
            )
            m = rx.search(text)
            if m:
                return int(m.group(1))
        for m in self._loose_rx.finditer(text):
            label = m.group(2).strip()
            if re.match(r"USA\b", label, re.IGNORECASE):
                continue
            if re.search(r"United\s+States", label, re.IGNORECASE):
                continue
            return int(m.group(1))
        return None

    # --- combined ----------------------------------------------------------

    def has_rank(self, text: str) -> bool:
        """True when the text already shows a national or state rank."""
        return (
            self.parse_national_rank(text) is not None
            or self.parse_state_rank(text) is not None
        )

    def parse(self, text: str, hints: Sequence[str] = ()) -> ParsedFields:
        fields = ParsedFields(
            rating=self.parse_rating(text),
            record=self.parse_record(text),
            state_rank=self.parse_state_rank(text, hints),
            national_rank=self.parse_national_rank(text),
        )
        logger.debug(f"Parsed fields: {fields.model_dump()} (hints={list(hints)})")
        return fields

    def region_hints_from_name(self, name: Optional[str]) -> List[str]:
        """Known region codes written in parentheses, e.g. 'Stars (TX)' -> ['TX']."""
        if not name:
            return []
        return [code for code in NAME_REGION_HINT.findall(name) if code in self.regions]

    def hints_for(self, name: Optional[str], extra: Iterable[str] = ()) -> List[str]:
        hints = self.region_hints_from_name(name)
        hints.extend(h for h in extra if h)
        return hints


def _label_pattern(label: str) -> str:
    """Escaped label with any run of whitespace matching any whitespace."""
    return r"\s+".join(re.escape(part) for part in label.split())
