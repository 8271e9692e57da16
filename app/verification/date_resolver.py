"""Birth date lookup and age arithmetic for recognized document text.

Only the strict DD/MM/YYYY shape is accepted: two digits, slash, two digits,
slash, four digits, not embedded in a longer run of digits. The first match
in the text is the birth date candidate; if it is not a real calendar date
the document is treated as having no date at all.
"""

import re
from datetime import date
from typing import ClassVar

from app.pipeline.exceptions import DateNotFoundError
from app.pipeline.models import AgeVerification, ExtractionResult


def compute_age(birth_date: date, today: date) -> int:
    """Whole years elapsed between birth_date and today."""
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


class DateResolver:
    """Finds the birth date in OCR text and computes the holder's age."""

    _DATE_RE: ClassVar[re.Pattern[str]] = re.compile(
        r"(?<!\d)(\d{2})/(\d{2})/(\d{4})(?!\d)",
        re.ASCII,
    )

    def find_birth_date(self, text: str) -> ExtractionResult:
        match = self._DATE_RE.search(text)
        if match is None:
            return ExtractionResult(text=text)
        return ExtractionResult(
            text=text,
            matched_date=match.group(0),
            match_start=match.start(),
            match_end=match.end(),
        )

    def resolve(self, extraction: ExtractionResult, today: date) -> AgeVerification:
        """Build an AgeVerification evaluated on `today`.

        Raises:
            DateNotFoundError: if no date was matched, the match is not a valid
                calendar date, or it lies after `today`.
        """
        if extraction.matched_date is None:
            raise DateNotFoundError("No DD/MM/YYYY date found in document text")
        birth_date = self._parse(extraction.matched_date)
        if birth_date > today:
            raise DateNotFoundError(
                f"Extracted date {extraction.matched_date} is in the future"
            )
        return AgeVerification(
            birth_date=birth_date,
            age=compute_age(birth_date, today),
            evaluated_on=today,
        )

    @staticmethod
    def _parse(value: str) -> date:
        day, month, year = (int(part) for part in value.split("/"))
        try:
            return date(year, month, day)
        except ValueError as exc:
            raise DateNotFoundError(f"Extracted date {value} is not a valid date") from exc
