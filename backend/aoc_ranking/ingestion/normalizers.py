"""
Record normalization for wine data ingestion.

Turns raw records (canonical field names, arbitrary value types) into
ImportRecord objects. Numeric fields are coerced with safe fallbacks so
one malformed row never aborts a batch; only a missing name or
appellation makes a record unusable.
"""

import math
import re
from dataclasses import asdict, is_dataclass
from typing import Any, Mapping, Optional, Union

from ..errors import ValidationError
from ..models.catalog import ImportRecord

RawRecord = Union[ImportRecord, Mapping[str, Any]]

REQUIRED_FIELDS = ("name", "appellation")

# Largest integer SQLite can store
MAX_INTEGER = 2 ** 63 - 1
MIN_VINTAGE = 1000
MAX_VINTAGE = 9999

# "1,234" or "1,250.00": commas group thousands
_GROUPED_NUMBER = re.compile(r"^[+-]?\d{1,3}(,\d{3})+(\.\d+)?$")


def _to_float(value: Any) -> Optional[float]:
    """Parse a finite float, None if impossible."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        if _GROUPED_NUMBER.match(value):
            value = value.replace(",", "")
        elif value.count(",") == 1 and "." not in value:
            # Decimal comma ("4,2")
            value = value.replace(",", ".")
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def fallback_external_id(name: str, vintage: Optional[int], appellation: str) -> str:
    """Deterministic key so re-imports of an id-less wine merge instead of duplicating."""
    return f"{name}|{vintage if vintage is not None else ''}|{appellation}"


class RecordNormalizer:
    """
    Coerces raw import records.

    Coercion rules:
    - base_score: non-numeric or missing -> 0
    - review_count: non-numeric, missing, negative or too large -> 0
    - price: non-numeric or negative -> absent
    - vintage: non-numeric or outside 1000..9999 -> absent
    - external_id: missing -> name|vintage|appellation
    - "1,234" is a grouped thousand, "4,2" a decimal comma
    """

    def normalize(self, raw: RawRecord, row_number: Optional[int] = None) -> tuple[ImportRecord, list[str]]:
        """
        Normalize one record.

        Args:
            raw: ImportRecord or mapping keyed by canonical field names
            row_number: Position in the batch, used when the record carries none

        Returns:
            Tuple of (ImportRecord, coerced field names)

        Raises:
            ValidationError: name or appellation is missing
        """
        if is_dataclass(raw):
            raw = asdict(raw)
        # Parsers know the real file line; prefer it over the batch position
        row_number = raw.get("row_number") or row_number

        name = _to_text(raw.get("name"))
        appellation = _to_text(raw.get("appellation"))
        missing = [f for f, v in (("name", name), ("appellation", appellation)) if not v]
        if missing:
            raise ValidationError(
                f"Row {row_number}: missing required field(s): {', '.join(missing)}",
                detail={"row": row_number, "missing": missing},
            )

        coerced: list[str] = []

        base_score = _to_float(raw.get("base_score"))
        if base_score is None:
            base_score = 0.0
            coerced.append("base_score")

        review_count = self._coerce_count(raw.get("review_count"), coerced)
        price = self._coerce_price(raw.get("price"), coerced)

        vintage = None
        vintage_value = _to_float(raw.get("vintage"))
        if vintage_value is not None and MIN_VINTAGE <= vintage_value <= MAX_VINTAGE:
            vintage = int(vintage_value)
        elif _to_text(raw.get("vintage")):
            coerced.append("vintage")

        external_id = _to_text(raw.get("external_id"))
        if not external_id:
            external_id = fallback_external_id(name, vintage, appellation)

        record = ImportRecord(
            external_id=external_id,
            name=name,
            appellation=appellation,
            base_score=base_score,
            producer=_to_text(raw.get("producer")),
            vintage=vintage,
            review_count=review_count,
            price=price,
            row_number=row_number,
        )
        return record, coerced

    @staticmethod
    def _coerce_count(value: Any, coerced: list[str]) -> int:
        number = _to_float(value)
        if number is None:
            # An absent count is just the default, not a coercion
            if _to_text(value):
                coerced.append("review_count")
            return 0
        if number < 0 or number > MAX_INTEGER:
            coerced.append("review_count")
            return 0
        return int(number)

    @staticmethod
    def _coerce_price(value: Any, coerced: list[str]) -> Optional[float]:
        number = _to_float(value)
        if number is None:
            if _to_text(value):
                coerced.append("price")
            return None
        if number < 0:
            coerced.append("price")
            return None
        return number
