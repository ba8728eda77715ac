"""Country -> category -> year tables (the circle-packing export document)."""

import logging
from collections.abc import Mapping
from typing import Any

from tradelens.errors import DataShapeError
from tradelens.models import TradeRecord
from tradelens.normalizer.base import BaseNormalizer, NormalizationResult, coerce_value

logger = logging.getLogger(__name__)

# Spreadsheet exports label the category column "Unnamed: 1"
CATEGORY_KEYS = ("category", "Unnamed: 1")


def _category(entry: Mapping[str, Any]) -> str | None:
    for key in CATEGORY_KEYS:
        value = entry.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


class CategoryTableNormalizer(BaseNormalizer):
    """``{country: [{"category": ..., "<year>": n, ...}]}``, optionally under ``"Exports"``.

    The country is the supplier; records carry no recipient.
    """

    def __init__(self, wrapper_key: str = "Exports", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.wrapper_key = wrapper_key

    def normalize(self, payload: Any) -> NormalizationResult:
        result = NormalizationResult()
        if isinstance(payload, Mapping) and self.wrapper_key in payload:
            payload = payload[self.wrapper_key]
        if not isinstance(payload, Mapping) or not payload:
            return result.fail(DataShapeError("Payload has no country table", field=self.wrapper_key))

        seen: set[str] = set()
        row = -1
        for raw_country, entries in payload.items():
            if not isinstance(entries, list):
                row += 1
                result.rows_seen += 1
                result.drop(DataShapeError(
                    f"Country {raw_country!r} has no category list", field=str(raw_country), row=row,
                ))
                continue
            seen.add(str(raw_country))
            country, mapped = self.resolve(raw_country, result)

            for entry in entries:
                row += 1
                result.rows_seen += 1
                if not isinstance(entry, Mapping):
                    result.drop(DataShapeError("Entry is not an object", row=row))
                    continue
                category = _category(entry)
                if category is None:
                    result.drop(DataShapeError("Entry has no category", field="category", row=row))
                    continue
                for key, raw_value in entry.items():
                    if key in CATEGORY_KEYS or not str(key).strip().isdigit():
                        continue
                    year = int(str(key).strip())
                    if not self.year_in_bounds(year):
                        continue
                    value, missing = coerce_value(raw_value)
                    result.records.append(TradeRecord(
                        supplier=country,
                        year=year,
                        value=value,
                        category=category,
                        value_missing=missing,
                        supplier_mapped=mapped,
                    ))

        return self.finish(result, seen)
