"""Nested supplier documents: supplier -> recipients -> {year: value}."""

import logging
from collections.abc import Mapping
from typing import Any

from tradelens.errors import DataShapeError
from tradelens.models import TradeRecord
from tradelens.normalizer.base import BaseNormalizer, NormalizationResult, coerce_value

logger = logging.getLogger(__name__)


def _documents(payload: Any) -> list[Any] | None:
    if isinstance(payload, Mapping):
        if "data" in payload:
            return payload["data"] or None
        if "supplier" in payload:
            return [payload]
        return None
    if isinstance(payload, list):
        return payload or None
    return None


class NestedNormalizer(BaseNormalizer):
    """Accepts a list of supplier documents, ``{"data": [...]}`` or a single document.

    Each document looks like::

        {"supplier": "Russia",
         "recipients": [{"recipient": "India", "years": {"2019": 1200}}]}

    One TradeRecord is produced per (supplier, recipient, year) entry.
    """

    def normalize(self, payload: Any) -> NormalizationResult:
        result = NormalizationResult()
        docs = _documents(payload)
        if docs is None:
            return result.fail(DataShapeError("Payload has no supplier documents", field="data"))

        seen: set[str] = set()
        row = -1
        for doc_no, doc in enumerate(docs):
            if not isinstance(doc, Mapping) or not doc.get("supplier"):
                result.rows_seen += 1
                result.drop(DataShapeError("Document has no supplier", field="supplier", row=doc_no))
                continue
            recipients = doc.get("recipients")
            if not isinstance(recipients, list):
                result.rows_seen += 1
                result.drop(DataShapeError(
                    f"Supplier {doc['supplier']!r} has no recipients list", field="recipients", row=doc_no,
                ))
                continue

            raw_supplier = str(doc["supplier"])
            seen.add(raw_supplier)
            supplier, supplier_mapped = self.resolve(raw_supplier, result)

            for entry in recipients:
                if not isinstance(entry, Mapping) or not entry.get("recipient"):
                    row += 1
                    result.rows_seen += 1
                    result.drop(DataShapeError("Entry has no recipient", field="recipient", row=row))
                    continue
                raw_recipient = str(entry["recipient"])
                seen.add(raw_recipient)
                recipient, recipient_mapped = self.resolve(raw_recipient, result)

                for raw_year, raw_value in (entry.get("years") or {}).items():
                    row += 1
                    result.rows_seen += 1
                    year = self.check_year(raw_year, result, row)
                    if year is None:
                        continue
                    value, missing = coerce_value(raw_value)
                    if missing:
                        result.issues.append(DataShapeError(
                            f"Value {raw_value!r} coerced to 0", field=f"years.{raw_year}", row=row,
                        ))
                    result.records.append(TradeRecord(
                        supplier=supplier,
                        recipient=recipient,
                        year=year,
                        value=value,
                        value_missing=missing,
                        supplier_mapped=supplier_mapped,
                        recipient_mapped=recipient_mapped,
                    ))

        return self.finish(result, seen)
