"""Row-oriented table normalizers (long and wide layouts)."""

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

import pandas as pd
from pydantic import BaseModel

from tradelens.errors import DataShapeError
from tradelens.models import TradeRecord
from tradelens.normalizer.base import BaseNormalizer, NormalizationResult, coerce_value

logger = logging.getLogger(__name__)


class ColumnSpec(BaseModel):
    """Declared column names for one long-format dataset."""
    supplier: str | None = "supplier"
    recipient: str | None = "recipient"
    year: str = "year"
    value: str = "value"
    category: str | None = None
    status: str | None = None

    def required(self) -> list[str]:
        return [c for c in (self.supplier, self.recipient, self.year, self.value) if c]


# Imports by recipient and weapon description (choropleth dataset)
WEAPON_TRANSFERS = ColumnSpec(
    supplier="suppliers",
    recipient="recipients",
    year="year",
    value="quantity",
    category="weapon description",
    status="status",
)


def _frame(payload: Any) -> pd.DataFrame | None:
    if payload is None:
        return None
    if isinstance(payload, pd.DataFrame):
        return payload
    if isinstance(payload, Mapping):
        payload = payload.get("rows") or payload.get("data")
    if not payload:
        return None
    return pd.DataFrame(list(payload))


def _text(raw: Any) -> str | None:
    if raw is None or (isinstance(raw, float) and pd.isna(raw)):
        return None
    text = str(raw).strip()
    return text or None


class TabularNormalizer(BaseNormalizer):
    """Long-format rows: one observation per row with declared columns."""

    def __init__(self, columns: ColumnSpec | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.columns = columns or ColumnSpec()

    def normalize(self, payload: Any) -> NormalizationResult:
        result = NormalizationResult()
        df = _frame(payload)
        if df is None or df.empty:
            return result.fail(DataShapeError("Payload has no rows", field="rows"))

        spec = self.columns
        if not (spec.supplier or spec.recipient):
            return result.fail(DataShapeError("ColumnSpec declares neither supplier nor recipient"))
        missing = [c for c in spec.required() if c not in df.columns]
        if missing:
            return result.fail(DataShapeError(
                f"Missing column(s): {', '.join(missing)}", field=missing[0],
            ))

        seen: set[str] = set()
        for row_no, row in enumerate(df.to_dict(orient="records")):
            result.rows_seen += 1
            year = self.check_year(row.get(spec.year), result, row_no)
            if year is None:
                continue

            supplier = _text(row.get(spec.supplier)) if spec.supplier else None
            recipient = _text(row.get(spec.recipient)) if spec.recipient else None
            if supplier is None and recipient is None:
                result.drop(DataShapeError("Row has no country", field=spec.supplier or spec.recipient, row=row_no))
                continue

            value, value_missing = coerce_value(row.get(spec.value))
            if value_missing:
                result.issues.append(DataShapeError(
                    f"Value {row.get(spec.value)!r} coerced to 0", field=spec.value, row=row_no,
                ))

            supplier_mapped = recipient_mapped = True
            if supplier is not None:
                seen.add(supplier)
                supplier, supplier_mapped = self.resolve(supplier, result)
            if recipient is not None:
                seen.add(recipient)
                recipient, recipient_mapped = self.resolve(recipient, result)

            result.records.append(TradeRecord(
                supplier=supplier or "",
                recipient=recipient,
                year=year,
                value=value,
                category=_text(row.get(spec.category)) if spec.category else None,
                status=_text(row.get(spec.status)) if spec.status else None,
                value_missing=value_missing,
                supplier_mapped=supplier_mapped if supplier else False,
                recipient_mapped=recipient_mapped,
            ))

        return self.finish(result, seen)


class WideTableNormalizer(BaseNormalizer):
    """One row per entity with one numeric column per year.

    ``year_pattern`` must capture the year in group 1, e.g. ``^(\\d{4})$`` for
    plain year columns or ``^Arms Revenue (\\d{4})$`` for company tables.
    """

    def __init__(
        self,
        entity_column: str,
        role: str = "supplier",
        category_column: str | None = None,
        year_pattern: str = r"^(\d{4})$",
        value_scale: float = 1.0,
        exclude: Iterable[str] = (),
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        if role not in ("supplier", "recipient"):
            raise ValueError("role must be 'supplier' or 'recipient'")
        self.entity_column = entity_column
        self.role = role
        self.category_column = category_column
        self.year_pattern = re.compile(year_pattern)
        self.value_scale = value_scale
        self.exclude = set(exclude)

    def normalize(self, payload: Any) -> NormalizationResult:
        result = NormalizationResult()
        df = _frame(payload)
        if df is None or df.empty:
            return result.fail(DataShapeError("Payload has no rows", field="rows"))
        if self.entity_column not in df.columns:
            return result.fail(DataShapeError(
                f"Missing column: {self.entity_column}", field=self.entity_column,
            ))

        year_columns: dict[str, int] = {}
        for col in df.columns:
            m = self.year_pattern.match(str(col))
            if m:
                year = int(m.group(1))
                if self.year_in_bounds(year):
                    year_columns[col] = year
        if not year_columns:
            return result.fail(DataShapeError("No year columns matched", field="year"))

        seen: set[str] = set()
        for row_no, row in enumerate(df.to_dict(orient="records")):
            result.rows_seen += 1
            entity = _text(row.get(self.entity_column))
            if entity is None:
                result.drop(DataShapeError("Row has no entity", field=self.entity_column, row=row_no))
                continue
            if entity in self.exclude:
                continue
            seen.add(entity)
            name, mapped = self.resolve(entity, result)
            category = _text(row.get(self.category_column)) if self.category_column else None

            for col, year in year_columns.items():
                value, value_missing = coerce_value(row.get(col))
                fields: dict[str, Any] = {
                    "year": year,
                    "value": value * self.value_scale,
                    "category": category,
                    "value_missing": value_missing,
                }
                if self.role == "supplier":
                    fields.update(supplier=name, supplier_mapped=mapped)
                else:
                    fields.update(supplier="", supplier_mapped=False, recipient=name, recipient_mapped=mapped)
                result.records.append(TradeRecord(**fields))

        return self.finish(result, seen)
