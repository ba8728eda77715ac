"""Base normalizer interface and shared coercion helpers."""

import abc
import logging
import math
from typing import Any

import pandas as pd

from tradelens.config import NormalizerConfig
from tradelens.errors import DataShapeError
from tradelens.models import NormalizedCountry, TradeRecord
from tradelens.normalizer.aliases import AliasTable

logger = logging.getLogger(__name__)


class NormalizationResult:
    """Records plus everything that went wrong producing them."""

    def __init__(self) -> None:
        self.records: list[TradeRecord] = []
        self.issues: list[DataShapeError] = []
        self.unmapped: set[str] = set()
        self.aliases: dict[str, NormalizedCountry] = {}
        self.rows_seen: int = 0
        self.rows_dropped: int = 0
        self.structural_failure: bool = False

    @property
    def ok(self) -> bool:
        return not self.structural_failure

    def fail(self, error: DataShapeError) -> "NormalizationResult":
        self.structural_failure = True
        self.issues.append(error)
        logger.warning("Payload rejected: %r", error)
        return self

    def drop(self, error: DataShapeError) -> None:
        self.rows_dropped += 1
        self.issues.append(error)
        logger.warning("Row dropped: %r", error)

    def __repr__(self) -> str:
        return (
            f"NormalizationResult({len(self.records)} records from {self.rows_seen} rows, "
            f"{self.rows_dropped} dropped, {len(self.issues)} issues, "
            f"{len(self.unmapped)} unmapped names)"
        )


def coerce_value(raw: Any) -> tuple[float, bool]:
    """Parse a numeric cell. Returns (value, missing).

    Missing, non-numeric, non-finite and negative inputs become 0.0 with
    ``missing=True``.
    """
    if raw is None or isinstance(raw, bool):
        return 0.0, True
    if isinstance(raw, str):
        raw = raw.strip().replace(",", "")
        if not raw:
            return 0.0, True
    try:
        value = float(pd.to_numeric(raw, errors="coerce"))
    except (TypeError, ValueError):
        return 0.0, True
    if not math.isfinite(value) or value < 0:
        return 0.0, True
    return value, False


def coerce_year(raw: Any) -> int | None:
    value, missing = coerce_value(raw)
    if missing:
        return None
    return int(round(value))


class BaseNormalizer(abc.ABC):
    """Base class for all payload normalizers."""

    def __init__(
        self,
        config: NormalizerConfig | None = None,
        aliases: AliasTable | None = None,
    ) -> None:
        self.config = config or NormalizerConfig()
        self.aliases = aliases or AliasTable(extra=self.config.aliases)

    @abc.abstractmethod
    def normalize(self, payload: Any) -> NormalizationResult:
        """Normalize one payload.

        Never raises for bad data: structural problems set
        ``structural_failure`` and row problems are collected in ``issues``.
        """
        ...

    def year_in_bounds(self, year: int | None) -> bool:
        return year is not None and self.config.min_year <= year <= self.config.max_year

    def check_year(self, raw: Any, result: NormalizationResult, row: int) -> int | None:
        year = coerce_year(raw)
        if year is None:
            result.drop(DataShapeError(f"Year {raw!r} is not numeric", field="year", row=row))
            return None
        if not self.year_in_bounds(year):
            result.drop(DataShapeError(
                f"Year {year} outside {self.config.min_year}..{self.config.max_year}",
                field="year", row=row,
            ))
            return None
        return year

    def resolve(self, raw: Any, result: NormalizationResult) -> tuple[str, bool]:
        name, mapped = self.aliases.resolve(str(raw))
        if not mapped:
            result.unmapped.add(name)
        return name, mapped

    def finish(self, result: NormalizationResult, seen_names: set[str]) -> NormalizationResult:
        result.aliases = self.aliases.index(seen_names)
        logger.debug("%s: %s", type(self).__name__, result)
        return result
