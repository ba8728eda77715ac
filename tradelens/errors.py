"""Error taxonomy for tradelens.

None of these are process-fatal. DataShapeError is usually collected into a
NormalizationResult rather than raised; RenderError never escapes a view's
render() call.
"""


class TradeLensError(Exception):
    """Base class for all tradelens errors."""


class DataLoadError(TradeLensError):
    """The data source failed to deliver or parse a payload."""

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Failed to load {key!r}: {reason}")


class DataShapeError(TradeLensError):
    """An expected column or key is absent, or a row cannot become a record."""

    def __init__(self, message: str, field: str | None = None, row: int | None = None) -> None:
        self.field = field
        self.row = row
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        where = []
        if self.row is not None:
            where.append(f"row={self.row}")
        if self.field is not None:
            where.append(f"field={self.field!r}")
        suffix = f" [{', '.join(where)}]" if where else ""
        return f"DataShapeError({self.message!r}{suffix})"


class RenderError(TradeLensError):
    """The active selection has nothing drawable (empty or all-zero domain)."""
