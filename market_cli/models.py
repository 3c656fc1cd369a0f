"""Pydantic schemas for watchlists, quotes and aggregated reports.

This module implements:
- Watchlist schemas (``SymbolEntry``, ``WatchlistGroup``, ``Watchlist``) that
  read and write the on-disk JSON layout
- ``Quote`` and the tagged ``FetchOutcome`` union (``Success`` / ``Unavailable``)
- ``Report``, the ordered result of one aggregation pass

All models are frozen: a report is built once per pass and never mutated.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class SymbolEntry(BaseModel):
    """One watched instrument.

    Attributes:
        symbol: Source-specific identifier (e.g. ``sh600519``, ``bitcoin``).
        display_name: Label shown in the terminal.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    symbol: str = Field(..., min_length=1, description="Source-specific identifier")
    display_name: str = Field(..., min_length=1, alias="name", description="Display label")


class WatchlistGroup(BaseModel):
    """An ordered group of symbols sharing one asset class.

    On disk the group is stored under its key as
    ``{"name": ..., "symbols": [{"symbol": ..., "name": ...}]}``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = Field(..., min_length=1, description="Group key bound to a quote source")
    display_name: str = Field(..., min_length=1, alias="name")
    entries: tuple[SymbolEntry, ...] = Field(default=(), alias="symbols")

    def with_entry(self, entry: SymbolEntry) -> "WatchlistGroup":
        """Return a copy of this group with ``entry`` appended."""
        return self.model_copy(update={"entries": (*self.entries, entry)})


class Watchlist(BaseModel):
    """Ordered collection of watchlist groups, unique by key."""

    model_config = ConfigDict(frozen=True)

    groups: tuple[WatchlistGroup, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Watchlist":
        """Build a watchlist from the on-disk ``{key: group}`` layout.

        Args:
            data: Parsed JSON document.

        Returns:
            Validated Watchlist preserving the document's key order.

        Raises:
            ValueError: If the document or any group body is not an object,
                or a group fails schema validation.
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Watchlist must be an object, got {type(data).__name__}")

        groups = []
        for key, body in data.items():
            if not isinstance(body, Mapping):
                raise ValueError(f"Watchlist group '{key}' must be an object")
            groups.append(WatchlistGroup.model_validate({**body, "key": key}))
        return cls(groups=tuple(groups))

    def to_mapping(self) -> dict[str, Any]:
        """Serialize back to the on-disk ``{key: group}`` layout."""
        return {
            group.key: group.model_dump(by_alias=True, exclude={"key"})
            for group in self.groups
        }

    def merged_with(self, override: "Watchlist") -> "Watchlist":
        """Shallow-merge ``override`` over this watchlist by group key.

        Groups in ``override`` replace same-key groups in place; keys only
        present in ``override`` are appended in their order.
        """
        merged = {group.key: group for group in self.groups}
        merged.update({group.key: group for group in override.groups})
        return Watchlist(groups=tuple(merged.values()))

    def with_entry(self, key: str, entry: SymbolEntry, display_name: str | None = None) -> "Watchlist":
        """Return a copy with ``entry`` appended to group ``key``.

        The group is created (named ``display_name`` or ``key``) when missing.
        """
        groups = list(self.groups)
        for idx, group in enumerate(groups):
            if group.key == key:
                groups[idx] = group.with_entry(entry)
                break
        else:
            groups.append(
                WatchlistGroup(key=key, display_name=display_name or key, entries=(entry,))
            )
        return Watchlist(groups=tuple(groups))

    def get(self, key: str) -> WatchlistGroup | None:
        for group in self.groups:
            if group.key == key:
                return group
        return None

    @property
    def keys(self) -> list[str]:
        return [group.key for group in self.groups]

    @property
    def symbol_count(self) -> int:
        return sum(len(group.entries) for group in self.groups)


class Quote(BaseModel):
    """Normalized price and signed percent change for one symbol.

    Both fields are required and must be finite; a payload that yields only
    one of them is not a quote.
    """

    model_config = ConfigDict(frozen=True)

    price: float = Field(..., allow_inf_nan=False)
    percent_change: float = Field(..., allow_inf_nan=False)


class Success(BaseModel):
    """A fetch that produced a quote."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"
    quote: Quote

    @property
    def is_available(self) -> bool:
        return True


class Unavailable(BaseModel):
    """A fetch that produced nothing, whatever the cause."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["unavailable"] = "unavailable"

    @property
    def is_available(self) -> bool:
        return False


FetchOutcome = Annotated[Success | Unavailable, Field(discriminator="kind")]

UNAVAILABLE = Unavailable()


class ReportLine(BaseModel):
    """One symbol and the outcome of fetching it."""

    model_config = ConfigDict(frozen=True)

    entry: SymbolEntry
    outcome: FetchOutcome


class ReportSection(BaseModel):
    """A watchlist group with its lines in configured entry order."""

    model_config = ConfigDict(frozen=True)

    group: WatchlistGroup
    lines: tuple[ReportLine, ...] = ()


class Report(BaseModel):
    """Ordered, complete result of one aggregation pass.

    Attributes:
        sections: One section per watchlist group, in configured order.
        generated_at: Local time the pass completed.
    """

    model_config = ConfigDict(frozen=True)

    sections: tuple[ReportSection, ...] = ()
    generated_at: datetime = Field(default_factory=datetime.now)

    @property
    def lines(self) -> list[ReportLine]:
        """All lines flattened in group/entry order."""
        return [line for section in self.sections for line in section.lines]

    def __len__(self) -> int:
        return sum(len(section.lines) for section in self.sections)

    @property
    def available_count(self) -> int:
        return sum(1 for line in self.lines if line.outcome.is_available)

    @property
    def unavailable_count(self) -> int:
        return len(self) - self.available_count

    @property
    def success_rate(self) -> float:
        """Share of symbols that produced a quote (0.0 for an empty report)."""
        if len(self) == 0:
            return 0.0
        return self.available_count / len(self)

    def get_summary(self) -> dict[str, Any]:
        """Summary statistics for logging."""
        return {
            "total_symbols": len(self),
            "available": self.available_count,
            "unavailable": self.unavailable_count,
            "success_rate": f"{self.success_rate:.1%}",
        }
