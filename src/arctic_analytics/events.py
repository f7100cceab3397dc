"""EventRecord variants, fragment rendering, and RecordCounter.

Every ``record_*`` call on a provider becomes one EventRecord. A record
carries its kind, its own fixed fields (written as top-level keys of the
event object) and the merged attribute list. Rendering produces the text
fragment that the DocumentWriter appends to the ``events`` array.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from arctic_analytics.attributes import Attribute
from arctic_analytics.types import JsonScalar

_EVENT_INDENT = "\t\t"
_FIELD_INDENT = "\t\t\t"
_ATTR_INDENT = "\t\t\t\t"


class EventKind(Enum):
    """Tag of an EventRecord variant."""

    GENERIC = "generic"
    ITEM_PURCHASE = "item_purchase"
    CURRENCY_PURCHASE = "currency_purchase"
    CURRENCY_GIVEN = "currency_given"
    ERROR = "error"
    PROGRESS = "progress"


@dataclass(frozen=True)
class EventRecord:
    """One recorded occurrence, ready to be rendered into the document.

    ``fields`` keeps insertion order; numbers are written unquoted and
    strings are JSON-escaped. ``attributes`` is the already merged list
    (default attributes first, then the call-site ones).
    """

    kind: EventKind
    fields: tuple[tuple[str, JsonScalar], ...]
    attributes: tuple[Attribute, ...] = ()

    def get(self, key: str) -> JsonScalar | None:
        """Look up a fixed field by key."""
        for name, value in self.fields:
            if name == key:
                return value
        return None

    @property
    def name(self) -> str:
        """Human readable label used in log messages."""
        for key in ("eventName", "eventType", "error"):
            value = self.get(key)
            if value is not None:
                return str(value)
        return self.kind.value

    def to_fragment(self) -> str:
        lines = [f"{_EVENT_INDENT}{{"]
        for key, value in self.fields:
            lines.append(f"{_FIELD_INDENT}{json.dumps(key)} : {json.dumps(value, ensure_ascii=False)},")
        if self.attributes:
            lines.append(f'{_FIELD_INDENT}"attributes" : [')
            rendered = [f"{_ATTR_INDENT}{attr.to_fragment()}" for attr in self.attributes]
            lines.append(",\n".join(rendered))
            lines.append(f"{_FIELD_INDENT}]")
        else:
            lines.append(f'{_FIELD_INDENT}"attributes" : []')
        lines.append(f"{_EVENT_INDENT}}}")
        return "\n".join(lines)

    # -- constructors, one per event kind ---------------------------------

    @classmethod
    def generic(
        cls,
        event_name: str,
        attributes: Iterable[Attribute],
        record_id: int,
        timestamp: datetime,
    ) -> EventRecord:
        return cls(
            kind=EventKind.GENERIC,
            fields=(
                ("eventName", event_name),
                ("recordId", record_id),
                ("timestamp", timestamp.isoformat()),
            ),
            attributes=tuple(attributes),
        )

    @classmethod
    def item_purchase(
        cls,
        defaults: Iterable[Attribute],
        item_id: str,
        currency: str,
        per_item_cost: int,
        item_quantity: int,
    ) -> EventRecord:
        return cls(
            kind=EventKind.ITEM_PURCHASE,
            fields=(("eventName", "recordItemPurchase"),),
            attributes=(
                *defaults,
                Attribute("itemId", item_id),
                Attribute("currency", currency),
                Attribute.of("perItemCost", per_item_cost),
                Attribute.of("itemQuantity", item_quantity),
            ),
        )

    @classmethod
    def item_purchase_with_attributes(
        cls,
        item_id: str,
        item_quantity: int,
        attributes: Iterable[Attribute],
    ) -> EventRecord:
        return cls(
            kind=EventKind.ITEM_PURCHASE,
            fields=(
                ("eventType", "ItemPurchase"),
                ("itemId", item_id),
                ("itemQuantity", int(item_quantity)),
            ),
            attributes=tuple(attributes),
        )

    @classmethod
    def currency_purchase(
        cls,
        defaults: Iterable[Attribute],
        game_currency_type: str,
        game_currency_amount: int,
        real_currency_type: str,
        real_money_cost: float,
        payment_provider: str,
    ) -> EventRecord:
        return cls(
            kind=EventKind.CURRENCY_PURCHASE,
            fields=(("eventName", "recordCurrencyPurchase"),),
            attributes=(
                *defaults,
                Attribute("gameCurrencyType", game_currency_type),
                Attribute.of("gameCurrencyAmount", game_currency_amount),
                Attribute("realCurrencyType", real_currency_type),
                Attribute("realMoneyCost", f"{real_money_cost:f}"),
                Attribute("paymentProvider", payment_provider),
            ),
        )

    @classmethod
    def currency_purchase_with_attributes(
        cls,
        game_currency_type: str,
        game_currency_amount: int,
        attributes: Iterable[Attribute],
    ) -> EventRecord:
        return cls(
            kind=EventKind.CURRENCY_PURCHASE,
            fields=(
                ("eventType", "CurrencyPurchase"),
                ("gameCurrencyType", game_currency_type),
                ("gameCurrencyAmount", int(game_currency_amount)),
            ),
            attributes=tuple(attributes),
        )

    @classmethod
    def currency_given(
        cls,
        defaults: Iterable[Attribute],
        game_currency_type: str,
        game_currency_amount: int,
    ) -> EventRecord:
        return cls(
            kind=EventKind.CURRENCY_GIVEN,
            fields=(("eventName", "recordCurrencyGiven"),),
            attributes=(
                *defaults,
                Attribute("gameCurrencyType", game_currency_type),
                Attribute.of("gameCurrencyAmount", game_currency_amount),
            ),
        )

    @classmethod
    def currency_given_with_attributes(
        cls,
        game_currency_type: str,
        game_currency_amount: int,
        attributes: Iterable[Attribute],
    ) -> EventRecord:
        return cls(
            kind=EventKind.CURRENCY_GIVEN,
            fields=(
                ("eventType", "CurrencyGiven"),
                ("gameCurrencyType", game_currency_type),
                ("gameCurrencyAmount", int(game_currency_amount)),
            ),
            attributes=tuple(attributes),
        )

    @classmethod
    def error(cls, message: str, attributes: Iterable[Attribute]) -> EventRecord:
        return cls(kind=EventKind.ERROR, fields=(("error", message),), attributes=tuple(attributes))

    @classmethod
    def progress(cls, progress_type: str, progress_name: str, attributes: Iterable[Attribute]) -> EventRecord:
        return cls(
            kind=EventKind.PROGRESS,
            fields=(
                ("eventType", "Progress"),
                ("progressType", progress_type),
                ("progressName", progress_name),
            ),
            attributes=tuple(attributes),
        )


class RecordCounter:
    """Strictly increasing record id source.

    One instance normally lives for the whole process and is shared by
    every session, so ids are never reused after a session restart.
    """

    def __init__(self, start: int = 0) -> None:
        self._value = start
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        return self._value

    def next_id(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def reset(self, start: int = 0) -> None:
        with self._lock:
            self._value = start


PROCESS_RECORD_COUNTER = RecordCounter()
