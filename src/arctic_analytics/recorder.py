"""EventRecorder: one method per event kind.

Each method checks that a session is active, builds an EventRecord with
the session's default attributes merged in front of the call-site ones,
and appends its rendered fragment to the session document. Calls made
outside a session are dropped and reported; nothing is written.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any, overload

from arctic_analytics.attributes import Attribute
from arctic_analytics.events import PROCESS_RECORD_COUNTER, EventRecord, RecordCounter
from arctic_analytics.session import SessionState

logger = logging.getLogger(__name__)


class EventRecorder:
    """Translates typed record calls into document appends."""

    def __init__(self, session: SessionState, counter: RecordCounter | None = None) -> None:
        self._session = session
        self._counter = counter or PROCESS_RECORD_COUNTER

    @property
    def session(self) -> SessionState:
        return self._session

    @property
    def counter(self) -> RecordCounter:
        return self._counter

    def _record(self, operation: str, build: Callable[[], EventRecord]) -> bool:
        if not self._session.ensure_active(operation):
            return False
        record = build()
        if not self._session.append(record.to_fragment(), operation):
            return False
        logger.info("Analytics event (%s) written with (%d) attributes", record.name, len(record.attributes))
        return True

    def record_event(self, event_name: str, attributes: Sequence[Attribute] = ()) -> bool:
        """Record a generic named event with a record id and capture time."""
        return self._record(
            "record_event",
            lambda: EventRecord.generic(
                event_name,
                self._session.merge_attributes(attributes),
                self._counter.next_id(),
                self._session.now(),
            ),
        )

    @overload
    def record_item_purchase(self, item_id: str, currency: str, per_item_cost: int, item_quantity: int) -> bool: ...

    @overload
    def record_item_purchase(self, item_id: str, item_quantity: int, attributes: Sequence[Attribute] = ()) -> bool: ...

    def record_item_purchase(self, item_id: str, *args: Any, **kwargs: Any) -> bool:
        """Record an item purchase.

        ``(item_id, currency, per_item_cost, item_quantity)`` records the
        four fields as attributes; ``(item_id, item_quantity, attributes)``
        records the quantity as a field alongside open attributes.
        """
        if "currency" in kwargs or (args and isinstance(args[0], str)):
            return self._item_purchase(item_id, *args, **kwargs)
        return self._item_purchase_with_attributes(item_id, *args, **kwargs)

    def _item_purchase(self, item_id: str, currency: str, per_item_cost: int, item_quantity: int) -> bool:
        return self._record(
            "record_item_purchase",
            lambda: EventRecord.item_purchase(
                self._session.default_attributes, item_id, currency, per_item_cost, item_quantity
            ),
        )

    def _item_purchase_with_attributes(
        self, item_id: str, item_quantity: int, attributes: Sequence[Attribute] = ()
    ) -> bool:
        return self._record(
            "record_item_purchase",
            lambda: EventRecord.item_purchase_with_attributes(
                item_id, item_quantity, self._session.merge_attributes(attributes)
            ),
        )

    @overload
    def record_currency_purchase(
        self,
        game_currency_type: str,
        game_currency_amount: int,
        real_currency_type: str,
        real_money_cost: float,
        payment_provider: str,
    ) -> bool: ...

    @overload
    def record_currency_purchase(
        self, game_currency_type: str, game_currency_amount: int, attributes: Sequence[Attribute] = ()
    ) -> bool: ...

    def record_currency_purchase(self, game_currency_type: str, *args: Any, **kwargs: Any) -> bool:
        """Record in-game currency bought with real money.

        ``(type, amount, real_currency_type, real_money_cost, payment_provider)``
        or ``(type, amount, attributes)``.
        """
        if "real_currency_type" in kwargs or (len(args) > 1 and isinstance(args[1], str)):
            return self._currency_purchase(game_currency_type, *args, **kwargs)
        return self._currency_purchase_with_attributes(game_currency_type, *args, **kwargs)

    def _currency_purchase(
        self,
        game_currency_type: str,
        game_currency_amount: int,
        real_currency_type: str,
        real_money_cost: float,
        payment_provider: str,
    ) -> bool:
        return self._record(
            "record_currency_purchase",
            lambda: EventRecord.currency_purchase(
                self._session.default_attributes,
                game_currency_type,
                game_currency_amount,
                real_currency_type,
                real_money_cost,
                payment_provider,
            ),
        )

    def _currency_purchase_with_attributes(
        self, game_currency_type: str, game_currency_amount: int, attributes: Sequence[Attribute] = ()
    ) -> bool:
        return self._record(
            "record_currency_purchase",
            lambda: EventRecord.currency_purchase_with_attributes(
                game_currency_type, game_currency_amount, self._session.merge_attributes(attributes)
            ),
        )

    def record_currency_given(
        self,
        game_currency_type: str,
        game_currency_amount: int,
        attributes: Sequence[Attribute] | None = None,
    ) -> bool:
        """Record in-game currency given to the user.

        Without *attributes* the type and amount are written as attributes;
        with them (even an empty list) they are written as fields.
        """
        if attributes is None:
            return self._record(
                "record_currency_given",
                lambda: EventRecord.currency_given(
                    self._session.default_attributes, game_currency_type, game_currency_amount
                ),
            )
        return self._record(
            "record_currency_given",
            lambda: EventRecord.currency_given_with_attributes(
                game_currency_type, game_currency_amount, self._session.merge_attributes(attributes)
            ),
        )

    def record_error(self, message: str, attributes: Sequence[Attribute] = ()) -> bool:
        return self._record(
            "record_error",
            lambda: EventRecord.error(message, self._session.merge_attributes(attributes)),
        )

    def record_progress(
        self, progress_type: str, progress_name: str, attributes: Sequence[Attribute] = ()
    ) -> bool:
        return self._record(
            "record_progress",
            lambda: EventRecord.progress(progress_type, progress_name, self._session.merge_attributes(attributes)),
        )
