"""Tests for confirmation delivery."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import RecordingMessenger
from oracle import messages
from oracle.dispatcher import NotificationDispatcher
from oracle.interest import InterestIndex
from oracle.models import FactPayload, Output

FACT = "BA950-2017-03-01"


def _ledger(feed_names):
    ledger = MagicMock()
    ledger.feed_names_in_units = AsyncMock(return_value=feed_names)
    return ledger


@pytest.mark.asyncio
class TestNotificationDispatcher:
    async def test_notifies_each_requester_once(self):
        interest = InterestIndex()
        interest.register(FACT, "dev-2")
        interest.register(FACT, "dev-1")
        messenger = RecordingMessenger()
        # the remark shares the unit with the value
        dispatcher = NotificationDispatcher(_ledger([FACT, FACT + "-remark", FACT]), interest, messenger)

        sent = await dispatcher.on_units_stable(["unit-1"])

        assert sent == 2
        assert messenger.sent == [
            ("dev-1", messages.confirmed_text(FACT)),
            ("dev-2", messages.confirmed_text(FACT)),
        ]
        assert FACT not in interest

    async def test_second_signal_sends_nothing(self):
        interest = InterestIndex()
        interest.register(FACT, "dev-1")
        messenger = RecordingMessenger()
        dispatcher = NotificationDispatcher(_ledger([FACT]), interest, messenger)

        await dispatcher.on_units_stable(["unit-1"])
        assert await dispatcher.on_units_stable(["unit-1"]) == 0
        assert len(messenger.sent) == 1

    async def test_no_units(self):
        ledger = _ledger([])
        dispatcher = NotificationDispatcher(ledger, InterestIndex(), RecordingMessenger())

        assert await dispatcher.on_units_stable([]) == 0
        ledger.feed_names_in_units.assert_not_awaited()

    async def test_foreign_feeds_ignored(self):
        interest = InterestIndex()
        interest.register(FACT, "dev-1")
        messenger = RecordingMessenger()
        dispatcher = NotificationDispatcher(_ledger(["LH400-2017-03-01"]), interest, messenger)

        assert await dispatcher.on_units_stable(["unit-9"]) == 0
        assert interest.waiting(FACT) == {"dev-1"}

    async def test_with_sandbox_ledger(self, funded_ledger):
        interest = InterestIndex()
        interest.register(FACT, "dev-1")
        messenger = RecordingMessenger()
        dispatcher = NotificationDispatcher(funded_ledger, interest, messenger)
        unit = await funded_ledger.post_data_feed(
            [Output(0, funded_ledger.address)], FactPayload(FACT, 23).to_datafeed()
        )

        changed = funded_ledger.stabilize()
        sent = await dispatcher.on_units_stable(changed)

        assert changed == [unit]
        assert sent == 1
        assert messenger.texts_for("dev-1") == [messages.confirmed_text(FACT)]

    async def test_check_units_notifies_only_for_stable(self, funded_ledger):
        interest = InterestIndex()
        interest.register(FACT, "dev-1")
        messenger = RecordingMessenger()
        dispatcher = NotificationDispatcher(funded_ledger, interest, messenger)
        unit = await funded_ledger.post_data_feed(
            [Output(0, funded_ledger.address)], FactPayload(FACT, 23).to_datafeed()
        )

        assert await dispatcher.check_units([unit]) == []
        assert messenger.sent == []

        funded_ledger.stabilize([unit])
        assert await dispatcher.check_units([unit]) == [unit]
        assert messenger.texts_for("dev-1") == [messages.confirmed_text(FACT)]
