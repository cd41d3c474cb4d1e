import asyncio
from datetime import datetime, timedelta

import pydantic
import pytest

from courtroom.engine.transcript import TranscriptStore
from courtroom.models.session import Speaker, Turn

OWNER = {"user_id": "u1", "case_id": "burglary-1", "case_title": "The State v. Alex Vermeer"}


def test_appends_keep_order_and_timestamps_never_go_back(storage):
    async def scenario():
        future = Turn(
            speaker=Speaker.JUDGE,
            name="Judge Van der Berg",
            text="Earlier turn with a clock ahead of ours.",
            timestamp=datetime.utcnow() + timedelta(minutes=5),
        )
        store = TranscriptStore("s1", storage, turns=[future], owner=OWNER)

        first = store.append(Speaker.STUDENT, "Alex", "one")
        second = store.append(Speaker.PROSECUTOR, "Prosecutor Jansen", "two")
        await store.drain()

        assert [t.text for t in store.turns] == ["Earlier turn with a clock ahead of ours.", "one", "two"]
        assert future.timestamp <= first.timestamp <= second.timestamp
        assert storage.appended["s1"] == [first, second]
        assert store.pending == 0

    asyncio.run(scenario())


def test_turns_are_immutable():
    turn = Turn(speaker=Speaker.STUDENT, name="Alex", text="hi", timestamp=datetime.utcnow())

    with pytest.raises(pydantic.ValidationError):
        turn.text = "changed"


def test_turns_view_is_a_snapshot(storage):
    async def scenario():
        store = TranscriptStore("s1", storage, owner=OWNER)
        store.append(Speaker.STUDENT, "Alex", "one")
        snapshot = store.turns
        store.append(Speaker.STUDENT, "Alex", "two")
        await store.drain()

        assert len(snapshot) == 1
        assert len(store) == 2
        assert [t.text for t in store.student_turns()] == ["one", "two"]

    asyncio.run(scenario())


def test_failed_write_is_reported_and_retried(storage):
    async def scenario():
        errors = []
        store = TranscriptStore("s1", storage, errors=errors, owner=OWNER)
        storage.fail_appends = True

        store.append(Speaker.STUDENT, "Alex", "one")
        await store.drain()

        assert store.pending == 1
        assert errors and errors[0].startswith("Auto-save failed")
        assert "s1" not in storage.appended

        storage.fail_appends = False
        store.append(Speaker.JUDGE, "Judge Van der Berg", "two")
        await store.drain()

        assert store.pending == 0
        assert [t.text for t in storage.appended["s1"]] == ["one", "two"]

    asyncio.run(scenario())


def test_failed_open_is_retried_before_the_next_write(storage):
    async def scenario():
        errors = []
        store = TranscriptStore("s1", storage, errors=errors, owner=OWNER)
        storage.fail_opens = 1

        assert await store.open() is False
        assert "s1" not in storage.records
        assert errors == ["Progress could not be saved: database unavailable"]

        store.append(Speaker.JUDGE, "Judge Van der Berg", "The court is in session.")
        await store.drain()

        assert storage.records["s1"].user_id == "u1"
        assert storage.records["s1"].case_id == "burglary-1"
        assert [t.text for t in storage.appended["s1"]] == ["The court is in session."]
        assert store.pending == 0

    asyncio.run(scenario())


def test_store_for_an_existing_record_never_opens_one(storage):
    async def scenario():
        store = TranscriptStore("s1", storage)

        assert await store.open() is True
        assert storage.records == {}

    asyncio.run(scenario())
