"""Add-ticket workflow tests: Sympla mocked, store faked."""

from __future__ import annotations

from pathlib import Path
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from conftest import sympla_participant  # noqa: E402
from errors import DuplicateKeyError, ExternalLookupError, TicketLinkError  # noqa: E402

USER_ID = "3f9a6a3c-8f4e-4f8e-9a51-3d0c2b1a7e01"
EVENT_ID = "b6d0f6f2-21a4-4c55-8d4b-6b4a0f0e3c02"


@pytest.fixture()
def seeded(fake_db, sympla_tickets):
    fake_db.seed("users", id=USER_ID, email="john@example.com", cpf="52998224725")
    fake_db.seed("events", id=EVENT_ID, sympla_id="EVT1", name="Feira")
    sympla_tickets[("EVT1", "C123")] = sympla_participant()
    return fake_db


@pytest.mark.asyncio
async def test_add_ticket_stores_and_links_ticket(services, seeded) -> None:
    ticket = await services.add_ticket.run(code="C123", user_id=USER_ID, sympla_event_id="EVT1")

    assert ticket["name"] == "John"
    assert ticket["seat"] == "A1"
    assert ticket["user_id"] == USER_ID
    assert ticket["event_id"] == EVENT_ID
    assert isinstance(ticket["id"], str)

    stored = seeded.tables["tickets"]
    assert [row["id"] for row in stored] == [ticket["id"]]
    assert seeded.tables["users"][0]["tickets"] == [ticket["id"]]


@pytest.mark.asyncio
async def test_provider_failure_stores_nothing(services, seeded) -> None:
    with pytest.raises(ExternalLookupError) as excinfo:
        await services.add_ticket.run(code="BAD", user_id=USER_ID, sympla_event_id="EVT1")

    assert excinfo.value.attribute == "ticket"
    assert excinfo.value.invalid_args == ["ticket"]
    assert seeded.tables["tickets"] == []
    assert seeded.tables["users"][0]["tickets"] == []


@pytest.mark.asyncio
async def test_unknown_event_fails_before_calling_provider(services, seeded, sympla_requests) -> None:
    with pytest.raises(ExternalLookupError) as excinfo:
        await services.add_ticket.run(code="C123", user_id=USER_ID, sympla_event_id="NOPE")

    assert excinfo.value.kind == "Event"
    assert excinfo.value.attribute == "event"
    assert sympla_requests == []


@pytest.mark.asyncio
async def test_event_lookup_store_failure_is_classified(services, seeded) -> None:
    seeded.fail("events", "select")

    with pytest.raises(ExternalLookupError) as excinfo:
        await services.add_ticket.run(code="C123", user_id=USER_ID, sympla_event_id="EVT1")

    assert excinfo.value.attribute == "event"


@pytest.mark.asyncio
async def test_duplicate_ticket_leaves_user_list_unchanged(services, seeded) -> None:
    first = await services.add_ticket.run(code="C123", user_id=USER_ID, sympla_event_id="EVT1")

    with pytest.raises(DuplicateKeyError) as excinfo:
        await services.add_ticket.run(code="C123", user_id=USER_ID, sympla_event_id="EVT1")

    assert excinfo.value.fields == ["event_id", "code"]
    assert seeded.tables["users"][0]["tickets"] == [first["id"]]
    assert len(seeded.tables["tickets"]) == 1


@pytest.mark.asyncio
async def test_push_failure_removes_the_new_ticket(services, seeded) -> None:
    seeded.fail("users", "rpc")

    with pytest.raises(TicketLinkError) as excinfo:
        await services.add_ticket.run(code="C123", user_id=USER_ID, sympla_event_id="EVT1")

    assert excinfo.value.compensated is True
    assert seeded.tables["tickets"] == []


@pytest.mark.asyncio
async def test_unknown_owner_fails_before_calling_provider(services, seeded, sympla_requests) -> None:
    other_user = "0c3d8a27-5b1e-4f61-a1e2-9d5f7c4b3a10"

    with pytest.raises(ExternalLookupError) as excinfo:
        await services.add_ticket.run(code="C123", user_id=other_user, sympla_event_id="EVT1")

    assert excinfo.value.kind == "User"
    assert excinfo.value.invalid_args == ["user_id"]
    assert str(excinfo.value) == "User error, not found to get user_id"
    assert sympla_requests == []
    assert seeded.tables["tickets"] == []


@pytest.mark.asyncio
async def test_owner_lookup_store_failure_is_classified(services, seeded, sympla_requests) -> None:
    seeded.fail("users", "select")

    with pytest.raises(ExternalLookupError) as excinfo:
        await services.add_ticket.run(code="C123", user_id=USER_ID, sympla_event_id="EVT1")

    assert excinfo.value.kind == "Database"
    assert excinfo.value.attribute == "user_id"
    assert sympla_requests == []


@pytest.mark.asyncio
async def test_failed_compensation_leaves_ticket_for_relink(services, seeded) -> None:
    seeded.fail("users", "rpc")
    seeded.fail("tickets", "delete")

    with pytest.raises(TicketLinkError) as excinfo:
        await services.add_ticket.run(code="C123", user_id=USER_ID, sympla_event_id="EVT1")

    assert excinfo.value.compensated is False
    orphan_id = seeded.tables["tickets"][0]["id"]
    assert seeded.tables["users"][0]["tickets"] == []

    seeded.failures.clear()
    repaired = await services.add_ticket.relink(USER_ID)

    assert [ticket["id"] for ticket in repaired["tickets"]] == [orphan_id]
    assert repaired["tickets"][0]["event"]["sympla_id"] == "EVT1"
    assert seeded.tables["users"][0]["tickets"] == [orphan_id]


@pytest.mark.asyncio
async def test_relink_is_a_no_op_for_consistent_users(services, seeded) -> None:
    ticket = await services.add_ticket.run(code="C123", user_id=USER_ID, sympla_event_id="EVT1")

    repaired = await services.add_ticket.relink(USER_ID)

    assert [t["id"] for t in repaired["tickets"]] == [ticket["id"]]
    assert seeded.tables["users"][0]["tickets"] == [ticket["id"]]


@pytest.mark.asyncio
async def test_relink_unknown_user_returns_none(services) -> None:
    assert await services.add_ticket.relink("0c3d8a27-5b1e-4f61-a1e2-9d5f7c4b3a10") is None


@pytest.mark.asyncio
async def test_relink_does_not_duplicate_a_concurrently_pushed_ticket(services, seeded) -> None:
    ticket = await services.add_ticket.run(code="C123", user_id=USER_ID, sympla_event_id="EVT1")
    # the workflow's own push lands after relink has read the user's list
    await services.users.push_ticket(USER_ID, ticket["id"])

    repaired = await services.add_ticket.relink(USER_ID)

    assert [t["id"] for t in repaired["tickets"]] == [ticket["id"]]
    assert seeded.tables["users"][0]["tickets"] == [ticket["id"]]
