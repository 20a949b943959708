"""
Tests for bookable listings and their nested bookings.
"""

import pytest


@pytest.mark.asyncio
async def test_facilities_only_lokal(gql, bookables):
    status, body = await gql("{ facilities { id title description bookable_type } }")

    assert status == 200
    facilities = body["data"]["facilities"]
    assert [f["title"] for f in facilities] == ["Aula", "Aula", "Bibliotek"]
    assert all(f["bookable_type"] == "lokal" for f in facilities)
    # Equal titles fall back to id order
    assert facilities[0]["id"] < facilities[1]["id"]


@pytest.mark.asyncio
async def test_inventories_only_inventarie(gql, bookables):
    _, body = await gql("{ inventories { title bookable_type } }")

    assert body["data"]["inventories"] == [
        {"title": "Kamera", "bookable_type": "inventarie"},
        {"title": "Projektor", "bookable_type": "inventarie"},
    ]


@pytest.mark.asyncio
async def test_bookables_is_union_of_types(gql, bookables):
    _, body = await gql("{ facilities { id } inventories { id } bookables { id } }")
    data = body["data"]

    typed = {b["id"] for b in data["facilities"]} | {b["id"] for b in data["inventories"]}
    assert {b["id"] for b in data["bookables"]} == typed
    assert len(data["bookables"]) == 5


@pytest.mark.asyncio
async def test_bookables_pagination(gql, bookables):
    _, first = await gql("{ bookables(page: 0, maxItems: 3) { title } }")
    _, second = await gql("{ bookables(page: 1, maxItems: 3) { title } }")
    _, beyond = await gql("{ bookables(page: 5, maxItems: 3) { title } }")

    assert [b["title"] for b in first["data"]["bookables"]] == ["Aula", "Aula", "Bibliotek"]
    assert [b["title"] for b in second["data"]["bookables"]] == ["Kamera", "Projektor"]
    assert beyond["data"]["bookables"] == []


@pytest.mark.asyncio
async def test_bookable_nested_bookings(gql, bookables, accepted_booking):
    _, body = await gql("{ facilities { id bookings { id title items { id } } } }")

    by_id = {f["id"]: f for f in body["data"]["facilities"]}
    first = by_id[bookables[0].id]
    assert first["bookings"] == [
        {"id": accepted_booking.id, "title": "Styrelsemöte", "items": [{"id": bookables[0].id}]}
    ]
    assert by_id[bookables[1].id]["bookings"] == []


@pytest.mark.asyncio
async def test_max_items_upper_bound(gql, bookables):
    _, body = await gql("{ bookables(maxItems: 1000) { id } }")
    assert body["errors"][0]["extensions"]["code"] == "BAD_USER_INPUT"
