"""Test mutating property references: POST/PUT/DELETE /{repository}/{id}/{property}[/{propertyId}]."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from tests.conftest import href

if TYPE_CHECKING:
    from typing import Any

    from httpx import AsyncClient

    from tests.conftest import SeededData


def links_body(*paths: str, rels: list[str] | None = None) -> dict[str, Any]:
    links = [{"href": href(path)} for path in paths]
    for link, rel in zip(links, rels or []):
        link["rel"] = rel
    return {"links": links}


async def item_ids(client: AsyncClient, order_id: int) -> list[int]:
    response = await client.get(f"/orders/{order_id}/items")
    assert response.status_code == 200, response.text
    return [item["id"] for item in response.json()["content"]]


async def slot_ids(client: AsyncClient, order_id: int) -> dict[str, int]:
    response = await client.get(f"/orders/{order_id}/slots")
    assert response.status_code == 200, response.text
    return {key: item["id"] for key, item in response.json()["content"].items()}


# -----------------------------------------------------------------------------
# Singular properties
# -----------------------------------------------------------------------------
async def test_put_singular_round_trips(client: AsyncClient, seeded: SeededData) -> None:
    """PUT then GET on a singular property returns the newly linked object."""
    response = await client.put(
        f"/orders/{seeded.empty_order_id}/customer",
        json=links_body(f"customers/{seeded.other_customer_id}"),
    )

    assert response.status_code == 201, response.text
    assert response.content == b""

    followed = await client.get(f"/orders/{seeded.empty_order_id}/customer")
    assert followed.status_code == 200, followed.text
    assert followed.json()["id"] == str(seeded.other_customer_id)
    assert followed.json()["links"][0]["href"] == href(f"customers/{seeded.other_customer_id}")


async def test_put_singular_replaces(client: AsyncClient, seeded: SeededData) -> None:
    response = await client.put(
        f"/orders/{seeded.order_id}/customer",
        json=links_body(f"customers/{seeded.other_customer_id}"),
    )
    assert response.status_code == 201, response.text

    followed = await client.get(f"/orders/{seeded.order_id}/customer")
    assert followed.json()["name"] == "Grace Hopper"


@pytest.mark.parametrize("count", [0, 2])
async def test_put_singular_requires_exactly_one_link(
    client: AsyncClient, seeded: SeededData, count: int
) -> None:
    paths = [f"customers/{seeded.customer_id}", f"customers/{seeded.other_customer_id}"][:count]
    response = await client.put(
        f"/orders/{seeded.empty_order_id}/customer", json=links_body(*paths)
    )

    assert response.status_code == 400
    assert (await client.get(f"/orders/{seeded.empty_order_id}/customer")).status_code == 404


async def test_post_singular_is_bad_request(client: AsyncClient, seeded: SeededData) -> None:
    response = await client.post(
        f"/orders/{seeded.empty_order_id}/customer",
        json=links_body(f"customers/{seeded.customer_id}"),
    )

    assert response.status_code == 400


async def test_put_unresolvable_link_is_not_found(client: AsyncClient, seeded: SeededData) -> None:
    response = await client.put(
        f"/orders/{seeded.order_id}/customer",
        json=links_body("customers/00000000-0000-0000-0000-000000000000"),
    )

    assert response.status_code == 404
    followed = await client.get(f"/orders/{seeded.order_id}/customer")
    assert followed.json()["id"] == str(seeded.customer_id)


async def test_invalid_body_is_bad_request(client: AsyncClient, seeded: SeededData) -> None:
    response = await client.put(
        f"/orders/{seeded.order_id}/items",
        content=b"not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400


async def test_non_utf8_uri_list_is_bad_request(client: AsyncClient, seeded: SeededData) -> None:
    response = await client.post(
        f"/orders/{seeded.order_id}/items",
        content=b"\xff\xfe/items/9",
        headers={"Content-Type": "text/uri-list"},
    )

    assert response.status_code == 400
    followed = await client.get(f"/orders/{seeded.order_id}/items")
    assert [item["id"] for item in followed.json()["content"]] == list(seeded.item_ids)


@pytest.mark.parametrize("linked_id", ["99999999999999999999", "0_9", "+9"])
async def test_post_link_to_out_of_range_id_is_not_found(
    client: AsyncClient, seeded: SeededData, linked_id: str
) -> None:
    """Link ids that cannot be a stored primary key resolve to nothing."""
    response = await client.post(
        f"/orders/{seeded.order_id}/items",
        json=links_body(f"items/{linked_id}"),
    )

    assert response.status_code == 404, response.text
    followed = await client.get(f"/orders/{seeded.order_id}/items")
    assert [item["id"] for item in followed.json()["content"]] == list(seeded.item_ids)


async def test_delete_singular(client: AsyncClient, seeded: SeededData) -> None:
    response = await client.delete(f"/orders/{seeded.order_id}/customer")

    assert response.status_code == 204
    assert (await client.get(f"/orders/{seeded.order_id}/customer")).status_code == 404


async def test_delete_null_singular_is_noop(client: AsyncClient, seeded: SeededData) -> None:
    """Deleting an unset singular property succeeds without changes."""
    response = await client.delete(f"/orders/{seeded.empty_order_id}/customer")

    assert response.status_code == 204


async def test_delete_singular_by_id(client: AsyncClient, seeded: SeededData) -> None:
    """The singular value is cleared only when the id matches."""
    mismatch = await client.delete(
        f"/orders/{seeded.order_id}/customer/{seeded.other_customer_id}"
    )
    assert mismatch.status_code == 204
    assert (await client.get(f"/orders/{seeded.order_id}/customer")).status_code == 200

    match = await client.delete(f"/orders/{seeded.order_id}/customer/{seeded.customer_id}")
    assert match.status_code == 204
    assert (await client.get(f"/orders/{seeded.order_id}/customer")).status_code == 404


# -----------------------------------------------------------------------------
# Collection-like properties
# -----------------------------------------------------------------------------
async def test_post_collection_appends(client: AsyncClient, seeded: SeededData) -> None:
    """POST keeps the prior elements."""
    response = await client.post(
        f"/orders/{seeded.order_id}/items", json=links_body("items/9")
    )

    assert response.status_code == 201, response.text
    assert await item_ids(client, seeded.order_id) == [*seeded.item_ids, 9]


async def test_post_collection_does_not_duplicate(client: AsyncClient, seeded: SeededData) -> None:
    response = await client.post(
        f"/orders/{seeded.order_id}/items",
        json=links_body(f"items/{seeded.item_ids[0]}", "items/7"),
    )

    assert response.status_code == 201, response.text
    assert await item_ids(client, seeded.order_id) == [*seeded.item_ids, 7]


async def test_put_collection_replaces(client: AsyncClient, seeded: SeededData) -> None:
    response = await client.put(
        f"/orders/{seeded.order_id}/items", json=links_body("items/7")
    )

    assert response.status_code == 201, response.text
    assert await item_ids(client, seeded.order_id) == [7]


async def test_order_items_example(client: AsyncClient, seeded: SeededData) -> None:
    """Order#5: POST Item#9 adds it to the prior items; PUT [7] leaves exactly {7}."""
    await client.post("/orders/5/items", json=links_body("items/9"))
    assert set(await item_ids(client, 5)) == {1, 2, 9}

    await client.put("/orders/5/items", json=links_body("items/7"))
    assert set(await item_ids(client, 5)) == {7}


async def test_put_collection_from_uri_list(client: AsyncClient, seeded: SeededData) -> None:
    response = await client.put(
        f"/orders/{seeded.empty_order_id}/items",
        content=f"{href('items/7')}\n# comment\n{href('items/8')}\n".encode(),
        headers={"Content-Type": "text/uri-list"},
    )

    assert response.status_code == 201, response.text
    assert await item_ids(client, seeded.empty_order_id) == [7, 8]


async def test_put_collection_with_no_links_empties_it(client: AsyncClient, seeded: SeededData) -> None:
    response = await client.put(f"/orders/{seeded.order_id}/items", json={"links": []})

    assert response.status_code == 201, response.text
    assert await item_ids(client, seeded.order_id) == []


@pytest.mark.parametrize("property_path", ["items", "slots"])
@pytest.mark.parametrize("order", ["order_id", "empty_order_id"])
async def test_delete_multi_valued_property_not_supported(
    client: AsyncClient, seeded: SeededData, property_path: str, order: str
) -> None:
    """DELETE without an element id never succeeds on collections or maps."""
    order_id = getattr(seeded, order)
    response = await client.delete(f"/orders/{order_id}/{property_path}")

    assert response.status_code == 405
    assert "GET" in response.headers["allow"]


async def test_delete_collection_element(client: AsyncClient, seeded: SeededData) -> None:
    first, second = seeded.item_ids
    response = await client.delete(f"/orders/{seeded.order_id}/items/{first}")

    assert response.status_code == 204
    assert await item_ids(client, seeded.order_id) == [second]


async def test_delete_collection_element_is_idempotent(client: AsyncClient, seeded: SeededData) -> None:
    """Deleting an id that is not referenced leaves the collection unchanged."""
    for _ in range(2):
        response = await client.delete(f"/orders/{seeded.order_id}/items/42")
        assert response.status_code == 204

    first, _ = seeded.item_ids
    for _ in range(2):
        response = await client.delete(f"/orders/{seeded.order_id}/items/{first}")
        assert response.status_code == 204

    assert await item_ids(client, seeded.order_id) == [seeded.item_ids[1]]


# -----------------------------------------------------------------------------
# Map-like properties
# -----------------------------------------------------------------------------
async def test_post_map_merges(client: AsyncClient, seeded: SeededData) -> None:
    response = await client.post(
        f"/orders/{seeded.order_id}/slots",
        json=links_body("items/9", rels=["spare"]),
    )

    assert response.status_code == 201, response.text
    assert await slot_ids(client, seeded.order_id) == {"gift": seeded.slot_item_id, "spare": 9}


async def test_post_map_overwrites_same_key(client: AsyncClient, seeded: SeededData) -> None:
    response = await client.post(
        f"/orders/{seeded.order_id}/slots",
        json=links_body("items/7", rels=["gift"]),
    )

    assert response.status_code == 201, response.text
    assert await slot_ids(client, seeded.order_id) == {"gift": 7}


async def test_put_map_replaces(client: AsyncClient, seeded: SeededData) -> None:
    response = await client.put(
        f"/orders/{seeded.order_id}/slots",
        json=links_body("items/1", "items/2", rels=["left", "right"]),
    )

    assert response.status_code == 201, response.text
    assert await slot_ids(client, seeded.order_id) == {"left": 1, "right": 2}


async def test_delete_map_element(client: AsyncClient, seeded: SeededData) -> None:
    response = await client.delete(f"/orders/{seeded.order_id}/slots/{seeded.slot_item_id}")

    assert response.status_code == 204
    assert await slot_ids(client, seeded.order_id) == {}


# -----------------------------------------------------------------------------
# Unknown targets
# -----------------------------------------------------------------------------
@pytest.mark.parametrize(
    ("method", "path"),
    [
        ("PUT", "/orders/999/customer"),
        ("POST", "/orders/5/nonexistent"),
        ("DELETE", "/orders/999/customer"),
        ("DELETE", "/orders/5/nonexistent/1"),
        ("DELETE", "/unknown/5/items/1"),
        ("PUT", "/orders/99999999999999999999/customer"),
        ("DELETE", "/orders/99999999999999999999/items/1"),
        ("DELETE", "/orders/0_5/customer"),
    ],
)
async def test_mutating_unknown_paths_is_not_found(
    client: AsyncClient, seeded: SeededData, method: str, path: str
) -> None:
    response = await client.request(method, path, json=links_body(f"customers/{seeded.customer_id}"))

    assert response.status_code == 404, response.text
