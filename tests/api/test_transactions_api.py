"""Transactions API — posting credits and debits over HTTP.

Invariants:
    - 201 with the updated card; balance == sum(operations.amount)
    - Invalid input (400) and foreign cards (404) leave the card unchanged
"""

from uuid import uuid4

import pytest


def _path(card):
    return f"/cards/{card['id']}/transactions"


async def test_post_debit(client, auth, cash_card):
    res = await client.post(
        _path(cash_card), json={"amount": -30, "description": "coffee"}, headers=auth(),
    )
    assert res.status_code == 201
    body = res.json()
    assert body["balance"] == 70.0
    assert len(body["operations"]) == 2
    assert body["operations"][-1]["amount"] == -30.0
    assert body["operations"][-1]["description"] == "coffee"
    assert body["lastOperation"]["amount"] == -30.0
    assert body["lastOperation"]["description"] == "coffee"


async def test_post_keeps_balance_equal_to_history(client, auth, cash_card):
    for amount, description in [(12.5, "refund"), (-0.5, "fee"), (3, "tip")]:
        res = await client.post(
            _path(cash_card), json={"amount": amount, "description": description},
            headers=auth(),
        )
        body = res.json()
        assert body["balance"] == pytest.approx(sum(op["amount"] for op in body["operations"]))
    assert body["balance"] == 115.0
    assert len(body["operations"]) == 4


@pytest.mark.parametrize("payload", [
    {"amount": "10", "description": "x"},
    {"amount": None, "description": "x"},
    {"description": "x"},
    {"amount": 10},
    {"amount": 10, "description": ""},
    {"amount": 10, "description": "   "},
    {"amount": True, "description": "x"},
])
async def test_post_invalid_input_is_400_and_changes_nothing(client, auth, cash_card, payload):
    res = await client.post(_path(cash_card), json=payload, headers=auth())
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"

    card = (await client.get(f"/cards/{cash_card['id']}", headers=auth())).json()
    assert card["balance"] == 100.0
    assert len(card["operations"]) == 1


async def test_post_to_foreign_card_is_404(client, auth, cash_card):
    res = await client.post(
        _path(cash_card), json={"amount": 10, "description": "x"}, headers=auth("u2"),
    )
    assert res.status_code == 404

    card = (await client.get(f"/cards/{cash_card['id']}", headers=auth("u1"))).json()
    assert card["balance"] == 100.0


async def test_post_to_unknown_card_is_404(client, auth):
    res = await client.post(
        f"/cards/{uuid4()}/transactions", json={"amount": 1, "description": "x"},
        headers=auth(),
    )
    assert res.status_code == 404


async def test_post_to_malformed_id_is_404(client, auth):
    res = await client.post(
        "/cards/nope/transactions", json={"amount": 1, "description": "x"},
        headers=auth(),
    )
    assert res.status_code == 404
