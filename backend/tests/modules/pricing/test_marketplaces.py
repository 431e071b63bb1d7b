# tests/modules/pricing/test_marketplaces.py
import pytest
from fastapi import status

from vitrine.modules.pricing.marketplaces import (
    calculate_final_price,
    calculate_wholesale_price,
    compare_marketplace_fees,
    get_active_fashion_marketplaces,
)


def test_final_price_applies_commission_payment_and_fixed_fee():
    result = calculate_final_price(100, "mercadolivre")
    assert result.commission == pytest.approx(16)
    assert result.payment_fee == pytest.approx(4.49)
    assert result.fixed_fee == 5
    assert result.net_profit == pytest.approx(100 - (16 + 4.49 + 5))
    assert result.profit_margin == pytest.approx(result.net_profit / 100 * 100)


def test_final_price_for_unknown_marketplace_charges_nothing():
    result = calculate_final_price(250, "nao-existe")
    assert result.net_profit == 250
    assert result.profit_margin == 100
    assert result.total_fees == 0


def test_comparison_covers_active_fashion_marketplaces_sorted_by_profit():
    comparison = compare_marketplace_fees(100)
    ids = [item.id for item in comparison]

    assert "kabum" not in ids  # inativo e sem moda
    assert len(comparison) == len(get_active_fashion_marketplaces())
    profits = [item.net_profit for item in comparison]
    assert profits == sorted(profits, reverse=True)
    assert comparison[0].id == "shein"
    assert comparison[-1].id == "centauro"


@pytest.mark.parametrize(
    "quantity,expected",
    [(1, 100), (5, 100), (6, 85), (11, 85), (12, 75), (50, 75)],
)
def test_wholesale_price_tiers(quantity, expected):
    assert calculate_wholesale_price(100, quantity) == expected


def test_wholesale_price_is_floored():
    assert calculate_wholesale_price(99.9, 6) == 84  # 84.915


async def test_fees_endpoint_returns_comparison_and_insights(test_client):
    response = await test_client.get("/api/v1/market/fees", params={"price": 100})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["success"] is True
    assert data["insights"]["best_marketplace"]["name"] == "Shein"
    assert data["insights"]["best_marketplace"]["profit_margin"] == "85.00"
    assert data["insights"]["worst_marketplace"]["name"] == "Centauro"
    assert data["insights"]["difference"] == pytest.approx(11)


async def test_fees_endpoint_rejects_non_positive_price(test_client):
    response = await test_client.get("/api/v1/market/fees", params={"price": 0})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Invalid price", "code": "invalid_input"}


async def test_single_marketplace_fees_and_unknown_id(test_client):
    ok = await test_client.get("/api/v1/market/fees/shopee", params={"price": 200})
    assert ok.status_code == 200
    assert ok.json()["commission"] == pytest.approx(30)

    missing = await test_client.get("/api/v1/market/fees/unknown")
    assert missing.status_code == 404


async def test_marketplaces_listing(test_client):
    response = await test_client.get("/api/v1/market/marketplaces")
    assert response.status_code == 200
    assert len(response.json()) == 13


@pytest.mark.parametrize("price", ["inf", "-inf", "nan"])
async def test_fees_endpoints_reject_non_finite_price(test_client, price):
    comparison = await test_client.get("/api/v1/market/fees", params={"price": price})
    assert comparison.status_code == status.HTTP_400_BAD_REQUEST
    assert comparison.json()["code"] == "invalid_input"

    single = await test_client.get("/api/v1/market/fees/shein", params={"price": price})
    assert single.status_code == status.HTTP_400_BAD_REQUEST
