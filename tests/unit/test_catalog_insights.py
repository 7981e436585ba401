"""Unit tests for catalog filter facets and category performance."""

from decimal import Decimal

import pytest
from services.store_service.models import OrderStatus
from services.store_service.services.analytics import get_category_performance
from services.store_service.services.catalog import get_filter_facets, star_bucket
from tests.factories import (
    BrandFactory,
    CategoryFactory,
    OrderFactory,
    ProductFactory,
    ReviewFactory,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "average,stars", [(5, 5), (4.5, 5), (4.49, 4), (3.5, 4), (1.2, 1)]
)
def test_star_bucket_rounds_half_up(average, stars):
    assert star_bucket(average) == stars


# ---------------------------------------------------------------------------
# Filter facets
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_facets_count_active_products_only(db_session):
    lighting = CategoryFactory.create(name="Lighting")
    mirrors = CategoryFactory.create(name="Mirrors")
    rugs = CategoryFactory.create(name="Rugs")
    atelier = BrandFactory.create(name="Atelier")
    souk = BrandFactory.create(name="Souk")
    unused = BrandFactory.create(name="Unused")
    db_session.add_all([lighting, mirrors, rugs, atelier, souk, unused])
    lamp = ProductFactory.create(
        lighting.id, brand_id=atelier.id, price=Decimal("45.00")
    )
    pendant = ProductFactory.create(
        lighting.id, brand_id=atelier.id, price=Decimal("320.00"), stock=0
    )
    mirror = ProductFactory.create(
        mirrors.id, brand_id=souk.id, price=Decimal("150.00")
    )
    retired = ProductFactory.create(
        mirrors.id, brand_id=unused.id, price=Decimal("9000.00"), is_active=False
    )
    db_session.add_all([lamp, pendant, mirror, retired])
    db_session.add_all(
        [
            ReviewFactory.create(lamp.id, rating=5),
            ReviewFactory.create(lamp.id, rating=4),
            ReviewFactory.create(mirror.id, rating=3),
        ]
    )
    await db_session.commit()

    facets = await get_filter_facets(db_session)

    assert [(c["name"], c["count"]) for c in facets["categories"]] == [
        ("Lighting", 2),
        ("Mirrors", 1),
        ("Rugs", 0),
    ]
    assert [(b["name"], b["count"]) for b in facets["brands"]] == [
        ("Atelier", 2),
        ("Souk", 1),
    ]
    assert facets["price_range"] == {
        "min": Decimal("45.00"),
        "max": Decimal("320.00"),
    }
    # Lamp averages 4.5 (rounds to 5), mirror 3
    assert facets["ratings"] == [
        {"stars": 5, "count": 1},
        {"stars": 4, "count": 0},
        {"stars": 3, "count": 1},
        {"stars": 2, "count": 0},
        {"stars": 1, "count": 0},
    ]
    assert facets["availability"] == {"in_stock": 2, "out_of_stock": 1, "total": 3}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_facets_on_empty_catalog(db_session):
    facets = await get_filter_facets(db_session)

    assert facets["categories"] == []
    assert facets["brands"] == []
    assert facets["price_range"] == {"min": Decimal("0.00"), "max": Decimal("5000.00")}
    assert facets["availability"]["total"] == 0


# ---------------------------------------------------------------------------
# Category performance
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_category_performance_uses_delivered_orders(db_session):
    lighting = CategoryFactory.create(name="Lighting")
    mirrors = CategoryFactory.create(name="Mirrors")
    rugs = CategoryFactory.create(name="Rugs")
    db_session.add_all([lighting, mirrors, rugs])
    lamp = ProductFactory.create(lighting.id, price=Decimal("100.00"))
    pendant = ProductFactory.create(lighting.id, price=Decimal("50.00"))
    mirror = ProductFactory.create(mirrors.id, price=Decimal("100.00"))
    db_session.add_all([lamp, pendant, mirror])
    db_session.add_all(
        [
            OrderFactory.create(
                "customer-1",
                items=[(lamp, 2), (pendant, 1)],
                status=OrderStatus.DELIVERED,
            ),
            OrderFactory.create(
                "customer-2", items=[(mirror, 1)], status=OrderStatus.DELIVERED
            ),
            # Not delivered yet, so no revenue
            OrderFactory.create(
                "customer-3", items=[(mirror, 5)], status=OrderStatus.SHIPPED
            ),
        ]
    )
    await db_session.commit()

    rows = await get_category_performance(db_session)

    assert [row["name"] for row in rows] == ["Lighting", "Mirrors", "Rugs"]
    lighting_row, mirrors_row, rugs_row = rows
    assert lighting_row["revenue"] == Decimal("250.00")
    assert lighting_row["units_sold"] == 3
    assert lighting_row["order_count"] == 1
    assert lighting_row["product_count"] == 2
    assert lighting_row["percentage"] == pytest.approx(71.43)
    assert mirrors_row["revenue"] == Decimal("100.00")
    assert mirrors_row["units_sold"] == 1
    assert mirrors_row["percentage"] == pytest.approx(28.57)
    assert rugs_row["revenue"] == Decimal("0.00")
    assert rugs_row["percentage"] == 0.0
