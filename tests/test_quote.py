import copy
import os
import sys
from datetime import datetime
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from agroquote.models import CartRequestItem, Customer
from agroquote.quote import assemble_quote, cart_from_session, customer_from_session, parse_quantity
from agroquote.reference import ProductReference


@pytest.mark.parametrize("text, expected", [
    ("40 l", (40.0, "L")),
    ("2,5 kilos", (2.5, "KG")),
    (".5 l", (0.5, "L")),
    ("0,75 kg", (0.75, "KG")),
    ("10 kg", (10.0, "KG")),
    ("200 Litros", (200.0, "L")),
    ("3 unidades", (3.0, "UNID")),
    ("5 bidones", (5.0, "UNID")),
    ("muchos", (0.0, "UNID")),
    ("", (0.0, "UNID")),
])
def test_parse_quantity(text, expected):
    assert parse_quantity(text) == expected


def test_cart_line_by_name_and_presentation(snapshot):
    quote = assemble_quote(
        [CartRequestItem(name="FIX", presentation="20 L", quantity_text="40 l")],
        snapshot,
    )
    line = quote.lines[0]
    assert line.unit_price_ref == 50
    assert line.quantity == 40
    assert line.unit == "L"
    assert line.line_subtotal_ref == 2000
    assert quote.subtotal_ref == 2000
    assert quote.total_ref == 2000
    assert quote.rate == 7


def test_unknown_sku_gives_zero_line(snapshot):
    quote = assemble_quote([{"sku": "NO-EXISTE", "cantidad": "3"}], snapshot)
    line = quote.lines[0]
    assert line.unit_price_ref == 0
    assert line.line_subtotal_ref == 0
    assert not line.price_found
    assert line.display_name == "NO-EXISTE"
    assert quote.unpriced_lines == [line]
    assert quote.total_ref == 0


def test_totals_and_metadata(snapshot):
    cart = [
        {"sku": "FIX-20L", "cantidad": "40 l"},
        {"sku": "Zeta-1 Kg", "cantidad": "3 kg"},
        {"sku": "Glifo", "cantidad": "1,5"},
    ]
    quote = assemble_quote(cart, snapshot, minimum_order=3000, now=datetime(2024, 5, 1, 10, 30))
    assert [l.line_subtotal_ref for l in quote.lines] == [2000, 37.5, 30]
    assert quote.subtotal_ref == 2067.5
    assert quote.total_ref == quote.subtotal_ref
    assert quote.minimum_order_ref == 3000
    assert not quote.meets_minimum_order
    assert quote.currency == "USD"
    assert quote.timestamp == "2024-05-01T10:30:00"
    assert quote.version == "v1"
    assert quote.price_catalog == snapshot.records
    assert quote.id.startswith("COT-")


def test_local_only_price_converted(snapshot):
    # Glifo 只有 Bs 140，汇率 7 -> 20 USD
    quote = assemble_quote([{"sku": "Glifo", "cantidad": "2 unid"}], snapshot)
    assert quote.lines[0].unit_price_ref == 20
    assert quote.lines[0].unit == "UNID"


def test_quote_ids_are_unique(snapshot):
    ids = {assemble_quote([], snapshot).id for _ in range(20)}
    assert len(ids) == 20


def test_reference_fills_display_fields(snapshot):
    reference = ProductReference.from_records([
        {"sku": "FIX-20L", "nombre": "Fix", "presentaciones": ["20 L", "200 L"],
         "ingrediente_activo": "Glifosato 48%"},
        {"sku": "TR-1", "nombre": "Trénch 480 SL", "presentaciones": ["1 L"]},
    ])
    quote = assemble_quote(
        [{"sku": "FIX-20L", "cantidad": "1"}, {"nombre": "trench 480 sl", "presentacion": "1 L", "cantidad": "2 l"}],
        snapshot,
        reference=reference,
    )
    fix, trench = quote.lines
    assert fix.display_name == "Fix"
    assert fix.package_label == "20 L, 200 L"
    assert fix.active_ingredient == "Glifosato 48%"
    assert fix.unit_price_ref == 50
    assert trench.display_name == "trench 480 sl"
    assert trench.package_label == "1 L"
    assert trench.unit_price_ref == 10
    assert trench.line_subtotal_ref == 20


def test_customer_defaults(snapshot):
    quote = assemble_quote([], snapshot)
    assert quote.customer == Customer()
    assert quote.customer.name == "Cliente"
    assert quote.customer.zone == "ND"
    assert quote.lines == ()
    assert quote.total_ref == 0


def test_cart_from_session_prefers_cart():
    session = {"vars": {
        "cart": [{"sku": "FIX-20L", "nombre": "FIX", "presentacion": "20L", "cantidad": "10 l"}],
        "last_sku": "OTRO", "cantidad": "5",
    }}
    before = copy.deepcopy(session)
    items = cart_from_session(session)
    assert items == [CartRequestItem(sku="FIX-20L", name="FIX", presentation="20L", quantity_text="10 l")]
    assert session == before


def test_cart_from_session_falls_back_to_last_product():
    session = {"vars": {"last_sku": "FIX-20L", "last_product": "FIX",
                        "last_presentacion": "20L", "cantidad": "100 l"}}
    assert cart_from_session(session) == [
        CartRequestItem(sku="FIX-20L", name="FIX", presentation="20L", quantity_text="100 l")
    ]
    assert cart_from_session({"vars": {"last_sku": "FIX-20L"}}) == []
    assert cart_from_session({}) == []


def test_customer_from_session():
    session = {"profileName": "Juan", "vars": {
        "departamento": "Santa Cruz", "subzona": "Norte", "cultivos": ["Soya", "Maiz"], "hectareas": 50,
    }}
    c = customer_from_session(session)
    assert c == Customer(name="Juan", department="Santa Cruz", zone="Norte", crop="Soya",
                         hectares="50", campaign="ND")
    assert customer_from_session({}) == Customer()
