import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from api_server import create_app
from agroquote.config import Settings
from agroquote.feed import StaticFeedSource
from agroquote.service import PriceCatalogService, QuoteService


class DownSource:
    async def fetch(self):
        raise OSError("sheet unreachable: 10.0.0.5")


def _client(source):
    catalog = PriceCatalogService(source, Settings())
    return TestClient(create_app(catalog, QuoteService(catalog)))


@pytest.fixture
def client(feed_rows):
    return _client(StaticFeedSource(feed_rows, version="v2", rate="7"))


def test_get_prices(client):
    resp = client.get("/prices")
    assert resp.status_code == 200
    data = resp.json()
    assert data["rate"] == 7
    assert data["version"] == "v2"
    assert [p["sku"] for p in data["prices"]] == ["FIX-20L", "Glifo", "Trench 480 SL-1 L", "Zeta-1 Kg"]

    assert client.get("/prices", params={"force": "true"}).status_code == 200


def test_get_by_sku(client):
    resp = client.get("/prices/FIX-20L")
    assert resp.status_code == 200
    assert resp.json()["price_local"] == 350
    assert client.get("/prices/NOPE").status_code == 404


def test_find_price(client):
    resp = client.get("/prices/find", params={"name": "Zeta", "presentation": "1 kilo"})
    assert resp.status_code == 200
    assert resp.json()["sku"] == "Zeta-1 Kg"
    assert client.get("/prices/find", params={"name": "Nada"}).status_code == 404


def test_create_quote(client):
    resp = client.post("/quote", json={
        "items": [{"name": "FIX", "presentation": "20 L", "quantity_text": "40 l"},
                  {"sku": "DESCONOCIDO", "quantity_text": "1"}],
        "customer": {"name": "Ana"},
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_ref"] == 2000
    assert data["customer"]["name"] == "Ana"
    assert data["customer"]["zone"] == "ND"
    assert data["lines"][1]["price_found"] is False
    assert data["meets_minimum_order"] is False


def test_create_quote_from_session(client):
    resp = client.post("/quote", json={"session": {
        "profileName": "Luis",
        "vars": {"cart": [{"sku": "FIX-20L", "cantidad": "100 l"}]},
    }})
    assert resp.status_code == 200
    data = resp.json()
    assert data["customer"]["name"] == "Luis"
    assert data["total_ref"] == 5000
    assert data["meets_minimum_order"] is True


def test_feed_failure_is_generic():
    client = _client(DownSource())
    resp = client.get("/prices")
    assert resp.status_code == 503
    assert resp.json() == {"error": "price_data_unavailable"}
    assert "10.0.0.5" not in resp.text

    resp = client.post("/quote", json={"items": []})
    assert resp.status_code == 503


def test_download_prices_xlsx(client):
    resp = client.get("/prices.xlsx")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/vnd.openxmlformats")
    assert "precios_" in resp.headers["content-disposition"]

    ws = load_workbook(BytesIO(resp.content)).active
    assert ws.title == "PRECIOS"
    assert ws["B2"].value == "FIX-20L"
    assert ws["J1"].value == 7


def test_download_quote_xlsx(client):
    resp = client.post("/quote.xlsx", json={
        "items": [{"name": "FIX", "presentation": "20 L", "quantity_text": "40 l"}],
    })
    assert resp.status_code == 200
    ws = load_workbook(BytesIO(resp.content)).active
    assert ws.title == "COTIZACION"
    assert ws["H2"].value == 2000
    assert ws["L1"].value.startswith("COT-")


def test_download_prices_xlsx_feed_down():
    resp = _client(DownSource()).get("/prices.xlsx")
    assert resp.status_code == 503
    assert resp.json() == {"error": "price_data_unavailable"}
