"""共享测试数据。"""
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from agroquote.importer import normalize_feed
from agroquote.models import PriceSnapshot
from agroquote.pricing.index import build_price_index

HEADER = ["TIPO", "PRODUCTO", "PRESENTACION", "UNIDAD", "USD", "BS"]


@pytest.fixture
def feed_rows():
    return [
        HEADER,
        ["Herbicida", "FIX", "20L", "Litros", 50, ""],
        ["Fungicida", "Zeta", "1 Kg", "kilo", "12,5", "87"],
        ["Insecticida", "Trench 480 SL", "1 L", "lt", 10, 70],
        ["Herbicida", "Glifo", "", "", "", "140"],
        ["", "", "", "", "99", "99"],
    ]


def make_snapshot(rows, rate=7):
    feed = normalize_feed(rows, version="v1", rate=rate)
    records = tuple(feed.records)
    return PriceSnapshot(
        records=records,
        index=build_price_index(records),
        rate=feed.rate,
        version=feed.version,
        fetched_at=0.0,
        rate_source=feed.rate_source,
    )


@pytest.fixture
def snapshot(feed_rows):
    return make_snapshot(feed_rows)
