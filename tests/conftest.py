"""Shared test fixtures for tradelens tests."""

import pytest

from tradelens.config import Config
from tradelens.interaction.session import RenderSession
from tradelens.interaction.tooltip import Rect
from tradelens.models import TradeRecord
from tradelens.scheduler import FrameScheduler, ManualClock


def _rec(supplier: str, recipient: str | None, year: int, value: float, **kw) -> TradeRecord:
    return TradeRecord(supplier=supplier, recipient=recipient, year=year, value=value, **kw)


@pytest.fixture()
def rec():
    """Factory for TradeRecords: rec(supplier, recipient, year, value, **fields)."""
    return _rec


@pytest.fixture()
def config():
    return Config()


@pytest.fixture()
def clock():
    return ManualClock()


@pytest.fixture()
def scheduler(clock):
    return FrameScheduler(clock=clock)


@pytest.fixture()
def session(scheduler):
    return RenderSession(Rect(0, 0, 1200, 900), scheduler=scheduler)


@pytest.fixture()
def nested_payload():
    """Three suppliers, two years, one recipient shared by everybody."""
    return [
        {
            "supplier": "United States",
            "recipients": [
                {"recipient": "Saudi Arabia", "years": {"2019": 3000, "2020": 2500}},
                {"recipient": "Australia", "years": {"2019": 1500, "2020": 900}},
                {"recipient": "India", "years": {"2019": 400}},
            ],
        },
        {
            "supplier": "Russian Federation",
            "recipients": [
                {"recipient": "India", "years": {"2019": 2000, "2020": 1800}},
                {"recipient": "China", "years": {"2019": 1100}},
            ],
        },
        {
            "supplier": "France",
            "recipients": [
                {"recipient": "India", "years": {"2019": 700, "2020": 1200}},
                {"recipient": "Egypt", "years": {"2019": 600}},
            ],
        },
    ]


@pytest.fixture()
def transfer_rows():
    """Long-format weapon transfer rows."""
    return [
        {"suppliers": "USA", "recipients": "Japan", "year": 2020, "quantity": 12,
         "weapon description": "Fighter aircraft", "status": "New"},
        {"suppliers": "France", "recipients": "India", "year": 2020, "quantity": 36,
         "weapon description": "Fighter aircraft", "status": "New"},
        {"suppliers": "Russia", "recipients": "India", "year": 2020, "quantity": 5,
         "weapon description": "SAM system", "status": "New"},
        {"suppliers": "Germany", "recipients": "Egypt", "year": 2019, "quantity": 4,
         "weapon description": "Frigate", "status": "Second hand"},
    ]


@pytest.fixture()
def export_table():
    """Country -> category -> year export document."""
    return {
        "Exports": {
            "United States": [
                {"Unnamed: 1": "Aircraft", "2019": 5000, "2020": 5200},
                {"Unnamed: 1": "Missiles", "2019": 2100, "2020": 1900},
                {"Unnamed: 1": "Ships", "2019": 800, "2020": 0},
            ],
            "France": [
                {"Unnamed: 1": "Aircraft", "2019": 1200, "2020": 1500},
                {"Unnamed: 1": "Ships", "2019": 600, "2020": 700},
            ],
            "Russia": [
                {"Unnamed: 1": "Aircraft", "2019": 2500, "2020": 1800},
                {"Unnamed: 1": "Air defence", "2019": 900, "2020": 1100},
            ],
        }
    }


@pytest.fixture()
def company_rows():
    return [
        {"Company": "Lockheed Martin", "Country": "United States", "Arms Revenue 2020": 58200, "Arms Revenue 2021": 60340},
        {"Company": "Raytheon", "Country": "United States", "Arms Revenue 2020": 36800, "Arms Revenue 2021": 41850},
        {"Company": "BAE Systems", "Country": "United Kingdom", "Arms Revenue 2020": 24000, "Arms Revenue 2021": 26020},
        {"Company": "Thales", "Country": "France", "Arms Revenue 2020": 9050, "Arms Revenue 2021": 9470},
    ]


@pytest.fixture()
def world():
    """Tiny GeoJSON collection of square countries."""
    def square(name, x0, y0, size):
        ring = [[x0, y0], [x0 + size, y0], [x0 + size, y0 + size], [x0, y0 + size], [x0, y0]]
        return {
            "type": "Feature",
            "properties": {"name": name},
            "geometry": {"type": "Polygon", "coordinates": [ring]},
        }
    return {
        "type": "FeatureCollection",
        "features": [square("Japan", 130, 30, 10), square("India", 70, 10, 20), square("Egypt", 25, 22, 8)],
    }
