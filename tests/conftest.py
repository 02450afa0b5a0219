from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests

from farewatch.config import Settings
from farewatch.models import Offer


@pytest.fixture
def make_offer():
    """Factory for Offer records with a departure at the given local hour."""

    def _make(price, airline="G3", hour=None, stops=0, day="2026-10-22"):
        departure = f"{day}T{hour:02d}:15:00" if hour is not None else None
        return Offer(price=Decimal(str(price)), airline=airline, departure=departure, stops=stops)

    return _make


@pytest.fixture
def make_response():
    """Factory for requests.Response doubles."""

    def _make(status=200, payload=None, text=""):
        response = MagicMock(spec=requests.Response)
        response.status_code = status
        response.ok = 200 <= status < 400
        response.text = text
        if isinstance(payload, Exception):
            response.json.side_effect = payload
        else:
            response.json.return_value = payload if payload is not None else {}
        return response

    return _make


@pytest.fixture
def provider_offer():
    """Factory for raw flight-offer objects as returned by the search endpoint."""

    def _make(total="450.00", grand_total=None, carrier="G3", operating=None, validating=None,
              departure="2026-10-22T19:30:00", arrival="2026-10-22T20:40:00", segments=1):
        price = {"currency": "BRL", "total": total}
        if grand_total is not None:
            price["grandTotal"] = grand_total
        first = {
            "departure": {"iataCode": "CGH", "at": departure},
            "arrival": {"iataCode": "CWB", "at": arrival},
        }
        if carrier is not None:
            first["carrierCode"] = carrier
        if operating is not None:
            first["operating"] = {"carrierCode": operating}
        extra = [{"departure": {"at": arrival}, "carrierCode": carrier} for _ in range(segments - 1)]
        offer = {
            "type": "flight-offer",
            "id": "1",
            "itineraries": [{"duration": "PT1H10M", "segments": [first, *extra]}],
            "price": price,
        }
        if validating is not None:
            offer["validatingAirlineCodes"] = validating
        return offer

    return _make


@pytest.fixture
def settings(tmp_path):
    """Fully configured settings writing into a temporary directory."""
    return Settings(
        amadeus_key="key",
        amadeus_secret="secret",
        weeks_ahead=2,
        output_json=tmp_path / "data" / "prices.json",
    )


@pytest.fixture
def no_sleep():
    return MagicMock()
