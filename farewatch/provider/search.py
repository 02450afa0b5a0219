import logging
import time
from datetime import date
from decimal import Decimal, InvalidOperation

import requests

from ..models import Offer
from .retry import RetryState, Sleeper

SEARCH_PATH = '/v2/shopping/flight-offers'
UNKNOWN_CARRIER = '??'
SEARCH_TIMEOUT_SECONDS = 30


def _first_segment(offer: dict) -> dict | None:
    itineraries = offer.get('itineraries') or []
    if not itineraries:
        return None
    segments = itineraries[0].get('segments') or []
    return segments[0] if segments else None


def _stop_count(offer: dict) -> int:
    itineraries = offer.get('itineraries') or []
    if not itineraries:
        return 0
    return max(len(itineraries[0].get('segments') or []) - 1, 0)


def _carrier(offer: dict, segment: dict | None) -> str:
    segment = segment or {}
    validating = offer.get('validatingAirlineCodes') or []
    return (
        (segment.get('operating') or {}).get('carrierCode')
        or segment.get('carrierCode')
        or (validating[0] if validating else None)
        or UNKNOWN_CARRIER
    )


def _price(offer: dict) -> Decimal:
    price = offer.get('price') or {}
    raw = price.get('grandTotal') or price.get('total')
    if raw is None:
        raise ValueError('offer has no total price')
    try:
        return Decimal(str(raw))
    except InvalidOperation:
        raise ValueError(f'unparsable price {raw!r}') from None


def parse_offer(offer: dict) -> Offer:
    """Map a provider flight-offer object onto an Offer.

    Price prefers grandTotal over total; carrier prefers the operating carrier, then
    the marketing carrier, then the first validating airline.
    """
    segment = _first_segment(offer)
    return Offer(
        price=_price(offer),
        airline=_carrier(offer, segment),
        departure=((segment or {}).get('departure') or {}).get('at'),
        arrival=((segment or {}).get('arrival') or {}).get('at'),
        stops=_stop_count(offer),
    )


def parse_offers(payload: dict) -> list[Offer]:
    offers = []
    for raw in payload.get('data') or []:
        try:
            offers.append(parse_offer(raw))
        except (ValueError, TypeError, AttributeError) as e:
            logging.debug('Skipping malformed offer %s: %s', raw.get('id') if isinstance(raw, dict) else raw, e)
    return offers


class SearchClient:
    """Flight-offers search with rate-limit backoff. Exhausted retries yield no offers."""

    def __init__(self, session: requests.Session, host: str, currency: str = 'BRL', max_results: int = 50,
                 retries: int = 2, sleep: Sleeper = time.sleep):
        self.session = session
        self.host = host.rstrip('/')
        self.currency = currency
        self.max_results = max_results
        self.retries = retries
        self.sleep = sleep

    def _params(self, origin: str, destination: str, day: date) -> dict[str, str]:
        return {
            'originLocationCode': origin,
            'destinationLocationCode': destination,
            'departureDate': day.isoformat(),
            'adults': '1',
            'currencyCode': self.currency,
            'max': str(self.max_results),
        }

    def search(self, token: str, origin: str, destination: str, day: date) -> list[Offer]:
        route = f'{origin}->{destination} {day.isoformat()}'
        state = RetryState(retries=self.retries)
        while True:
            try:
                response = self.session.get(
                    self.host + SEARCH_PATH,
                    params=self._params(origin, destination, day),
                    headers={'Authorization': f'Bearer {token}'},
                    timeout=SEARCH_TIMEOUT_SECONDS,
                )
            except requests.RequestException as e:
                logging.warning('%s: fetch error on attempt %d: %s', route, state.attempt + 1, e)
                state.failed()
            else:
                if response.status_code == 429:
                    state.rate_limited()
                    if not state.exhausted:
                        logging.warning('%s: rate limited, waiting %.0fs', route, state.delay)
                elif not response.ok:
                    logging.warning('%s: HTTP %s', route, response.status_code)
                    state.failed()
                else:
                    try:
                        payload = response.json()
                    except ValueError as e:
                        logging.warning('%s: invalid JSON body: %s', route, e)
                        state.failed()
                    else:
                        if isinstance(payload, dict):
                            return parse_offers(payload)
                        logging.warning('%s: unexpected %s body', route, type(payload).__name__)
                        state.failed()
            if state.exhausted:
                logging.warning('%s: search failed after %d attempts', route, state.total_attempts)
                return []
            state.wait(self.sleep)
