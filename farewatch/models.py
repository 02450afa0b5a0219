from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal('0.01')
MIXED_CODE = 'MIX'


def round_price(value: Decimal) -> Decimal:
    """Round a currency amount to cents, half-up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class Offer:
    """Single directional flight option returned by the provider for one date.

    airline keeps the raw carrier code; display identities are resolved by CarrierTable.
    departure / arrival are provider local ISO-8601 timestamps, None when absent.
    """
    price: Decimal
    airline: str
    departure: str | None = None
    arrival: str | None = None
    stops: int = 0

    def __post_init__(self):
        if self.price < 0:
            raise ValueError(f'Offer price must be non-negative, got {self.price}')
        if self.stops < 0:
            raise ValueError(f'Offer stops must be non-negative, got {self.stops}')

    @property
    def departure_hour(self) -> int | None:
        if not self.departure:
            return None
        try:
            return datetime.fromisoformat(self.departure).hour
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class Combo:
    """Round trip pairing of one outbound and one return offer."""
    carrier_label: str
    carrier_code: str
    outbound_price: Decimal
    return_price: Decimal
    total_price: Decimal
    outbound_departure: str | None
    return_departure: str | None
    outbound_stops: int
    return_stops: int
    is_mixed: bool = False

    @classmethod
    def pair(cls, label: str, code: str, outbound: Offer, back: Offer, is_mixed: bool = False) -> 'Combo':
        return cls(
            carrier_label=label,
            carrier_code=code,
            outbound_price=outbound.price,
            return_price=back.price,
            total_price=round_price(outbound.price + back.price),
            outbound_departure=outbound.departure,
            return_departure=back.departure,
            outbound_stops=outbound.stops,
            return_stops=back.stops,
            is_mixed=is_mixed,
        )

    @property
    def has_connection(self) -> bool:
        return bool(self.outbound_stops or self.return_stops)


@dataclass(slots=True)
class WeekRecord:
    outbound_date: date
    return_date: date
    updated_at: datetime
    combos: list[Combo] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.combos


@dataclass(slots=True)
class Report:
    """Top-level artifact handed to the rendering layer. Built fresh on every run."""
    generated_at: datetime
    api_source: str
    synthetic_prices: bool
    config: dict[str, str | int]
    weeks: list[WeekRecord] = field(default_factory=list)

    @property
    def total_combos(self) -> int:
        return sum(len(w.combos) for w in self.weeks)

    @property
    def empty_weeks(self) -> int:
        return sum(1 for w in self.weeks if w.is_empty)
