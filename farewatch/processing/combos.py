import logging
from typing import Sequence

from ..models import MIXED_CODE, Combo, Offer
from .carriers import DEFAULT_CARRIERS, CarrierTable


def cheapest_offer(offers: Sequence[Offer]) -> Offer | None:
    """Lowest price; the earliest offer wins ties."""
    return min(offers, key=lambda o: o.price, default=None)


class ComboBuilder:
    """Best round trip per carrier identity plus one opportunistic mixed-carrier combo."""

    def __init__(self, carriers: CarrierTable = DEFAULT_CARRIERS):
        self.carriers = carriers

    def _offers_for(self, pool: Sequence[Offer], identity: str) -> list[Offer]:
        return [o for o in pool if self.carriers.identity_of(o.airline) == identity]

    def _per_carrier(self, outbound: Sequence[Offer], back: Sequence[Offer]) -> list[Combo]:
        combos: list[Combo] = []
        for identity in self.carriers.ordered_identities(outbound, back):
            out_candidates = self._offers_for(outbound, identity)
            back_candidates = self._offers_for(back, identity)
            best_out = cheapest_offer(out_candidates)
            best_back = cheapest_offer(back_candidates)
            if best_out is None or best_back is None:
                logging.debug('%s incomplete (outbound: %d, return: %d)',
                              identity, len(out_candidates), len(back_candidates))
                continue
            combos.append(Combo.pair(identity, self.carriers.code_for(identity), best_out, best_back))
        return combos

    def _mixed(self, outbound: Sequence[Offer], back: Sequence[Offer], per_carrier: Sequence[Combo]) -> Combo | None:
        best_out = cheapest_offer(outbound)
        best_back = cheapest_offer(back)
        if best_out is None or best_back is None:
            return None
        out_name = self.carriers.identity_of(best_out.airline)
        back_name = self.carriers.identity_of(best_back.airline)
        if out_name == back_name:
            return None
        mixed = Combo.pair(f'{out_name}+{back_name}', MIXED_CODE, best_out, best_back, is_mixed=True)
        if per_carrier and mixed.total_price >= min(c.total_price for c in per_carrier):
            return None
        return mixed

    def build(self, outbound: Sequence[Offer], back: Sequence[Offer]) -> list[Combo]:
        combos = self._per_carrier(outbound, back)
        mixed = self._mixed(outbound, back, combos)
        if mixed is not None:
            combos.append(mixed)
        # sorted() is stable: equal totals keep discovery order
        return sorted(combos, key=lambda c: c.total_price)
