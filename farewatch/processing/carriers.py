import json
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping

import dacite

from ..models import Offer


@dataclass(frozen=True, slots=True)
class CarrierTable:
    """Immutable raw carrier code -> display identity mapping.

    priority fixes the iteration order used when building per-carrier combos, so that
    codeshare codes sharing one identity resolve deterministically (first code wins).
    Codes absent from aliases are their own identity.
    """
    aliases: Mapping[str, str] = field(default_factory=dict)
    priority: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'aliases', MappingProxyType(dict(self.aliases)))
        object.__setattr__(self, 'priority', tuple(self.priority))

    def identity_of(self, code: str) -> str:
        return self.aliases.get(code, code)

    def code_for(self, identity: str) -> str:
        """Representative raw code for an identity, e.g. LA for LATAM."""
        for code in self.priority:
            if self.identity_of(code) == identity:
                return code
        for code, name in self.aliases.items():
            if name == identity:
                return code
        return identity

    def ordered_identities(self, *pools: Iterable[Offer]) -> list[str]:
        """Identities present in the pools: priority order first, then unknown ones as first seen."""
        present: dict[str, None] = {}
        for pool in pools:
            for offer in pool:
                present.setdefault(self.identity_of(offer.airline), None)
        ordered: list[str] = []
        for code in self.priority:
            name = self.identity_of(code)
            if name in present and name not in ordered:
                ordered.append(name)
        ordered.extend(name for name in present if name not in ordered)
        return ordered

    @classmethod
    def from_file(cls, path: Path) -> 'CarrierTable':
        with open(path, 'rt', encoding='utf-8') as f:
            loaded = json.load(f)
        return dacite.from_dict(
            data_class=cls,
            data=loaded,
            config=dacite.Config(cast=[tuple], strict=True),
        )


DEFAULT_CARRIERS = CarrierTable(
    aliases={'G3': 'GOL', '2Z': 'GOL', 'LA': 'LATAM', 'JJ': 'LATAM', 'AD': 'Azul'},
    priority=('G3', 'LA', 'JJ', 'AD', '2Z'),
)


def load_carriers(path: Path | None) -> CarrierTable:
    return CarrierTable.from_file(path) if path else DEFAULT_CARRIERS
