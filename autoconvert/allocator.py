"""Split a received balance into trade jobs according to configured percentages."""
from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from .jobs import TradeJob

Allocation = Tuple[str, float]


class ConversionRules:
    """Source asset -> ordered ``(destination, percent)`` pairs.

    Asset names are upper-cased on construction. Percentages are taken as
    configured; they are not required to add up to 100.
    """

    def __init__(self, rules: Mapping[str, Tuple[Allocation, ...]]):
        self._rules = MappingProxyType(dict(rules))

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Mapping[str, object]]]) -> "ConversionRules":
        rules: Dict[str, Tuple[Allocation, ...]] = {}
        for source, targets in (raw or {}).items():
            if not isinstance(targets, Mapping):
                logging.warning("Ignoring conversion rule for %s: expected a mapping, got %r", source, targets)
                continue
            allocations: List[Allocation] = []
            for dest, percent in targets.items():
                try:
                    allocations.append((str(dest).upper(), float(percent)))  # type: ignore[arg-type]
                except (TypeError, ValueError):
                    logging.warning("Ignoring %s -> %s: invalid percentage %r", source, dest, percent)
            key = str(source).upper()
            rules[key] = rules.get(key, ()) + tuple(allocations)
        return cls(rules)

    def __contains__(self, asset: object) -> bool:
        return isinstance(asset, str) and asset.upper() in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def get(self, asset: str) -> Tuple[Allocation, ...]:
        return self._rules.get(asset.upper(), ())


def allocate(asset: str, amount: float, rules: ConversionRules) -> List[TradeJob]:
    """Return one job per configured destination of ``asset``, in config order."""

    source = asset.upper()
    return [
        TradeJob(source=source, destination=dest, amount=amount * percent / 100.0)
        for dest, percent in rules.get(source)
    ]
