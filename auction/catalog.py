"""
catalog.py - Lot Catalog

Holds the fixed list of lots and the two fields settlement is allowed to
change: current_price and owner_id.

Lots are frozen; an award replaces the Lot with dataclasses.replace().
Awards are keyed by round generation (a high-water mark, since generations
only increase) so a retried settlement is a no-op.
"""

from __future__ import annotations
from dataclasses import replace
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Tuple

from .core import (
    Lot, ExecuteResult,
    LotNotFound, SettlementError,
)


class LotCatalog:
    """
    Ordered registry of lots.

    Iteration order is registration order; the lot draw and catalog
    snapshots both depend on it being stable.
    """

    def __init__(self, lots: Iterable[Lot] = ()):
        self._lots: Dict[str, Lot] = {}
        # Generations only increase, so the highest applied one covers all earlier ones
        self._last_applied_generation = 0
        for lot in lots:
            self.register(lot)

    def register(self, lot: Lot) -> None:
        """
        Add a lot to the catalog.

        Raises:
            ValueError: If the lot id is already registered
        """
        if lot.lot_id in self._lots:
            raise ValueError(f"Lot {lot.lot_id} already registered")
        self._lots[lot.lot_id] = lot

    def get(self, lot_id: str) -> Lot:
        if lot_id not in self._lots:
            raise LotNotFound(f"Lot {lot_id} not in catalog")
        return self._lots[lot_id]

    def __contains__(self, lot_id: str) -> bool:
        return lot_id in self._lots

    def __len__(self) -> int:
        return len(self._lots)

    def lot_ids(self) -> List[str]:
        """All lot ids in registration order."""
        return list(self._lots)

    @property
    def last_applied_generation(self) -> int:
        return self._last_applied_generation

    def snapshot(self) -> Tuple[Lot, ...]:
        """Point-in-time copy of every lot, in registration order."""
        return tuple(self._lots.values())

    def apply_awards(
        self,
        generation: int,
        awards: Mapping[str, Tuple[str, Decimal]],
    ) -> ExecuteResult:
        """
        Record settlement results: lot_id -> (winner account_id, price).

        All awards are validated before any lot is replaced.

        Raises:
            SettlementError: If a lot is unknown or a price is below its floor
        """
        if generation <= self._last_applied_generation:
            return ExecuteResult.ALREADY_APPLIED

        updated: Dict[str, Lot] = {}
        for lot_id, (owner_id, price) in awards.items():
            if lot_id not in self._lots:
                raise SettlementError(f"Award for unknown lot {lot_id}")
            lot = self._lots[lot_id]
            if price < lot.floor_price:
                raise SettlementError(
                    f"Award for {lot_id} at {price} is below floor {lot.floor_price}"
                )
            updated[lot_id] = replace(lot, current_price=price, owner_id=owner_id)

        self._lots.update(updated)
        self._last_applied_generation = generation
        return ExecuteResult.APPLIED
