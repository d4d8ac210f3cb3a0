"""
scheduler.py - Round Scheduler

Owns the round state machine and its deadlines:

    IDLE -> OPEN -> RESOLVING -> FROZEN -> OPEN -> ...     (STOPPED on shutdown)

- open_round():       IDLE/FROZEN -> OPEN. Draws k lots, arms the round-end event.
- begin_resolution(): OPEN -> RESOLVING, only for the current generation.
- enter_freeze():     RESOLVING -> FROZEN, arms the freeze-end event.
- stop():             any -> STOPPED.

Every round gets a new generation. Transition methods take the generation
of the event that triggered them and return None when it is not the
current round's, so late or duplicated timer events do nothing.

The lot draw uses an injected numpy Generator; pass a seed through
AuctionConfig (or your own Generator) for reproducible rounds.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Optional, Sequence, Tuple

import numpy as np

from .core import AuctionConfig, Phase, Round
from .scheduled_events import Event, EventScheduler, round_end_event, freeze_end_event


def draw_lots(lot_ids: Sequence[str], k: int, rng: np.random.Generator) -> Tuple[str, ...]:
    """
    Draw k distinct lot ids uniformly at random, without replacement.

    Raises:
        ValueError: If k is not in [1, len(lot_ids)]
    """
    if k < 1 or k > len(lot_ids):
        raise ValueError(f"Cannot draw {k} lots from a catalog of {len(lot_ids)}")
    picks = rng.choice(len(lot_ids), size=k, replace=False)
    return tuple(lot_ids[int(i)] for i in picks)


class RoundScheduler:
    """
    Phase machine for consecutive rounds.

    Not thread-safe on its own; the engine calls it under its lock.
    """

    def __init__(
        self,
        config: AuctionConfig,
        events: Optional[EventScheduler] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.config = config
        self.events = events or EventScheduler()
        self._rng = rng if rng is not None else np.random.default_rng(config.seed)
        self._phase = Phase.IDLE
        self._round: Optional[Round] = None
        self._generation = 0

    # ========================================================================
    # QUERIES
    # ========================================================================

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def current_round(self) -> Optional[Round]:
        return self._round

    @property
    def generation(self) -> int:
        """Generation of the current round (0 before the first round)."""
        return self._generation

    def is_current(self, generation: int) -> bool:
        return self._round is not None and self._round.generation == generation

    def accepting_bids(self, now: float) -> bool:
        """True only while OPEN and strictly before the round's end time."""
        return (
            self._phase == Phase.OPEN
            and self._round is not None
            and now < self._round.end_time
        )

    # ========================================================================
    # TRANSITIONS (Mutating)
    # ========================================================================

    def open_round(self, lot_ids: Sequence[str], now: float) -> Tuple[Round, Event]:
        """
        Start a new round with a fresh lot draw.

        Returns:
            (round, round-end event). The event is already scheduled.

        Raises:
            ValueError: If called outside IDLE/FROZEN or k exceeds the catalog
        """
        if self._phase not in (Phase.IDLE, Phase.FROZEN):
            raise ValueError(f"Cannot open a round while {self._phase.value}")
        open_lot_ids = draw_lots(lot_ids, self.config.lots_per_round, self._rng)

        self._generation += 1
        self._round = Round(
            generation=self._generation,
            open_lot_ids=open_lot_ids,
            start_time=now,
            end_time=now + self.config.round_duration,
            phase=Phase.OPEN,
        )
        self._phase = Phase.OPEN

        # Superseded rounds' events can never apply; drop them
        self.events.discard_before(self._generation)
        event = round_end_event(self._generation, self._round.end_time)
        self.events.schedule(event)
        return self._round, event

    def begin_resolution(self, generation: int) -> Optional[Round]:
        """
        Close bidding for the given generation.

        Re-entering RESOLVING for the same generation is allowed so an
        interrupted settlement can be retried.

        Returns:
            The resolving round, or None if the generation is stale
        """
        if not self.is_current(generation):
            return None
        if self._phase not in (Phase.OPEN, Phase.RESOLVING):
            return None
        self._round = replace(self._round, phase=Phase.RESOLVING)
        self._phase = Phase.RESOLVING
        return self._round

    def enter_freeze(self, generation: int, now: float) -> Optional[Tuple[Round, Event]]:
        """
        Start the freeze window after settlement.

        Returns:
            (round, freeze-end event), or None if the generation is stale
            or the round is not RESOLVING
        """
        if not self.is_current(generation) or self._phase != Phase.RESOLVING:
            return None
        freeze_end = now + self.config.freeze_duration
        self._round = replace(self._round, phase=Phase.FROZEN, freeze_end_time=freeze_end)
        self._phase = Phase.FROZEN
        event = freeze_end_event(generation, freeze_end)
        self.events.schedule(event)
        return self._round, event

    def freeze_elapsed(self, generation: int) -> bool:
        """True if the given generation is the current round and it is FROZEN."""
        return self.is_current(generation) and self._phase == Phase.FROZEN

    def stop(self) -> None:
        """Shut down. Pending events are dropped; later events are all stale."""
        self._phase = Phase.STOPPED
        self.events.clear()
