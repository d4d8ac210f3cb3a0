"""
scheduled_events.py - Minimal Event Scheduler

Round-end and freeze-end deadlines are scheduled as events:
- Simple heap-based scheduling
- Events are just data, handlers are just functions
- Every event carries the round generation it was armed for

Core concepts:
1. Event: Immutable description of what should happen and when
2. EventScheduler: Priority queue for due event retrieval plus a handler table
3. Handlers: Plain callables Event -> TransitionResult

The scheduler remembers which event_ids it has executed and skips them on
redelivery. Handlers still check the generation themselves; the executed
record only saves them the work, so discard_before() can forget old rounds.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
import heapq

from .core import (
    TransitionResult,
    ACTION_ROUND_END, ACTION_FREEZE_END,
    PRIORITY_ROUND_END, PRIORITY_FREEZE_END,
)


# ============================================================================
# EVENT DATA STRUCTURE
# ============================================================================

@dataclass(frozen=True, slots=True)
class Event:
    """
    Immutable scheduled transition.

    Sorting: by trigger_time, then priority (lower=first), then generation.

    Attributes:
        trigger_time: Clock time (seconds) at which the event is due
        priority: Execution order within the same timestamp (0=first)
        generation: Round generation the event was armed for
        action: Event type string ("round_end", "freeze_end")
    """
    trigger_time: float
    priority: int = 0
    generation: int = 0
    action: str = ""

    def __lt__(self, other: 'Event') -> bool:
        """Enable heap ordering: time, then priority, then generation."""
        if self.trigger_time != other.trigger_time:
            return self.trigger_time < other.trigger_time
        if self.priority != other.priority:
            return self.priority < other.priority
        return self.generation < other.generation

    @property
    def event_id(self) -> str:
        """Deterministic ID for deduplication: one event per action per generation."""
        return f"{self.action}:{self.generation}"


# ============================================================================
# EVENT SCHEDULER
# ============================================================================

EventHandler = Callable[[Event], TransitionResult]


class EventScheduler:
    """
    Minimal event scheduler using a priority queue.

    Design:
    - Events are scheduled in advance
    - get_due() returns events ready to execute
    - execute() dispatches to the registered handler and records the event_id
    """

    def __init__(self):
        self._heap: List[Event] = []
        self._handlers: Dict[str, EventHandler] = {}
        self._executed: Dict[str, int] = {}  # event_id -> generation, for deduplication

    def register(self, action: str, handler: EventHandler) -> None:
        """Register a handler function for an action type."""
        self._handlers[action] = handler

    def schedule(self, event: Event) -> str:
        """
        Add an event to the pending queue.

        Returns the event_id.
        """
        heapq.heappush(self._heap, event)
        return event.event_id

    def get_due(self, as_of: float) -> List[Event]:
        """
        Get and remove events due for execution.

        Returns events with trigger_time <= as_of, in execution order.
        Already-executed events and duplicates are skipped.
        """
        due = []
        seen = set()

        while self._heap and self._heap[0].trigger_time <= as_of:
            event = heapq.heappop(self._heap)
            if event.event_id in self._executed or event.event_id in seen:
                continue
            seen.add(event.event_id)
            due.append(event)

        return due

    def execute(self, event: Event) -> Optional[TransitionResult]:
        """
        Execute a single event via its registered handler.

        Returns the handler's result, STALE for an event_id that already ran,
        or None if no handler is registered.

        Raises:
            Exception: Any exception raised by the handler propagates unchanged
                       and the event is NOT marked executed, so it can be retried.
        """
        if event.event_id in self._executed:
            return TransitionResult.STALE
        handler = self._handlers.get(event.action)
        if not handler:
            return None

        result = handler(event)
        self._executed[event.event_id] = event.generation
        return result

    def step(self, as_of: float) -> List[TransitionResult]:
        """
        Process all due events and return their results.

        A handler may schedule new events; ones already due are picked up
        in the same call.
        """
        results = []
        due = self.get_due(as_of)
        while due:
            for i, event in enumerate(due):
                try:
                    result = self.execute(event)
                except Exception:
                    # Put back this and the rest so the next step() retries them
                    for pending in due[i:]:
                        heapq.heappush(self._heap, pending)
                    raise
                if result is not None:
                    results.append(result)
            due = self.get_due(as_of)
        return results

    def discard_before(self, generation: int) -> int:
        """
        Drop pending events for generations older than the given one.

        Executed ids for those generations are forgotten too; handlers
        reject a redelivered old event by its generation.
        """
        self._executed = {
            event_id: gen for event_id, gen in self._executed.items() if gen >= generation
        }
        kept = [e for e in self._heap if e.generation >= generation]
        dropped = len(self._heap) - len(kept)
        if dropped:
            heapq.heapify(kept)
            self._heap = kept
        return dropped

    def executed_count(self) -> int:
        """Number of remembered executed event ids."""
        return len(self._executed)

    def pending_count(self) -> int:
        """Number of pending events."""
        return len(self._heap)

    def peek_next(self) -> Optional[Event]:
        """Peek at next scheduled event without removing it."""
        return self._heap[0] if self._heap else None

    def clear(self) -> None:
        """Drop every pending event."""
        self._heap.clear()


# ============================================================================
# EVENT FACTORY FUNCTIONS
# ============================================================================

def round_end_event(generation: int, end_time: float) -> Event:
    """Create the event that closes bidding for a round."""
    return Event(
        trigger_time=end_time,
        priority=PRIORITY_ROUND_END,
        generation=generation,
        action=ACTION_ROUND_END,
    )


def freeze_end_event(generation: int, freeze_end_time: float) -> Event:
    """Create the event that ends a round's freeze window."""
    return Event(
        trigger_time=freeze_end_time,
        priority=PRIORITY_FREEZE_END,
        generation=generation,
        action=ACTION_FREEZE_END,
    )
