"""
Internal gamification events.

Components never call back into each other: the points ledger announces
``PointsAwarded`` and the achievement tracker announces
``AchievementCompleted``. Subscribers are wired once by the service.

An event may not be published again while one of its own handlers is
running, so bonus points from an achievement can refresh the leaderboard
but can never advance achievements a second time.
"""

import contextvars
import datetime
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, DefaultDict, List, Optional, Tuple, Type

from backend.common.error_handling import EventCycleError
from backend.common.logger import app_logger

logger = app_logger.getChild("gamification.events")

EventHandler = Callable[[Any], Awaitable[None]]

# Event types currently being dispatched in this task
_dispatch_chain: contextvars.ContextVar[Tuple[str, ...]] = contextvars.ContextVar(
    "gamification_dispatch_chain", default=()
)


@dataclass(frozen=True)
class PointsAwarded:
    """Points were credited to a user."""
    user_id: str
    amount: int
    total_points: int
    source: str
    reference_id: Optional[str] = None


@dataclass(frozen=True)
class AchievementCompleted:
    """A user completed an achievement for the first time."""
    user_id: str
    achievement_id: str
    achievement_name: str
    points: int
    completed_at: datetime.datetime


class EventDispatcher:
    """
    In-process publish/subscribe for gamification events.

    Handlers run sequentially in subscription order and their exceptions
    propagate to the publisher.
    """

    def __init__(self):
        self._handlers: DefaultDict[Type, List[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: Type, handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    def handlers_for(self, event_type: Type) -> List[EventHandler]:
        return list(self._handlers.get(event_type, []))

    async def publish(self, event: Any) -> None:
        """
        Deliver an event to its subscribers.

        Raises:
            EventCycleError: If the event type is already being handled
        """
        event_name = type(event).__name__
        chain = _dispatch_chain.get()
        if event_name in chain:
            raise EventCycleError(event_name, list(chain))

        token = _dispatch_chain.set(chain + (event_name,))
        try:
            for handler in self.handlers_for(type(event)):
                logger.debug(f"Dispatching {event_name} to {getattr(handler, '__qualname__', handler)}")
                await handler(event)
        finally:
            _dispatch_chain.reset(token)
