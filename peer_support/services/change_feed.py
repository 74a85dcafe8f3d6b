import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

Listener = Callable[[uuid.UUID], None]

@dataclass(eq=False)
class Registration:
    """
    Handle returned by ChangeFeed.listen. remove() may be called any number of times.
    """
    group_id: uuid.UUID
    callback: Listener
    _feed: "ChangeFeed | None" = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        return self._feed is not None

    def remove(self) -> None:
        feed, self._feed = self._feed, None
        if feed is not None:
            feed._discard(self)

class ChangeFeed:
    """
    Live change notifications for group message collections.

    The message store publishes after every acknowledged write; listeners are
    invoked synchronously and must only schedule work.
    """
    def __init__(self) -> None:
        self._listeners: Dict[uuid.UUID, List[Registration]] = {}

    def listen(self, group_id: uuid.UUID, callback: Listener) -> Registration:
        registration = Registration(group_id=group_id, callback=callback, _feed=self)
        self._listeners.setdefault(group_id, []).append(registration)
        return registration

    def publish(self, group_id: uuid.UUID) -> None:
        for registration in list(self._listeners.get(group_id, [])):
            try:
                registration.callback(group_id)
            except Exception:
                logger.exception(f"Change listener for group {group_id} failed")

    def listener_count(self, group_id: uuid.UUID) -> int:
        return len(self._listeners.get(group_id, []))

    def _discard(self, registration: Registration) -> None:
        listeners = self._listeners.get(registration.group_id)
        if not listeners:
            return
        try:
            listeners.remove(registration)
        except ValueError:
            return
        if not listeners:
            self._listeners.pop(registration.group_id, None)

change_feed = ChangeFeed()
