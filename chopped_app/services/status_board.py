from __future__ import annotations

from typing import Callable, Dict, Iterable, Optional

from .schemas import LOADING_STATUSES, PENDING_STATUSES, SETTLED_STATUSES, STATUS_IDLE

Listener = Callable[[str, str, str], None]


class StatusBoard:
    """Per-contestant status slots.

    Slots are written only through :meth:`compare_and_set`, so a pipeline can
    never overwrite a state it did not observe. The listener runs after every
    successful write with ``(contestant_id, old, new)``.
    """

    def __init__(self, contestant_ids: Iterable[str], listener: Optional[Listener] = None) -> None:
        self._slots: Dict[str, str] = {contestant_id: STATUS_IDLE for contestant_id in contestant_ids}
        self._listener = listener

    def get(self, contestant_id: str) -> str:
        return self._slots[contestant_id]

    def compare_and_set(self, contestant_id: str, expected: str, new: str) -> bool:
        if new not in LOADING_STATUSES:
            raise ValueError(f"Unknown status: {new}")
        if self._slots.get(contestant_id) != expected:
            return False
        self._slots[contestant_id] = new
        if self._listener is not None:
            self._listener(contestant_id, expected, new)
        return True

    def reset(self, contestant_ids: Iterable[str], status: str) -> None:
        """Force the given slots to ``status`` without notifying the listener."""
        if status not in LOADING_STATUSES:
            raise ValueError(f"Unknown status: {status}")
        for contestant_id in contestant_ids:
            self._slots[contestant_id] = status

    def all_settled(self, contestant_ids: Iterable[str]) -> bool:
        return all(self._slots.get(contestant_id) in SETTLED_STATUSES for contestant_id in contestant_ids)

    def any_pending(self, contestant_ids: Iterable[str]) -> bool:
        return any(self._slots.get(contestant_id) in PENDING_STATUSES for contestant_id in contestant_ids)

    def snapshot(self) -> Dict[str, str]:
        return dict(self._slots)
