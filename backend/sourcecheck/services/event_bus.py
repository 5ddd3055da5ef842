"""Progress event fan-out for validation runs.

Each run gets a channel holding its listeners and a bounded replay buffer.
A channel closes when the run publishes its terminal event: listeners are
released and the history stays readable until ``max_finished_runs`` newer
runs have finished, after which the oldest finished run is evicted.
"""

from collections import OrderedDict, deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

import structlog

logger = structlog.get_logger()

RunEventListener = Callable[[dict], Awaitable[None]]

TERMINAL_EVENT_TYPES = frozenset({"validation_completed", "validation_failed"})


@dataclass
class _RunChannel:
    history: deque
    listeners: set = field(default_factory=set)


class RunEventBus:
    """Routes run events to listeners and keeps recent history per run.

    Memory is bounded: at most ``max_history`` events per run, and at most
    ``max_finished_runs`` finished runs. Runs still in progress are never
    evicted.
    """

    def __init__(self, max_history: int = 100, max_finished_runs: int = 50):
        self.max_history = max_history
        self.max_finished_runs = max_finished_runs
        self._active: dict[str, _RunChannel] = {}
        self._finished: "OrderedDict[str, _RunChannel]" = OrderedDict()

    def subscribe(self, run_id: str, listener: RunEventListener) -> bool:
        """Attach a listener to a run's future events.

        Returns False when the run has already finished; its events are then
        only available through get_history().
        """
        if run_id in self._finished:
            return False
        self._open_channel(run_id).listeners.add(listener)
        return True

    def unsubscribe(self, run_id: str, listener: RunEventListener) -> None:
        channel = self._active.get(run_id)
        if channel is None:
            return
        channel.listeners.discard(listener)
        if not channel.listeners and not channel.history:
            del self._active[run_id]

    async def publish(self, run_id: str, event: dict) -> None:
        if run_id in self._finished:
            logger.warning("run_event_after_finish", run_id=run_id, event_type=event.get("type"))
            return

        channel = self._open_channel(run_id)
        channel.history.append(event)

        for listener in list(channel.listeners):
            try:
                await listener(event)
            except Exception as e:
                logger.warning(
                    "run_event_listener_failed",
                    run_id=run_id,
                    event_type=event.get("type"),
                    error=str(e),
                )
                channel.listeners.discard(listener)

        if event.get("type") in TERMINAL_EVENT_TYPES:
            self._close_channel(run_id)

    def get_history(self, run_id: str) -> list[dict]:
        channel = self._active.get(run_id) or self._finished.get(run_id)
        return list(channel.history) if channel else []

    def is_finished(self, run_id: str) -> bool:
        return run_id in self._finished

    @property
    def tracked_runs(self) -> int:
        return len(self._active) + len(self._finished)

    def cleanup(self, run_id: str) -> None:
        """Forget a run entirely, whether or not it finished."""
        self._active.pop(run_id, None)
        self._finished.pop(run_id, None)

    # ── Helpers ──

    def _open_channel(self, run_id: str) -> _RunChannel:
        channel = self._active.get(run_id)
        if channel is None:
            channel = _RunChannel(history=deque(maxlen=self.max_history))
            self._active[run_id] = channel
        return channel

    def _close_channel(self, run_id: str) -> None:
        channel: Optional[_RunChannel] = self._active.pop(run_id, None)
        if channel is None:
            return
        channel.listeners.clear()
        self._finished[run_id] = channel

        while len(self._finished) > self.max_finished_runs:
            evicted, _ = self._finished.popitem(last=False)
            logger.debug("run_event_history_evicted", run_id=evicted)
