"""
Debounced inflation recomputation.

Ledger changes are queued as league ids. A single worker thread drains the
queue, keeps collecting notifications for a short debounce window, then
recomputes each distinct league once.
"""

import logging
import queue
import threading
import time
from typing import Callable, Dict, List, Optional

from .. import config
from ..draft.ledger import LedgerNotFoundError, LedgerRepository
from ..draft.projections import InMemoryProjectionProvider
from .inflation_engine import compute_inflation_state
from .inflation_types import InflationState
from .trends import InflationHistoryEntry, TrendResult, calculate_inflation_trend

logger = logging.getLogger(__name__)

InflationListener = Callable[[str, InflationState], None]

_STOP = object()


class InflationRecalculator:
    """Owns the latest InflationState per league."""

    def __init__(
        self,
        ledgers: LedgerRepository,
        projections: InMemoryProjectionProvider,
        debounce_ms: int = config.INFLATION_DEBOUNCE_MS,
        compute: Callable = compute_inflation_state
    ):
        """
        Initialize recalculator.

        Args:
            ledgers: Shared ledger repository
            projections: Shared projection provider
            debounce_ms: Window for coalescing notifications
            compute: Function (ledger, projections_df) -> InflationState
        """
        self.ledgers = ledgers
        self.projections = projections
        self.debounce_seconds = debounce_ms / 1000
        self._compute = compute

        self._queue: queue.Queue = queue.Queue()
        self._states: Dict[str, InflationState] = {}
        self._history: Dict[str, List[InflationHistoryEntry]] = {}
        self._counts: Dict[str, int] = {}
        self._pick_numbers: Dict[str, int] = {}  # ledger length behind each stored state
        self._listeners: List[InflationListener] = []
        self._lock = threading.Lock()

        self._pending = 0
        self._idle = threading.Condition()

        self._worker: Optional[threading.Thread] = None
        self._stopped = False

    def start(self) -> None:
        with self._lock:
            if self._worker is not None and self._worker.is_alive():
                return
            self._stopped = False
            self._worker = threading.Thread(
                target=self._run, name='inflation-recalculator', daemon=True
            )
            self._worker.start()
        logger.debug("Inflation recalculator started")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop the worker after it drains the queue. Safe to call twice."""
        with self._lock:
            worker = self._worker
            if self._stopped or worker is None:
                self._stopped = True
                return
            self._stopped = True
            self._worker = None

        self._queue.put(_STOP)
        worker.join(timeout)
        logger.debug("Inflation recalculator stopped")

    def notify(self, league_id: str) -> None:
        """Schedule a recomputation for a league."""
        if self._stopped:
            logger.debug(f"Recalculator stopped, ignoring notification for {league_id}")
            return

        if self._worker is None:
            self.start()

        with self._idle:
            self._pending += 1
        self._queue.put(league_id)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return

            batch = [item]
            stop_requested = False
            deadline = time.monotonic() + self.debounce_seconds

            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                try:
                    item = self._queue.get(timeout=remaining)
                except queue.Empty:
                    break
                if item is _STOP:
                    stop_requested = True
                    break
                batch.append(item)

            # dict keeps first-seen order
            for league_id in dict.fromkeys(batch):
                self._recompute(league_id)

            with self._idle:
                self._pending -= len(batch)
                self._idle.notify_all()

            if len(batch) > 1:
                logger.debug(f"Coalesced {len(batch)} notifications into {len(set(batch))} recompute(s)")

            if stop_requested:
                return

    def _recompute(self, league_id: str) -> Optional[InflationState]:
        try:
            ledger = self.ledgers.get(league_id)
        except LedgerNotFoundError:
            logger.debug(f"No ledger for league {league_id}, skipping recompute")
            return None

        # Ledger only grows: the computed state covers at least this many picks
        pick_number = len(ledger)

        try:
            state = self._compute(ledger, self.projections.snapshot(league_id))
        except Exception as e:
            logger.error(f"Inflation recompute failed for league {league_id}: {e}", exc_info=True)
            return None

        entry = InflationHistoryEntry(pick_number=pick_number, rate=state.overall_rate * 100)

        with self._lock:
            if pick_number < self._pick_numbers.get(league_id, -1):
                logger.debug(
                    f"League {league_id}: dropping stale inflation state "
                    f"(pick {pick_number} < {self._pick_numbers[league_id]})"
                )
                return self._states.get(league_id)

            self._states[league_id] = state
            self._pick_numbers[league_id] = pick_number
            self._counts[league_id] = self._counts.get(league_id, 0) + 1
            history = self._history.setdefault(league_id, [])
            if history and history[-1].pick_number == pick_number:
                history[-1] = entry
            else:
                history.append(entry)
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(league_id, state)
            except Exception as e:
                logger.error(f"Inflation listener failed for league {league_id}: {e}", exc_info=True)

        return state

    def recompute_now(self, league_id: str) -> Optional[InflationState]:
        """Recompute synchronously, bypassing the queue."""
        return self._recompute(league_id)

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every queued notification has been processed.

        Returns:
            True if idle, False on timeout
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._pending <= 0, timeout)

    def get_state(self, league_id: str) -> Optional[InflationState]:
        with self._lock:
            return self._states.get(league_id)

    def history(self, league_id: str) -> List[InflationHistoryEntry]:
        with self._lock:
            return list(self._history.get(league_id, []))

    def get_trend(self, league_id: str) -> TrendResult:
        history = self.history(league_id)
        current_pick = history[-1].pick_number if history else 0
        return calculate_inflation_trend(history, current_pick)

    def recompute_count(self, league_id: str) -> int:
        with self._lock:
            return self._counts.get(league_id, 0)

    def add_listener(self, listener: InflationListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_league(self, league_id: str) -> None:
        with self._lock:
            self._states.pop(league_id, None)
            self._history.pop(league_id, None)
            self._counts.pop(league_id, None)
            self._pick_numbers.pop(league_id, None)
