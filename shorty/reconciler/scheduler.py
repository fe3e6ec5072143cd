"""Timer thread driving the reconciler

Classes:
    ReconcileScheduler:
        Runs a reconciliation pass immediately, then once per interval, on a
        single daemon thread. Passes never overlap.

Example:
    >>> scheduler = ReconcileScheduler(reconciler, interval=600)
    >>> scheduler.start()
    >>> ...
    >>> scheduler.stop()
"""

import logging
import threading

from shorty.reconciler.reconciler import Reconciler


logger = logging.getLogger(__name__)


class ReconcileScheduler:
    """Run Reconciler passes on a background thread at a fixed interval

    Attributes:
        reconciler (Reconciler):
            Reconciler whose passes are scheduled.
        interval (float):
            Seconds between the end of one pass and the start of the next.
            Values <= 0 disable the scheduler.
    """

    def __init__(self, reconciler: Reconciler, interval: float):
        self.reconciler = reconciler
        self.interval = interval
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """Start the background thread

        Returns:
            bool: True if the thread was started (False when disabled or already running).
        """
        if self.interval <= 0:
            logger.info('Reconciler disabled.', extra={'interval': self.interval})
            return False
        if self.running:
            return False

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name='shorty-reconciler', daemon=True)
        self._thread.start()
        logger.info('Reconciler started.', extra={'interval': self.interval})
        return True

    def stop(self, timeout: float | None = None) -> None:
        """Signal the thread to stop and wait for the current pass to return"""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info('Reconciler stopped.')

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.reconciler.run()
            except Exception:
                # A failed pass is retried on the next tick; the thread must survive it
                logger.exception('Reconciliation pass failed.')
            if self._stop_event.wait(self.interval):
                break
