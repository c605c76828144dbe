"""The WorkerThread drains the work queue, one key at a time"""
# Standard
from typing import Callable

# First Party
import alog

# Local
from .. import config
from ..utils import parse_time_delta
from .base import ThreadBase

log = alog.use_channel("WRKTHRD")


class WorkerThread(ThreadBase):
    """Runs process_next_work_item until it reports that the queue shut down.
    If the loop raises, the worker waits worker_restart_period and starts it
    again. An in-flight item always runs to completion.
    """

    def __init__(
        self,
        process_next_work_item: Callable[[], bool],
        index: int = 0,
        shutdown=None,
    ):
        """
        Args:
            process_next_work_item: Callable[[], bool]
                Processes a single item. Returns False once the queue shut down
            index: int
                Position of this worker in the pool, used for the thread name
            shutdown: threading.Event = None
                Optional shared shutdown event
        """
        super().__init__(name=f"worker_thread_{index}", daemon=True, shutdown=shutdown)
        self.process_next_work_item = process_next_work_item
        self.restart_period = parse_time_delta(config.worker_restart_period)

    def run(self):
        while True:
            try:
                while self.process_next_work_item():
                    pass
                log.debug("Queue shut down. Stopping %s", self.name)
                return
            except Exception as exc:  # pylint: disable=broad-exception-caught
                log.error("Worker loop crashed: %s", exc, exc_info=True)
            if not self.wait_on_precondition(self.restart_period.total_seconds()):
                return
