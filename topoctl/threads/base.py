"""
Common start and stop handling for the controller's long running threads
"""

# Standard
from typing import Optional
import threading

# First Party
import alog

log = alog.use_channel("TRDUTLS")


class ThreadBase(threading.Thread):
    """A thread that runs until its shutdown event is set. Threads that share
    one event are stopped together.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        daemon: Optional[bool] = None,
        shutdown: Optional[threading.Event] = None,
    ):
        """
        Args:
            name:  Optional[str]
                Thread name shown in logs
            daemon:  Optional[bool]
                Whether the interpreter may exit while the thread runs
            shutdown:  Optional[threading.Event]
                Event shared with other threads. A private one is made if not
                given.
        """
        self.shutdown = shutdown or threading.Event()
        super().__init__(name=name, daemon=daemon)

    ## Abstract Interface ######################################################

    def run(self):
        """The thread body. The thread stops when this returns."""
        raise NotImplementedError()

    ## Lifecycle ###############################################################

    def start_thread(self):
        """Start the thread unless it is already running"""
        if not self.is_alive():
            log.info("Starting %s: %s", self.__class__.__name__, self.name)
            self.start()

    def stop_thread(self):
        """Ask the thread to stop. This sets the shared event, so every thread
        using it is asked as well.
        """
        log.info("Stopping %s: %s", self.__class__.__name__, self.name)
        self.shutdown.set()

    def stop_and_join(self, timeout: Optional[float] = None) -> bool:
        """Stop the thread and wait for it to exit

        Returns:
            stopped:  bool
                False if the thread was still running after timeout
        """
        self.stop_thread()
        if self.is_alive():
            self.join(timeout)
        if self.is_alive():
            log.warning("%s did not stop within %ss", self.name, timeout)
            return False
        return True

    ## Helpers #################################################################

    def should_stop(self) -> bool:
        return self.shutdown.is_set()

    def check_preconditions(self) -> bool:
        """Whether the thread should keep running"""
        return not self.should_stop()

    def wait_on_precondition(self, timeout: float) -> bool:
        """Sleep for timeout seconds, waking early on shutdown

        Returns:
            keep_running:  bool
                The result of check_preconditions after the wait
        """
        self.shutdown.wait(timeout)
        return self.check_preconditions()
