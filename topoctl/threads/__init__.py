"""
Threads used to run the controller
"""

# Local
from .base import ThreadBase
from .informer import InformerThread
from .timer import TimerEvent, TimerThread
from .worker import WorkerThread
