"""
This module implements custom exceptions
"""

## Base Error ##################################################################


class TopoError(Exception):
    """Base class for all topoctl exceptions"""

    def __init__(self, message: str, is_retryable: bool):
        """Construct with a flag indicating whether this error should cause the
        work item to be retried. This will be a static property of all children.
        """
        super().__init__(message)
        self._is_retryable = is_retryable

    @property
    def is_retryable(self):
        """Property indicating whether or not the failed work item should be
        re-enqueued with backoff
        """
        return self._is_retryable


## Retryable Errors ############################################################


class TopoRetryableError(TopoError):
    """A TopoRetryableError indicates a failure that is expected to resolve
    itself on a subsequent pass over the same work item.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_retryable=True)


class TransientStoreError(TopoRetryableError):
    """Exception raised when a store operation fails for any reason other than
    the object being missing or already present
    """

    def __init__(self, message: str = "", status: int = None):
        self.status = status
        super().__init__(message)


## Terminal Errors #############################################################


class TopoTerminalError(TopoError):
    """A TopoTerminalError ends the current processing pass. Retrying cannot
    help, or the condition is already resolved.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_retryable=False)


class MalformedKeyError(TopoTerminalError):
    """Exception caused by a work item that is not a "<namespace>/<name>" key"""


class ResourceGoneError(TopoTerminalError):
    """Exception indicating the custom resource was deleted between enqueue and
    processing
    """


class NotFoundError(TopoTerminalError):
    """Exception raised by a store lookup for an object that does not exist"""


class AlreadyExistsError(TopoTerminalError):
    """Exception raised by a store create for an object that already exists"""


class CacheSyncTimeoutError(TopoTerminalError):
    """Exception raised when the watch caches fail to sync before startup"""


class InformerFailedError(TopoTerminalError):
    """Exception raised when an informer stopped watching after using up its
    retries
    """


class UnrecognizedEventPayloadError(TopoTerminalError):
    """Exception raised when a watch event payload is neither an object nor a
    tombstone wrapping one
    """


class ConfigError(TopoTerminalError):
    """Exception caused during usage of user-provided configuration"""


## Assertions ##################################################################


def assert_config(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a ConfigError. This should be
    used when validating library configuration values.
    """
    if not condition:
        raise ConfigError(message)


def assert_store(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a TransientStoreError. This
    should be used when a store response does not have the expected shape.
    """
    if not condition:
        raise TransientStoreError(message)
