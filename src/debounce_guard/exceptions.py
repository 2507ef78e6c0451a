"""Custom exceptions for the debounce guard.

Only two of these are meant to reach callers: ``GuardRejectedError`` when a
duplicate call is suppressed, and ``StoreUnavailableError`` when the shared
lock store cannot be reached. The remaining exceptions are raised and caught
internally; they degrade fingerprint precision instead of failing the call.

Examples:
    Handling a rejection::

        from debounce_guard.exceptions import GuardRejectedError

        try:
            await orchestrator.run(config, key, create_order)
        except GuardRejectedError as e:
            return JSONResponse({"success": False, "message": e.message}, status_code=429)

    Handling a store outage::

        from debounce_guard.exceptions import StoreUnavailableError

        try:
            acquired = await guard.acquire(key, 5000)
        except StoreUnavailableError as e:
            logger.error("store.error", error=str(e.cause))
            raise
"""


class DebounceError(Exception):
    """Base exception for all debounce-related errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        """Initialize the exception with a message.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)


class GuardRejectedError(DebounceError):
    """A call was suppressed because its fingerprint is already held.

    This is the expected, user-visible outcome of the guard. It is never
    retried and is not an error condition from the service's point of view.

    Attributes:
        message: The configured rejection message.
        key: The fingerprint that was already held.
    """

    def __init__(self, message: str, key: str) -> None:
        """Initialize the rejection.

        Args:
            message: The configured rejection message.
            key: The fingerprint that was already held.
        """
        super().__init__(message)
        self.key = key


class StoreUnavailableError(DebounceError):
    """The shared lock store could not be reached or returned an error.

    Guarded calls fail closed: the target is never invoked when the store
    cannot confirm that the lock was taken.

    Attributes:
        message: Human-readable error description.
        cause: The underlying exception raised by the store client.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        """Initialize the store error with details.

        Args:
            message: Human-readable error description.
            cause: The underlying exception raised by the store client.
        """
        super().__init__(message)
        self.cause = cause


class NormalizationError(DebounceError):
    """A transport request could not be converted to a NormalizedRequest.

    Normalizers catch this themselves and fall back to degraded defaults.
    """


class ParameterSerializationError(DebounceError):
    """Request parameters could not be serialized for hashing.

    Key strategies catch this themselves and omit the hash segment.
    """
