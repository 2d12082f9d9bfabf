"""
LLM-specific exceptions.

This module defines all custom exceptions raised by the LLM provider layer.
The orchestrator tells cancellation apart from every other failure, and the
provider uses the client-error type to decide not to retry.
"""


class LLMError(Exception):
    """Base class for errors raised while talking to a model endpoint."""
    pass


class LLMConnectionError(LLMError):
    """
    Raised when the endpoint could not be reached or kept failing.

    Covers timeouts, connection errors and 5xx responses once the retry
    budget is exhausted.
    """
    pass


class LLMClientError(LLMError):
    """
    Raised on 400, 401 and 403 responses.

    These are never retried: the request, the key or the permissions are
    wrong and sending the same request again will not help.
    """

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class LLMResponseError(LLMError):
    """Raised when the response body does not have the expected shape."""
    pass


class TranslationCancelledError(LLMError):
    """Raised when a request is abandoned because its cancellation token was set."""
    pass
