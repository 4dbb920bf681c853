"""Service error hierarchy for generation, storage and job execution.

This module defines the exception hierarchy for service-level errors:
- ServiceError: Base for all service errors
- TransientError: Retryable errors (network, rate limits, timeouts, 5xx)
- PermanentError: Non-retryable errors (authentication, validation, bad output)
- ConfigurationError: Job or deployment is misconfigured; nothing is attempted
"""


class ServiceError(Exception):
    """Base exception for all service errors."""

    pass


class TransientError(ServiceError):
    """Transient error that may succeed on retry.

    Examples:
    - Network timeouts and aborted requests
    - Rate limit exceeded (429)
    - Server errors (500, 502, 503, 504)
    """

    pass


class PermanentError(ServiceError):
    """Permanent error that will not succeed on retry.

    Examples:
    - Authentication failures (401, 403)
    - Invalid request parameters (400)
    - Content blocked by safety filters
    - Undecodable payloads
    """

    pass


class ConfigurationError(PermanentError):
    """Job setup is invalid (missing reference set, scene, motion prompt, model or API key)."""

    pass


class JobNotFoundError(ServiceError):
    """Generation job id does not exist."""

    pass


# Object storage errors
class StorageError(PermanentError):
    """Object storage rejected the request."""

    pass


class StorageNetworkError(TransientError):
    """Network timeout or storage service unavailable."""

    pass


# Media processing errors
class MediaDecodeError(PermanentError):
    """Generated payload could not be decoded as an image."""

    pass
