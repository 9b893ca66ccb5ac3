"""Exceptions raised by content generation."""

from typing import Optional


class GenerationError(RuntimeError):
    """Generation failed: provider error, malformed or empty response."""

    status = "generation_failed"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GenerationRateLimited(GenerationError):
    """Provider answered HTTP 429."""

    status = "rate_limited"


class GenerationBillingError(GenerationError):
    """Provider answered HTTP 402 (out of credits)."""

    status = "billing_error"


class GenerationConfigError(GenerationError):
    """Provider credentials or service categories are not configured."""

    status = "skipped"


def error_for_status(status_code: int, body: str = "") -> GenerationError:
    """Map a provider HTTP status to the matching exception."""
    snippet = (body or "")[:255]
    if status_code == 429:
        return GenerationRateLimited(f"Provider rate limit exceeded: {snippet}", status_code)
    if status_code == 402:
        return GenerationBillingError(f"Provider credits exhausted: {snippet}", status_code)
    return GenerationError(f"Provider error {status_code}: {snippet}", status_code)
