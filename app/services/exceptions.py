"""
Error taxonomy for the offer pipeline.

Fatal for the current action
    AuthError           — no / rejected credential for the generation backend
    TransportError      — network failure or non-success backend response
    EmptyResponseError  — backend answered without a text payload

Shape violations
    MalformedOutputError  — generator text does not match the requested shape.
                            Extraction and audit stages recover (empty result);
                            drafting and rendering treat it as fatal.
    OfferGenerationError  — drafting-stage flavour of MalformedOutputError.

Outbound
    WebhookDeliveryError  — notification sink rejected or unreachable.
"""
from __future__ import annotations


class PipelineError(Exception):
    """Base class for every error raised by the offer pipeline."""


class GenerationError(PipelineError):
    """Base class for failures of the generation backend call itself."""


class AuthError(GenerationError):
    """No credential configured, or the backend rejected it."""


class TransportError(GenerationError):
    """Network failure, timeout, or non-success HTTP status from the backend."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EmptyResponseError(GenerationError):
    """The backend returned no text payload."""


class MalformedOutputError(PipelineError):
    """Generator output does not match the expected shape."""

    def __init__(self, message: str, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text

    @property
    def preview(self) -> str:
        return self.raw_text[:200]


class OfferGenerationError(MalformedOutputError):
    """The drafting stage could not produce a valid offer record."""


class WebhookDeliveryError(PipelineError):
    """The outbound notification could not be delivered."""
