"""Measurement error types.

Every failure the engine surfaces is a ``MeasurementError`` carrying a
``stage`` (where it happened), a machine-readable ``code`` and a
``retryable`` flag, so the HTTP layer and the session can react without
parsing message text.

Raised subclasses:

- ``ContractError``: a request body or polygon the caller got wrong (400).
- ``ValidationError``: a configuration or domain value out of range;
  ``core.config.ConfigValidationError`` is the concrete case.
- ``engine.loader.LoadError``: the parcel collection could not be
  fetched or parsed. Transport errors and 5xx responses are retryable.

A polygon with fewer than three points, or one that contains no usable
parcel, is not an error: it yields ``None`` or a fallback measurement.
"""

from __future__ import annotations


class MeasurementError(Exception):
    """Base class for errors raised by the measurement engine.

    Attributes:
        message: Human-readable description.
        stage: Where the error occurred (``"load_features"``, ``"ingress"``,
            ``"config"``, ...). Subclasses set ``default_stage``.
        code: Stable error code. Subclasses set ``default_code``.
        retryable: Whether repeating the same request may succeed.
        correlation_id: Request or session identifier, if known.
    """

    default_stage: str = ""
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """``contract``, ``validation``, ``transient`` or ``permanent``."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Error payload for HTTP responses and session events."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


class ValidationError(MeasurementError):
    """A configuration or domain value is out of range. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs["retryable"] = False
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(MeasurementError):
    """A request payload does not match the endpoint contract. Never retryable."""

    default_stage = "ingress"
    default_code = "INVALID_REQUEST"

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs["retryable"] = False
        super().__init__(message, **kwargs)  # type: ignore[arg-type]
