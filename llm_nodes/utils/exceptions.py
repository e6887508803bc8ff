"""
Exception taxonomy for llm_nodes.

WHAT: Domain exceptions raised by nodes and provider adapters
WHY: Callers get one error vocabulary regardless of vendor
HOW: Base exception carrying message, code and details; one subclass per failure class
"""

from typing import Optional, Any


class LLMNodesError(Exception):
    """Base class for all llm_nodes exceptions."""

    def __init__(self, message: str, code: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details


class ConfigError(LLMNodesError):
    """Raised when a vendor-mandated configuration field is missing at call time."""

    def __init__(self, field: str, provider: str, message: Optional[str] = None):
        super().__init__(
            message=message or f"{field} is required for {provider} models",
            code="CONFIG_ERROR",
            details={"field": field, "provider": provider}
        )
        self.field = field
        self.provider = provider


class CapabilityError(LLMNodesError):
    """Raised when streaming or batch is requested from a provider without it."""

    def __init__(self, capability: str, provider: str):
        super().__init__(
            message=f"Provider '{provider}' does not support {capability}",
            code="CAPABILITY_UNSUPPORTED",
            details={"capability": capability, "provider": provider}
        )
        self.capability = capability
        self.provider = provider


class ParseError(LLMNodesError):
    """Raised when the response parser fails on an otherwise successful response."""

    def __init__(self, message: str, raw_output: Optional[str] = None):
        super().__init__(
            message=f"Parse error: {message}",
            code="PARSE_ERROR",
            details={"raw_output": raw_output} if raw_output is not None else None
        )
        self.raw_output = raw_output


class ProviderError(LLMNodesError):
    """Raised when the vendor call itself fails."""

    code = "PROVIDER_ERROR"

    def __init__(self, message: str, provider: str = "unknown", status_code: Optional[int] = None):
        details = {"provider": provider}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message=message, code=self.code, details=details)
        self.provider = provider
        self.status_code = status_code


class ProviderTimeoutError(ProviderError):
    """Request to provider timed out."""

    code = "PROVIDER_TIMEOUT"


class ProviderUnavailableError(ProviderError):
    """Provider is not reachable or down."""

    code = "PROVIDER_UNAVAILABLE"


class ProviderResponseError(ProviderError):
    """Provider returned an error status or a payload that could not be decoded."""

    code = "PROVIDER_RESPONSE"
