"""
adcontext - Errors

Errors surfaced to SDK callers. Everything inside the coordination core
degrades to reduced data instead of raising; only the public entry points
raise these.
"""

from enum import IntEnum
from typing import Dict, List, Optional


class ErrorCode(IntEnum):
    NOT_INITIALIZED = 1000
    INJECTION_FAILED = 1001
    CONSUMER_NOT_READY = 1002
    INVALID_CONFIGURATION = 1003
    UNSUPPORTED_CONSUMER = 1004


_DESCRIPTIONS: Dict[ErrorCode, str] = {
    ErrorCode.NOT_INITIALIZED: "adcontext has not been initialized. Call initialize(config) first.",
    ErrorCode.INJECTION_FAILED: "Failed to evaluate the payload script in the consumer.",
    ErrorCode.CONSUMER_NOT_READY: "The consumer is not ready for script evaluation.",
    ErrorCode.INVALID_CONFIGURATION: "Invalid configuration provided to the SDK.",
    ErrorCode.UNSUPPORTED_CONSUMER: "The consumer does not provide an async evaluate(script) channel.",
}

_FAILURE_REASONS: Dict[ErrorCode, str] = {
    ErrorCode.NOT_INITIALIZED: "initialize() was not called before using SDK features.",
    ErrorCode.INJECTION_FAILED: "Script evaluation raised in the consumer context.",
    ErrorCode.CONSUMER_NOT_READY: "The consumer has not finished loading or has been released.",
    ErrorCode.INVALID_CONFIGURATION: "The configuration contains invalid or conflicting settings.",
    ErrorCode.UNSUPPORTED_CONSUMER: "Only consumers implementing the ConsumerChannel protocol are supported.",
}

_RECOVERY_SUGGESTIONS: Dict[ErrorCode, str] = {
    ErrorCode.NOT_INITIALIZED: "Call ContextSDK.initialize(config) before using any SDK features.",
    ErrorCode.INJECTION_FAILED: "Ensure the consumer has finished loading and try again.",
    ErrorCode.CONSUMER_NOT_READY: "Wait for the consumer's load-finished signal before injecting.",
    ErrorCode.INVALID_CONFIGURATION: "Review the configuration values reported by ContextConfig.validate().",
    ErrorCode.UNSUPPORTED_CONSUMER: "Wrap the consumer in an object exposing async evaluate(script).",
}


class ContextSDKError(Exception):
    """Base error carrying a stable numeric code."""

    code: ErrorCode = ErrorCode.INJECTION_FAILED

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.description)

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self.code]

    @property
    def failure_reason(self) -> str:
        return _FAILURE_REASONS[self.code]

    @property
    def recovery_suggestion(self) -> str:
        return _RECOVERY_SUGGESTIONS[self.code]


class NotInitializedError(ContextSDKError):
    code = ErrorCode.NOT_INITIALIZED


class InjectionFailedError(ContextSDKError):
    code = ErrorCode.INJECTION_FAILED


class ConsumerNotReadyError(ContextSDKError):
    code = ErrorCode.CONSUMER_NOT_READY


class InvalidConfigurationError(ContextSDKError):
    code = ErrorCode.INVALID_CONFIGURATION

    def __init__(self, problems: Optional[List[str]] = None):
        self.problems = problems or []
        message = None
        if self.problems:
            message = f"{_DESCRIPTIONS[self.code]} {'; '.join(self.problems)}"
        super().__init__(message)


class UnsupportedConsumerError(ContextSDKError):
    code = ErrorCode.UNSUPPORTED_CONSUMER


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        NotInitializedError,
        InjectionFailedError,
        ConsumerNotReadyError,
        InvalidConfigurationError,
        UnsupportedConsumerError,
    )
}
