"""Shared error codes, user-facing messages and exceptions."""

from __future__ import annotations

SPEECH_UNAVAILABLE = "SPEECH_UNAVAILABLE"
START_FAILED = "START_FAILED"
NO_MATCH = "error_no_match"
PERMISSION_DENIED = "PERMISSION_DENIED"
DEVICE_UNAVAILABLE = "DEVICE_UNAVAILABLE"
NETWORK_ERROR = "NETWORK_ERROR"
AUTH_FAILED = "AUTH_FAILED"
ASR_PROTOCOL_ERROR = "ASR_PROTOCOL_ERROR"

NOT_CONFIGURED = "NOT_CONFIGURED"
EMPTY_TRANSCRIPT = "EMPTY_TRANSCRIPT"
RATE_LIMITED = "RATE_LIMITED"
TIMEOUT = "TIMEOUT"
SUMMARY_FAILED = "SUMMARY_FAILED"

ERROR_MESSAGES = {
    SPEECH_UNAVAILABLE: "Speech recognition not available.",
    START_FAILED: "Error starting speech recognition.",
    NO_MATCH: "No speech was recognised.",
    PERMISSION_DENIED: "Microphone permission is required for dictation.",
    DEVICE_UNAVAILABLE: "No microphone input device is available.",
    NETWORK_ERROR: "Network failed, please retry.",
    AUTH_FAILED: "Invalid API key. Please check your DashScope API key.",
    ASR_PROTOCOL_ERROR: "ASR response format is invalid.",
    NOT_CONFIGURED: "API key not configured. Please add your API key to the .env file.",
    EMPTY_TRANSCRIPT: "Cannot summarize empty transcript.",
    RATE_LIMITED: "Rate limit exceeded. Please try again later.",
    TIMEOUT: "Request timeout. The server took too long to respond.",
    SUMMARY_FAILED: "Failed to generate summary.",
}

# Codes worth interrupting the user for even when not fatal.
_ALWAYS_VISIBLE = {SPEECH_UNAVAILABLE, PERMISSION_DENIED, DEVICE_UNAVAILABLE}


def is_user_visible(code: str, fatal: bool) -> bool:
    """Whether a dictation error should be surfaced to the user."""
    if code == NO_MATCH:
        return False
    return fatal or code in _ALWAYS_VISIBLE


class SummarizeError(Exception):
    def __init__(self, code: str, message: str = "") -> None:
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, code)
        super().__init__(self.message)


class DocumentNotFoundError(KeyError):
    def __init__(self, doc_id: str) -> None:
        self.doc_id = doc_id
        super().__init__(doc_id)

    def __str__(self) -> str:
        return f"Document not found: {self.doc_id}"
