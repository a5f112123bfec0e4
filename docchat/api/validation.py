"""Input validation for chat requests.

Runs before any upstream resource is touched and has no side effects.
"""

from typing import Any, NamedTuple

MAX_MESSAGE_LENGTH = 10_000
MAX_THREAD_ID_LENGTH = 100


class ValidationResult(NamedTuple):
    """Outcome of a validation check.

    Attributes:
        valid: Whether the value passed.
        error: Human-readable reason when it did not.
    """

    valid: bool
    error: str | None = None


PASSED = ValidationResult(valid=True)


def validate_message(message: Any) -> ValidationResult:
    """Validate a chat message.

    The message must be a string that is non-empty after trimming and no
    longer than 10,000 characters.
    """
    if not message:
        return ValidationResult(False, "Message is required")

    if not isinstance(message, str):
        return ValidationResult(False, "Message must be a string")

    trimmed = message.strip()
    if not trimmed:
        return ValidationResult(False, "Message cannot be empty")

    if len(trimmed) > MAX_MESSAGE_LENGTH:
        return ValidationResult(
            False, "Message is too long. Maximum 10,000 characters allowed."
        )

    return PASSED


def validate_thread_id(thread_id: Any) -> ValidationResult:
    """Validate a session (thread) identifier: 1-100 characters."""
    if not thread_id:
        return ValidationResult(False, "Thread ID is required")

    if not isinstance(thread_id, str):
        return ValidationResult(False, "Thread ID must be a string")

    if len(thread_id) > MAX_THREAD_ID_LENGTH:
        return ValidationResult(False, "Invalid Thread ID format")

    return PASSED


def validate_chat_input(message: Any, thread_id: Any) -> ValidationResult:
    """Validate a chat submission, stopping at the first failure."""
    result = validate_message(message)
    if not result.valid:
        return result
    return validate_thread_id(thread_id)
