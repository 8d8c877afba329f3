"""
Result type for user-facing outcomes from the vote and link services.

Validation failures (unknown match, vote from a non-participant, unlinked
Discord user) are normal outcomes for a chat bot, not faults. Services return
them as Result.fail(...) with a code from services.error_codes so the command
layer can pick a reply without parsing message text.

Usage:
    outcome = coordinator.submit_vote(match_id, player_id, VoteKind.REHOST)
    if outcome:
        print(outcome.value.vote_count)
    elif outcome.error_code == NOT_A_PARTICIPANT:
        print(outcome.error)
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Success/failure wrapper for service return values.

    Attributes:
        success: Whether the operation was accepted
        value: Payload on success
        error: Human-readable rejection reason on failure
        error_code: Machine-readable reason (see services.error_codes)
    """

    success: bool
    value: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> "Result[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str, code: str | None = None) -> "Result[T]":
        return cls(success=False, error=error, error_code=code)

    def __bool__(self) -> bool:
        return self.success

    def unwrap(self) -> T:
        """
        Get the value, raising ValueError if the result is a failure.

        Raises:
            ValueError: If the result is a failure
        """
        if not self.success:
            raise ValueError(f"Cannot unwrap failed result: {self.error}")
        return self.value  # type: ignore

    def unwrap_or(self, default: T) -> T:
        """Get the value or a default if the result is a failure."""
        return self.value if self.success else default  # type: ignore
