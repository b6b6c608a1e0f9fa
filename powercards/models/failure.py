"""
Failure Envelope: Unified Response Classification.

Every outcome the engine reports to a caller is classified into one of
four outcome types and, on failure, carries a FailureDetail:

- Success: Operation completed successfully
- Refusal: The engine declined because a game rule forbids the request
- KnownFailure: The engine knows exactly why the operation failed
- UnknownFailure: The engine does not know why it failed

Error taxonomy (exception roots):

- ValidationError: deck rule violations, returned verbatim as a list
- StateError: lock passed, card already used, sprint weekend, season
- ReferentialError: unknown card, target, race or league
- DataIntegrityError: missing race result data, malformed scored selections

All user-visible responses pass through `finalize_response()`.
"""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"
    DECK_RULE_VIOLATION = "deck_rule_violation"

    # Resource failures
    NOT_FOUND = "not_found"
    INVALID_CARD = "invalid_card"
    INVALID_TARGET = "invalid_target"
    MISSING_TARGET = "missing_target"

    # Game state constraints
    LOCK_PASSED = "lock_passed"
    LOCK_NOT_PASSED = "lock_not_passed"
    CARD_ALREADY_USED = "card_already_used"
    SPRINT_WEEKEND_FORBIDDEN = "sprint_weekend_forbidden"
    SEASON_NOT_ELIGIBLE = "season_not_eligible"

    # Data integrity
    INCOMPLETE_RACE_RESULT = "incomplete_race_result"
    MALFORMED_SCORED_SELECTION = "malformed_scored_selection"

    # Unknown
    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    SUCCESS = "success"
    REFUSAL = "refusal"
    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


T = TypeVar("T")


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )
    violations: list[str] = Field(
        default_factory=list,
        description="Every rule violation found (deck validation only)",
    )


class ApiResponse(BaseModel, Generic[T]):
    """
    Universal response envelope for all API endpoints.

    Every response is classified into one of four outcome types,
    ensuring no failure reaches the user unexplained.
    """

    outcome: OutcomeType = Field(
        ...,
        description="High-level classification of the result",
    )
    data: T | None = Field(
        default=None,
        description="Response data (present on success)",
    )
    failure: FailureDetail | None = Field(
        default=None,
        description="Failure details (present on non-success)",
    )


# =============================================================================
# EXCEPTION TAXONOMY
# =============================================================================


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the engine knows exactly what went wrong.
    """

    outcome: OutcomeType = OutcomeType.KNOWN_FAILURE

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def failure_detail(self) -> FailureDetail:
        return FailureDetail(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )

    def to_response(self) -> ApiResponse[Any]:
        """Convert to a finalized ApiResponse."""
        response: ApiResponse[Any] = ApiResponse(
            outcome=self.outcome,
            failure=self.failure_detail(),
        )
        return finalize_response(response)


class ValidationError(KnownError):
    """
    Raised when a candidate deck breaks one or more deck rules.

    Carries the full violation list so the caller can show every
    problem at once instead of one per attempt.
    """

    def __init__(self, violations: list[str], detail: str | None = None):
        self.violations = list(violations)
        super().__init__(
            kind=FailureKind.DECK_RULE_VIOLATION,
            message=f"Deck breaks {len(self.violations)} rule(s).",
            detail=detail,
            suggestion="Adjust the selected cards so every deck rule holds.",
            status_code=422,
        )

    def failure_detail(self) -> FailureDetail:
        detail = super().failure_detail()
        detail.violations = list(self.violations)
        return detail


class StateError(KnownError):
    """
    Raised when the game state forbids the request.

    The caller must not retry without changing the input.
    """

    outcome = OutcomeType.REFUSAL

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
    ):
        super().__init__(
            kind=kind,
            message=message,
            detail=detail,
            suggestion=suggestion,
            status_code=409,
        )


class ReferentialError(KnownError):
    """Raised when a request names a card, target, race or league that does not resolve."""

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        status_code: int = 404,
    ):
        super().__init__(
            kind=kind,
            message=message,
            detail=detail,
            suggestion="Refresh and try again; your data may be out of date.",
            status_code=status_code,
        )


class DataIntegrityError(KnownError):
    """
    Raised when ingested data is incomplete or malformed.

    This is fatal for the scoring or aggregation pass that hit it.
    The affected race is excluded until ingestion is corrected.
    """

    def __init__(self, kind: FailureKind, message: str, detail: str | None = None):
        super().__init__(
            kind=kind,
            message=message,
            detail=detail,
            suggestion="The race data must be corrected before it can be scored.",
            status_code=500,
        )


# =============================================================================
# FAILURE AUTHORITY BOUNDARY
# =============================================================================

STANDARD_MESSAGES: dict[OutcomeType, str] = {
    OutcomeType.REFUSAL: "The request is not allowed at this point in the season.",
    OutcomeType.KNOWN_FAILURE: "The operation failed due to a known issue.",
    OutcomeType.UNKNOWN_FAILURE: "Something went wrong and the cause is unknown. Please retry.",
}

STANDARD_SUGGESTIONS: dict[OutcomeType, str] = {
    OutcomeType.REFUSAL: "Please modify your request to satisfy the game rules.",
    OutcomeType.KNOWN_FAILURE: "Check the error details and adjust your request.",
    OutcomeType.UNKNOWN_FAILURE: "If this persists, please report the issue.",
}

# Track finalized responses
_finalized_responses: set[int] = set()


def finalize_response(response: ApiResponse[Any]) -> ApiResponse[Any]:
    """
    Finalize a response through the authority boundary.

    Raises:
        ValueError: If response structure is invalid
    """
    if response.outcome == OutcomeType.SUCCESS:
        if response.failure is not None:
            raise ValueError("Success response must not have failure details")
    else:
        if response.failure is None:
            raise ValueError(f"{response.outcome.value} response must have failure details")

    _finalized_responses.add(id(response))

    return response


def is_finalized(response: ApiResponse[Any]) -> bool:
    """Check if a response has passed through the authority boundary."""
    return id(response) in _finalized_responses


def create_unknown_failure(
    exception: Exception,
    include_type: bool = True,
) -> ApiResponse[Any]:
    """
    Create an unknown failure response from an exception.

    The message is fixed and cannot be customized.
    """
    detail = type(exception).__name__ if include_type else None

    response: ApiResponse[Any] = ApiResponse(
        outcome=OutcomeType.UNKNOWN_FAILURE,
        failure=FailureDetail(
            kind=FailureKind.UNKNOWN,
            message=STANDARD_MESSAGES[OutcomeType.UNKNOWN_FAILURE],
            detail=detail,
            suggestion=STANDARD_SUGGESTIONS[OutcomeType.UNKNOWN_FAILURE],
        ),
    )

    return finalize_response(response)

