"""
Tests for the Failure Authority Boundary.

Every failure that reaches a caller passes through finalize_response(),
whether raised as a KnownError or reported as an unknown failure.
"""

import pytest

from powercards.models.failure import (
    STANDARD_MESSAGES,
    STANDARD_SUGGESTIONS,
    ApiResponse,
    FailureDetail,
    FailureKind,
    OutcomeType,
    ReferentialError,
    StateError,
    create_unknown_failure,
    finalize_response,
    is_finalized,
)


class TestFinalizeResponse:
    """Tests for the finalize_response authority boundary."""

    def test_success_response_is_finalized(self) -> None:
        response = ApiResponse(outcome=OutcomeType.SUCCESS, data={"key": "value"})
        finalized = finalize_response(response)

        assert is_finalized(finalized)
        assert finalized.outcome == OutcomeType.SUCCESS

    def test_unfinalized_response_not_marked(self) -> None:
        """Responses that bypass the boundary are detectable."""
        response = ApiResponse(outcome=OutcomeType.SUCCESS, data={"key": "value"})

        assert not is_finalized(response)

    def test_success_with_failure_raises(self) -> None:
        response = ApiResponse(
            outcome=OutcomeType.SUCCESS,
            data={"key": "value"},
            failure=FailureDetail(kind=FailureKind.UNKNOWN, message="oops"),
        )

        with pytest.raises(ValueError, match="must not have failure"):
            finalize_response(response)

    def test_failure_without_details_raises(self) -> None:
        response = ApiResponse(outcome=OutcomeType.KNOWN_FAILURE, failure=None)

        with pytest.raises(ValueError, match="must have failure details"):
            finalize_response(response)


class TestKnownErrors:
    """Tests that raised errors finalize their own envelopes."""

    def test_state_error_envelope(self) -> None:
        error = StateError(kind=FailureKind.CARD_ALREADY_USED, message="Already used")
        response = error.to_response()

        assert is_finalized(response)
        assert response.outcome == OutcomeType.REFUSAL
        assert response.failure is not None
        assert response.failure.kind == FailureKind.CARD_ALREADY_USED
        assert response.failure.message == "Already used"

    def test_referential_error_suggests_refresh(self) -> None:
        response = ReferentialError(kind=FailureKind.INVALID_TARGET, message="Bad target").to_response()

        assert response.failure is not None
        assert response.failure.suggestion is not None
        assert "Refresh" in response.failure.suggestion


class TestUnknownFailure:
    """Tests for failures whose cause is not known."""

    def test_uses_standard_message_and_suggestion(self) -> None:
        response = create_unknown_failure(ValueError("test"))

        assert is_finalized(response)
        assert response.outcome == OutcomeType.UNKNOWN_FAILURE
        assert response.failure is not None
        assert response.failure.message == STANDARD_MESSAGES[OutcomeType.UNKNOWN_FAILURE]
        assert response.failure.suggestion == STANDARD_SUGGESTIONS[OutcomeType.UNKNOWN_FAILURE]

    def test_detail_is_type_only(self) -> None:
        """The exception message never leaks into the response."""
        response = create_unknown_failure(ValueError("connection string with password"))

        assert response.failure is not None
        assert response.failure.detail == "ValueError"

    def test_detail_can_be_omitted(self) -> None:
        response = create_unknown_failure(ValueError("test"), include_type=False)

        assert response.failure is not None
        assert response.failure.detail is None
