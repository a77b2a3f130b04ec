"""
Enrollment state machine

One tagged state per enrollment instead of a status string plus independent
examPassed / certificateIssued flags:

    Pending -> AwaitingExam -> Failed(attempts) | Passed(score) -> Certified(certificate_id)

Failed and Passed may be re-entered by further exam attempts. Certified is
terminal: later attempts are recorded but never revoke the certificate.
"""

import enum
from dataclasses import dataclass
from typing import Optional, Union

from app.core.exceptions import ValidationError


class EnrollmentStateName(str, enum.Enum):
    """Persisted state column values"""
    PENDING = "pending"
    AWAITING_EXAM = "awaiting_exam"
    FAILED = "failed"
    PASSED = "passed"
    CERTIFIED = "certified"


@dataclass(frozen=True)
class Pending:
    """Created, payment not confirmed yet"""
    name = EnrollmentStateName.PENDING


@dataclass(frozen=True)
class AwaitingExam:
    """Access granted, no exam attempt yet"""
    name = EnrollmentStateName.AWAITING_EXAM


@dataclass(frozen=True)
class Failed:
    attempts: int
    name = EnrollmentStateName.FAILED


@dataclass(frozen=True)
class Passed:
    score: float
    name = EnrollmentStateName.PASSED


@dataclass(frozen=True)
class Certified:
    certificate_id: int
    name = EnrollmentStateName.CERTIFIED


EnrollmentState = Union[Pending, AwaitingExam, Failed, Passed, Certified]


# legacy wire status for each state
_STATUS = {
    EnrollmentStateName.PENDING: "pending",
    EnrollmentStateName.AWAITING_EXAM: "active",
    EnrollmentStateName.FAILED: "failed",
    EnrollmentStateName.PASSED: "completed",
    EnrollmentStateName.CERTIFIED: "completed",
}


def load_state(
    name: EnrollmentStateName,
    exam_attempts: int = 0,
    exam_score: Optional[float] = None,
    certificate_id: Optional[int] = None,
) -> EnrollmentState:
    """Rebuild the tagged state from persisted columns"""
    name = EnrollmentStateName(name)
    if name == EnrollmentStateName.PENDING:
        return Pending()
    if name == EnrollmentStateName.AWAITING_EXAM:
        return AwaitingExam()
    if name == EnrollmentStateName.FAILED:
        return Failed(attempts=exam_attempts or 0)
    if name == EnrollmentStateName.PASSED:
        return Passed(score=exam_score if exam_score is not None else 0.0)
    if certificate_id is None:
        raise ValueError("certified enrollment without a certificate id")
    return Certified(certificate_id=certificate_id)


def status_of(state: EnrollmentState) -> str:
    return _STATUS[state.name]


def exam_passed(state: EnrollmentState) -> bool:
    return isinstance(state, (Passed, Certified))


def certificate_issued(state: EnrollmentState) -> bool:
    return isinstance(state, Certified)


def confirm_payment(state: EnrollmentState) -> EnrollmentState:
    """Payment confirmed: Pending -> AwaitingExam, everything else unchanged"""
    if isinstance(state, Pending):
        return AwaitingExam()
    return state


def revoke_payment(state: EnrollmentState) -> EnrollmentState:
    """Payment pending/failed: AwaitingExam -> Pending, everything else unchanged"""
    if isinstance(state, AwaitingExam):
        return Pending()
    return state


def record_exam(state: EnrollmentState, passed: bool, score: float, attempts: int) -> EnrollmentState:
    """Apply an exam outcome"""
    if isinstance(state, Certified):
        return state
    if passed:
        return Passed(score=score)
    return Failed(attempts=attempts)


def certify(state: EnrollmentState, certificate_id: int) -> EnrollmentState:
    """Passed -> Certified; issuing for any other state is rejected"""
    if isinstance(state, Certified):
        return state
    if not isinstance(state, Passed):
        raise ValidationError(
            "Student must pass exam before certificate can be issued",
            error_code="exam_not_passed"
        )
    return Certified(certificate_id=certificate_id)
