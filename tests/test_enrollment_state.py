"""
Enrollment state machine tests
Transitions, derived legacy fields and persistence round trips
"""

import pytest

from app.core import enrollment_state as es
from app.core.exceptions import ValidationError


class TestEnrollmentState:
    """Enrollment state machine"""

    def test_derived_status_fields(self):
        assert es.status_of(es.Pending()) == "pending"
        assert es.status_of(es.AwaitingExam()) == "active"
        assert es.status_of(es.Failed(attempts=2)) == "failed"
        assert es.status_of(es.Passed(score=80.0)) == "completed"
        assert es.status_of(es.Certified(certificate_id=7)) == "completed"

        assert not es.exam_passed(es.Failed(attempts=1))
        assert es.exam_passed(es.Passed(score=70.0))
        assert es.exam_passed(es.Certified(certificate_id=1))
        assert not es.certificate_issued(es.Passed(score=70.0))
        assert es.certificate_issued(es.Certified(certificate_id=1))

    def test_payment_transitions(self):
        assert es.confirm_payment(es.Pending()) == es.AwaitingExam()
        assert es.revoke_payment(es.AwaitingExam()) == es.Pending()
        # exam outcomes are never touched by payment updates
        assert es.revoke_payment(es.Passed(score=90.0)) == es.Passed(score=90.0)
        assert es.confirm_payment(es.Failed(attempts=1)) == es.Failed(attempts=1)

    def test_record_exam(self):
        assert es.record_exam(es.AwaitingExam(), True, 85.0, 1) == es.Passed(score=85.0)
        assert es.record_exam(es.AwaitingExam(), False, 40.0, 1) == es.Failed(attempts=1)
        assert es.record_exam(es.Failed(attempts=1), True, 75.0, 2) == es.Passed(score=75.0)
        # a later failing attempt replaces an earlier pass
        assert es.record_exam(es.Passed(score=75.0), False, 50.0, 3) == es.Failed(attempts=3)

    def test_certified_is_terminal(self):
        certified = es.Certified(certificate_id=3)
        assert es.record_exam(certified, False, 10.0, 5) is certified
        assert es.certify(certified, 99) is certified

    def test_certify_requires_pass(self):
        assert es.certify(es.Passed(score=70.0), 12) == es.Certified(certificate_id=12)
        for state in (es.Pending(), es.AwaitingExam(), es.Failed(attempts=2)):
            with pytest.raises(ValidationError, match="must pass exam"):
                es.certify(state, 1)

    def test_load_state(self):
        assert es.load_state("pending") == es.Pending()
        assert es.load_state(es.EnrollmentStateName.FAILED, exam_attempts=4) == es.Failed(attempts=4)
        assert es.load_state("passed", exam_score=88.5) == es.Passed(score=88.5)
        assert es.load_state("certified", certificate_id=5) == es.Certified(certificate_id=5)

    def test_load_certified_without_certificate(self):
        with pytest.raises(ValueError):
            es.load_state("certified")
