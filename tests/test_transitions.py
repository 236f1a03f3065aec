"""Tests for the appointment status state machine."""

from uuid import uuid4

import pytest

from carebook.core.exceptions import ErrorKind, InvalidStatusValueException
from carebook.scheduling.transitions import (
    TRANSITIONS,
    ApprovedChange,
    Rejection,
    TransitionValidator,
    parse_status,
)
from carebook.schemas.appointments import Appointment, AppointmentStatus, ClinicalFields
from conftest import DOCTOR_ID, NOW, PATIENT_ID, monday_at

S = AppointmentStatus


def appointment_in(status: AppointmentStatus) -> Appointment:
    return Appointment(
        id=uuid4(),
        patient_id=PATIENT_ID,
        doctor_id=DOCTOR_ID,
        date=monday_at(10),
        status=status,
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def validator() -> TransitionValidator:
    return TransitionValidator()


def test_transition_table_edges() -> None:
    """Only five edges exist and none leaves a terminal status."""
    assert set(TRANSITIONS) == {
        (S.PENDING, S.CONFIRMED),
        (S.PENDING, S.CANCELLED),
        (S.CONFIRMED, S.CANCELLED),
        (S.CONFIRMED, S.COMPLETED),
        (S.CONFIRMED, S.NO_SHOW),
    }
    terminal = {S.COMPLETED, S.CANCELLED, S.NO_SHOW}
    assert not any(source in terminal for source, _ in TRANSITIONS)


@pytest.mark.parametrize("value", ["confirmed", "CONFIRMED", " Confirmed "])
def test_parse_status_is_case_insensitive(value: str) -> None:
    assert parse_status(value) == S.CONFIRMED


@pytest.mark.parametrize("value", ["SCHEDULED", "", "done"])
def test_parse_status_rejects_unknown_values(value: str) -> None:
    with pytest.raises(InvalidStatusValueException):
        parse_status(value)


@pytest.mark.parametrize(
    "source,target,actor_name,expected",
    [
        (S.PENDING, S.CONFIRMED, "doctor", True),
        (S.PENDING, S.CONFIRMED, "admin", True),
        (S.PENDING, S.CONFIRMED, "patient", False),
        (S.PENDING, S.CANCELLED, "patient", True),
        (S.PENDING, S.CANCELLED, "doctor", True),
        (S.CONFIRMED, S.CANCELLED, "patient", True),
        (S.CONFIRMED, S.COMPLETED, "doctor", True),
        (S.CONFIRMED, S.COMPLETED, "patient", False),
        (S.CONFIRMED, S.NO_SHOW, "doctor", True),
        (S.CONFIRMED, S.NO_SHOW, "admin", True),
        (S.CONFIRMED, S.NO_SHOW, "patient", False),
    ],
)
def test_edge_guards(validator, request, source, target, actor_name, expected) -> None:
    actor = request.getfixturevalue(actor_name)
    outcome = validator.validate(actor, appointment_in(source), target)

    if expected:
        assert isinstance(outcome, ApprovedChange)
        assert outcome.status == target
        assert outcome.status_changed
    else:
        assert isinstance(outcome, Rejection)
        assert outcome.kind == ErrorKind.UNAUTHORIZED


@pytest.mark.parametrize(
    "source,target",
    [
        (S.PENDING, S.COMPLETED),
        (S.PENDING, S.NO_SHOW),
        (S.CONFIRMED, S.PENDING),
        (S.COMPLETED, S.CONFIRMED),
        (S.CANCELLED, S.PENDING),
        (S.NO_SHOW, S.CONFIRMED),
    ],
)
def test_missing_edges_are_invalid_transitions(validator, admin, source, target) -> None:
    outcome = validator.validate(admin, appointment_in(source), target)

    assert isinstance(outcome, Rejection)
    assert outcome.kind == ErrorKind.INVALID_TRANSITION


def test_non_party_is_rejected_before_edge_lookup(validator, other_patient) -> None:
    """A stranger learns nothing about which transitions exist."""
    outcome = validator.validate(other_patient, appointment_in(S.COMPLETED), S.CONFIRMED)

    assert isinstance(outcome, Rejection)
    assert outcome.kind == ErrorKind.UNAUTHORIZED


def test_other_doctor_cannot_confirm(validator, other_doctor) -> None:
    outcome = validator.validate(other_doctor, appointment_in(S.PENDING), S.CONFIRMED)

    assert isinstance(outcome, Rejection)
    assert outcome.kind == ErrorKind.UNAUTHORIZED


@pytest.mark.parametrize("status", list(S))
def test_same_status_is_a_noop(validator, doctor, status) -> None:
    """Re-submitting the current status is accepted even for terminal statuses."""
    outcome = validator.validate(doctor, appointment_in(status), status)

    assert isinstance(outcome, ApprovedChange)
    assert not outcome.status_changed
    assert outcome.is_noop
    assert outcome.values() == {}


def test_patient_cannot_write_clinical_findings(validator, patient) -> None:
    fields = ClinicalFields(
        reason="Follow-up",
        diagnosis="Self-diagnosed",
        prescription="Everything",
        type="VIRTUAL",
    )

    outcome = validator.validate(patient, appointment_in(S.PENDING), S.PENDING, fields)

    assert isinstance(outcome, ApprovedChange)
    assert outcome.fields == {"reason": "Follow-up"}


def test_doctor_can_write_clinical_findings(validator, doctor) -> None:
    fields = {"diagnosis": "Migraine", "prescription": "Rest"}

    outcome = validator.validate(doctor, appointment_in(S.CONFIRMED), S.COMPLETED, fields)

    assert isinstance(outcome, ApprovedChange)
    assert outcome.values() == {
        "diagnosis": "Migraine",
        "prescription": "Rest",
        "status": S.COMPLETED,
    }


def test_cancel_reason_only_kept_when_cancelling(validator, patient) -> None:
    fields = ClinicalFields(cancel_reason="Feeling better")

    cancelled = validator.validate(patient, appointment_in(S.PENDING), S.CANCELLED, fields)
    unchanged = validator.validate(patient, appointment_in(S.PENDING), S.PENDING, fields)

    assert cancelled.fields == {"cancel_reason": "Feeling better"}
    assert unchanged.fields == {}


def test_allowed_targets(validator, patient, doctor, other_patient) -> None:
    confirmed = appointment_in(S.CONFIRMED)

    assert validator.allowed_targets(patient, confirmed) == {S.CANCELLED}
    assert validator.allowed_targets(doctor, confirmed) == {S.CANCELLED, S.COMPLETED, S.NO_SHOW}
    assert validator.allowed_targets(other_patient, confirmed) == set()


@pytest.mark.parametrize("status", [S.PENDING, S.CONFIRMED])
def test_active_appointments_are_reschedulable(validator, patient, status) -> None:
    assert validator.validate_reschedule(patient, appointment_in(status)) is None


@pytest.mark.parametrize("status", [S.COMPLETED, S.CANCELLED, S.NO_SHOW])
def test_closed_appointments_are_not_reschedulable(validator, admin, status) -> None:
    outcome = validator.validate_reschedule(admin, appointment_in(status))

    assert isinstance(outcome, Rejection)
    assert outcome.kind == ErrorKind.NOT_RESCHEDULABLE


def test_reschedule_checks_resulting_status(validator, patient) -> None:
    """A date change sent together with a cancellation is refused."""
    outcome = validator.validate_reschedule(patient, appointment_in(S.PENDING), S.CANCELLED)

    assert isinstance(outcome, Rejection)
    assert outcome.kind == ErrorKind.NOT_RESCHEDULABLE


def test_reschedule_by_stranger_is_unauthorized(validator, other_patient) -> None:
    outcome = validator.validate_reschedule(other_patient, appointment_in(S.PENDING))

    assert isinstance(outcome, Rejection)
    assert outcome.kind == ErrorKind.UNAUTHORIZED
