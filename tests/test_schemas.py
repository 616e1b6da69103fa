"""Request models used by the HTTP boundary."""
import pytest
from pydantic import ValidationError

from schemas import AddDoctorIn, AppointmentIn, AppointmentUpdate, LoginIn, PatientUpdate


def test_login_keeps_password_untouched():
    creds = LoginIn(user_id="ADM0001", password=" admin123 ")
    assert creds.password == " admin123 "


def test_add_doctor_defaults_experience():
    doctor = AddDoctorIn(first_name="Lisa", last_name="Cuddy", email="cuddy@ppth.org",
                         password="dean123", phone="+1-555-0777", address="1 Admin Wing",
                         specialization="Endocrinology", license_number="NJ-12121")
    assert doctor.experience == 0


def test_add_doctor_rejects_negative_experience():
    with pytest.raises(ValidationError):
        AddDoctorIn(first_name="Lisa", last_name="Cuddy", email="cuddy@ppth.org",
                    password="dean123", phone="+1-555-0777", address="1 Admin Wing",
                    specialization="Endocrinology", license_number="NJ-12121", experience=-2)


def test_appointment_defaults():
    appt = AppointmentIn(patient_id="PAT0001", doctor_id="DOC0001", date="2026-11-02",
                         time="09:00", reason="Checkup")
    assert appt.model_dump()["duration"] == 30
    assert appt.status == "scheduled"
    assert appt.type == "consultation"
    assert appt.notes is None


@pytest.mark.parametrize("field,value", [("status", "lost"), ("type", "walk-in"),
                                         ("duration", -5)])
def test_appointment_update_rejects_bad_values(field, value):
    with pytest.raises(ValidationError):
        AppointmentUpdate(**{field: value})


def test_update_dump_contains_only_supplied_fields():
    assert AppointmentUpdate(status="cancelled").model_dump(exclude_unset=True) == {
        "status": "cancelled"}
    assert PatientUpdate(blood_type=None).model_dump(exclude_unset=True) == {"blood_type": None}
    assert PatientUpdate().model_dump(exclude_unset=True) == {}
