"""Pytest configuration and fixtures."""
import itertools

import pytest

from db import Base, make_engine, make_session_factory
from storage import MemStorage, SqlStorage


@pytest.fixture
def session_factory():
    """Fresh in-memory SQLite database per test."""
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def mem_storage():
    return MemStorage()


@pytest.fixture
def sql_storage(session_factory):
    return SqlStorage(session_factory)


@pytest.fixture(params=["memory", "sql"])
def storage(request):
    """Runs the test once against each store."""
    if request.param == "memory":
        return MemStorage()
    return SqlStorage(request.getfixturevalue("session_factory"))


@pytest.fixture
def new_user(storage):
    """Factory creating a user with unique email for the given role."""
    seq = itertools.count(1)

    def make(role="patient", **overrides):
        n = next(seq)
        data = {
            "first_name": "Test",
            "last_name": f"User{n}",
            "email": f"{role}{n}@example.com",
            "password": "secret123",
            "phone": "+1-555-0000",
            "address": f"{n} Test Lane",
            "role": role,
        }
        data.update(overrides)
        return storage.create_user(data)

    return make


@pytest.fixture
def doctor_and_patient(storage, new_user):
    """A doctor and a patient, both with profiles, ready for scheduling."""
    doc_user = new_user("doctor")
    doctor = storage.create_doctor({
        "user_id": doc_user["id"], "specialization": "Neurology",
        "license_number": "LIC-12345", "experience": 4,
    })
    pat_user = new_user("patient")
    patient = storage.create_patient({
        "user_id": pat_user["id"], "date_of_birth": "1990-01-01", "gender": "female",
    })
    return doctor, patient
