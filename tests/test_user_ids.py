"""User id generation: role prefixes, counters and prefix scans."""
import pytest

from models import User
from storage import InvalidRoleError, ROLE_PREFIXES, SqlStorage, format_user_id, role_prefix


def test_role_prefixes():
    assert role_prefix("admin") == "ADM"
    assert role_prefix("doctor") == "DOC"
    assert role_prefix("receptionist") == "REC"
    assert role_prefix("patient") == "PAT"


def test_format_pads_to_four_digits():
    assert format_user_id("ADM", 1) == "ADM0001"
    assert format_user_id("PAT", 42) == "PAT0042"
    assert format_user_id("DOC", 12345) == "DOC12345"


@pytest.mark.parametrize("role", ["nurse", "", "Admin", None])
def test_unknown_role_rejected(storage, role):
    with pytest.raises(InvalidRoleError):
        storage.generate_user_id(role)


def test_invalid_role_is_a_value_error():
    assert issubclass(InvalidRoleError, ValueError)


@pytest.mark.parametrize("role", list(ROLE_PREFIXES))
def test_memory_counter_is_monotonic(mem_storage, role):
    ids = [mem_storage.generate_user_id(role) for _ in range(5)]
    prefix = ROLE_PREFIXES[role]
    assert len(set(ids)) == 5
    assert all(i.startswith(prefix) for i in ids)
    numbers = [int(i[len(prefix):]) for i in ids]
    assert numbers == sorted(numbers) == list(range(1, 6))


def test_memory_counters_are_per_role(mem_storage):
    assert mem_storage.generate_user_id("admin") == "ADM0001"
    assert mem_storage.generate_user_id("doctor") == "DOC0001"
    assert mem_storage.generate_user_id("admin") == "ADM0002"


def test_memory_counter_advances_without_create(mem_storage):
    mem_storage.generate_user_id("patient")
    user = mem_storage.create_user({"first_name": "A", "last_name": "B", "email": "a@b.co",
                                    "password": "pw", "phone": "1", "address": "x",
                                    "role": "patient"})
    assert user["id"] == "PAT0002"


@pytest.mark.parametrize("role", list(ROLE_PREFIXES))
def test_created_ids_strictly_increase(storage, new_user, role):
    ids = [new_user(role)["id"] for _ in range(4)]
    prefix = ROLE_PREFIXES[role]
    assert len(set(ids)) == 4
    numbers = [int(i[len(prefix):]) for i in ids]
    assert all(a < b for a, b in zip(numbers, numbers[1:]))


def test_scan_uses_max_existing_suffix(sql_storage, session_factory):
    with session_factory() as db:
        db.add(User(id="DOC0007", first_name="Out", last_name="Band", email="oob@example.com",
                    password="pw", phone="1", address="x", role="doctor", status="active"))
        db.commit()
    assert sql_storage.generate_user_id("doctor") == "DOC0008"
    assert sql_storage.generate_user_id("admin") == "ADM0001"


def test_scan_ignores_non_numeric_suffixes(sql_storage, session_factory):
    with session_factory() as db:
        db.add(User(id="PATX", first_name="Odd", last_name="Id", email="odd@example.com",
                    password="pw", phone="1", address="x", role="patient", status="active"))
        db.commit()
    assert sql_storage.generate_user_id("patient") == "PAT0001"


def test_scan_survives_restart(session_factory):
    first = SqlStorage(session_factory)
    first.initialize_defaults()
    restarted = SqlStorage(session_factory)
    assert restarted.generate_user_id("admin") == "ADM0002"
    assert restarted.generate_user_id("doctor") == "DOC0002"
