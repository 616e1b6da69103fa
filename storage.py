"""Record storage for users, doctors, patients, appointments and specializations.

Two interchangeable stores are provided: ``MemStorage`` keeps everything in
process memory, ``SqlStorage`` persists through SQLAlchemy. Records go in and
come out as plain dicts; a miss on a lookup or update returns ``None``.
"""
import logging

from sqlalchemy import select
from sqlalchemy.orm import aliased

from db import Base, engine, SessionLocal
from models import User, Doctor, Patient, Appointment, Specialization, to_dict, utcnow

logger = logging.getLogger(__name__)

ROLE_PREFIXES = {
    "admin": "ADM",
    "doctor": "DOC",
    "receptionist": "REC",
    "patient": "PAT",
}

# updatable fields and create-time defaults per entity
USER_FIELDS = ("first_name", "last_name", "email", "password", "phone", "address", "role", "status")
DOCTOR_FIELDS = ("user_id", "specialization", "license_number", "experience")
PATIENT_FIELDS = ("user_id", "date_of_birth", "gender", "emergency_contact", "blood_type")
APPOINTMENT_FIELDS = ("patient_id", "doctor_id", "date", "time", "duration", "reason",
                      "status", "type", "notes")
SPECIALIZATION_FIELDS = ("name", "description")

USER_DEFAULTS = {"status": "active"}
DOCTOR_DEFAULTS = {"experience": 0}
PATIENT_DEFAULTS = {"emergency_contact": None, "blood_type": None}
APPOINTMENT_DEFAULTS = {"duration": 30, "status": "scheduled", "type": "consultation", "notes": None}
SPECIALIZATION_DEFAULTS = {"description": None}

DEFAULT_SPECIALIZATIONS = [
    {"name": "Cardiology", "description": "Heart and cardiovascular system"},
    {"name": "Neurology", "description": "Brain and nervous system"},
    {"name": "Orthopedics", "description": "Bones, joints, and muscles"},
    {"name": "Pediatrics", "description": "Children and adolescents"},
    {"name": "Dermatology", "description": "Skin, hair, and nails"},
    {"name": "Psychiatry", "description": "Mental health and disorders"},
]


class InvalidRoleError(ValueError):
    def __init__(self, role):
        self.role = role
        super().__init__(f"Invalid role: {role!r}")


def role_prefix(role: str) -> str:
    try:
        return ROLE_PREFIXES[role]
    except (KeyError, TypeError):
        raise InvalidRoleError(role) from None


def format_user_id(prefix: str, number: int) -> str:
    return f"{prefix}{number:04d}"


def _build(data: dict, fields, defaults: dict) -> dict:
    return {f: data[f] if f in data else defaults.get(f) for f in fields}


def _present(updates: dict, fields) -> dict:
    """Pick the supplied keys that belong to the entity; None counts as supplied."""
    return {k: v for k, v in updates.items() if k in fields}


def user_with_role(user: dict, doctor=None, patient=None) -> dict:
    view = dict(user)
    if user["role"] == "doctor":
        view["doctor_info"] = doctor
    elif user["role"] == "patient":
        view["patient_info"] = patient
    return view


def appointment_with_details(appointment: dict, patient_user: dict,
                             doctor: dict, doctor_user: dict) -> dict:
    return {
        **appointment,
        "patient": patient_user,
        "doctor": {**doctor_user, "doctor_info": doctor},
    }


class Storage:
    """Operations shared by both stores.

    Subclasses provide the per-entity get/create/update operations,
    ``generate_user_id``, ``authenticate_user``, ``get_appointments`` and
    ``_is_seeded``.
    """

    def get_appointments_by_patient(self, patient_id: str):
        return [a for a in self.get_appointments() if a["patient_id"] == patient_id]

    def get_appointments_by_doctor(self, doctor_id: str):
        return [a for a in self.get_appointments() if a["doctor_id"] == doctor_id]

    def initialize_defaults(self) -> bool:
        """Seed staff, a sample patient and the default specializations once.

        Returns True when the seed ran, False when the store was already seeded.
        """
        if self._is_seeded():
            logger.debug("store already seeded, skipping defaults")
            return False

        admin = self.create_user({
            "first_name": "Admin", "last_name": "User",
            "email": "admin@hospital.com", "password": "admin123",
            "phone": "+1-555-0100", "address": "123 Hospital St, Medical City, MC 12345",
            "role": "admin",
        })
        doctor = self.create_user({
            "first_name": "Sarah", "last_name": "Johnson",
            "email": "sarah.johnson@hospital.com", "password": "doctor123",
            "phone": "+1-555-0101", "address": "45 Cardiac Ave, Medical City, MC 12345",
            "role": "doctor",
        })
        self.create_doctor({
            "user_id": doctor["id"], "specialization": "Cardiology",
            "license_number": "MD-100245", "experience": 12,
        })
        receptionist = self.create_user({
            "first_name": "Emily", "last_name": "Davis",
            "email": "emily.davis@hospital.com", "password": "reception123",
            "phone": "+1-555-0102", "address": "9 Front Desk Rd, Medical City, MC 12345",
            "role": "receptionist",
        })
        patient = self.create_user({
            "first_name": "John", "last_name": "Smith",
            "email": "john.smith@example.com", "password": "patient123",
            "phone": "+1-555-0150", "address": "77 Elm St, Medical City, MC 12346",
            "role": "patient",
        })
        self.create_patient({
            "user_id": patient["id"], "date_of_birth": "1985-04-12", "gender": "male",
            "emergency_contact": "Jane Smith +1-555-0199", "blood_type": "O+",
        })
        for spec in DEFAULT_SPECIALIZATIONS:
            self.create_specialization(spec)

        logger.info("seeded defaults: %s, %s, %s, %s and %d specializations",
                    admin["id"], doctor["id"], receptionist["id"], patient["id"],
                    len(DEFAULT_SPECIALIZATIONS))
        return True


class MemStorage(Storage):
    """Keyed maps in process memory. Ids come from per-role counters."""

    def __init__(self):
        self.users = {}
        self.doctors = {}
        self.patients = {}
        self.appointments = {}
        self.specializations = {}
        self._next_appointment_id = 1
        self._next_specialization_id = 1
        self._id_counters = {role: 1 for role in ROLE_PREFIXES}
        self._seeded = False

    def generate_user_id(self, role: str) -> str:
        prefix = role_prefix(role)
        counter = self._id_counters[role]
        self._id_counters[role] = counter + 1
        return format_user_id(prefix, counter)

    # ---------------- Users ----------------
    def get_user(self, user_id: str):
        user = self.users.get(user_id)
        return dict(user) if user else None

    def get_user_by_email(self, email: str):
        for user in self.users.values():
            if user["email"] == email:
                return dict(user)
        return None

    def create_user(self, data: dict) -> dict:
        user_id = self.generate_user_id(data.get("role"))
        user = _build(data, USER_FIELDS, USER_DEFAULTS)
        user["id"] = user_id
        user["created_at"] = utcnow()
        self.users[user_id] = user
        logger.debug("created user %s", user_id)
        return dict(user)

    def update_user(self, user_id: str, updates: dict):
        return self._update(self.users, user_id, updates, USER_FIELDS)

    # ---------------- Doctors ----------------
    def get_doctor(self, doctor_id: str):
        doctor = self.doctors.get(doctor_id)
        return dict(doctor) if doctor else None

    def get_doctors(self):
        out = []
        for doctor in self.doctors.values():
            user = self.users.get(doctor["user_id"])
            if user:
                out.append({**doctor, "user": dict(user)})
        return out

    def create_doctor(self, data: dict) -> dict:
        doctor = _build(data, DOCTOR_FIELDS, DOCTOR_DEFAULTS)
        doctor["id"] = data.get("id") or data.get("user_id")
        self.doctors[doctor["id"]] = doctor
        return dict(doctor)

    def update_doctor(self, doctor_id: str, updates: dict):
        return self._update(self.doctors, doctor_id, updates, DOCTOR_FIELDS)

    # ---------------- Patients ----------------
    def get_patient(self, patient_id: str):
        patient = self.patients.get(patient_id)
        return dict(patient) if patient else None

    def get_patients(self):
        out = []
        for patient in self.patients.values():
            user = self.users.get(patient["user_id"])
            if user:
                out.append({**patient, "user": dict(user)})
        return out

    def create_patient(self, data: dict) -> dict:
        patient = _build(data, PATIENT_FIELDS, PATIENT_DEFAULTS)
        patient["id"] = data.get("id") or data.get("user_id")
        self.patients[patient["id"]] = patient
        return dict(patient)

    def update_patient(self, patient_id: str, updates: dict):
        return self._update(self.patients, patient_id, updates, PATIENT_FIELDS)

    # ---------------- Appointments ----------------
    def get_appointment(self, appointment_id: int):
        appointment = self.appointments.get(appointment_id)
        return dict(appointment) if appointment else None

    def get_appointments(self):
        out = []
        for appointment in self.appointments.values():
            patient = self.patients.get(appointment["patient_id"])
            patient_user = self.users.get(patient["user_id"]) if patient else None
            doctor = self.doctors.get(appointment["doctor_id"])
            doctor_user = self.users.get(doctor["user_id"]) if doctor else None
            if patient_user and doctor and doctor_user:
                out.append(appointment_with_details(
                    appointment, dict(patient_user), dict(doctor), dict(doctor_user)))
        return out

    def create_appointment(self, data: dict) -> dict:
        appointment = _build(data, APPOINTMENT_FIELDS, APPOINTMENT_DEFAULTS)
        appointment["id"] = self._next_appointment_id
        appointment["created_at"] = utcnow()
        self._next_appointment_id += 1
        self.appointments[appointment["id"]] = appointment
        logger.debug("created appointment %s", appointment["id"])
        return dict(appointment)

    def update_appointment(self, appointment_id: int, updates: dict):
        return self._update(self.appointments, appointment_id, updates, APPOINTMENT_FIELDS)

    # ---------------- Specializations ----------------
    def get_specialization(self, specialization_id: int):
        spec = self.specializations.get(specialization_id)
        return dict(spec) if spec else None

    def get_specializations(self):
        return [dict(s) for s in self.specializations.values()]

    def create_specialization(self, data: dict) -> dict:
        spec = _build(data, SPECIALIZATION_FIELDS, SPECIALIZATION_DEFAULTS)
        spec["id"] = self._next_specialization_id
        self._next_specialization_id += 1
        self.specializations[spec["id"]] = spec
        return dict(spec)

    def update_specialization(self, specialization_id: int, updates: dict):
        return self._update(self.specializations, specialization_id, updates,
                            SPECIALIZATION_FIELDS)

    # ---------------- Auth ----------------
    def authenticate_user(self, user_id: str, password: str):
        user = self.users.get(user_id)
        if not user or user["password"] != password:
            return None
        return user_with_role(user, self.get_doctor(user_id), self.get_patient(user_id))

    def initialize_defaults(self) -> bool:
        seeded = super().initialize_defaults()
        self._seeded = True
        return seeded

    def _is_seeded(self) -> bool:
        return self._seeded

    @staticmethod
    def _update(collection: dict, key, updates: dict, fields):
        record = collection.get(key)
        if record is None:
            return None
        updated = {**record, **_present(updates, fields)}
        collection[key] = updated
        return dict(updated)


class SqlStorage(Storage):
    """SQLAlchemy-backed store. One session per operation, no explicit locking.

    User ids are computed by scanning existing ids for the role prefix, so they
    survive restarts and rows inserted out of band. Unique constraints (email,
    specialization name, primary keys) are left to the database and their
    IntegrityError reaches the caller unchanged.
    """

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def generate_user_id(self, role: str) -> str:
        with self.session_factory() as db:
            return self._next_user_id(db, role)

    @staticmethod
    def _next_user_id(db, role: str) -> str:
        prefix = role_prefix(role)
        ids = db.scalars(select(User.id).where(User.id.like(f"{prefix}%"))).all()
        numbers = [int(i[len(prefix):]) for i in ids if i[len(prefix):].isdigit()]
        return format_user_id(prefix, max(numbers, default=0) + 1)

    # ---------------- Users ----------------
    def get_user(self, user_id: str):
        with self.session_factory() as db:
            return to_dict(db.get(User, user_id))

    def get_user_by_email(self, email: str):
        with self.session_factory() as db:
            return to_dict(db.scalars(select(User).where(User.email == email)).first())

    def create_user(self, data: dict) -> dict:
        with self.session_factory() as db:
            user = User(id=self._next_user_id(db, data.get("role")),
                        **_build(data, USER_FIELDS, USER_DEFAULTS))
            db.add(user); db.commit(); db.refresh(user)
            logger.debug("created user %s", user.id)
            return to_dict(user)

    def update_user(self, user_id: str, updates: dict):
        return self._update(User, user_id, updates, USER_FIELDS)

    # ---------------- Doctors ----------------
    def get_doctor(self, doctor_id: str):
        with self.session_factory() as db:
            return to_dict(db.get(Doctor, doctor_id))

    def get_doctors(self):
        with self.session_factory() as db:
            rows = db.execute(
                select(Doctor, User).join(User, Doctor.user_id == User.id).order_by(Doctor.id)
            ).all()
            return [{**to_dict(d), "user": to_dict(u)} for d, u in rows]

    def create_doctor(self, data: dict) -> dict:
        with self.session_factory() as db:
            doctor = Doctor(id=data.get("id") or data.get("user_id"),
                            **_build(data, DOCTOR_FIELDS, DOCTOR_DEFAULTS))
            db.add(doctor); db.commit(); db.refresh(doctor)
            return to_dict(doctor)

    def update_doctor(self, doctor_id: str, updates: dict):
        return self._update(Doctor, doctor_id, updates, DOCTOR_FIELDS)

    # ---------------- Patients ----------------
    def get_patient(self, patient_id: str):
        with self.session_factory() as db:
            return to_dict(db.get(Patient, patient_id))

    def get_patients(self):
        with self.session_factory() as db:
            rows = db.execute(
                select(Patient, User).join(User, Patient.user_id == User.id).order_by(Patient.id)
            ).all()
            return [{**to_dict(p), "user": to_dict(u)} for p, u in rows]

    def create_patient(self, data: dict) -> dict:
        with self.session_factory() as db:
            patient = Patient(id=data.get("id") or data.get("user_id"),
                              **_build(data, PATIENT_FIELDS, PATIENT_DEFAULTS))
            db.add(patient); db.commit(); db.refresh(patient)
            return to_dict(patient)

    def update_patient(self, patient_id: str, updates: dict):
        return self._update(Patient, patient_id, updates, PATIENT_FIELDS)

    # ---------------- Appointments ----------------
    def get_appointment(self, appointment_id: int):
        with self.session_factory() as db:
            return to_dict(db.get(Appointment, appointment_id))

    def get_appointments(self):
        patient_user = aliased(User)
        doctor_user = aliased(User)
        stmt = (
            select(Appointment, patient_user, Doctor, doctor_user)
            .join(Patient, Appointment.patient_id == Patient.id)
            .join(patient_user, Patient.user_id == patient_user.id)
            .join(Doctor, Appointment.doctor_id == Doctor.id)
            .join(doctor_user, Doctor.user_id == doctor_user.id)
            .order_by(Appointment.id)
        )
        with self.session_factory() as db:
            return [
                appointment_with_details(to_dict(a), to_dict(pu), to_dict(d), to_dict(du))
                for a, pu, d, du in db.execute(stmt).all()
            ]

    def create_appointment(self, data: dict) -> dict:
        with self.session_factory() as db:
            appointment = Appointment(**_build(data, APPOINTMENT_FIELDS, APPOINTMENT_DEFAULTS))
            db.add(appointment); db.commit(); db.refresh(appointment)
            logger.debug("created appointment %s", appointment.id)
            return to_dict(appointment)

    def update_appointment(self, appointment_id: int, updates: dict):
        return self._update(Appointment, appointment_id, updates, APPOINTMENT_FIELDS)

    # ---------------- Specializations ----------------
    def get_specialization(self, specialization_id: int):
        with self.session_factory() as db:
            return to_dict(db.get(Specialization, specialization_id))

    def get_specializations(self):
        with self.session_factory() as db:
            items = db.scalars(select(Specialization).order_by(Specialization.id)).all()
            return [to_dict(s) for s in items]

    def create_specialization(self, data: dict) -> dict:
        with self.session_factory() as db:
            spec = Specialization(**_build(data, SPECIALIZATION_FIELDS, SPECIALIZATION_DEFAULTS))
            db.add(spec); db.commit(); db.refresh(spec)
            return to_dict(spec)

    def update_specialization(self, specialization_id: int, updates: dict):
        return self._update(Specialization, specialization_id, updates, SPECIALIZATION_FIELDS)

    # ---------------- Auth ----------------
    def authenticate_user(self, user_id: str, password: str):
        with self.session_factory() as db:
            user = db.get(User, user_id)
            if not user or user.password != password:
                return None
            return user_with_role(to_dict(user),
                                  to_dict(db.get(Doctor, user_id)),
                                  to_dict(db.get(Patient, user_id)))

    def _is_seeded(self) -> bool:
        with self.session_factory() as db:
            return db.scalars(select(User.id).limit(1)).first() is not None

    def _update(self, model, key, updates: dict, fields):
        with self.session_factory() as db:
            row = db.get(model, key)
            if row is None:
                return None
            for name, value in _present(updates, fields).items():
                setattr(row, name, value)
            db.commit(); db.refresh(row)
            return to_dict(row)


def create_storage(backend: str = "sql", session_factory=None, bind=None) -> Storage:
    """Build the store selected at startup."""
    if backend == "memory":
        return MemStorage()
    if backend == "sql":
        Base.metadata.create_all(bind=bind or engine)
        return SqlStorage(session_factory or SessionLocal)
    raise ValueError(f"Unknown storage backend: {backend!r}")
