from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from db import Base


def utcnow():
    """Naive UTC timestamp; both stores stamp created_at with it."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"
    id = Column(String(16), primary_key=True, index=True)  # ADM0001, DOC0001, ...
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(200), nullable=False, unique=True)
    password = Column(String(200), nullable=False)
    phone = Column(String(50), nullable=False)
    address = Column(String(300), nullable=False)
    role = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Doctor(Base):
    __tablename__ = "doctors"
    id = Column(String(16), primary_key=True, index=True)
    user_id = Column(String(16), ForeignKey("users.id"), nullable=False)
    specialization = Column(String(200), nullable=False)
    license_number = Column(String(100), nullable=False)
    experience = Column(Integer, default=0)


class Patient(Base):
    __tablename__ = "patients"
    id = Column(String(16), primary_key=True, index=True)
    user_id = Column(String(16), ForeignKey("users.id"), nullable=False)
    date_of_birth = Column(String(20), nullable=False)
    gender = Column(String(10), nullable=False)
    emergency_contact = Column(String(200))
    blood_type = Column(String(3))


class Appointment(Base):
    __tablename__ = "appointments"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    patient_id = Column(String(16), ForeignKey("patients.id"), nullable=False)
    doctor_id = Column(String(16), ForeignKey("doctors.id"), nullable=False)
    date = Column(String(20), nullable=False)
    time = Column(String(10), nullable=False)
    duration = Column(Integer, default=30)
    reason = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="scheduled")
    type = Column(String(20), nullable=False, default="consultation")
    notes = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Specialization(Base):
    __tablename__ = "specializations"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), nullable=False, unique=True)
    description = Column(Text)


def to_dict(row):
    if row is None:
        return None
    return {c.name: getattr(row, c.name) for c in row.__table__.columns}
