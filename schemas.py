from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

Role = Literal["admin", "doctor", "receptionist", "patient"]
UserStatus = Literal["active", "inactive"]
Gender = Literal["male", "female", "other"]
BloodType = Literal["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]
AppointmentStatus = Literal["scheduled", "confirmed", "in-progress", "completed", "cancelled"]
AppointmentType = Literal["consultation", "follow-up", "emergency", "routine"]


class LoginIn(BaseModel):
    user_id: str = Field(min_length=6)
    password: str = Field(min_length=1)


class PersonIn(BaseModel):
    first_name: str = Field(min_length=2)
    last_name: str = Field(min_length=2)
    email: EmailStr
    password: str = Field(min_length=6)
    phone: str = Field(min_length=10)
    address: str = Field(min_length=5)


class RegisterPatientIn(PersonIn):
    date_of_birth: str = Field(min_length=1)
    gender: Gender


class AddDoctorIn(PersonIn):
    specialization: str = Field(min_length=2)
    license_number: str = Field(min_length=5)
    experience: int = Field(default=0, ge=0)


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=2)
    last_name: Optional[str] = Field(default=None, min_length=2)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6)
    phone: Optional[str] = Field(default=None, min_length=10)
    address: Optional[str] = Field(default=None, min_length=5)
    role: Optional[Role] = None
    status: Optional[UserStatus] = None


class DoctorUpdate(BaseModel):
    specialization: Optional[str] = Field(default=None, min_length=2)
    license_number: Optional[str] = Field(default=None, min_length=5)
    experience: Optional[int] = Field(default=None, ge=0)


class PatientUpdate(BaseModel):
    date_of_birth: Optional[str] = Field(default=None, min_length=1)
    gender: Optional[Gender] = None
    emergency_contact: Optional[str] = None
    blood_type: Optional[BloodType] = None


class AppointmentIn(BaseModel):
    patient_id: str = Field(min_length=1)
    doctor_id: str = Field(min_length=1)
    date: str = Field(min_length=1)
    time: str = Field(min_length=1)
    duration: int = Field(default=30, ge=0)
    reason: str = Field(min_length=1)
    status: AppointmentStatus = "scheduled"
    type: AppointmentType = "consultation"
    notes: Optional[str] = None


class AppointmentUpdate(BaseModel):
    patient_id: Optional[str] = Field(default=None, min_length=1)
    doctor_id: Optional[str] = Field(default=None, min_length=1)
    date: Optional[str] = Field(default=None, min_length=1)
    time: Optional[str] = Field(default=None, min_length=1)
    duration: Optional[int] = Field(default=None, ge=0)
    reason: Optional[str] = Field(default=None, min_length=1)
    status: Optional[AppointmentStatus] = None
    type: Optional[AppointmentType] = None
    notes: Optional[str] = None


class SpecializationIn(BaseModel):
    name: str = Field(min_length=2)
    description: Optional[str] = None
