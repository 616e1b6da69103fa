import os, logging
from flask import Flask, jsonify, request
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import BadRequest, HTTPException
from dotenv import load_dotenv

from schemas import (
    LoginIn, PersonIn, RegisterPatientIn, AddDoctorIn, UserUpdate, DoctorUpdate, PatientUpdate,
    AppointmentIn, AppointmentUpdate, SpecializationIn,
)
from storage import create_storage

load_dotenv()

# ---------------- Config ----------------
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "sql")
SEED_DEFAULTS   = os.getenv("SEED_DEFAULTS", "1").lower() not in ("0", "false", "no")
LOG_LEVEL       = os.getenv("LOG_LEVEL", "INFO")
PORT            = int(os.getenv("PORT", "8000"))


# ---------------- Helpers ----------------
def parse(model):
    return model.model_validate(request.get_json(silent=True))

def changes(model):
    """Only the fields present in a PATCH/PUT body; explicit nulls included."""
    return parse(model).model_dump(exclude_unset=True)

def public(obj):
    """Strip stored passwords from anything going back over the wire."""
    if isinstance(obj, list):
        return [public(x) for x in obj]
    if isinstance(obj, dict):
        return {k: public(v) for k, v in obj.items() if k != "password"}
    return obj

def not_found(what):
    return jsonify({"error": f"{what} not found"}), 404


def create_app(storage=None, seed=None):
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = Flask(__name__)
    store = storage if storage is not None else create_storage(STORAGE_BACKEND)
    app.config["STORAGE"] = store
    if seed is None:
        seed = SEED_DEFAULTS
    if seed:
        store.initialize_defaults()

    # ---------------- Errors ----------------
    @app.errorhandler(ValidationError)
    def handle_validation(e):
        details = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]
        return jsonify({"error": "invalid request", "details": details}), 400

    @app.errorhandler(IntegrityError)
    def handle_integrity(e):
        app.logger.warning("constraint violation: %s", e.orig)
        return jsonify({"error": "constraint violation"}), 400

    @app.errorhandler(Exception)
    def handle_error(e):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description}), e.code
        app.logger.exception("unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": str(e) or "internal error"}), 500

    # ---------------- Health ----------------
    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    # ---------------- Auth ----------------
    @app.post("/api/auth/login")
    def login():
        creds = parse(LoginIn)
        user = store.authenticate_user(creds.user_id, creds.password)
        if not user:
            app.logger.info("failed login for %s", creds.user_id)
            return jsonify({"error": "Invalid credentials"}), 401
        return jsonify({"user": public(user)})

    @app.post("/api/auth/register")
    def register():
        data = parse(RegisterPatientIn)
        if store.get_user_by_email(data.email):
            raise BadRequest("Email already registered")
        user = store.create_user({
            **data.model_dump(include=set(PersonIn.model_fields)),
            "role": "patient", "status": "active",
        })
        patient = store.create_patient({
            "id": user["id"], "user_id": user["id"], "date_of_birth": data.date_of_birth,
            "gender": data.gender, "emergency_contact": None, "blood_type": None,
        })
        app.logger.info("registered patient %s", user["id"])
        return jsonify({"user": public(user), "patient": patient}), 201

    # ---------------- Users ----------------
    @app.get("/api/users/<user_id>")
    def user_get(user_id):
        user = store.get_user(user_id)
        if not user: return not_found("User")
        return jsonify(public(user))

    @app.route("/api/users/<user_id>", methods=["PATCH", "PUT"])
    def user_update(user_id):
        user = store.update_user(user_id, changes(UserUpdate))
        if not user: return not_found("User")
        return jsonify(public(user))

    # ---------------- Doctors ----------------
    @app.get("/api/doctors")
    def doctors_list():
        return jsonify(public(store.get_doctors()))

    @app.post("/api/doctors")
    def doctors_create():
        data = parse(AddDoctorIn)
        if store.get_user_by_email(data.email):
            raise BadRequest("Email already registered")
        user = store.create_user({
            **data.model_dump(include=set(PersonIn.model_fields)),
            "role": "doctor", "status": "active",
        })
        doctor = store.create_doctor({
            "id": user["id"], "user_id": user["id"],
            **data.model_dump(include=set(DoctorUpdate.model_fields)),
        })
        app.logger.info("added doctor %s", user["id"])
        return jsonify({"user": public(user), "doctor": doctor}), 201

    @app.get("/api/doctors/<doctor_id>")
    def doctor_get(doctor_id):
        doctor = store.get_doctor(doctor_id)
        if not doctor: return not_found("Doctor")
        return jsonify(doctor)

    @app.route("/api/doctors/<doctor_id>", methods=["PATCH", "PUT"])
    def doctor_update(doctor_id):
        doctor = store.update_doctor(doctor_id, changes(DoctorUpdate))
        if not doctor: return not_found("Doctor")
        return jsonify(doctor)

    # ---------------- Patients ----------------
    @app.get("/api/patients")
    def patients_list():
        return jsonify(public(store.get_patients()))

    @app.get("/api/patients/<patient_id>")
    def patient_get(patient_id):
        patient = store.get_patient(patient_id)
        if not patient: return not_found("Patient")
        return jsonify(patient)

    @app.route("/api/patients/<patient_id>", methods=["PATCH", "PUT"])
    def patient_update(patient_id):
        patient = store.update_patient(patient_id, changes(PatientUpdate))
        if not patient: return not_found("Patient")
        return jsonify(patient)

    # ---------------- Appointments ----------------
    @app.get("/api/appointments")
    def appt_list():
        patient_id = request.args.get("patient_id")
        doctor_id = request.args.get("doctor_id")
        if patient_id:
            items = store.get_appointments_by_patient(patient_id)
        elif doctor_id:
            items = store.get_appointments_by_doctor(doctor_id)
        else:
            items = store.get_appointments()
        return jsonify(public(items))

    @app.post("/api/appointments")
    def appt_create():
        appointment = store.create_appointment(parse(AppointmentIn).model_dump())
        return jsonify(appointment), 201

    @app.get("/api/appointments/<int:appointment_id>")
    def appt_get(appointment_id):
        appointment = store.get_appointment(appointment_id)
        if not appointment: return not_found("Appointment")
        return jsonify(appointment)

    @app.patch("/api/appointments/<int:appointment_id>")
    def appt_update(appointment_id):
        appointment = store.update_appointment(appointment_id, changes(AppointmentUpdate))
        if not appointment: return not_found("Appointment")
        return jsonify(appointment)

    # ---------------- Specializations ----------------
    @app.get("/api/specializations")
    def specializations_list():
        return jsonify(store.get_specializations())

    @app.post("/api/specializations")
    def specializations_create():
        spec = store.create_specialization(parse(SpecializationIn).model_dump())
        return jsonify(spec), 201

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=PORT)
