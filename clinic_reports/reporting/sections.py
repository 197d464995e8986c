"""Turns a report request into ordered, display-ready sections.

Each report type owns a literal priority list of SectionSpec tuples
(key, predicate, builder). A section is emitted when its key is enabled in the
export options and its predicate holds for the request; emission order is the
list order, never the order of keys in the request mask.
"""

from typing import Any, Callable, Dict, List, NamedTuple, Optional

from clinic_reports.config.settings import Settings, get_settings
from clinic_reports.models import (
    AttachmentReference,
    CsvEntryMode,
    EntryLayout,
    FieldRow,
    ReportRequest,
    SectionData,
    SectionEntry,
    SectionKey,
)
from clinic_reports.reporting.formatting import (
    NOT_AVAILABLE,
    NOT_PROVIDED,
    NOT_RECORDED,
    NOT_SPECIFIED,
    display,
    display_date,
    full_name,
    is_present,
    with_unit,
)

Predicate = Callable[[ReportRequest], bool]
Builder = Callable[[ReportRequest, Settings], SectionData]


class SectionSpec(NamedTuple):
    """One entry of a report's section priority list."""
    key: SectionKey
    predicate: Predicate
    builder: Builder


# ─── Helpers ─────────────────────────────────────────────────────────────────

def _field(label: str, value: Any, fallback: str = NOT_SPECIFIED) -> FieldRow:
    return FieldRow(label=label, value=display(value, fallback))


def _summary_field(label: str, value: Any, is_date: bool = False) -> FieldRow:
    """Row for a one-line PDF summary: absent values read "N/A" there, "Not specified" in CSV."""
    render = display_date if is_date else display
    pdf_value = None if is_present(value) else NOT_AVAILABLE
    return FieldRow(label=label, value=render(value), pdf_value=pdf_value)


def _first(record: Dict[str, Any], *keys: str) -> Any:
    """First present value among several alternative field names."""
    for key in keys:
        value = record.get(key)
        if is_present(value):
            return value
    return None


def _nested(record: Dict[str, Any], key: str) -> Optional[Dict[str, Any]]:
    value = record.get(key)
    return value if isinstance(value, dict) else None


def _always(request: ReportRequest) -> bool:
    return True


def _has(collection: str) -> Predicate:
    def predicate(request: ReportRequest) -> bool:
        return len(request.collection(collection)) > 0
    return predicate


def _attachment(record: Dict[str, Any], bucket: str) -> Optional[AttachmentReference]:
    url = record.get("fileurl")
    if not is_present(url) or not isinstance(url, str):
        return None
    return AttachmentReference(url=url.strip(), bucket_hint=bucket)


def _linked_appointment(record: Dict[str, Any]) -> str:
    appointment_id = record.get("appointment_id")
    if is_present(appointment_id):
        return f"ID: {appointment_id}"
    return "Not linked to appointment"


def _emergency_contact(request: ReportRequest, settings: Settings) -> SectionData:
    subject = request.subject
    return SectionData(
        key=SectionKey.EMERGENCY_CONTACT,
        title="Emergency Contact",
        category="Emergency Contact",
        fields=[
            FieldRow(label="Name", value=full_name(subject, prefix="ec_")),
            _field("Relationship", subject.get("ec_relationship")),
            _field("Contact Number", subject.get("ec_contact_number"), NOT_PROVIDED),
        ],
    )


# ─── Patient report ──────────────────────────────────────────────────────────

def _patient_basic_info(request: ReportRequest, settings: Settings) -> SectionData:
    patient = request.subject
    return SectionData(
        key=SectionKey.BASIC_INFO,
        title="Patient Information",
        category="Personal Info",
        fields=[
            FieldRow(label="Full Name", value=full_name(patient)),
            _field("Date of Birth", patient.get("birth_date")),
            _field("Age", patient.get("age")),
            _field("Contact Number", patient.get("contact_number"), NOT_PROVIDED),
            _field("Address", patient.get("address"), NOT_PROVIDED),
            _field("Marital Status", patient.get("marital_status"), NOT_PROVIDED),
            _field("Citizenship", patient.get("citizenship")),
            _field("Religion", patient.get("religion")),
            _field("Occupation", patient.get("occupation")),
            _field("SSN", patient.get("ssn"), NOT_PROVIDED),
            _field("Member Status", patient.get("member")),
            _field("Status", patient.get("status")),
            _field("Expected Date of Confinement", patient.get("expected_date_of_confinement")),
        ],
        image=_attachment(patient, settings.profile_bucket),
    )


def _patient_allergies(request: ReportRequest, settings: Settings) -> SectionData:
    entries = [
        SectionEntry(
            label=f"Allergy {index}",
            fields=[
                _field("Name", allergy.get("name"), NOT_AVAILABLE),
                _field("Severity", allergy.get("severity"), NOT_AVAILABLE),
            ],
        )
        for index, allergy in enumerate(request.collection("allergies"), start=1)
    ]
    return SectionData(
        key=SectionKey.ALLERGIES,
        title="Allergies",
        category="Allergies",
        entries=entries,
        entry_layout=EntryLayout.SUMMARY,
    )


def _patient_supplements(request: ReportRequest, settings: Settings) -> SectionData:
    entries = [
        SectionEntry(
            label=f"Supplement {index}",
            fields=[
                _field("Name", supp.get("name"), NOT_AVAILABLE),
                _field("Strength", supp.get("strength"), NOT_AVAILABLE),
                _field("Amount", supp.get("amount"), NOT_AVAILABLE),
                _field("Frequency", supp.get("frequency"), NOT_AVAILABLE),
                _field("Clinician", supp.get("clinician"), NOT_AVAILABLE),
                _field("Status", supp.get("status"), NOT_AVAILABLE),
            ],
        )
        for index, supp in enumerate(request.collection("supplements"), start=1)
    ]
    return SectionData(
        key=SectionKey.SUPPLEMENTS,
        title="Supplements",
        category="Supplements",
        entries=entries,
        entry_layout=EntryLayout.SUMMARY,
    )


def _patient_prescriptions(request: ReportRequest, settings: Settings) -> SectionData:
    entries = [
        SectionEntry(
            label=f"Prescription {index}",
            fields=[
                _field("Name", pres.get("name"), NOT_AVAILABLE),
                _field("Strength", pres.get("strength"), NOT_AVAILABLE),
                _field("Amount", pres.get("amount"), NOT_AVAILABLE),
                _field("Frequency", pres.get("frequency"), NOT_AVAILABLE),
                _field("Route", pres.get("route"), NOT_AVAILABLE),
                _field("Clinician", pres.get("clinician"), NOT_AVAILABLE),
                _field("Status", pres.get("status"), NOT_AVAILABLE),
                FieldRow(label="Issued", value=display_date(pres.get("date"), NOT_AVAILABLE)),
            ],
        )
        for index, pres in enumerate(request.collection("prescriptions"), start=1)
    ]
    return SectionData(
        key=SectionKey.PRESCRIPTIONS,
        title="Prescriptions",
        category="Prescriptions",
        entries=entries,
        entry_layout=EntryLayout.SUMMARY,
    )


def _patient_appointments(request: ReportRequest, settings: Settings) -> SectionData:
    entries = [
        SectionEntry(
            label=f"Appointment {index}",
            fields=[
                _field("Service", app.get("service"), NOT_AVAILABLE),
                FieldRow(label="Date", value=display_date(app.get("date"), NOT_AVAILABLE)),
                _field("Clinician", app.get("clinician"), NOT_AVAILABLE),
                _field("Status", app.get("status"), NOT_AVAILABLE),
                _field("Payment Status", app.get("payment_status"), NOT_AVAILABLE),
            ],
        )
        for index, app in enumerate(request.collection("appointments"), start=1)
    ]
    return SectionData(
        key=SectionKey.APPOINTMENTS,
        title="Appointments",
        category="Appointments",
        entries=entries,
        entry_layout=EntryLayout.SUMMARY,
    )


def _patient_lab_records(request: ReportRequest, settings: Settings) -> SectionData:
    entries = []
    for index, record in enumerate(request.collection("labRecords"), start=1):
        heading = (
            f"{display(record.get('filename'), NOT_AVAILABLE)} "
            f"({display(record.get('type'), NOT_AVAILABLE)})"
        )
        entries.append(SectionEntry(
            label=f"Lab Record {index}",
            heading=heading,
            fields=[
                _field("Doctor", record.get("doctor"), NOT_AVAILABLE),
                _field("Company", record.get("company"), NOT_AVAILABLE),
                FieldRow(label="Ordered Date", value=display_date(record.get("ordered_date"), NOT_AVAILABLE)),
                FieldRow(label="Received Date", value=display_date(record.get("received_date"), NOT_AVAILABLE)),
                FieldRow(label="Reported Date", value=display_date(record.get("reported_date"), NOT_AVAILABLE)),
                _field("Impressions", record.get("impressions"), NOT_AVAILABLE),
                _field("Remarks", record.get("remarks"), NOT_AVAILABLE),
                _field("Recommendations", record.get("recommendations"), NOT_AVAILABLE),
                _field("Notes", record.get("notes"), NOT_AVAILABLE),
                FieldRow(label="File URL", value=display(record.get("fileurl"), NOT_AVAILABLE), csv_only=True),
            ],
            attachment=_attachment(record, settings.lab_records_bucket),
        ))
    return SectionData(
        key=SectionKey.LAB_RECORDS,
        title="Laboratory Records",
        category="Laboratory Records",
        entries=entries,
        entry_layout=EntryLayout.BULLETS,
    )


PATIENT_SECTIONS: List[SectionSpec] = [
    SectionSpec(SectionKey.BASIC_INFO, _always, _patient_basic_info),
    SectionSpec(SectionKey.EMERGENCY_CONTACT, _always, _emergency_contact),
    SectionSpec(SectionKey.ALLERGIES, _has("allergies"), _patient_allergies),
    SectionSpec(SectionKey.SUPPLEMENTS, _has("supplements"), _patient_supplements),
    SectionSpec(SectionKey.PRESCRIPTIONS, _has("prescriptions"), _patient_prescriptions),
    SectionSpec(SectionKey.APPOINTMENTS, _has("appointments"), _patient_appointments),
    SectionSpec(SectionKey.LAB_RECORDS, _has("labRecords"), _patient_lab_records),
]


# ─── Clinician report ────────────────────────────────────────────────────────

def _clinician_basic_info(request: ReportRequest, settings: Settings) -> SectionData:
    clinician = request.subject
    return SectionData(
        key=SectionKey.BASIC_INFO,
        title="Clinician Information",
        category="Personal Info",
        fields=[
            FieldRow(label="Full Name", value=full_name(clinician)),
            _field("Role", clinician.get("role")),
            _field("License Number", clinician.get("license_number")),
            _field("Specialization", clinician.get("specialization")),
            _field("Date of Birth", clinician.get("birth_date")),
            _field("Age", clinician.get("age")),
            _field("Contact Number", clinician.get("contact_number"), NOT_PROVIDED),
            _field("Address", clinician.get("address"), NOT_PROVIDED),
            _field("Marital Status", clinician.get("marital_status"), NOT_PROVIDED),
            _field("Citizenship", clinician.get("citizenship")),
            _field("Religion", clinician.get("religion")),
            _field("Status", clinician.get("status")),
        ],
        image=_attachment(clinician, settings.profile_bucket),
    )


def _is_doctor_with_prescriptions(request: ReportRequest) -> bool:
    # Only doctors issue prescriptions
    return request.subject.get("role") == "Doctor" and len(request.collection("prescriptions")) > 0


def _clinician_supplements(request: ReportRequest, settings: Settings) -> SectionData:
    entries = [
        SectionEntry(
            label=f"Supplement {index}",
            fields=[
                _summary_field("Name", supp.get("name")),
                _summary_field("Strength", supp.get("strength")),
                _summary_field("Amount", supp.get("amount")),
                _summary_field("Frequency", supp.get("frequency")),
                _summary_field("Patient", supp.get("patient")),
                _summary_field("Status", supp.get("status")),
            ],
        )
        for index, supp in enumerate(request.collection("supplements"), start=1)
    ]
    return SectionData(
        key=SectionKey.SUPPLEMENTS,
        title="Given Supplements",
        category="Supplements",
        entries=entries,
        entry_layout=EntryLayout.SUMMARY,
    )


def _clinician_prescriptions(request: ReportRequest, settings: Settings) -> SectionData:
    entries = [
        SectionEntry(
            label=f"Prescription {index}",
            fields=[
                _summary_field("Name", pres.get("name")),
                _summary_field("Strength", pres.get("strength")),
                _summary_field("Amount", pres.get("amount")),
                _summary_field("Frequency", pres.get("frequency")),
                _summary_field("Route", pres.get("route")),
                _summary_field("Patient", pres.get("patient")),
                _summary_field("Status", pres.get("status")),
                _summary_field("Date", pres.get("date"), is_date=True),
            ],
        )
        for index, pres in enumerate(request.collection("prescriptions"), start=1)
    ]
    return SectionData(
        key=SectionKey.PRESCRIPTIONS,
        title="Given Prescriptions",
        category="Prescriptions",
        entries=entries,
        entry_layout=EntryLayout.SUMMARY,
    )


def _clinician_appointments(request: ReportRequest, settings: Settings) -> SectionData:
    entries = [
        SectionEntry(
            label=f"Appointment {index}",
            fields=[
                _summary_field("Service", app.get("service")),
                _summary_field("Date", app.get("date"), is_date=True),
                _summary_field("Patient", app.get("patient")),
                _summary_field("Status", app.get("status")),
                _summary_field("Payment Status", app.get("payment_status")),
            ],
        )
        for index, app in enumerate(request.collection("appointments"), start=1)
    ]
    return SectionData(
        key=SectionKey.APPOINTMENTS,
        title="Appointments",
        category="Appointments",
        entries=entries,
        entry_layout=EntryLayout.SUMMARY,
    )


CLINICIAN_SECTIONS: List[SectionSpec] = [
    SectionSpec(SectionKey.BASIC_INFO, _always, _clinician_basic_info),
    SectionSpec(SectionKey.EMERGENCY_CONTACT, _always, _emergency_contact),
    SectionSpec(SectionKey.SUPPLEMENTS, _has("supplements"), _clinician_supplements),
    SectionSpec(SectionKey.PRESCRIPTIONS, _is_doctor_with_prescriptions, _clinician_prescriptions),
    SectionSpec(SectionKey.APPOINTMENTS, _has("appointments"), _clinician_appointments),
]


# ─── Appointment report ──────────────────────────────────────────────────────

def _appointment_info(request: ReportRequest, settings: Settings) -> SectionData:
    appointment = request.subject
    return SectionData(
        key=SectionKey.APPOINTMENT_INFO,
        title="Appointment Information",
        category="Appointment",
        fields=[
            FieldRow(label="Date", value=display_date(appointment.get("date"))),
            _field("Service", appointment.get("service")),
            _field("Status", appointment.get("status")),
            _field("Payment Status", appointment.get("payment_status")),
            FieldRow(label="Weight", value=with_unit(appointment.get("weight"), "kg")),
            FieldRow(label="Gestational Age", value=with_unit(appointment.get("gestational_age"), "weeks")),
        ],
    )


def _has_nested(key: str) -> Predicate:
    def predicate(request: ReportRequest) -> bool:
        return _nested(request.subject, key) is not None
    return predicate


def appointment_patient_name(appointment: Dict[str, Any]) -> str:
    patient = _nested(appointment, "patient")
    if patient is None:
        return "Unknown Patient"
    return full_name(_nested(patient, "person"), fallback="Unknown Patient")


def _appointment_patient_info(request: ReportRequest, settings: Settings) -> SectionData:
    patient = _nested(request.subject, "patient") or {}
    person = _nested(patient, "person") or {}
    return SectionData(
        key=SectionKey.PATIENT_INFO,
        title="Patient Information",
        category="Patient",
        fields=[
            FieldRow(label="Name", value=appointment_patient_name(request.subject)),
            _field("Birth Date", person.get("birth_date")),
            _field("Age", person.get("age")),
            _field("Contact Number", person.get("contact_number"), NOT_PROVIDED),
            _field("Address", person.get("address"), NOT_PROVIDED),
        ],
    )


def _appointment_clinician_info(request: ReportRequest, settings: Settings) -> SectionData:
    clinician = _nested(request.subject, "clinician") or {}
    return SectionData(
        key=SectionKey.CLINICIAN_INFO,
        title="Clinician Information",
        category="Clinician",
        fields=[
            FieldRow(label="Name", value=full_name(_nested(clinician, "person"), fallback="Unknown Clinician")),
            _field("Role", clinician.get("role")),
            _field("Specialization", clinician.get("specialization")),
        ],
    )


def _appointment_vitals(request: ReportRequest, settings: Settings) -> SectionData:
    appointment = request.subject
    vitals = _nested(appointment, "vitals") or {}
    return SectionData(
        key=SectionKey.VITALS,
        title="Vitals",
        category="Vitals",
        fields=[
            FieldRow(label="Weight", value=with_unit(appointment.get("weight"), "kg")),
            FieldRow(label="Gestational Age", value=with_unit(appointment.get("gestational_age"), "weeks")),
            FieldRow(label="Temperature", value=with_unit(vitals.get("temperature"), "°C")),
            FieldRow(label="Pulse Rate", value=with_unit(vitals.get("pulse_rate"), "bpm")),
            _field("Blood Pressure", vitals.get("blood_pressure"), NOT_RECORDED),
            FieldRow(label="Respiration Rate", value=with_unit(vitals.get("respiration_rate"), "breaths/min")),
            FieldRow(label="Oxygen Saturation", value=with_unit(vitals.get("oxygen_saturation"), "%", separator="")),
        ],
    )


def _medication_entries(records: List[Dict[str, Any]], noun: str, date_label: str) -> List[SectionEntry]:
    return [
        SectionEntry(
            label=f"{noun} {index}",
            fields=[
                _field("Name", _first(record, "name", "medicine")),
                _field("Strength", _first(record, "strength", "dosage")),
                _field("Amount", record.get("amount")),
                _field("Frequency", record.get("frequency")),
                _field("Route", record.get("route")),
                _field("Status", record.get("status")),
                FieldRow(label=date_label, value=display_date(record.get("date"))),
                FieldRow(label="Appointment", value=_linked_appointment(record)),
            ],
        )
        for index, record in enumerate(records, start=1)
    ]


def _appointment_prescriptions(request: ReportRequest, settings: Settings) -> SectionData:
    return SectionData(
        key=SectionKey.PRESCRIPTIONS,
        title="Prescriptions",
        category="Prescriptions",
        entries=_medication_entries(request.collection("prescriptions"), "Prescription", "Date Prescribed"),
        entry_layout=EntryLayout.FIELDS,
    )


def _appointment_supplements(request: ReportRequest, settings: Settings) -> SectionData:
    return SectionData(
        key=SectionKey.SUPPLEMENTS,
        title="Supplements",
        category="Supplements",
        entries=_medication_entries(request.collection("supplements"), "Supplement", "Date Recommended"),
        entry_layout=EntryLayout.FIELDS,
    )


APPOINTMENT_SECTIONS: List[SectionSpec] = [
    SectionSpec(SectionKey.APPOINTMENT_INFO, _always, _appointment_info),
    SectionSpec(SectionKey.PATIENT_INFO, _has_nested("patient"), _appointment_patient_info),
    SectionSpec(SectionKey.CLINICIAN_INFO, _has_nested("clinician"), _appointment_clinician_info),
    SectionSpec(SectionKey.VITALS, _has_nested("vitals"), _appointment_vitals),
    SectionSpec(SectionKey.PRESCRIPTIONS, _has("prescriptions"), _appointment_prescriptions),
    SectionSpec(SectionKey.SUPPLEMENTS, _has("supplements"), _appointment_supplements),
]


# ─── Dashboard report ────────────────────────────────────────────────────────

def _dashboard_overview(request: ReportRequest, settings: Settings) -> SectionData:
    data = request.subject
    return SectionData(
        key=SectionKey.OVERVIEW,
        title="Overview",
        category="Overview",
        fields=[
            _field("Active Patients", data.get("activePatients"), NOT_AVAILABLE),
            _field("Active Clinicians", data.get("activeClinicians"), NOT_AVAILABLE),
            _field("Total Appointments", data.get("totalAppointments"), NOT_AVAILABLE),
        ],
    )


def _dashboard_age_distribution(request: ReportRequest, settings: Settings) -> SectionData:
    return SectionData(
        key=SectionKey.AGE_DISTRIBUTION,
        title="Age Distribution",
        category="Age Distribution",
        fields=[
            FieldRow(
                label=f"Age {display(item.get('age'), NOT_AVAILABLE)}",
                value=display(item.get("numberOfPatients"), "0"),
            )
            for item in request.collection("chartData")
        ],
    )


def _dashboard_clinician_distribution(request: ReportRequest, settings: Settings) -> SectionData:
    return SectionData(
        key=SectionKey.CLINICIAN_DISTRIBUTION,
        title="Clinician Distribution",
        category="Clinician Distribution",
        fields=[
            FieldRow(
                label=display(item.get("clinicianName"), "Unknown Clinician"),
                value=display(item.get("numberOfPatients"), "0"),
            )
            for item in request.collection("clinicianData")
        ],
        pdf_value_suffix=" patients",
    )


def _dashboard_appointments(request: ReportRequest, settings: Settings) -> SectionData:
    entries = [
        SectionEntry(
            label=f"Appointment {index}",
            fields=[
                _field("Patient", app.get("patient_name"), NOT_AVAILABLE),
                _field("Clinician", app.get("clinician_name"), NOT_AVAILABLE),
                _field("Date", app.get("date"), NOT_AVAILABLE),
                _field("Service", app.get("service"), NOT_AVAILABLE),
                _field("Status", app.get("status"), NOT_AVAILABLE),
                _field("Payment Status", app.get("payment_status"), NOT_AVAILABLE),
            ],
        )
        for index, app in enumerate(request.collection("appointments"), start=1)
    ]
    return SectionData(
        key=SectionKey.APPOINTMENTS,
        title="Today's Appointments",
        category="Today's Appointments",
        entries=entries,
        entry_layout=EntryLayout.BULLETS,
        csv_entry_mode=CsvEntryMode.PREFIX,
    )


DASHBOARD_SECTIONS: List[SectionSpec] = [
    SectionSpec(SectionKey.OVERVIEW, _always, _dashboard_overview),
    SectionSpec(SectionKey.AGE_DISTRIBUTION, _has("chartData"), _dashboard_age_distribution),
    SectionSpec(SectionKey.CLINICIAN_DISTRIBUTION, _has("clinicianData"), _dashboard_clinician_distribution),
    SectionSpec(SectionKey.APPOINTMENTS, _has("appointments"), _dashboard_appointments),
]


def build_sections(
    specs: List[SectionSpec],
    request: ReportRequest,
    settings: Optional[Settings] = None,
) -> List[SectionData]:
    """
    Evaluate a priority list against a request.

    Args:
        specs: The report type's ordered section specs
        request: Validated report request
        settings: Bucket configuration (defaults to application settings)

    Returns:
        Sections for every enabled key whose predicate holds, in list order
    """
    settings = settings or get_settings()
    sections = []
    for spec in specs:
        if not request.export_options.is_enabled(spec.key):
            continue
        if not spec.predicate(request):
            continue
        sections.append(spec.builder(request, settings))
    return sections
