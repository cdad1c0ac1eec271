from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


MAX_APPLICANTS = 3
THIRD_SLOT = 3


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else ''
    return str(value)


class FormModel(BaseModel):
    """Base for browser payloads: camelCase keys accepted, unknown keys dropped."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
    )


class ApplicantKind(str, Enum):
    personal = 'personal'
    organization = 'organization'


class ResidentialStatus(str, Enum):
    unspecified = ''
    resident = 'Resident'
    non_resident = 'Non-Resident'
    foreign_national = 'Foreign National of Indian Origin'


class OrganizationDetails(FormModel):
    company_name: str = ''
    reg_office_line1: str = ''
    reg_office_line2: str = ''
    authorized_signatory_line1: str = ''
    authorized_signatory_line2: str = ''
    board_resolution_date: str = ''
    company_pan_or_tin: str = ''
    company_tel_no: str = ''
    company_mobile_no: str = ''
    company_email: str = ''
    company_fax_no: str = ''

    @field_validator('*', mode='before')
    @classmethod
    def _text(cls, value: Any) -> str:
        return _coerce_text(value)

    def has_data(self) -> bool:
        return any(str(value).strip() for value in self.model_dump().values())


ORGANIZATION_FIELDS: tuple[str, ...] = tuple(OrganizationDetails.model_fields.keys())
_ORGANIZATION_KEYS: frozenset[str] = frozenset(
    [*ORGANIZATION_FIELDS, *(to_camel(name) for name in ORGANIZATION_FIELDS)]
)

_APPLICANT_TEXT_FIELDS = (
    'title',
    'name',
    'relation',
    'son_wife_daughter_of',
    'nationality',
    'age',
    'dob',
    'profession',
    'aadhaar',
    'pan',
    'it_ward',
    'correspondence_address',
    'tel_no',
    'phone',
    'email',
    'photograph',
    'signature',
)


class ApplicantRecord(FormModel):
    kind: ApplicantKind = ApplicantKind.personal

    title: str = ''
    name: str = ''
    relation: str = ''
    son_wife_daughter_of: str = ''
    nationality: str = ''
    age: str = ''
    dob: str = ''
    profession: str = ''
    aadhaar: str = ''
    residential_status: ResidentialStatus = ResidentialStatus.unspecified
    pan: str = ''
    it_ward: str = ''
    correspondence_address: str = ''
    tel_no: str = ''
    phone: str = ''
    email: str = ''

    photograph: str = ''
    signature: str = ''

    organization: OrganizationDetails = Field(default_factory=OrganizationDetails)

    @model_validator(mode='before')
    @classmethod
    def _group_organization_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if 'organization' in data:
            return data
        grouped: dict[str, Any] = {}
        remaining: dict[str, Any] = {}
        for key, value in data.items():
            if key in _ORGANIZATION_KEYS:
                grouped[key] = value
            else:
                remaining[key] = value
        remaining['organization'] = grouped
        return remaining

    @field_validator(*_APPLICANT_TEXT_FIELDS, mode='before')
    @classmethod
    def _text(cls, value: Any) -> str:
        return _coerce_text(value)

    @field_validator('residential_status', mode='before')
    @classmethod
    def _status(cls, value: Any) -> Any:
        if value is None:
            return ''
        return value

    @property
    def has_signature(self) -> bool:
        return bool(self.signature.strip())

    def tag_for_slot(self, slot: int) -> 'ApplicantRecord':
        """Set `kind` for the slot this record occupies. Only slot 3 may be an organization."""
        if slot == THIRD_SLOT and not self.name.strip() and self.organization.has_data():
            self.kind = ApplicantKind.organization
        else:
            self.kind = ApplicantKind.personal
        return self


def is_applicant_included(applicant: ApplicantRecord | None, slot: int) -> bool:
    """Single inclusion rule for an applicant slot.

    Slots 1 and 2 need a non-blank name. Slot 3 may instead be an organization,
    so any non-blank organization field also counts.
    """
    if slot < 1 or slot > MAX_APPLICANTS:
        raise ValueError(f'applicant slot out of range: {slot}')
    if applicant is None:
        return False
    if applicant.name.strip():
        return True
    if slot == THIRD_SLOT:
        return applicant.organization.has_data()
    return False


class ApplicationForm(FormModel):
    applicants: list[ApplicantRecord] = Field(default_factory=list)
    bhk_type: str = ''
    unit_number: str = ''

    tower: str = ''
    apartment_number: str = ''
    floor: str = ''
    carpet_area_sqm: str = ''
    carpet_area_sqft: str = ''
    unit_price: str = ''
    base_price: str = ''
    gst_amount: str = ''
    total_price: str = ''

    declaration_date: str = ''
    declaration_place: str = ''

    @field_validator(
        'bhk_type',
        'unit_number',
        'tower',
        'apartment_number',
        'floor',
        'carpet_area_sqm',
        'carpet_area_sqft',
        'unit_price',
        'base_price',
        'gst_amount',
        'total_price',
        'declaration_date',
        'declaration_place',
        mode='before',
    )
    @classmethod
    def _text(cls, value: Any) -> str:
        return _coerce_text(value)

    @field_validator('applicants', mode='before')
    @classmethod
    def _slots(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [item if item is not None else {} for item in value]
        return value

    @model_validator(mode='after')
    def _normalize(self) -> 'ApplicationForm':
        if len(self.applicants) > MAX_APPLICANTS:
            raise ValueError(f'at most {MAX_APPLICANTS} applicants are supported, got {len(self.applicants)}')
        while len(self.applicants) < MAX_APPLICANTS:
            self.applicants.append(ApplicantRecord())

        self.bhk_type = self.bhk_type.strip().lower()
        if not self.apartment_number.strip() and self.unit_number.strip():
            self.apartment_number = self.unit_number

        for index, applicant in enumerate(self.applicants):
            applicant.tag_for_slot(index + 1)
        return self

    def applicant(self, slot: int) -> ApplicantRecord:
        if slot < 1 or slot > MAX_APPLICANTS:
            raise ValueError(f'applicant slot out of range: {slot}')
        return self.applicants[slot - 1]

    def included_slots(self) -> list[int]:
        return [
            slot
            for slot in range(1, MAX_APPLICANTS + 1)
            if is_applicant_included(self.applicant(slot), slot)
        ]

    def signers(self) -> list[tuple[int, str]]:
        return [
            (slot, self.applicant(slot).signature)
            for slot in range(1, MAX_APPLICANTS + 1)
            if self.applicant(slot).has_signature
        ]

    def display_name(self) -> str:
        first = self.applicant(1)
        third = self.applicant(THIRD_SLOT)
        for candidate in (
            first.name,
            first.organization.company_name,
            third.name,
            third.organization.company_name,
        ):
            if candidate.strip():
                return candidate.strip()
        return 'N/A'


class ApplicationSubmission(FormModel):
    form_data: ApplicationForm
    applicant_count: int = Field(default=1, ge=1, le=MAX_APPLICANTS)
    bhk_type: str = ''

    @model_validator(mode='after')
    def _sync_unit_type(self) -> 'ApplicationSubmission':
        hint = self.bhk_type.strip().lower()
        if not self.form_data.bhk_type and hint:
            self.form_data.bhk_type = hint
        self.bhk_type = self.form_data.bhk_type
        return self


class ApplicationStatus(str, Enum):
    queued = 'queued'
    rendering = 'rendering'
    completed = 'completed'
    failed = 'failed'


class ApplicationError(BaseModel):
    kind: str
    message: str
    retryable: bool = False
    stage: str | None = None
    page: str | None = None
    details: str | None = None


class ApplicationArtifacts(BaseModel):
    form_path: str | None = None
    pdf_path: str | None = None


class ApplicationState(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    display_id: str
    display_name: str = 'N/A'

    status: ApplicationStatus = ApplicationStatus.queued
    message: str = 'Application queued.'
    error: ApplicationError | None = None

    applicant_count: int = 1
    bhk_type: str = ''

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    pdf_ready: bool = False
    artifacts: ApplicationArtifacts = Field(default_factory=ApplicationArtifacts)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ApplicationSummary(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    application_id: str
    created_at: datetime
    updated_at: datetime
    applicant_count: int
    bhk_type: str
    first_applicant_name: str
    status: ApplicationStatus
