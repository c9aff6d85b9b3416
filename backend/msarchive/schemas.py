"""
Pydantic schemas for request/response validation.
Field names match the JSON the admin and public front ends exchange.
"""
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

US_STATE_CODES = frozenset({
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
    "DC", "PR", "GU", "VI", "AS", "MP",
})

FEDERAL = "FEDERAL"


class LocationType(str, Enum):
    SCHOOL = "school"
    PUBLIC_SPACE = "public_space"
    PRIVATE_RESIDENCE = "private_residence"
    WORKPLACE = "workplace"
    OTHER = "other"


class SuspectGender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    NONBINARY = "nonbinary"
    UNKNOWN = "unknown"


class SuspectRace(str, Enum):
    WHITE = "White"
    BLACK = "Black"
    LATINO = "Latino"
    ASIAN = "Asian"
    NATIVE = "Native"
    OTHER = "Other"
    UNKNOWN = "Unknown"


class SuspectStatus(str, Enum):
    APPREHENDED = "apprehended"
    KILLED_BY_SELF = "killed_by_self"
    KILLED_BY_POLICE = "killed_by_police"
    AT_LARGE = "at_large"
    DECEASED_OTHER = "deceased_other"
    UNKNOWN = "unknown"


class LegislationCategory(str, Enum):
    REGULATION = "regulation"
    RIGHTS_EXPANSION = "rights_expansion"
    BACKGROUND_CHECKS = "background_checks"
    ASSAULT_WEAPON_BAN = "assault_weapon_ban"
    CONCEALED_CARRY = "concealed_carry"
    RED_FLAG = "red_flag"
    OTHER = "other"


class CorrectionType(str, Enum):
    FACTUAL_ERROR = "factual_error"
    MISSING_INFO = "missing_info"
    SUGGESTION = "suggestion"


T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Every API response is wrapped as {data, error}."""
    data: Optional[T] = None
    error: Optional[Any] = None


# ---------------------------------------------------------------------------
# Incidents
# ---------------------------------------------------------------------------

class IncidentBase(BaseModel):
    """Mutable incident fields supplied by admins."""
    model_config = ConfigDict(use_enum_values=True)

    date: date
    city: str = Field(min_length=1)
    state: str = Field(min_length=2, max_length=2)
    location_type: LocationType
    fatalities: int = Field(default=0, ge=0)
    injuries: int = Field(default=0, ge=0)
    involves_children: bool = False
    involves_women_and_children: bool = False
    hate_crime: bool = False
    hate_crime_target: Optional[str] = None
    context: str = Field(min_length=1)
    description: str = Field(min_length=1)
    notes: Optional[str] = None
    is_published: bool = False
    last_verified_at: Optional[datetime] = None

    @field_validator("state")
    @classmethod
    def state_must_be_known(cls, v: str) -> str:
        code = v.upper()
        if code not in US_STATE_CODES:
            raise ValueError(f"unrecognized state code: {v}")
        return code


class IncidentCreate(IncidentBase):
    pass


class IncidentUpdate(IncidentBase):
    id: str


class PublishToggle(BaseModel):
    id: str
    is_published: bool


class IdRequest(BaseModel):
    """Body of DELETE requests. id may be a UUID string or an integer."""
    id: Optional[Any] = None


class IncidentRef(BaseModel):
    id: str
    incident_code: Optional[str] = None


class IncidentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    incident_code: Optional[str] = None
    date: date
    city: str
    state: str
    location_type: str
    fatalities: int
    injuries: int
    involves_children: bool
    involves_women_and_children: bool
    hate_crime: bool
    hate_crime_target: Optional[str] = None
    context: str
    description: str
    notes: Optional[str] = None
    is_published: bool
    last_verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PublicIncidentOut(BaseModel):
    """Public projection: drafting notes are not exposed."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    incident_code: Optional[str] = None
    date: date
    city: str
    state: str
    location_type: str
    fatalities: int
    injuries: int
    involves_children: bool
    involves_women_and_children: bool
    hate_crime: bool
    hate_crime_target: Optional[str] = None
    context: str
    description: str
    last_verified_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Suspects, weapons, prior history
# ---------------------------------------------------------------------------

class WeaponIn(BaseModel):
    type: str = Field(min_length=1)
    legally_purchased: Optional[bool] = None
    source: Optional[str] = None


class WeaponCreate(WeaponIn):
    suspect_id: str


class WeaponUpdate(BaseModel):
    id: Optional[int] = None
    type: Optional[str] = Field(default=None, min_length=1)
    legally_purchased: Optional[bool] = None
    source: Optional[str] = None


class WeaponOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    suspect_id: str
    type: str
    legally_purchased: Optional[bool] = None
    source: Optional[str] = None


class PriorHistoryIn(BaseModel):
    criminal_record: Optional[bool] = None
    prior_mental_health_issues: Optional[bool] = None
    prior_domestic_violence: Optional[bool] = None


class PriorHistoryOut(PriorHistoryIn):
    model_config = ConfigDict(from_attributes=True)

    suspect_id: str


class SuspectFields(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    name: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0, le=120)
    gender: SuspectGender = SuspectGender.UNKNOWN
    race: SuspectRace = SuspectRace.UNKNOWN
    nationality: Optional[str] = None
    status: SuspectStatus = SuspectStatus.UNKNOWN
    motive: Optional[str] = None
    notes: Optional[str] = None


class SuspectCreate(SuspectFields):
    """
    Suspect plus its owned children. Weapons and history are kept as raw
    objects here and validated by the composite writer, which decides how a
    malformed child affects the rest of the write.
    """
    incident_id: Optional[str] = None
    weapons: List[Any] = Field(default_factory=list)
    history: Any = None


class SuspectUpdate(SuspectFields):
    id: Optional[str] = None
    weapons: List[Any] = Field(default_factory=list)
    history: Any = None


class SuspectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    incident_id: str
    name: Optional[str] = None
    age: Optional[int] = None
    gender: str
    race: str
    nationality: Optional[str] = None
    status: str
    motive: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    weapons: List[WeaponOut] = Field(default_factory=list)
    history: Optional[PriorHistoryOut] = None


class PublicSuspectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    incident_id: str
    name: Optional[str] = None
    age: Optional[int] = None
    gender: str
    race: str
    nationality: Optional[str] = None
    status: str
    motive: Optional[str] = None
    weapons: List[WeaponOut] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Legislation
# ---------------------------------------------------------------------------

class LegislationBase(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    date: date
    jurisdiction: str = Field(min_length=2)
    title: str = Field(min_length=1)
    summary: str = Field(min_length=1)
    category: LegislationCategory
    notes: Optional[str] = None
    is_published: bool = False
    last_verified_at: Optional[datetime] = None

    @field_validator("jurisdiction")
    @classmethod
    def jurisdiction_must_be_known(cls, v: str) -> str:
        code = v.upper()
        if code != FEDERAL and code not in US_STATE_CODES:
            raise ValueError(f"jurisdiction must be a state code or {FEDERAL}: {v}")
        return code


class LegislationCreate(LegislationBase):
    pass


class LegislationUpdate(LegislationBase):
    id: str


class LegislationRef(BaseModel):
    id: str
    law_code: Optional[str] = None


class LegislationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    law_code: Optional[str] = None
    date: date
    jurisdiction: str
    title: str
    category: str
    summary: str
    notes: Optional[str] = None
    is_published: bool
    last_verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PublicLegislationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    law_code: Optional[str] = None
    date: date
    jurisdiction: str
    title: str
    category: str
    summary: str
    last_verified_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Corrections
# ---------------------------------------------------------------------------

class CorrectionCreate(BaseModel):
    """
    Public correction submission. Review fields (status, reviewer, notes)
    are not part of the intake shape and are ignored if sent.
    """
    model_config = ConfigDict(use_enum_values=True, extra="ignore")

    incident_id: Optional[str] = None
    legislation_id: Optional[str] = None
    correction_type: CorrectionType
    description: str = Field(min_length=1)
    suggested_correction: Optional[str] = None
    submitted_by: Optional[str] = None


class CorrectionReview(BaseModel):
    """Status transition request. Presence and values are checked by the handler."""
    id: Optional[int] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    reviewed_by: Optional[str] = None


class IncidentSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    incident_code: Optional[str] = None
    date: date
    city: str
    state: str


class LegislationSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    law_code: Optional[str] = None
    title: str
    jurisdiction: str


class CorrectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    incident_id: Optional[str] = None
    legislation_id: Optional[str] = None
    correction_type: str
    description: str
    suggested_correction: Optional[str] = None
    status: str
    submitted_by: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    incident: Optional[IncidentSummary] = None
    legislation: Optional[LegislationSummary] = None


class CorrectionStatusOut(BaseModel):
    id: int
    status: str
    reviewed_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Admin allowlist and audit log
# ---------------------------------------------------------------------------

class AllowlistRequest(BaseModel):
    action: Optional[str] = None
    email: EmailStr


class AllowlistEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    email: str
    created_at: Optional[datetime] = None
    added_by: Optional[str] = None


class AuditLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    table_name: str
    row_id: str
    action: str
    actor_email: Optional[str] = None
    at: datetime
    diff: Optional[Any] = None


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

class YearlyStats(BaseModel):
    year: int
    total_incidents: int
    total_fatalities: int
    total_injuries: int
    school_incidents: int


class StateStats(BaseModel):
    state: str
    total_incidents: int
    total_fatalities: int
    total_injuries: int


class MonthlyTrend(BaseModel):
    month: str  # YYYY-MM
    total_incidents: int
    total_fatalities: int
    total_injuries: int
