"""
Database Schemas

Each pydantic model below describes one MongoDB collection and doubles as the
validation descriptor for it: required fields, enum values and numeric ranges
are declared here and nowhere else. Field names are snake_case in Python and
camelCase on the wire and in the database (partNumber, minimumQuantity, ...).

- User -> "user"
- InvitationCode -> "invitationcode"
- Equipment -> "equipment"
- Part -> "part"
- Maintenance -> "maintenance"
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from database import utcnow


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


EquipmentCategory = Literal["Tractor", "Harvester", "Planter", "Tillage", "Application", "Grain Handling"]
EquipmentStatus = Literal["Active", "In Maintenance", "Out of Service", "Retired"]
PartCategory = Literal["Engine", "Transmission", "Electrical", "Hydraulic", "Body", "Other"]
MaintenanceType = Literal["Preventive", "Repair", "Inspection", "Oil Change", "Other"]
MaintenanceStatus = Literal["Scheduled", "In Progress", "Completed", "Cancelled"]

# passwords are taken verbatim, surrounding spaces included
RawPassword = Annotated[str, StringConstraints(strip_whitespace=False)]
NewPassword = Annotated[str, StringConstraints(strip_whitespace=False, min_length=6)]


class Document(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
        extra="ignore",
    )


class Attachment(Document):
    name: str = Field(..., min_length=1, description="Original file name")
    path: str = Field(..., min_length=1, description="Public path of the stored file")


class User(Document):
    """
    Users collection schema
    Collection name: "user"
    """
    email: EmailStr = Field(..., description="Email address, unique")
    username: Optional[str] = Field(None, description="Optional login name, unique")
    name: str = Field(..., min_length=1, description="Display name")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    password: str = Field(..., description="bcrypt hash")
    role: Role = Field(Role.USER, description="admin or user")

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()


class UserPublic(Document):
    id: str
    email: str
    username: Optional[str] = None
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    role: Role = Role.USER
    created_at: Optional[datetime] = None


class InvitationCode(Document):
    """
    Invitation codes collection schema
    Collection name: "invitationcode"
    Purged by a TTL index seven days after createdAt.
    """
    code: str = Field(..., min_length=1)
    is_used: bool = False
    used_by: Optional[str] = Field(None, description="Id of the user who consumed the code")
    created_by: Optional[str] = Field(None, description="Id of the admin who issued the code")
    created_at: datetime = Field(default_factory=utcnow)


class Equipment(Document):
    """
    Equipment collection schema
    Collection name: "equipment"
    """
    name: str = Field(..., min_length=1)
    manufacturer: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    category: EquipmentCategory
    status: EquipmentStatus
    documents: List[Attachment] = []
    images: List[Attachment] = []


class Part(Document):
    """
    Parts collection schema
    Collection name: "part"
    """
    name: str = Field(..., min_length=1)
    part_number: str = Field(..., min_length=1)
    manufacturer: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0, description="Units on hand")
    minimum_quantity: int = Field(..., ge=0, description="Reorder threshold")
    price: float = Field(..., ge=0)
    location: str = Field(..., min_length=1, description="Storage location")
    category: PartCategory
    description: Optional[str] = None
    images: List[Attachment] = []


class Maintenance(Document):
    """
    Maintenance records collection schema
    Collection name: "maintenance"
    """
    equipment_id: str = Field(..., min_length=1, description="Id of the serviced equipment")
    type: MaintenanceType
    description: str = Field(..., min_length=1)
    date: datetime = Field(default_factory=utcnow)
    status: MaintenanceStatus = "Scheduled"
    cost: float = Field(..., ge=0)
    notes: Optional[str] = None
    documents: List[Attachment] = []

    @field_validator("date")
    @classmethod
    def _naive_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class RegisterRequest(Document):
    email: EmailStr
    password: NewPassword
    name: str = Field(..., min_length=1)
    invitation_code: str = Field(..., min_length=1)


class LoginRequest(Document):
    # "email" may hold either an email address or a username
    email: Optional[str] = None
    username: Optional[str] = None
    password: RawPassword


class ProfileUpdate(Document):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    # explicit nulls are rejected for these two
    email: EmailStr = None
    password: NewPassword = None


PROFILE_FIELDS = ("firstName", "lastName", "email", "phone", "password")
