from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_AVATAR = "/placeholder-user.jpg"


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Enums ────────────────────────────────────────────────────────────────

class SkillLevel(str, Enum):
    beginner = "Beginner"
    intermediate = "Intermediate"
    advanced = "Advanced"
    expert = "Expert"


# Unknown level strings are not in this table and rank as 0.
LEVEL_RANK: dict[str, int] = {
    SkillLevel.beginner.value: 0,
    SkillLevel.intermediate.value: 1,
    SkillLevel.advanced.value: 2,
    SkillLevel.expert.value: 3,
}


# ── Nested models ────────────────────────────────────────────────────────

class Skill(CamelModel):
    id: Optional[str] = None
    name: str
    # Kept as a plain string so free-form levels survive validation.
    level: str = SkillLevel.beginner.value
    category: str = ""


class Badge(CamelModel):
    id: str
    name: str
    description: str = ""
    icon: str = ""
    earned_at: Optional[str] = None


# ── Directory records ────────────────────────────────────────────────────

def _normalize_email(value: str) -> str:
    return value.strip().lower()


class User(CamelModel):
    """A full directory record. The skill and badge arrays are required."""
    id: str
    name: str
    # Stored records skip EmailStr; addresses are checked on create and update.
    email: str
    avatar: str = DEFAULT_AVATAR
    credits: int = Field(0, ge=0)
    badges: list[Badge]
    skills_teach: list[Skill]
    skills_learn: list[Skill]

    @field_validator("email", mode="before")
    @classmethod
    def _lower_email(cls, value):
        return _normalize_email(value) if isinstance(value, str) else value


class UserCreate(CamelModel):
    """Body of POST /users. A new user starts with empty lists."""
    id: Optional[str] = None
    name: str = Field(min_length=1)
    email: EmailStr
    avatar: str = DEFAULT_AVATAR
    credits: int = Field(0, ge=0)
    badges: list[Badge] = []
    skills_teach: list[Skill] = []
    skills_learn: list[Skill] = []

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return value.strip()

    @field_validator("email", mode="before")
    @classmethod
    def _lower_email(cls, value):
        return _normalize_email(value) if isinstance(value, str) else value


class UserUpdate(CamelModel):
    """Body of PUT /users/{uid}. All fields optional for partial update."""
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    avatar: Optional[str] = None
    credits: Optional[int] = Field(None, ge=0)
    badges: Optional[list[Badge]] = None
    skills_teach: Optional[list[Skill]] = None
    skills_learn: Optional[list[Skill]] = None

    @field_validator("email", mode="before")
    @classmethod
    def _lower_email(cls, value):
        return _normalize_email(value) if isinstance(value, str) else value
