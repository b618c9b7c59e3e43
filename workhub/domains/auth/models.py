# workhub/domains/auth/models.py
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class AccountType(str, Enum):
    PERSONAL = "PERSONAL"
    ORG = "ORG"


class UserPreferences(BaseModel):
    """Preference bag stored on the user record by the identity provider."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    account_type: Optional[AccountType] = Field(None, alias="accountType")
    primary_organization_id: Optional[str] = Field(
        None, alias="primaryOrganizationId"
    )
    active_workspace_id: Optional[str] = Field(None, alias="activeWorkspaceId")
    must_reset_password: bool = Field(False, alias="mustResetPassword")
    accepted_terms_version: Optional[str] = Field(None, alias="acceptedTermsVersion")

    @classmethod
    def parse(cls, raw: Any) -> "UserPreferences":
        """Accept the stored Json column as a dict, a JSON string or nothing."""
        if raw is None or raw == "":
            return cls()
        if isinstance(raw, str):
            return cls.model_validate_json(raw)
        if isinstance(raw, BaseModel):
            return cls.model_validate(raw.model_dump(by_alias=True))
        return cls.model_validate(dict(raw))


class User(BaseModel):
    """Identity record; read-only to the access layer."""

    id: str
    email: str
    email_verified: bool = False
    prefs: UserPreferences = Field(default_factory=UserPreferences)

    @classmethod
    def from_prisma(cls, record: Any) -> "User":
        return cls(
            id=record.id,
            email=record.email,
            email_verified=bool(getattr(record, "emailVerified", False)),
            prefs=UserPreferences.parse(getattr(record, "prefs", None)),
        )
