# idreview/models.py
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class VerificationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CamelModel(BaseModel):
    # Documents are stored with camelCase keys (firstName, createdAt, ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VerificationRequest(CamelModel):
    """
    One pending identity check. The id is the owning user's id, so a user
    can only have one request at a time.
    """

    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    birth_date: Optional[str] = None
    city: Optional[str] = None
    document_type: Optional[str] = None
    document_url: Optional[str] = Field(default=None, alias="documentURL")
    document_front_url: Optional[str] = Field(default=None, alias="documentFrontURL")
    document_back_url: Optional[str] = Field(default=None, alias="documentBackURL")
    selfie_url: Optional[str] = Field(default=None, alias="selfieURL")
    status: VerificationStatus = VerificationStatus.PENDING
    created_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None

    @field_validator("birth_date", mode="before")
    @classmethod
    def _birth_date_to_iso(cls, value):
        # Some profiles store the birth date as a timestamp
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        return value

    def document_image_url(self) -> Optional[str]:
        """Front side first, then the legacy single upload, then the back."""
        return self.document_front_url or self.document_url or self.document_back_url

    def display_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def is_pending(self) -> bool:
        return self.status == VerificationStatus.PENDING


class MatchResult(CamelModel):
    name_matched: bool = False
    last_name_matched: bool = False
    date_matched: bool = False
    extracted_date: Optional[str] = None
    score: int = Field(default=0, ge=0, le=3)


class Operator(BaseModel):
    uid: str
    email: Optional[str] = None


class AuditAction(str, Enum):
    VERIFICATION_APPROVED = "VERIFICATION_APPROVED"
    VERIFICATION_REJECTED = "VERIFICATION_REJECTED"


class AuditEntry(CamelModel):
    action: AuditAction
    admin_uid: str
    admin_email: Optional[str] = None
    target_uid: str
    target_type: str = "verification"
    target_id: str
    reason: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# --- API payloads ---

class ReviewDecision(BaseModel):
    operator: Operator
    reason: Optional[str] = None


class MatchTextRequest(CamelModel):
    recognized_text: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    birth_date: Optional[str] = None
