"""IdentityDocument entity model.

Sensitive fields arrive already encrypted by the client and are stored as
opaque ciphertext. Only id, owner, kind and expiry are read by the reminder
scheduler.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import field_validator
from sqlmodel import Field, SQLModel


class DocumentKind(str, Enum):
    """Supported identity document categories."""
    PASSPORT = "passport"
    NATIONAL_ID = "national_id"
    DRIVERS_LICENSE = "drivers_license"
    RESIDENCE_PERMIT = "residence_permit"
    VISA = "visa"

    @property
    def label(self) -> str:
        """Human readable name used in reminder messages."""
        return self.value.replace("_", " ")


class RenewalStatus(str, Enum):
    """Progress of a document renewal."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    COMPLETED = "completed"


class IdentityDocument(SQLModel, table=True):
    """Identity document database model."""

    __tablename__ = "identity_documents"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    kind: DocumentKind = Field(index=True)
    country: str = Field(min_length=2, max_length=2)
    issued_at: datetime | None = Field(default=None)
    expires_at: datetime = Field(index=True)

    # Client-side encrypted payload (never decrypted server-side)
    encrypted_number: str
    encrypted_holder_name: str
    encrypted_mrz_data: str | None = Field(default=None)
    encryption_iv: str = Field(max_length=255)
    encryption_salt: str = Field(max_length=255)
    scan_storage_key: str | None = Field(default=None, max_length=500)
    scan_uploaded_at: datetime | None = Field(default=None)

    renewal_status: RenewalStatus = Field(default=RenewalStatus.NOT_STARTED)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    deleted_at: datetime | None = Field(default=None, index=True)


class DocumentCreate(SQLModel):
    """Schema for document creation."""

    kind: DocumentKind
    country: str = Field(min_length=2, max_length=2)
    issued_at: datetime | None = None
    expires_at: datetime
    encrypted_number: str = Field(min_length=1)
    encrypted_holder_name: str = Field(min_length=1)
    encrypted_mrz_data: str | None = None
    encryption_iv: str = Field(min_length=1, max_length=255)
    encryption_salt: str = Field(min_length=1, max_length=255)
    scan_storage_key: str | None = Field(default=None, max_length=500)

    @field_validator("country")
    @classmethod
    def country_is_alpha2(cls, value: str) -> str:
        """ISO 3166-1 alpha-2, uppercase."""
        if not (value.isascii() and value.isalpha() and value.isupper()):
            raise ValueError("Country code must be two uppercase letters")
        return value


class DocumentUpdate(SQLModel):
    """Schema for document update."""

    renewal_status: RenewalStatus | None = None
    expires_at: datetime | None = None


class DocumentResponse(SQLModel):
    """Schema for document list response (no ciphertext)."""

    id: UUID
    kind: DocumentKind
    country: str
    issued_at: datetime | None
    expires_at: datetime
    renewal_status: RenewalStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DocumentDetailResponse(DocumentResponse):
    """Schema for single document response, including ciphertext for the client."""

    encrypted_number: str
    encrypted_holder_name: str
    encrypted_mrz_data: str | None
    encryption_iv: str
    encryption_salt: str
    scan_storage_key: str | None


class DocumentListResponse(SQLModel):
    """Schema for document list response."""

    documents: list[DocumentResponse]
    total: int
