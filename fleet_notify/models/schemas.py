from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire"""
    model_config = ConfigDict(populate_by_name=True)


class NotificationCreate(CamelModel):
    """
    Body of POST /notifications.
    type is required and at least one of title/message must be non-empty.
    """

    type: Optional[str] = Field(default=None, description="Short category tag, e.g. payment")
    title: Optional[str] = Field(default=None, description="Display title")
    message: Optional[str] = Field(default=None, description="Display body")
    data: Dict[str, Any] = Field(default_factory=dict, description="Opaque payload passed to push data")
    recipient_type: Optional[str] = Field(default=None, alias="recipientType")
    recipient_id: Optional[str] = Field(default=None, alias="recipientId")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "type": "payment",
                "title": "Paid",
                "message": "Rent paid",
                "data": {"amount": 1200},
                "recipientType": "driver",
                "recipientId": "D1"
            }
        }
    )

    @field_validator("data", mode="before")
    @classmethod
    def default_data(cls, v):
        return {} if v is None else v

    @field_validator("recipient_id", mode="before")
    @classmethod
    def stringify_recipient_id(cls, v):
        """Recipient ids are compared as strings everywhere"""
        return None if v is None or v == "" else str(v)

    @field_validator("recipient_type", mode="before")
    @classmethod
    def blank_recipient_type(cls, v):
        return None if v == "" else v

    @model_validator(mode="after")
    def require_type_and_text(self):
        if not self.type or not (self.title or self.message):
            raise ValueError("type and title/message required")
        return self


class Notification(CamelModel):
    """A persisted notification record"""
    id: str
    type: str
    title: Optional[str] = None
    message: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    recipient_type: Optional[str] = Field(default=None, alias="recipientType")
    recipient_id: Optional[str] = Field(default=None, alias="recipientId")
    read: bool = False
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


class Pagination(BaseModel):
    total: int = 0
    page: int = 1
    limit: int = 20
    totalPages: int = 0


class NotificationPage(BaseModel):
    items: List[Notification] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class BulkUpdateResult(CamelModel):
    """Result of a mark-all-as-read update"""
    matched_count: int = Field(0, alias="matchedCount")
    modified_count: int = Field(0, alias="modifiedCount")


class DeviceTokenRegister(CamelModel):
    """Body of POST /device-tokens"""
    token: str = Field(..., min_length=1)
    platform: Optional[str] = None
    user_type: Optional[str] = Field(default=None, alias="userType")
    user_id: Optional[str] = Field(default=None, alias="userId")

    @field_validator("user_id", mode="before")
    @classmethod
    def stringify_user_id(cls, v):
        return None if v is None else str(v)


class DeviceToken(CamelModel):
    token: str
    platform: Optional[str] = None
    user_type: Optional[str] = Field(default=None, alias="userType")
    user_id: Optional[str] = Field(default=None, alias="userId")
    last_seen: datetime = Field(..., alias="lastSeen")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


class PushPayload(BaseModel):
    title: str = ""
    body: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)


class TokenResponse(BaseModel):
    token: str
    success: bool
    messageId: Optional[str] = None
    error: Optional[str] = None


class BatchResult(BaseModel):
    """Aggregate outcome of one multicast push"""
    successCount: int = 0
    failureCount: int = 0
    responses: Optional[List[TokenResponse]] = None
