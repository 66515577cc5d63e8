from pydantic import BaseModel, Field, field_validator, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, Literal
from datetime import datetime

from sharelink.config import settings
from sharelink.storage import FileKind

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

class TokenData(BaseModel):
    user_id: Optional[str] = None

class ShareCreate(CamelModel):
    file_id: str = Field(..., min_length=1, max_length=255, description="Идентификатор файла в хранилище")
    file_type: FileKind = Field(..., description="Вид файла: temp или library")
    expires_in_minutes: Optional[int] = Field(None, description="Срок жизни ссылки в минутах")
    password: Optional[str] = Field(None, max_length=settings.MAX_LINK_PASSWORD_LENGTH,
                                    description="Необязательный пароль ссылки")

    @field_validator('file_type', mode='before')
    def normalize_file_type(cls, v):
        if isinstance(v, str) and v.lower() == "temporary":
            return FileKind.TEMP
        return v

    @field_validator('password')
    def empty_password_means_none(cls, v):
        return v or None

class ShareCreated(CamelModel):
    code: str
    url: str
    expires_at: datetime

class ShareInfo(CamelModel):
    file_name: str
    file_size: int
    password_required: bool
    expires_at: datetime
    created_at: datetime

class DownloadURL(CamelModel):
    download_url: str
    expires_in: int

class ShareLinkSummary(CamelModel):
    id: str
    short_code: str
    share_link: str
    file_id: str
    file_type: str
    file_name: str
    file_size: int
    has_password: bool
    status: Literal["active", "expired", "revoked"]
    is_expired: bool
    is_revoked: bool
    created_at: datetime
    expires_at: datetime
    total_clicks: int
    unique_visitors: int
    first_opened_at: Optional[datetime] = None
    last_opened_at: Optional[datetime] = None

class ErrorResponse(BaseModel):
    detail: str
    code: str
