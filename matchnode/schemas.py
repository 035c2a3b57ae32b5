from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List, Union
from enum import Enum
from datetime import datetime

from .services.sticker_status import StickerStatus, parse_status


# Users & auth

NICKNAME_PATTERN = r"^[a-zA-Z0-9_.-]{3,30}$"
POSTAL_CODE_PATTERN = r"^[A-Za-z0-9 -]{3,10}$"


class UserRegister(BaseModel):
    nickname: str = Field(..., pattern=NICKNAME_PATTERN, examples=["marco_10"])
    password: str = Field(..., min_length=6, max_length=128)
    email: Optional[str] = Field(None, max_length=254, examples=["marco@example.com"])
    postal_code: str = Field(..., pattern=POSTAL_CODE_PATTERN, examples=["20121"])
    radius_km: int = Field(10, ge=1, le=200)


class UserLogin(BaseModel):
    nickname: str
    password: str


class UserProfileUpdate(BaseModel):
    nickname: Optional[str] = Field(None, pattern=NICKNAME_PATTERN)
    email: Optional[str] = Field(None, max_length=254)
    postal_code: Optional[str] = Field(None, pattern=POSTAL_CODE_PATTERN)
    radius_km: Optional[int] = Field(None, ge=1, le=200)
    selected_album_id: Optional[int] = None


class UserResponse(BaseModel):
    id: int
    nickname: str
    email: Optional[str] = None
    postal_code: str
    radius_km: int
    selected_album_id: Optional[int] = None
    is_admin: bool
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class PublicUserResponse(BaseModel):
    id: int
    nickname: str
    postal_code: str
    selected_album_id: Optional[int] = None
    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    message: str
    user: UserResponse
    access_token: str


class MessageResponse(BaseModel):
    message: str


# Albums & stickers

class AlbumBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, examples=["Calciatori 2024-2025"])
    year: int = Field(..., ge=1960, le=2100, examples=[2024])
    description: Optional[str] = None
    is_active: bool = True


class AlbumCreate(AlbumBase):
    pass


class AlbumUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    year: Optional[int] = Field(None, ge=1960, le=2100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class AlbumResponse(AlbumBase):
    id: int
    created_at: Optional[datetime] = None
    sticker_count: Optional[int] = None
    model_config = ConfigDict(from_attributes=True)


class PaginatedAlbums(BaseModel):
    items: list[AlbumResponse]
    total: int
    limit: int
    offset: int


class StickerCreate(BaseModel):
    number: str = Field(..., min_length=1, max_length=20, examples=["12"])
    name: str = Field(..., min_length=1, max_length=200, examples=["Lautaro Martinez"])
    team: Optional[str] = Field(None, max_length=100, examples=["Inter"])


class StickerListCreate(BaseModel):
    stickers: List[StickerCreate] = Field(..., min_length=1)


class StickerBulkImport(BaseModel):
    # Either structured stickers or "number|name|team" lines
    stickers: Optional[List[StickerCreate]] = None
    lines: Optional[Union[str, List[str]]] = Field(
        None, examples=["1|Lautaro Martinez|Inter\n2|Rafael Leao|Milan"])


class StickerResponse(BaseModel):
    id: int
    album_id: int
    number: str
    name: str
    team: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class BulkImportResponse(BaseModel):
    success: bool
    count: int
    stickers: list[StickerResponse]


# Collection

class StickerStatusUpdate(BaseModel):
    status: StickerStatus

    @field_validator("status", mode="before")
    @classmethod
    def accept_legacy_labels(cls, value):
        return parse_status(value)


class UserStickerUpsert(StickerStatusUpdate):
    sticker_id: int
    album_id: Optional[int] = None


class UserStickerResponse(BaseModel):
    id: int
    user_id: int
    sticker_id: int
    status: StickerStatus
    owned: bool
    duplicate: bool
    updated_at: Optional[datetime] = None
    sticker: Optional[StickerResponse] = None
    model_config = ConfigDict(from_attributes=True)


class CollectionSummary(BaseModel):
    album_id: int
    total: int
    owned: int
    missing: int
    duplicate: int
    completion_percent: int


# Matching

class CandidateResponse(BaseModel):
    user: PublicUserResponse
    distance_km: float
    score: int
    gives_count: int
    receives_count: int
    is_mutual: bool


class PaginatedCandidates(BaseModel):
    items: list[CandidateResponse]
    total: int
    limit: int
    offset: int
    radius_km: float


class MatchCreate(BaseModel):
    user2_id: int


class MatchStatusEnum(str, Enum):
    active = "active"
    closed = "closed"


class MatchResponse(BaseModel):
    id: int
    user1_id: int
    user2_id: int
    initiator_id: int
    album_id: int
    album_name: Optional[str] = None
    status: MatchStatusEnum
    created_at: Optional[datetime] = None
    other_user: Optional[PublicUserResponse] = None


class PaginatedMatches(BaseModel):
    items: list[MatchResponse]
    total: int
    limit: int
    offset: int


class ExchangeResponse(BaseModel):
    match_id: int
    album_id: int
    score: int
    is_mutual: bool
    # Stickers the current user can give to the other collector
    you_give: list[StickerResponse]
    # Stickers the other collector can give to the current user
    you_receive: list[StickerResponse]


class ChatMessageCreate(BaseModel):
    content: str = Field(..., min_length=1)


class ChatMessageResponse(BaseModel):
    id: int
    match_id: int
    sender_id: int
    sender_nickname: Optional[str] = None
    content: str
    created_at: Optional[datetime] = None


# Reports & admin

class ReportTypeEnum(str, Enum):
    inappropriate = "inappropriate"
    spam = "spam"
    no_show = "no_show"
    fake_profile = "fake_profile"
    other = "other"


class ReportStatusEnum(str, Enum):
    pending = "pending"
    resolved = "resolved"
    dismissed = "dismissed"


class ReportCreate(BaseModel):
    type: ReportTypeEnum
    description: str = Field(..., min_length=1, max_length=2000)
    reported_user_id: Optional[int] = None
    match_id: Optional[int] = None


class ReportStatusUpdate(BaseModel):
    status: ReportStatusEnum


class ReportResponse(BaseModel):
    id: int
    reporter_id: int
    reported_user_id: Optional[int] = None
    match_id: Optional[int] = None
    type: ReportTypeEnum
    description: str
    status: ReportStatusEnum
    created_at: Optional[datetime] = None
    reporter_nickname: Optional[str] = None
    reported_user_nickname: Optional[str] = None


class PaginatedReports(BaseModel):
    items: list[ReportResponse]
    total: int
    limit: int
    offset: int


class AdminStats(BaseModel):
    total_users: int
    total_matches: int
    active_albums: int
    pending_reports: int


class PostalCodeEntry(BaseModel):
    code: str = Field(..., pattern=POSTAL_CODE_PATTERN, examples=["20121"])
    latitude: float = Field(..., ge=-90, le=90, examples=[45.4722])
    longitude: float = Field(..., ge=-180, le=180, examples=[9.1886])
    place_name: Optional[str] = Field(None, examples=["Milano"])
    model_config = ConfigDict(from_attributes=True)


class PostalCodeImport(BaseModel):
    postal_codes: List[PostalCodeEntry] = Field(..., min_length=1)


class PostalCodeImportResponse(BaseModel):
    count: int
