"""
Request bodies and query models.

Field names follow the mobile client (camelCase) through aliases; code uses
snake_case. Request validation failures are answered with 400 by the handler
in main.py.
"""

import json
import re
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    HttpUrl,
    StrictInt,
    TypeAdapter,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
)

from study_vault.models.pdf import Genre
from study_vault.models.user import FavoriteBook

ISBN_RE = re.compile(r"^(?:\d{9}[\dXx]|\d{13})$")

_http_url = TypeAdapter(HttpUrl)


def check_full_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if len(v) < 2:
        raise ValueError("Full name must be at least 2 characters long")
    if len(v) > 50:
        raise ValueError("Full name cannot exceed 50 characters")
    return v


def check_email(v, handler: ValidatorFunctionWrapHandler) -> str:
    """Run EmailStr validation with our own message; emails are stored lower-case."""
    if isinstance(v, str):
        v = v.strip()
    try:
        return handler(v).lower()
    except ValidationError:
        raise ValueError("Please enter a valid email address")


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ── Auth ──────────────────────────────────────────────────────────────────────


class SignupRequest(CamelModel):
    full_name: str = Field(alias="fullName")
    email: EmailStr
    password: str = Field(json_schema_extra={"format": "password"})

    normalize_full_name = field_validator("full_name")(check_full_name)
    normalize_email = field_validator("email", mode="wrap")(check_email)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters long")
        return v


class SigninRequest(CamelModel):
    email: EmailStr
    password: str

    normalize_email = field_validator("email", mode="wrap")(check_email)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Email and password are required")
        return v


# ── PDFs ──────────────────────────────────────────────────────────────────────


class PdfUploadForm(CamelModel):
    """Metadata fields sent alongside the multipart file."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=200)
    genre: Genre
    description: str = Field(default="", max_length=1000)
    sub_genre: str = Field(default="", alias="subGenre", max_length=50)
    tags: List[str] = Field(default_factory=list)
    author: str = Field(default="", max_length=100)
    publisher: str = Field(default="", max_length=100)
    publication_year: Optional[int] = Field(default=None, alias="publicationYear", ge=1000)
    isbn: str = ""
    language: str = "English"
    page_count: Optional[int] = Field(default=None, alias="pageCount", ge=0)
    is_public: bool = Field(default=True, alias="isPublic")

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v):
        # Multipart forms carry tags as a JSON array or a comma-separated string
        if v is None or v == "":
            return []
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
            except json.JSONDecodeError:
                parsed = v.split(",")
            v = parsed if isinstance(parsed, list) else [parsed]
        return v

    @field_validator("tags")
    @classmethod
    def check_tags(cls, v: List[str]) -> List[str]:
        tags: List[str] = []
        for tag in v:
            tag = str(tag).strip()
            if not tag:
                continue
            if len(tag) > 30:
                raise ValueError("Tag cannot exceed 30 characters")
            if tag not in tags:
                tags.append(tag)
        return tags

    @field_validator("publication_year")
    @classmethod
    def check_publication_year(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v > datetime.utcnow().year:
            raise ValueError("Publication year cannot be in the future")
        return v

    @field_validator("isbn")
    @classmethod
    def check_isbn(cls, v: str) -> str:
        if v and not ISBN_RE.match(v):
            raise ValueError("Please enter a valid ISBN")
        return v

    @field_validator("language")
    @classmethod
    def default_language(cls, v: str) -> str:
        return v or "English"


SortField = Literal["createdAt", "title", "viewCount", "likeCount", "downloadCount", "rating"]


class PdfListQuery(BaseModel):
    page: int = 1
    limit: int = 20
    sort_by: SortField = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"
    genre: Optional[Genre] = None
    sub_genre: Optional[str] = None
    search: Optional[str] = None
    language: Optional[str] = None
    uploader: Optional[str] = None
    min_rating: Optional[float] = None
    max_rating: Optional[float] = None


class RatingRequest(CamelModel):
    # JSON true or "4" must not pass as a rating
    rating: StrictInt
    review: Optional[str] = None


class CommentRequest(BaseModel):
    content: str = ""


# ── Profiles ──────────────────────────────────────────────────────────────────


class PrivacyUpdate(CamelModel):
    profile_visible: Optional[bool] = Field(default=None, alias="profileVisible")
    show_reading_stats: Optional[bool] = Field(default=None, alias="showReadingStats")
    show_favorite_books: Optional[bool] = Field(default=None, alias="showFavoriteBooks")


class ProfileUpdate(CamelModel):
    """Only these fields can be changed through PUT /users/profile."""

    full_name: Optional[str] = Field(default=None, alias="fullName")
    bio: Optional[str] = Field(default=None, max_length=500)
    location: Optional[str] = Field(default=None, max_length=100)
    website: Optional[str] = None
    birth_date: Optional[datetime] = Field(default=None, alias="birthDate")
    favorite_genres: Optional[List[str]] = Field(default=None, alias="favoriteGenres")
    favorite_books: Optional[List[FavoriteBook]] = Field(default=None, alias="favoriteBooks")
    privacy: Optional[PrivacyUpdate] = None

    normalize_full_name = field_validator("full_name")(check_full_name)

    @field_validator("website")
    @classmethod
    def check_website(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return v
        v = v.strip()
        try:
            _http_url.validate_python(v)
        except ValidationError:
            raise ValueError("Please enter a valid website URL")
        return v

    @field_validator("favorite_genres")
    @classmethod
    def dedupe_genres(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        genres: List[str] = []
        for genre in v:
            genre = genre.strip()
            if genre and genre not in genres:
                genres.append(genre)
        return genres


class ReadingStatsUpdate(CamelModel):
    books_read: Optional[int] = Field(default=None, alias="booksRead", ge=0)
    pages_read: Optional[int] = Field(default=None, alias="pagesRead", ge=0)
    reading_streak: Optional[int] = Field(default=None, alias="readingStreak", ge=0)
