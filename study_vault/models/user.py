"""
User model for MongoDB (Beanie ODM).

Holds identity (email + bcrypt hash), the reader profile shown in the app,
and the sign-in lockout state. Users are never hard-deleted; is_active=False
hides them from sign-in and token resolution.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from beanie import Document
from pydantic import BaseModel, Field
from pymongo import ASCENDING, IndexModel


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class FavoriteBook(BaseModel):
    title: str
    author: str
    isbn: str = ""


class ReadingStats(BaseModel):
    books_read: int = 0
    pages_read: int = 0
    reading_streak: int = 0
    last_read_date: Optional[datetime] = None


class PrivacySettings(BaseModel):
    profile_visible: bool = True
    show_reading_stats: bool = True
    show_favorite_books: bool = True


class User(Document):
    """
    User document. email is stored lower-cased; password is the bcrypt hash.
    """

    full_name: str
    email: str
    password: str  # bcrypt hash, never serialized
    avatar: str = ""
    role: UserRole = UserRole.USER
    is_active: bool = True
    is_email_verified: bool = False

    # Sign-in lockout
    last_login: Optional[datetime] = None
    login_attempts: int = 0
    lock_until: Optional[datetime] = None

    # Profile
    bio: str = ""
    location: str = ""
    website: str = ""
    birth_date: Optional[datetime] = None
    favorite_genres: List[str] = Field(default_factory=list)
    favorite_books: List[FavoriteBook] = Field(default_factory=list)
    reading_stats: ReadingStats = Field(default_factory=ReadingStats)
    privacy: PrivacySettings = Field(default_factory=PrivacySettings)
    profile_completion: int = 0

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "users"
        use_state_management = True
        indexes = [
            IndexModel([("email", ASCENDING), ("is_active", ASCENDING)]),
            # One active account per email; deactivated accounts keep theirs
            IndexModel(
                [("email", ASCENDING)],
                name="email_active_unique",
                unique=True,
                partialFilterExpression={"is_active": True},
            ),
        ]

    class Config:
        json_schema_extra = {
            "example": {
                "full_name": "Ada Lovelace",
                "email": "ada@example.com",
                "role": "user",
                "created_at": "2025-01-01T00:00:00Z",
            }
        }

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_locked(self) -> bool:
        return self.lock_until is not None and self.lock_until > datetime.utcnow()

    def register_failed_login(self, max_attempts: int, lock_minutes: int) -> None:
        """
        Count a wrong password. The counter is not reset when a lock expires,
        so the first wrong password after expiry locks the account again.
        """
        self.login_attempts += 1
        if self.login_attempts >= max_attempts:
            self.lock_until = datetime.utcnow() + timedelta(minutes=lock_minutes)

    def register_successful_login(self) -> None:
        self.login_attempts = 0
        self.lock_until = None
        self.last_login = datetime.utcnow()

    def calculate_profile_completion(self) -> int:
        """Percentage of the optional profile fields that are filled in."""
        checks = [
            bool(self.full_name and self.full_name.strip()),
            bool(self.avatar),
            bool(self.bio),
            bool(self.location),
            bool(self.website),
            self.birth_date is not None,
            bool(self.favorite_genres),
            bool(self.favorite_books),
        ]
        self.profile_completion = round(100 * sum(checks) / len(checks))
        return self.profile_completion

    def to_public(self) -> Dict[str, Any]:
        """Full record for the owner. Never includes the password hash."""
        return {
            "id": str(self.id),
            "fullName": self.full_name,
            "email": self.email,
            "avatar": self.avatar,
            "role": self.role.value,
            "isEmailVerified": self.is_email_verified,
            "lastLogin": self.last_login.isoformat() if self.last_login else None,
            "bio": self.bio,
            "location": self.location,
            "website": self.website,
            "birthDate": self.birth_date.isoformat() if self.birth_date else None,
            "favoriteGenres": list(self.favorite_genres),
            "favoriteBooks": [b.model_dump() for b in self.favorite_books],
            "readingStats": _reading_stats_dict(self.reading_stats),
            "privacy": {
                "profileVisible": self.privacy.profile_visible,
                "showReadingStats": self.privacy.show_reading_stats,
                "showFavoriteBooks": self.privacy.show_favorite_books,
            },
            "profileCompletion": self.profile_completion,
            "createdAt": self.created_at.isoformat(),
        }

    def to_public_profile(self) -> Dict[str, Any]:
        """What other users see; reading stats and books follow privacy flags."""
        return {
            "id": str(self.id),
            "fullName": self.full_name,
            "avatar": self.avatar,
            "bio": self.bio,
            "location": self.location,
            "favoriteGenres": list(self.favorite_genres),
            "readingStats": (
                _reading_stats_dict(self.reading_stats)
                if self.privacy.show_reading_stats
                else None
            ),
            "favoriteBooks": (
                [b.model_dump() for b in self.favorite_books]
                if self.privacy.show_favorite_books
                else None
            ),
            "profileCompletion": self.profile_completion,
            "createdAt": self.created_at.isoformat(),
        }


def _reading_stats_dict(stats: ReadingStats) -> Dict[str, Any]:
    return {
        "booksRead": stats.books_read,
        "pagesRead": stats.pages_read,
        "readingStreak": stats.reading_streak,
        "lastReadDate": stats.last_read_date.isoformat() if stats.last_read_date else None,
    }
