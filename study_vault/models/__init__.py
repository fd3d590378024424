"""Beanie document models and embedded Pydantic schemas."""

from study_vault.models.pdf import Comment, Genre, Pdf, PdfStatus, RatingEntry, RatingSummary
from study_vault.models.user import FavoriteBook, PrivacySettings, ReadingStats, User, UserRole

__all__ = [
    "User",
    "UserRole",
    "FavoriteBook",
    "ReadingStats",
    "PrivacySettings",
    "Pdf",
    "PdfStatus",
    "Genre",
    "Comment",
    "RatingEntry",
    "RatingSummary",
]
