"""
Pdf model for uploaded study documents.

Besides the file reference and catalogue metadata, each document embeds its
own engagement state: likes, per-user ratings and comments. The mutators
below only change the in-memory document; callers persist with save().

Invariants kept by the mutators:
- like_count == len(liked_by)
- rating.count == len(ratings), rating.average is the plain mean (0 if empty)
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from beanie import Document, PydanticObjectId
from pydantic import BaseModel, Field
from pymongo import ASCENDING, DESCENDING, IndexModel


class Genre(str, Enum):
    """Closed list of catalogue genres."""

    ACADEMIC = "Academic"
    TECHNOLOGY = "Technology"
    BUSINESS = "Business"
    SCIENCE = "Science"
    MATHEMATICS = "Mathematics"
    HISTORY = "History"
    LITERATURE = "Literature"
    ART_DESIGN = "Art & Design"
    ENGINEERING = "Engineering"
    MEDICINE = "Medicine"
    LAW = "Law"
    PHILOSOPHY = "Philosophy"
    PSYCHOLOGY = "Psychology"
    ECONOMICS = "Economics"
    PROGRAMMING = "Programming"
    DATA_SCIENCE = "Data Science"
    MACHINE_LEARNING = "Machine Learning"
    MOBILE_DEVELOPMENT = "Mobile Development"
    WEB_DEVELOPMENT = "Web Development"
    DEVOPS = "DevOps"
    OTHER = "Other"


class PdfStatus(str, Enum):
    """Lifecycle of a document. Deletion is a status, never a physical removal."""

    PENDING = "pending"  # Uploaded, waiting for approval
    ACTIVE = "active"
    INACTIVE = "inactive"
    DELETED = "deleted"


class RatingSummary(BaseModel):
    average: float = 0.0
    count: int = 0


class RatingEntry(BaseModel):
    rating: int
    review: str = ""
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Comment(BaseModel):
    """Author name/avatar are snapshots taken when the comment is posted."""

    id: PydanticObjectId = Field(default_factory=PydanticObjectId)
    user: PydanticObjectId
    user_name: str
    user_avatar: str = ""
    content: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def to_public(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "user": str(self.user),
            "userName": self.user_name,
            "userAvatar": self.user_avatar,
            "content": self.content,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


class FileMetadata(BaseModel):
    original_name: str
    encoding: str = ""
    mimetype: str = "application/pdf"
    extension: str = "pdf"


class Pdf(Document):
    """
    An uploaded PDF. uploaded_by is the owning User id.
    file_path is server-local and never leaves the API.
    """

    title: str
    description: str = ""
    genre: Genre
    sub_genre: str = ""
    tags: List[str] = Field(default_factory=list)

    file_name: str
    file_path: str
    file_size: int
    mime_type: str = "application/pdf"
    metadata: FileMetadata

    uploaded_by: PydanticObjectId
    uploader_name: str
    uploader_avatar: str = ""

    language: str = "English"
    page_count: Optional[int] = None
    author: str = ""
    publisher: str = ""
    publication_year: Optional[int] = None
    isbn: str = ""
    cover_image: str = ""

    # Engagement
    download_count: int = 0
    view_count: int = 0
    like_count: int = 0
    liked_by: List[PydanticObjectId] = Field(default_factory=list)
    rating: RatingSummary = Field(default_factory=RatingSummary)
    ratings: Dict[str, RatingEntry] = Field(default_factory=dict)  # keyed by user id
    comments: List[Comment] = Field(default_factory=list)

    # Visibility
    is_public: bool = True
    is_approved: bool = False
    approved_by: Optional[PydanticObjectId] = None
    approved_at: Optional[datetime] = None
    status: PdfStatus = PdfStatus.PENDING

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "pdfs"
        use_state_management = True
        indexes = [
            IndexModel([("genre", ASCENDING), ("created_at", DESCENDING)]),
            IndexModel([("uploaded_by", ASCENDING), ("created_at", DESCENDING)]),
            IndexModel([("is_public", ASCENDING), ("is_approved", ASCENDING), ("status", ASCENDING)]),
            IndexModel([("rating.average", DESCENDING), ("view_count", DESCENDING)]),
        ]

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Linear Algebra Notes",
                "genre": "Mathematics",
                "file_name": "3f2a..._linear-algebra.pdf",
                "status": "pending",
                "created_at": "2025-01-01T00:00:00Z",
            }
        }

    @property
    def is_listed(self) -> bool:
        """Only public, approved, active documents show up in listings."""
        return self.is_public and self.is_approved and self.status == PdfStatus.ACTIVE

    def is_liked_by(self, user_id: Optional[PydanticObjectId]) -> bool:
        return user_id is not None and user_id in self.liked_by

    def toggle_like(self, user_id: PydanticObjectId) -> bool:
        """Flip the user's like. Returns the new liked state."""
        if user_id in self.liked_by:
            self.liked_by = [uid for uid in self.liked_by if uid != user_id]
            liked = False
        else:
            self.liked_by.append(user_id)
            liked = True
        self.like_count = len(self.liked_by)
        return liked

    def upsert_rating(
        self, user_id: PydanticObjectId, value: int, review: Optional[str] = None
    ) -> RatingSummary:
        """
        One rating per user: re-rating replaces the value and timestamp in place.
        An omitted review keeps the one given earlier.
        """
        key = str(user_id)
        existing = self.ratings.get(key)
        if existing is not None:
            existing.rating = value
            if review is not None:
                existing.review = review
            existing.created_at = datetime.utcnow()
        else:
            self.ratings[key] = RatingEntry(rating=value, review=review or "")
        self.recompute_rating()
        return self.rating

    def recompute_rating(self) -> None:
        count = len(self.ratings)
        total = sum(entry.rating for entry in self.ratings.values())
        self.rating = RatingSummary(average=total / count if count else 0.0, count=count)

    def add_comment(
        self, user_id: PydanticObjectId, user_name: str, user_avatar: str, content: str
    ) -> Comment:
        comment = Comment(
            user=user_id,
            user_name=user_name,
            user_avatar=user_avatar,
            content=content,
        )
        self.comments.append(comment)
        return comment

    def to_summary(self) -> Dict[str, Any]:
        """Listing row: no comments, ratings or file path."""
        return {
            "id": str(self.id),
            "title": self.title,
            "description": self.description,
            "genre": self.genre.value,
            "subGenre": self.sub_genre,
            "tags": list(self.tags),
            "fileName": self.file_name,
            "fileSize": self.file_size,
            "mimeType": self.mime_type,
            "uploadedBy": str(self.uploaded_by),
            "uploaderName": self.uploader_name,
            "uploaderAvatar": self.uploader_avatar,
            "language": self.language,
            "pageCount": self.page_count,
            "author": self.author,
            "publisher": self.publisher,
            "publicationYear": self.publication_year,
            "isbn": self.isbn,
            "coverImage": self.cover_image,
            "downloadCount": self.download_count,
            "viewCount": self.view_count,
            "likeCount": self.like_count,
            "rating": self.rating.model_dump(),
            "isPublic": self.is_public,
            "isApproved": self.is_approved,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    def to_public(self, viewer_id: Optional[PydanticObjectId] = None) -> Dict[str, Any]:
        """Detail view for GET /pdfs/{id}, with isLiked for the caller."""
        data = self.to_summary()
        data.update(
            {
                "likedBy": [str(uid) for uid in self.liked_by],
                "ratings": [
                    {
                        "user": user_id,
                        "rating": entry.rating,
                        "review": entry.review,
                        "createdAt": entry.created_at.isoformat(),
                    }
                    for user_id, entry in self.ratings.items()
                ],
                "comments": [c.to_public() for c in self.comments],
                "metadata": {
                    "originalName": self.metadata.original_name,
                    "encoding": self.metadata.encoding,
                    "mimetype": self.metadata.mimetype,
                    "extension": self.metadata.extension,
                },
                "approvedAt": self.approved_at.isoformat() if self.approved_at else None,
                "isLiked": self.is_liked_by(viewer_id),
            }
        )
        return data
