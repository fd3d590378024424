"""
PDF library operations: upload, listing, engagement and moderation.

Every engagement operation is a single-document read-modify-write:
load the Pdf, mutate its embedded state through the model methods, then
save_changes() so only the touched fields are $set. View and download
counters use an atomic $inc instead, since they need no read of the
current state.
"""

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from beanie import PydanticObjectId
from bson.errors import InvalidId
from pydantic import ValidationError as PydanticValidationError

from study_vault.config import get_settings
from study_vault.errors import (
    AuthorizationError,
    NotFoundError,
    PayloadTooLargeError,
    ValidationError,
)
from study_vault.models.pdf import Comment, FileMetadata, Genre, Pdf, PdfStatus, RatingSummary
from study_vault.models.user import User
from study_vault.schemas import PdfListQuery, PdfUploadForm
from study_vault.services import pdf_service

logger = logging.getLogger(__name__)

LISTED_FILTER: Dict[str, Any] = {"is_public": True, "is_approved": True, "status": PdfStatus.ACTIVE.value}

SORT_FIELDS = {
    "createdAt": "created_at",
    "title": "title",
    "viewCount": "view_count",
    "likeCount": "like_count",
    "downloadCount": "download_count",
    "rating": "rating.average",
}

MAX_TEXT_LENGTH = 500


@dataclass
class UploadedFile:
    """What the route hands over from the multipart request."""

    filename: str
    content_type: Optional[str]
    content: bytes
    encoding: str = ""


def _first_error_message(exc: PydanticValidationError) -> str:
    error = exc.errors()[0]
    message = error.get("msg", "Invalid input")
    return message.removeprefix("Value error, ")


def parse_object_id(value: str, what: str = "PDF") -> PydanticObjectId:
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundError(f"{what} not found")


async def get_pdf_or_404(pdf_id: PydanticObjectId) -> Pdf:
    pdf = await Pdf.get(pdf_id)
    if not pdf:
        raise NotFoundError("PDF not found")
    return pdf


# ── Upload ────────────────────────────────────────────────────────────────────


def parse_upload_form(fields: Dict[str, Any]) -> PdfUploadForm:
    """Validate multipart metadata. Blank fields count as not sent."""
    present = {k: v for k, v in fields.items() if v is not None and v != ""}
    if not present.get("title") or not present.get("genre"):
        raise ValidationError("Title and genre are required")
    try:
        return PdfUploadForm.model_validate(present)
    except PydanticValidationError as e:
        raise ValidationError(_first_error_message(e))


def _check_file(upload: UploadedFile) -> None:
    is_pdf_type = upload.content_type == "application/pdf"
    is_pdf_name = upload.filename.lower().endswith(".pdf")
    if not (is_pdf_type or is_pdf_name):
        raise ValidationError("Only PDF files are allowed")
    if not upload.content:
        raise ValidationError("No PDF file provided")
    max_mb = get_settings().max_upload_size_mb
    if len(upload.content) > max_mb * 1024 * 1024:
        raise PayloadTooLargeError(f"File size exceeds {max_mb} MB")


async def upload_pdf(upload: UploadedFile, form: PdfUploadForm, user: User) -> Pdf:
    """
    Store the file and create the record with status=pending.
    If the record cannot be created the stored file is removed again.
    """
    _check_file(upload)
    file_path = pdf_service.save_upload(upload.content, upload.filename)
    try:
        pdf = Pdf(
            title=form.title,
            description=form.description,
            genre=form.genre,
            sub_genre=form.sub_genre,
            tags=form.tags,
            file_name=file_path.name,
            file_path=str(file_path),
            file_size=len(upload.content),
            mime_type=upload.content_type or "application/pdf",
            metadata=FileMetadata(
                original_name=upload.filename,
                encoding=upload.encoding,
                mimetype=upload.content_type or "application/pdf",
                extension=Path(upload.filename).suffix.lstrip(".").lower() or "pdf",
            ),
            uploaded_by=user.id,
            uploader_name=user.full_name,
            uploader_avatar=user.avatar,
            language=form.language,
            page_count=form.page_count,
            author=form.author,
            publisher=form.publisher,
            publication_year=form.publication_year,
            isbn=form.isbn,
            is_public=form.is_public,
        )
        await pdf.insert()
    except Exception:
        logger.exception("Creating record for upload %s failed; removing file", file_path)
        pdf_service.remove_file(file_path)
        raise
    logger.info("User %s uploaded PDF %s (%s)", user.id, pdf.id, pdf.title)
    return pdf


# ── Listing ───────────────────────────────────────────────────────────────────


def _contains(text: str) -> Dict[str, str]:
    return {"$regex": re.escape(text), "$options": "i"}


def parse_listing_query(fields: Dict[str, Any]) -> PdfListQuery:
    try:
        return PdfListQuery.model_validate(fields)
    except PydanticValidationError as e:
        raise ValidationError(_first_error_message(e))


def build_listing_filter(query: PdfListQuery) -> Dict[str, Any]:
    criteria: Dict[str, Any] = dict(LISTED_FILTER)
    if query.genre:
        criteria["genre"] = query.genre.value
    if query.sub_genre:
        criteria["sub_genre"] = _contains(query.sub_genre)
    if query.language:
        criteria["language"] = query.language
    if query.uploader:
        criteria["uploaded_by"] = parse_object_id(query.uploader, "User")
    if query.search:
        pattern = _contains(query.search)
        criteria["$or"] = [
            {"title": pattern},
            {"description": pattern},
            {"tags": pattern},
            {"author": pattern},
        ]
    if query.min_rating is not None or query.max_rating is not None:
        bounds: Dict[str, float] = {}
        if query.min_rating is not None:
            bounds["$gte"] = query.min_rating
        if query.max_rating is not None:
            bounds["$lte"] = query.max_rating
        criteria["rating.average"] = bounds
    return criteria


async def _paginate(criteria: Dict[str, Any], query: PdfListQuery) -> Tuple[List[Pdf], Dict[str, Any]]:
    settings = get_settings()
    page = max(query.page, 1)
    limit = min(max(query.limit, 1), settings.max_page_size)
    prefix = "-" if query.sort_order == "desc" else "+"
    sort_key = prefix + SORT_FIELDS[query.sort_by]

    pdfs = await Pdf.find(criteria).sort(sort_key).skip((page - 1) * limit).limit(limit).to_list()
    total = await Pdf.find(criteria).count()
    pages = math.ceil(total / limit) if total else 0
    pagination = {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": pages,
        "hasNext": page < pages,
        "hasPrev": page > 1,
    }
    return pdfs, pagination


async def list_pdfs(query: PdfListQuery) -> Tuple[List[Pdf], Dict[str, Any]]:
    """Public catalogue: only public, approved, active documents."""
    return await _paginate(build_listing_filter(query), query)


async def list_user_pdfs(
    owner_id: PydanticObjectId, query: PdfListQuery, viewer: Optional[User] = None
) -> Tuple[List[Pdf], Dict[str, Any]]:
    """An uploader's documents. Owners also see their deleted ones."""
    criteria: Dict[str, Any] = {"uploaded_by": owner_id}
    if viewer is None or viewer.id != owner_id:
        criteria["status"] = {"$ne": PdfStatus.DELETED.value}
    return await _paginate(criteria, query)


async def get_pdf(pdf_id: PydanticObjectId) -> Pdf:
    """Direct fetch. Listing flags do not apply here."""
    return await get_pdf_or_404(pdf_id)


# ── Engagement ────────────────────────────────────────────────────────────────


async def increment_view(pdf_id: PydanticObjectId) -> int:
    """Every call counts; there is no per-viewer dedup."""
    pdf = await get_pdf_or_404(pdf_id)
    await pdf.inc({Pdf.view_count: 1})
    return pdf.view_count


async def toggle_like(pdf_id: PydanticObjectId, user: User) -> Tuple[bool, int]:
    pdf = await get_pdf_or_404(pdf_id)
    liked = pdf.toggle_like(user.id)
    pdf.updated_at = datetime.utcnow()
    await pdf.save_changes()
    return liked, pdf.like_count


def check_rating_value(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    return value


async def rate_pdf(
    pdf_id: PydanticObjectId, user: User, value: Any, review: Optional[str] = None
) -> RatingSummary:
    """Create or replace the user's rating and recompute the average."""
    value = check_rating_value(value)
    if review is not None:
        review = review.strip()
        if len(review) > MAX_TEXT_LENGTH:
            raise ValidationError("Review cannot exceed 500 characters")

    pdf = await get_pdf_or_404(pdf_id)
    summary = pdf.upsert_rating(user.id, value, review)
    pdf.updated_at = datetime.utcnow()
    await pdf.save_changes()
    logger.info("User %s rated PDF %s: %d (avg %.2f over %d)", user.id, pdf.id, value, summary.average, summary.count)
    return summary


async def comment_on_pdf(pdf_id: PydanticObjectId, user: User, content: Optional[str]) -> Comment:
    text = (content or "").strip()
    if not text:
        raise ValidationError("Comment content is required")
    if len(text) > MAX_TEXT_LENGTH:
        raise ValidationError("Comment cannot exceed 500 characters")

    pdf = await get_pdf_or_404(pdf_id)
    comment = pdf.add_comment(user.id, user.full_name, user.avatar, text)
    pdf.updated_at = datetime.utcnow()
    await pdf.save_changes()
    return comment


# ── Moderation ────────────────────────────────────────────────────────────────


async def delete_pdf(pdf_id: PydanticObjectId, user: User) -> Pdf:
    """Soft delete: only the uploader or an admin may do it."""
    pdf = await get_pdf_or_404(pdf_id)
    if pdf.uploaded_by != user.id and not user.is_admin:
        logger.warning("User %s tried to delete PDF %s owned by %s", user.id, pdf.id, pdf.uploaded_by)
        raise AuthorizationError("Unauthorized to delete this PDF")

    pdf.status = PdfStatus.DELETED
    pdf.updated_at = datetime.utcnow()
    await pdf.save_changes()
    logger.info("PDF %s deleted by %s", pdf.id, user.id)
    return pdf


async def approve_pdf(pdf_id: PydanticObjectId, admin: User) -> Pdf:
    if not admin.is_admin:
        raise AuthorizationError("Admin access required")
    pdf = await get_pdf_or_404(pdf_id)
    if pdf.status == PdfStatus.DELETED:
        raise ValidationError("Deleted PDFs cannot be approved")

    now = datetime.utcnow()
    pdf.is_approved = True
    pdf.approved_by = admin.id
    pdf.approved_at = now
    pdf.status = PdfStatus.ACTIVE
    pdf.updated_at = now
    await pdf.save_changes()
    logger.info("PDF %s approved by %s", pdf.id, admin.id)
    return pdf


# ── Downloads, genres, statistics ─────────────────────────────────────────────


async def prepare_download(pdf_id: PydanticObjectId) -> Pdf:
    """Check the file is on disk, then count the download."""
    pdf = await get_pdf_or_404(pdf_id)
    if not Path(pdf.file_path).is_file():
        logger.error("PDF %s points at missing file %s", pdf.id, pdf.file_path)
        raise NotFoundError("PDF file not found on disk")
    await pdf.inc({Pdf.download_count: 1})
    return pdf


def genres() -> List[str]:
    return [g.value for g in Genre]


async def statistics() -> Dict[str, Any]:
    """Totals over the public catalogue plus a per-genre breakdown."""
    totals = await Pdf.aggregate(
        [
            {"$match": LISTED_FILTER},
            {
                "$group": {
                    "_id": None,
                    "totalPdfs": {"$sum": 1},
                    "totalViews": {"$sum": "$view_count"},
                    "totalDownloads": {"$sum": "$download_count"},
                    "totalLikes": {"$sum": "$like_count"},
                    "averageRating": {"$avg": "$rating.average"},
                }
            },
        ]
    ).to_list()
    by_genre = await Pdf.aggregate(
        [
            {"$match": LISTED_FILTER},
            {"$group": {"_id": "$genre", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
        ]
    ).to_list()

    if totals:
        stats = {k: v for k, v in totals[0].items() if k != "_id"}
        stats["averageRating"] = stats.get("averageRating") or 0
    else:
        stats = {
            "totalPdfs": 0,
            "totalViews": 0,
            "totalDownloads": 0,
            "totalLikes": 0,
            "averageRating": 0,
        }
    return {
        "statistics": stats,
        "genreDistribution": [{"genre": row["_id"], "count": row["count"]} for row in by_genre],
    }
