"""
PDF library APIs.

Upload, public listing, detail, engagement (view/like/rating/comments),
download, approval and soft delete. Handlers stay thin: validation and
persistence live in services/library_service.py.

Static paths (/my-pdfs, /genres/list, ...) are declared before /{pdf_id}
so they are not captured by the id route.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import FileResponse

from study_vault.api.auth import get_current_user, get_optional_user, require_admin
from study_vault.errors import ValidationError
from study_vault.models.user import User
from study_vault.schemas import CommentRequest, PdfListQuery, RatingRequest
from study_vault.services import library_service
from study_vault.services.library_service import UploadedFile, parse_object_id
from study_vault.workers.pdf_processor import process_pdf

logger = logging.getLogger(__name__)
router = APIRouter()


def listing_query(
    page: int = 1,
    limit: int = 20,
    sort_by: Annotated[str, Query(alias="sortBy")] = "createdAt",
    sort_order: Annotated[str, Query(alias="sortOrder")] = "desc",
    genre: Optional[str] = None,
    sub_genre: Annotated[Optional[str], Query(alias="subGenre")] = None,
    search: Optional[str] = None,
    language: Optional[str] = None,
    uploader: Optional[str] = None,
    min_rating: Annotated[Optional[float], Query(alias="minRating")] = None,
    max_rating: Annotated[Optional[float], Query(alias="maxRating")] = None,
) -> PdfListQuery:
    """Collect the query string into a PdfListQuery (400 on bad values)."""
    fields = {
        "page": page,
        "limit": limit,
        "sort_by": sort_by,
        "sort_order": sort_order,
        "genre": genre or None,
        "sub_genre": sub_genre or None,
        "search": search or None,
        "language": language or None,
        "uploader": uploader or None,
        "min_rating": min_rating,
        "max_rating": max_rating,
    }
    return library_service.parse_listing_query(fields)


@router.post(
    "/upload",
    status_code=status.HTTP_201_CREATED,
    response_model=dict,
    summary="Upload a PDF document",
)
async def upload_pdf(
    background_tasks: BackgroundTasks,
    current_user: Annotated[User, Depends(get_current_user)],
    pdf: Annotated[Optional[UploadFile], File()] = None,
    title: Annotated[Optional[str], Form()] = None,
    genre: Annotated[Optional[str], Form()] = None,
    description: Annotated[Optional[str], Form()] = None,
    sub_genre: Annotated[Optional[str], Form(alias="subGenre")] = None,
    tags: Annotated[Optional[str], Form()] = None,
    author: Annotated[Optional[str], Form()] = None,
    publisher: Annotated[Optional[str], Form()] = None,
    publication_year: Annotated[Optional[str], Form(alias="publicationYear")] = None,
    isbn: Annotated[Optional[str], Form()] = None,
    language: Annotated[Optional[str], Form()] = None,
    page_count: Annotated[Optional[str], Form(alias="pageCount")] = None,
    is_public: Annotated[Optional[str], Form(alias="isPublic")] = None,
) -> dict:
    """
    Accept a PDF (multipart field "pdf") plus metadata, store it with
    status=pending and schedule page counting. The document shows up in
    listings only after an admin approves it.
    """
    if pdf is None or not pdf.filename:
        raise ValidationError("No PDF file provided")

    form = library_service.parse_upload_form(
        {
            "title": title,
            "genre": genre,
            "description": description,
            "sub_genre": sub_genre,
            "tags": tags,
            "author": author,
            "publisher": publisher,
            "publication_year": publication_year,
            "isbn": isbn,
            "language": language,
            "page_count": page_count,
            "is_public": is_public,
        }
    )
    upload = UploadedFile(
        filename=pdf.filename,
        content_type=pdf.content_type,
        content=await pdf.read(),
    )
    doc = await library_service.upload_pdf(upload, form, current_user)

    if doc.page_count is None:
        # Runs after the response is sent
        background_tasks.add_task(process_pdf, doc.id)

    return {
        "success": True,
        "message": "PDF uploaded successfully",
        "pdf": doc.to_public(current_user.id),
    }


@router.get("", response_model=dict, summary="List public PDFs")
async def list_pdfs(query: Annotated[PdfListQuery, Depends(listing_query)]) -> dict:
    pdfs, pagination = await library_service.list_pdfs(query)
    return {
        "success": True,
        "pdfs": [p.to_summary() for p in pdfs],
        "pagination": pagination,
    }


@router.get("/my-pdfs", response_model=dict, summary="List my uploads")
async def list_my_pdfs(
    query: Annotated[PdfListQuery, Depends(listing_query)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    pdfs, pagination = await library_service.list_user_pdfs(current_user.id, query, current_user)
    return {
        "success": True,
        "pdfs": [p.to_summary() for p in pdfs],
        "pagination": pagination,
    }


@router.get("/user/{user_id}", response_model=dict, summary="List a user's uploads")
async def list_user_pdfs(
    user_id: str,
    query: Annotated[PdfListQuery, Depends(listing_query)],
    viewer: Annotated[Optional[User], Depends(get_optional_user)],
) -> dict:
    owner_id = parse_object_id(user_id, "User")
    pdfs, pagination = await library_service.list_user_pdfs(owner_id, query, viewer)
    return {
        "success": True,
        "pdfs": [p.to_summary() for p in pdfs],
        "pagination": pagination,
    }


@router.get("/genres/list", response_model=dict, summary="Available genres")
async def list_genres() -> dict:
    return {"success": True, "genres": library_service.genres()}


@router.get("/statistics/overview", response_model=dict, summary="Catalogue statistics")
async def statistics_overview() -> dict:
    result = await library_service.statistics()
    return {"success": True, **result}


@router.get("/{pdf_id}", response_model=dict, summary="Get a PDF")
async def get_pdf(
    pdf_id: str,
    viewer: Annotated[Optional[User], Depends(get_optional_user)],
) -> dict:
    doc = await library_service.get_pdf(parse_object_id(pdf_id))
    return {"success": True, "pdf": doc.to_public(viewer.id if viewer else None)}


@router.post("/{pdf_id}/view", response_model=dict, summary="Count a view")
async def increment_view(pdf_id: str) -> dict:
    view_count = await library_service.increment_view(parse_object_id(pdf_id))
    return {"success": True, "viewCount": view_count}


@router.get("/{pdf_id}/download", summary="Download the PDF file")
async def download_pdf(pdf_id: str) -> FileResponse:
    doc = await library_service.prepare_download(parse_object_id(pdf_id))
    return FileResponse(
        doc.file_path,
        media_type="application/pdf",
        filename=doc.metadata.original_name,
    )


@router.post("/{pdf_id}/like", response_model=dict, summary="Toggle like")
async def toggle_like(
    pdf_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    is_liked, like_count = await library_service.toggle_like(parse_object_id(pdf_id), current_user)
    return {"success": True, "isLiked": is_liked, "likeCount": like_count}


@router.post("/{pdf_id}/rating", response_model=dict, summary="Rate a PDF")
async def rate_pdf(
    pdf_id: str,
    body: RatingRequest,
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    summary = await library_service.rate_pdf(
        parse_object_id(pdf_id), current_user, body.rating, body.review
    )
    return {
        "success": True,
        "message": "Rating added successfully",
        "rating": summary.model_dump(),
    }


@router.post("/{pdf_id}/comments", response_model=dict, summary="Comment on a PDF")
async def add_comment(
    pdf_id: str,
    body: CommentRequest,
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    comment = await library_service.comment_on_pdf(parse_object_id(pdf_id), current_user, body.content)
    return {
        "success": True,
        "message": "Comment added successfully",
        "comment": comment.to_public(),
    }


@router.post("/{pdf_id}/approve", response_model=dict, summary="Approve a PDF (admin)")
async def approve_pdf(
    pdf_id: str,
    admin: Annotated[User, Depends(require_admin)],
) -> dict:
    doc = await library_service.approve_pdf(parse_object_id(pdf_id), admin)
    return {
        "success": True,
        "message": "PDF approved successfully",
        "pdf": doc.to_summary(),
    }


@router.delete("/{pdf_id}", response_model=dict, summary="Delete a PDF (soft)")
async def delete_pdf(
    pdf_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    await library_service.delete_pdf(parse_object_id(pdf_id), current_user)
    return {"success": True, "message": "PDF deleted successfully"}
