"""
Background processing for new uploads.

Runs as a FastAPI BackgroundTask after upload so the client gets 201 right
away. The only job today is filling page_count when the uploader left it
blank. A file PyPDF2 cannot read keeps page_count=None; the upload itself
is never failed from here.
"""

import asyncio
import logging
from typing import Optional

from beanie import PydanticObjectId

from study_vault.models.pdf import Pdf
from study_vault.services.pdf_service import count_pages

logger = logging.getLogger(__name__)


async def process_pdf(pdf_id: PydanticObjectId) -> None:
    pdf: Optional[Pdf] = await Pdf.get(pdf_id)
    if not pdf:
        logger.error("PDF not found: %s", pdf_id)
        return
    if pdf.page_count is not None:
        logger.debug("PDF %s already has page_count=%d; skipping.", pdf_id, pdf.page_count)
        return

    try:
        # PyPDF2 parsing is blocking; run in thread pool to avoid blocking event loop
        pages = await asyncio.to_thread(count_pages, pdf.file_path)
    except FileNotFoundError:
        logger.error("File missing for PDF %s: %s", pdf_id, pdf.file_path)
        return
    except Exception as e:
        logger.exception("Could not read pages of PDF %s: %s", pdf_id, e)
        return

    # Field-level $set so a like or rating saved meanwhile is not overwritten
    await pdf.set({Pdf.page_count: pages})
    logger.info("PDF %s: %d pages", pdf_id, pages)
