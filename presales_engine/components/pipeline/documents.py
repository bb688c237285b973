"""
Scope document loading.

Word documents are read with python-docx (paragraphs, then table rows);
anything else is decoded as UTF-8 text. Binary content that cannot be
decoded is replaced by a short placeholder describing the file.
"""

import asyncio
import logging
from pathlib import Path

from docx import Document

from presales_engine.components.base.exceptions import NotFoundError

logger = logging.getLogger(__name__)

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _read_docx(path: Path) -> str:
    doc = Document(str(path))
    lines = [p.text.strip() for p in doc.paragraphs if p.text.strip()]
    for table in doc.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            if any(cells):
                lines.append(" | ".join(cells))
    return "\n".join(lines)


def _read_text(path: Path, mime_type: str) -> str:
    data = path.read_bytes()
    if not data:
        return ""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        effective_mime = mime_type or "application/octet-stream"
        logger.warning(f"Unable to inline scope document {path.name} ({effective_mime}) as text")
        return (
            f"[Scope document: {path.name} ({effective_mime}), {len(data)} bytes. "
            "Binary content could not be inlined. Focus on instructions and context.]"
        )


async def load_scope_document(path: str, mime_type: str = "") -> str:
    """Return the text of a scope document.

    Raises:
        NotFoundError: If the document does not exist
    """
    document_path = Path(path) if path else None
    if document_path is None or not document_path.is_file():
        raise NotFoundError(f"Scope document not found: {path}", component="document_loader")

    if document_path.suffix.lower() == ".docx" or mime_type == DOCX_MIME_TYPE:
        return await asyncio.to_thread(_read_docx, document_path)
    return await asyncio.to_thread(_read_text, document_path, mime_type)
