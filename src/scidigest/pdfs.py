"""
Local PDF store -- full texts kept beside the library, never in it.

PDFs are far too large for the document's storage quota, so each one is
a plain file keyed by article id, with a small JSON sidecar recording
the original filename and when it was stored. PDFs are local-only: they
are not part of backups and never travel with cloud sync.

Layout:
    ~/.scidigest/pdfs/
    ├── <article-id>.pdf
    └── <article-id>.meta.json
"""

from __future__ import annotations

import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import Field, ValidationError

from .config import resolve_home
from .models import LibraryModel
from .storage import StorageError

logger = logging.getLogger("scidigest.pdfs")

_ID_RE = re.compile(r"[A-Za-z0-9._-]+")


class PdfRecord(LibraryModel):
    """Sidecar metadata for one stored PDF."""

    id: str
    name: Optional[str] = None
    size: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PdfStore:
    """Blob store for article PDFs under ``<home>/pdfs``.

    Args:
        root: Directory holding the PDF files.
    """

    def __init__(self, root: Path) -> None:
        self.root = root.expanduser()

    @classmethod
    def open(cls, home: Optional[Path] = None) -> "PdfStore":
        return cls(resolve_home(home) / "pdfs")

    def _paths(self, pdf_id: str) -> tuple[Path, Path]:
        if not _ID_RE.fullmatch(pdf_id):
            raise ValueError(f"Invalid PDF id: {pdf_id!r}")
        return self.root / f"{pdf_id}.pdf", self.root / f"{pdf_id}.meta.json"

    def put_pdf(self, pdf_id: str, data: bytes, name: Optional[str] = None) -> PdfRecord:
        """Store *data* under *pdf_id*, replacing any earlier copy.

        Raises:
            ValueError: If the id is not a plain identifier.
            StorageError: If the filesystem rejects the write.
        """
        pdf_path, meta_path = self._paths(pdf_id)
        record = PdfRecord(id=pdf_id, name=name, size=len(data))
        tmp_path = self.root / f".{pdf_id}.pdf.tmp"
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            os.replace(tmp_path, pdf_path)
            meta_path.write_text(record.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to store PDF '{pdf_id}': {exc}") from exc

        logger.info("Stored PDF %s (%d bytes)", pdf_id, len(data))
        return record

    def get_pdf(self, pdf_id: str) -> Optional[bytes]:
        """Raw PDF bytes, or None when nothing is stored under *pdf_id*."""
        pdf_path, _ = self._paths(pdf_id)
        try:
            return pdf_path.read_bytes()
        except FileNotFoundError:
            return None

    def get_record(self, pdf_id: str) -> Optional[PdfRecord]:
        pdf_path, meta_path = self._paths(pdf_id)
        if not pdf_path.exists():
            return None
        try:
            return PdfRecord.model_validate_json(meta_path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            logger.warning("PDF metadata for %s unreadable: %s", pdf_id, exc)
            return PdfRecord(id=pdf_id, size=pdf_path.stat().st_size)

    def has_pdf(self, pdf_id: str) -> bool:
        return self._paths(pdf_id)[0].exists()

    def delete_pdf(self, pdf_id: str) -> bool:
        """Remove a stored PDF. Returns False when there was none."""
        pdf_path, meta_path = self._paths(pdf_id)
        existed = pdf_path.exists()
        pdf_path.unlink(missing_ok=True)
        meta_path.unlink(missing_ok=True)
        if existed:
            logger.info("Deleted PDF %s", pdf_id)
        return existed

    def list_pdfs(self) -> list[PdfRecord]:
        if not self.root.exists():
            return []
        records = []
        for path in sorted(self.root.glob("*.pdf")):
            record = self.get_record(path.stem)
            if record is not None:
                records.append(record)
        return records
