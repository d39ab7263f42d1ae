from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from lingoai.app.logging_setup import log_event
from lingoai.audio.pcm import bytes_to_base64
from lingoai.service.base import TranslationService

SUPPORTED_MIME_TYPES = ("text/plain", "text/markdown", "application/pdf")

_EXTENSION_MIME_TYPES = {
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".pdf": "application/pdf",
}


class UnsupportedDocumentError(ValueError):
    pass


@dataclass(frozen=True)
class TranslatedDocument:
    source_path: Path
    mime_type: str
    text: str

    def default_output_path(self) -> Path:
        stem = self.source_path.stem or "document"
        return self.source_path.with_name(f"translated_{stem}.txt")


def guess_document_mime(path: Path) -> str:
    mime = _EXTENSION_MIME_TYPES.get(path.suffix.lower())
    if mime is None:
        mime, _ = mimetypes.guess_type(str(path))
    if mime not in SUPPORTED_MIME_TYPES:
        raise UnsupportedDocumentError("Unsupported file type. Please upload a PDF or TXT file.")
    return mime


class DocumentTranslator:
    """Whole-document translation; the service does any content extraction."""

    def __init__(self, service: TranslationService, logger: logging.Logger | None = None) -> None:
        self.service = service
        self.logger = logger or logging.getLogger("lingoai.app.document")

    def translate_file(self, path: Path, source_lang: str, target_lang: str) -> TranslatedDocument:
        mime = guess_document_mime(path)
        content = bytes_to_base64(path.read_bytes())
        log_event(self.logger, logging.INFO, "document_translate_start", path=str(path), mime=mime)
        text = self.service.translate_document(content, mime, source_lang, target_lang)
        log_event(self.logger, logging.INFO, "document_translate_done", path=str(path), chars=len(text))
        return TranslatedDocument(source_path=path, mime_type=mime, text=text)

    @staticmethod
    def save_translation(doc: TranslatedDocument, output: Optional[Path] = None) -> Path:
        out = output or doc.default_output_path()
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(doc.text, encoding="utf-8")
        return out
