from __future__ import annotations

import re
from typing import Iterator

from lingoai.audio.pcm import base64_to_bytes
from lingoai.contracts import AUTO, TranslationRequest, TranslationResult
from lingoai.service.base import (
    ServiceFailure,
    TranslationService,
    VoiceSession,
    VoiceSessionCallbacks,
    VoiceSessionConfig,
)

_SENTENCE_RE = re.compile(r"[^.!?\n]+[.!?]*\s*|\n")
_TEXT_MIME_TYPES = {"text/plain", "text/markdown"}


class ArgosService(TranslationService):
    """
    Offline text translation through Argos Translate.
    Language detection, speech and live voice are not available.
    """

    def __init__(self, auto_install: bool = True):
        self.auto_install = auto_install
        self._ready: set[tuple[str, str]] = set()

    @property
    def name(self) -> str:
        return "argos"

    def _ensure_ready(self, from_code: str, to_code: str) -> None:
        if from_code == AUTO:
            raise ServiceFailure("Argos cannot detect the source language; choose one explicitly.")
        if (from_code, to_code) in self._ready:
            return

        import argostranslate.package
        import argostranslate.translate

        installed = argostranslate.translate.get_installed_languages()
        have_from = any(l.code == from_code for l in installed)
        have_to = any(l.code == to_code for l in installed)

        if not (have_from and have_to):
            if not self.auto_install:
                raise ServiceFailure("Argos model not installed and auto_install=False")

            argostranslate.package.update_package_index()
            available = argostranslate.package.get_available_packages()

            pkg = None
            for p in available:
                if p.from_code == from_code and p.to_code == to_code:
                    pkg = p
                    break
            if pkg is None:
                raise ServiceFailure(f"No Argos package found for {from_code}->{to_code}")

            path = pkg.download()
            argostranslate.package.install_from_path(path)

        self._ready.add((from_code, to_code))

    def _translate(self, text: str, from_code: str, to_code: str) -> str:
        self._ensure_ready(from_code, to_code)
        import argostranslate.translate

        return argostranslate.translate.translate(text, from_code, to_code)

    def translate(self, req: TranslationRequest) -> TranslationResult:
        out = self._translate(req.source_text, req.source_lang, req.target_lang)
        return TranslationResult(translated_text=out, detected_language=req.source_lang, confidence=1.0)

    def translate_stream(self, req: TranslationRequest) -> Iterator[str]:
        self._ensure_ready(req.source_lang, req.target_lang)
        for piece in _SENTENCE_RE.findall(req.source_text):
            if not piece.strip():
                yield piece
                continue
            trailing = piece[len(piece.rstrip()) :]
            yield self._translate(piece.strip(), req.source_lang, req.target_lang) + trailing

    def translate_document(
        self,
        base64_content: str,
        mime_type: str,
        source_lang: str,
        target_lang: str,
    ) -> str:
        if mime_type not in _TEXT_MIME_TYPES:
            raise ServiceFailure(f"Argos can only translate plain text documents, not {mime_type}")
        body = base64_to_bytes(base64_content).decode("utf-8", errors="replace")
        return self._translate(body, source_lang, target_lang)

    def synthesize_speech(self, text: str) -> bytes:
        raise ServiceFailure("Speech synthesis is not supported by the argos provider.")

    def open_voice_session(
        self,
        config: VoiceSessionConfig,
        callbacks: VoiceSessionCallbacks,
    ) -> VoiceSession:
        raise ServiceFailure("Live voice input is not supported by the argos provider.")
