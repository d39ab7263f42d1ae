from __future__ import annotations

import json
import logging
import os
import threading
from typing import Any, Iterator, Optional

from lingoai.audio.pcm import (
    base64_to_bytes,
    bytes_to_base64,
    float_to_pcm16,
    parse_pcm_rate,
    pcm16_to_float,
    resample_linear,
)
from lingoai.contracts import AUTO, PCMBlob, TranslationRequest, TranslationResult, VoiceMessage
from lingoai.service.base import (
    MalformedResponseError,
    ServiceFailure,
    TranslationService,
    VoiceSession,
    VoiceSessionCallbacks,
    VoiceSessionConfig,
    parse_translation_payload,
)

_TEXT_MIME_TYPES = {"text/plain", "text/markdown"}


def _source_phrase(source_lang: str) -> str:
    return "automatically detected language" if source_lang == AUTO else source_lang


def _structured_prompt(req: TranslationRequest) -> str:
    return (
        f"Translate the following text from {_source_phrase(req.source_lang)} to {req.target_lang}.\n"
        f'Original Text: "{req.source_text}"\n\n'
        "If source language is 'auto', first detect the language.\n"
        'Return only a JSON object with properties: "translatedText", "detectedLanguage", "confidence".'
    )


def _stream_prompt(req: TranslationRequest) -> str:
    return (
        f"Translate the following text from {_source_phrase(req.source_lang)} to {req.target_lang}.\n"
        f'Original Text: "{req.source_text}"\n\n'
        "Translate naturally and preserve context. "
        "Just return the translated text without any other labels or formatting."
    )


def _document_prompt(source_lang: str, target_lang: str) -> str:
    source_hint = (
        "Detect the source language automatically."
        if source_lang == AUTO
        else f"The source language is {source_lang}."
    )
    return (
        f"You are a professional document translator. Translate the content of this document into {target_lang}. "
        f"{source_hint} Return ONLY the translated text. Preserve the original structure, headings, "
        "and formatting as much as possible in a plain text format."
    )


class OpenAIService(TranslationService):
    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        text_model: str = "gpt-4o-mini",
        tts_model: str = "gpt-4o-mini-tts",
        tts_voice: str = "coral",
        transcribe_model: str = "gpt-4o-mini-transcribe",
        logger: logging.Logger | None = None,
    ) -> None:
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.text_model = text_model
        self.tts_model = tts_model
        self.tts_voice = tts_voice
        self.transcribe_model = transcribe_model
        self.logger = logger or logging.getLogger("lingoai.service.openai")
        self._client = None

    @property
    def name(self) -> str:
        return "openai"

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def _complete(self, **params: Any) -> Any:
        from openai import OpenAIError

        try:
            return self._get_client().chat.completions.create(model=self.text_model, **params)
        except OpenAIError as e:
            raise ServiceFailure(str(e) or "translation request failed") from e

    def translate(self, req: TranslationRequest) -> TranslationResult:
        resp = self._complete(
            messages=[{"role": "user", "content": _structured_prompt(req)}],
            response_format={"type": "json_object"},
        )
        content = resp.choices[0].message.content if resp.choices else None
        if not content:
            raise MalformedResponseError("empty structured translation response")
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"structured translation response is not JSON: {e}") from e
        return parse_translation_payload(payload)

    def translate_stream(self, req: TranslationRequest) -> Iterator[str]:
        from openai import OpenAIError

        stream = self._complete(
            messages=[{"role": "user", "content": _stream_prompt(req)}],
            stream=True,
        )
        # Closing the generator early must release the HTTP response too.
        try:
            with stream:
                for chunk in stream:
                    if not chunk.choices:
                        continue
                    piece = chunk.choices[0].delta.content
                    if piece:
                        yield piece
        except OpenAIError as e:
            raise ServiceFailure(str(e) or "translation stream failed") from e

    def translate_document(
        self,
        base64_content: str,
        mime_type: str,
        source_lang: str,
        target_lang: str,
    ) -> str:
        prompt = _document_prompt(source_lang, target_lang)
        if mime_type in _TEXT_MIME_TYPES:
            body = base64_to_bytes(base64_content).decode("utf-8", errors="replace")
            content: Any = f"{prompt}\n\n---\n{body}"
        else:
            content = [
                {
                    "type": "file",
                    "file": {
                        "filename": "document",
                        "file_data": f"data:{mime_type};base64,{base64_content}",
                    },
                },
                {"type": "text", "text": prompt},
            ]
        resp = self._complete(messages=[{"role": "user", "content": content}])
        text = resp.choices[0].message.content if resp.choices else None
        if not text:
            raise MalformedResponseError("empty document translation response")
        return text

    def synthesize_speech(self, text: str) -> bytes:
        from openai import OpenAIError

        try:
            resp = self._get_client().audio.speech.create(
                model=self.tts_model,
                voice=self.tts_voice,
                input=text,
                instructions="Say clearly and naturally.",
                response_format="pcm",
            )
        except OpenAIError as e:
            raise ServiceFailure(str(e) or "speech synthesis failed") from e
        return bytes(resp.content or b"")

    def open_voice_session(
        self,
        config: VoiceSessionConfig,
        callbacks: VoiceSessionCallbacks,
    ) -> VoiceSession:
        session = RealtimeTranscriptionSession(
            api_key=self.api_key or "",
            model=self.transcribe_model,
            config=config,
            callbacks=callbacks,
            logger=self.logger,
        )
        session.start()
        return session


class RealtimeTranscriptionSession(VoiceSession):
    """
    OpenAI realtime transcription over a `websockets` sync connection.
    A receiver thread owns the socket and drives the callbacks.
    """

    WS_URL = "wss://api.openai.com/v1/realtime?intent=transcription"
    WIRE_SAMPLE_RATE = 24000
    EVENT_COMPLETED = "conversation.item.input_audio_transcription.completed"
    EVENT_ERROR = "error"

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        config: VoiceSessionConfig,
        callbacks: VoiceSessionCallbacks,
        logger: logging.Logger | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.config = config
        self.callbacks = callbacks
        self.logger = logger or logging.getLogger("lingoai.service.openai")
        self._ws = None
        self._closing = False
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._run,
            name="lingoai-voice-session",
            daemon=True,
        )
        self._thread.start()

    def _session_update(self) -> str:
        transcription: dict[str, Any] = {
            "model": self.model,
            "prompt": self.config.instructions,
        }
        if self.config.language:
            transcription["language"] = self.config.language
        return json.dumps(
            {
                "type": "transcription_session.update",
                "session": {
                    "input_audio_format": "pcm16",
                    "turn_detection": {
                        "type": "server_vad",
                        "threshold": 0.5,
                        "prefix_padding_ms": 300,
                        "silence_duration_ms": 500,
                    },
                    "input_audio_transcription": transcription,
                },
            }
        )

    def parse_event(self, raw: str | bytes) -> Optional[VoiceMessage]:
        event = json.loads(raw)
        kind = event.get("type", "")
        if kind == self.EVENT_ERROR:
            detail = (event.get("error") or {}).get("message") or "realtime session error"
            raise ServiceFailure(detail)
        if kind == self.EVENT_COMPLETED:
            return VoiceMessage(transcript=str(event.get("transcript") or ""), final=True, raw=event)
        return None

    def _run(self) -> None:
        from websockets.sync.client import connect

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "OpenAI-Beta": "realtime=v1",
        }
        try:
            with connect(self.WS_URL, additional_headers=headers, max_size=None) as ws:
                self._ws = ws
                ws.send(self._session_update())
                self.callbacks.on_open()
                for raw in ws:
                    message = self.parse_event(raw)
                    if message is not None:
                        self.callbacks.on_message(message)
        except Exception as e:
            if not self._closing:
                self.callbacks.on_error(e)
        finally:
            self._ws = None
            self.callbacks.on_close()

    def send(self, blob: PCMBlob) -> None:
        ws = self._ws
        if ws is None:
            raise ServiceFailure("voice session is not open")
        rate = parse_pcm_rate(blob.mime_type)
        audio = blob.data
        if rate != self.WIRE_SAMPLE_RATE:
            samples = pcm16_to_float(base64_to_bytes(audio), rate).samples
            audio = bytes_to_base64(float_to_pcm16(resample_linear(samples, rate, self.WIRE_SAMPLE_RATE)))
        ws.send(json.dumps({"type": "input_audio_buffer.append", "audio": audio}))

    def close(self) -> None:
        self._closing = True
        ws = self._ws
        if ws is not None:
            ws.close()
