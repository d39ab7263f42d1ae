from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Union

from lingoai.app.store import KeyValueStore, MemoryStore
from lingoai.audio.mic import SoundDeviceCapture
from lingoai.audio.playback import SoundDevicePlayer
from lingoai.service.base import TranslationService
from lingoai.service.factory import get_service


@dataclass(frozen=True)
class ClientServices:
    service: TranslationService
    store: Union[KeyValueStore, MemoryStore]
    player: SoundDevicePlayer
    capture_factory: Callable[[], SoundDeviceCapture]


def build_client_services(args: Any) -> ClientServices:
    options: dict[str, Any] = {}
    if str(args.provider) == "openai":
        options = {
            "text_model": str(args.text_model),
            "tts_model": str(args.tts_model),
            "tts_voice": str(args.tts_voice),
            "transcribe_model": str(args.transcribe_model),
        }
    service = get_service(str(args.provider), **options)
    store = KeyValueStore() if bool(args.persist) else MemoryStore()
    player = SoundDevicePlayer(device=args.output_device)

    def capture_factory() -> SoundDeviceCapture:
        return SoundDeviceCapture(
            sample_rate=int(args.capture_sr),
            frame_size=int(args.frame_size),
            device=args.device,
        )

    return ClientServices(
        service=service,
        store=store,
        player=player,
        capture_factory=capture_factory,
    )
