from __future__ import annotations

from argparse import Namespace

from lingoai.app import services as app_services
from lingoai.app.store import KeyValueStore, MemoryStore


def _args(provider: str, persist: bool = False) -> Namespace:
    return Namespace(
        provider=provider,
        text_model="gpt-4o-mini",
        tts_model="gpt-4o-mini-tts",
        tts_voice="alloy",
        transcribe_model="gpt-4o-mini-transcribe",
        persist=persist,
        output_device=None,
        capture_sr=16000,
        frame_size=2048,
        device=3,
    )


def test_build_services_openai_options(monkeypatch) -> None:
    captured: dict[str, object] = {}

    def _fake_get_service(provider, **options):
        captured["provider"] = provider
        captured.update(options)
        return object()

    monkeypatch.setattr(app_services, "get_service", _fake_get_service)
    services = app_services.build_client_services(_args("openai"))
    assert captured["provider"] == "openai"
    assert captured["tts_voice"] == "alloy"
    assert isinstance(services.store, MemoryStore)

    capture = services.capture_factory()
    assert capture.sample_rate == 16000
    assert capture.frame_size == 2048
    assert capture.device == 3


def test_build_services_argos_without_model_options(monkeypatch, tmp_path) -> None:
    captured: dict[str, object] = {}

    def _fake_get_service(provider, **options):
        captured["provider"] = provider
        captured["options"] = options
        return object()

    monkeypatch.setattr(app_services, "get_service", _fake_get_service)
    monkeypatch.setattr(app_services, "KeyValueStore", lambda: KeyValueStore(tmp_path / "state.json"))
    services = app_services.build_client_services(_args("argos", persist=True))
    assert captured["options"] == {}
    assert isinstance(services.store, KeyValueStore)
