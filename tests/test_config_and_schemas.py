import pytest
from pydantic import ValidationError

from veo_generator.config import Settings
from veo_generator.models.schemas import GenerationConfig, ImageInput


def test_blank_api_key_counts_as_missing(tmp_path):
    settings = Settings(_env_file=None, gemini_api_key="   ", output_local_dir=str(tmp_path))
    assert settings.gemini_api_key is None


def test_settings_read_environment(tmp_path, monkeypatch):
    out = tmp_path / "out"
    monkeypatch.setenv("GEMINI_API_KEY", "env-key")
    monkeypatch.setenv("POLL_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("OUTPUT_LOCAL_DIR", str(out))
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.gemini_api_key == "env-key"
    assert settings.poll_max_attempts == 5
    assert settings.poll_timeout_seconds is None
    assert settings.poll_interval_seconds == 10.0
    assert settings.log_level == "DEBUG"
    assert out.is_dir()


def test_image_accepts_data_url():
    image = ImageInput(data="data:image/png;base64,iVBORw0KGgo=", mime_type="IMAGE/PNG")

    assert image.data == "iVBORw0KGgo="
    assert image.mime_type == "image/png"
    assert image.to_bytes() == b"\x89PNG\r\n\x1a\n"


def test_image_rejects_non_image_mime_type():
    with pytest.raises(ValidationError):
        ImageInput(data="iVBORw0KGgo=", mime_type="video/mp4")


def test_generation_config_is_immutable():
    config = GenerationConfig(prompt="a fox")

    with pytest.raises(ValidationError):
        config.prompt = "a wolf"


def test_generation_config_rejects_unknown_aspect_ratio():
    with pytest.raises(ValidationError):
        GenerationConfig(prompt="a fox", aspect_ratio="4:3")
