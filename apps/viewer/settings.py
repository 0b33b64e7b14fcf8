from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CaptureSettings(BaseModel):
    adapter: Literal["opencv", "mss"] = "opencv"  # "mss" grabs the screen instead of a camera
    device_index: int = 0
    front_device_index: int | None = None
    monitor: int = 1
    target_fps: float = 15.0
    rotation_degrees: Literal[0, 90, 180, 270] = 0
    frame_width: int | None = None
    frame_height: int | None = None


class RecognitionSettings(BaseModel):
    adapter: Literal["tesseract", "fake"] = "tesseract"
    lang: str = "eng"
    config: str = ""
    min_confidence: float = 40.0
    timeout_s: float = Field(default=5.0, ge=0.0)  # 0 disables the timeout
    tesseract_cmd: str | None = None


class StorageSettings(BaseModel):
    pictures_dir: str = "~/Pictures"
    album: str = "textlens"


class ViewerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TXL_", extra="ignore")

    window_title: str = "textlens"
    viewport_width: int = 960
    viewport_height: int = 540
    log_level: str = "INFO"

    capture: CaptureSettings = CaptureSettings()
    recognition: RecognitionSettings = RecognitionSettings()
    storage: StorageSettings = StorageSettings()
