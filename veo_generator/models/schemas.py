import base64
import binascii
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AspectRatio(str, Enum):
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"


class Resolution(str, Enum):
    HD = "720p"
    FULL_HD = "1080p"


class ImageInput(BaseModel):
    """Reference image sent inline with the request."""

    model_config = ConfigDict(frozen=True)

    data: str = Field(..., description="Base64-encoded image bytes")
    mime_type: str = Field(..., description="Image MIME type, e.g. image/png")

    @field_validator("data")
    @classmethod
    def must_be_base64(cls, value: str) -> str:
        # Accept data URLs as produced by FileReader.readAsDataURL.
        if value.startswith("data:") and "," in value:
            value = value.split(",", 1)[1]
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("Image data must be base64 encoded.") from exc
        return value

    @field_validator("mime_type")
    @classmethod
    def must_be_image(cls, value: str) -> str:
        value = value.strip().lower()
        if not value.startswith("image/"):
            raise ValueError("Reference file must be an image.")
        return value

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.data)


class GenerationConfig(BaseModel):
    """Parameters of one generation request, as collected by the form."""

    model_config = ConfigDict(frozen=True)

    prompt: str = Field(..., description="Text prompt for Veo")
    image: Optional[ImageInput] = None
    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE
    # Accepted but not sent; the Veo endpoint does not take them yet.
    sound_enabled: bool = True
    resolution: Resolution = Resolution.FULL_HD


class VideoJobResponse(BaseModel):
    job_id: str
    status: str


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    detail: Optional[str] = None
    progress: List[str] = Field(default_factory=list)
    video_url: Optional[str] = None
    download_url: Optional[str] = None
    created_at: Optional[datetime] = None
