import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


class ImageAnalysis(BaseModel):
    """Attribute profile produced by the vision model for one photo."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    detailed_prompt: str = ""
    age_range: str = ""
    body_type: str = ""
    facial_features: str = ""
    sexy_level: str = ""
    pose: str = ""
    clothing: str = ""
    hair: str = ""
    hair_color: str = ""
    background: str = ""
    ethnicity: str = ""
    skin_tone: str = ""
    eye_color: str = ""
    makeup_style: str = ""
    body_proportions: str = ""

    @model_validator(mode="before")
    @classmethod
    def _alias_style_level(cls, data: Any) -> Any:
        # Newer analyzers report the style under "style_level"
        if isinstance(data, dict) and data.get("style_level"):
            data = {**data, "sexy_level": data["style_level"]}
        return data

    @field_validator("*", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return ", ".join(str(v) for v in value if v)
        return str(value).strip()


class VideoStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class GeneratedVideo(BaseModel):
    id: str = Field(default_factory=lambda: new_id("video"))
    video_url: str = ""
    prompt: str = ""
    caption: str = ""
    source_image_url: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    status: VideoStatus = VideoStatus.COMPLETED
    error: Optional[str] = None


class SlotStatus(str, Enum):
    LOADING = "loading"
    COMPLETED = "completed"
    FAILED = "failed"


class ImageSlot(BaseModel):
    index: int
    prompt: str
    status: SlotStatus = SlotStatus.LOADING
    url: Optional[str] = None
    error: Optional[str] = None


class JobStatus(str, Enum):
    ANALYZING = "analyzing"
    GENERATING_IMAGE = "generating-image"
    IMAGE_READY = "image-ready"
    GENERATING_VIDEOS = "generating-videos"
    COMPLETED = "completed"
    FAILED = "failed"


class GenerationJob(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: new_id("job"))
    created_at: datetime = Field(default_factory=_utcnow)
    original_image: str = ""
    image_analysis: Optional[ImageAnalysis] = None
    image_prompt: Optional[str] = None
    video_prompt: Optional[str] = None
    image_slots: List[ImageSlot] = Field(default_factory=list)
    regenerated_image_urls: List[str] = Field(default_factory=list)
    selected_image_urls: List[str] = Field(default_factory=list)
    videos: List[GeneratedVideo] = Field(default_factory=list)
    status: JobStatus = JobStatus.ANALYZING
    error: Optional[str] = None


class ApiKeys(BaseModel):
    model_config = ConfigDict(extra="ignore")

    kie: str = Field(default="", repr=False)
    openai: Optional[str] = Field(default=None, repr=False)
    n8n_webhook: Optional[str] = None
    google_drive_folder_id: Optional[str] = None
    facebook_page_id: Optional[str] = None
    facebook_access_token: Optional[str] = Field(default=None, repr=False)

    @field_validator("kie", mode="before")
    @classmethod
    def _strip_key(cls, value: Any) -> str:
        return (value or "").strip()


class VideoOptions(BaseModel):
    duration: str = "5"
    resolution: Literal["720p", "1080p"] = "720p"

    @field_validator("duration", mode="before")
    @classmethod
    def _check_duration(cls, value: Any) -> str:
        text = str(value).strip()
        if not text.isdigit() or not 1 <= int(text) <= 10:
            raise ValueError("duration must be a whole number of seconds between 1 and 10")
        return str(int(text))


class ProgressEvent(BaseModel):
    stage: Literal["image", "video"]
    index: int
    total: int
    status: SlotStatus
    url: Optional[str] = None
    error: Optional[str] = None
