import os
from dotenv import load_dotenv
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Load .env file if it exists (for local development)
env_path = os.path.join(os.path.dirname(__file__), "..", ".env")
if os.path.exists(env_path):
    load_dotenv(env_path)
    logger.info("Loaded .env file for local development")
else:
    logger.info("No .env file found, using environment variables")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


def _optional_timeout_ms(name: str, default: int):
    # 0 or negative disables the bound entirely
    value = _int_env(name, default)
    return value if value > 0 else None


KIE_API_BASE_URL = os.getenv("KIE_API_BASE_URL", "https://api.kie.ai/api/v1").rstrip("/")
KIE_API_KEY = os.getenv("KIE_API_KEY", "")

IMAGE_MODEL_ID = os.getenv("IMAGE_MODEL_ID", "bytedance/seedream-v4-text-to-image")
VIDEO_MODEL_ID = os.getenv("VIDEO_MODEL_ID", "wan/2-5-image-to-video")

IMAGE_SIZE = os.getenv("IMAGE_SIZE", "portrait_16_9")
IMAGE_RESOLUTION = os.getenv("IMAGE_RESOLUTION", "1K")
IMAGE_RENDERING_SPEED = os.getenv("IMAGE_RENDERING_SPEED", "BALANCED")
IMAGE_STYLE = os.getenv("IMAGE_STYLE", "REALISTIC")
IMAGE_NEGATIVE_PROMPT = "different person, altered face, cartoon, illustration, blur, distorted anatomy, extra limbs, low quality"
VIDEO_NEGATIVE_PROMPT = "blur, distort, low quality, deformed"

IMAGE_PROMPT_MAX_LENGTH = _int_env("IMAGE_PROMPT_MAX_LENGTH", 800)
VIDEO_PROMPT_MAX_LENGTH = _int_env("VIDEO_PROMPT_MAX_LENGTH", 500)

KIE_POLL_INTERVAL_MS = _int_env("KIE_POLL_INTERVAL_MS", 4000)
IMAGE_POLL_TIMEOUT_MS = _optional_timeout_ms("IMAGE_POLL_TIMEOUT_MS", 180000)
VIDEO_POLL_TIMEOUT_MS = _optional_timeout_ms("VIDEO_POLL_TIMEOUT_MS", 360000)

# Vision analysis: either the hosted analyze-image function or OpenAI directly
SUPABASE_URL = os.getenv("SUPABASE_URL", "").rstrip("/")
ANALYZE_IMAGE_URL = os.getenv("ANALYZE_IMAGE_URL", "").strip() or (
    f"{SUPABASE_URL}/functions/v1/analyze-image" if SUPABASE_URL else ""
)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_VISION_MODEL = os.getenv("OPENAI_VISION_MODEL", "gpt-4o-mini")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "").strip() or None

# Local persisted state; the REST store takes over when configured
STATE_DIR = os.getenv("STATE_DIR", os.path.join(os.path.expanduser("~"), ".dance_video"))
KV_REST_API_URL = os.getenv("KV_REST_API_URL", "").strip()
KV_REST_API_TOKEN = os.getenv("KV_REST_API_TOKEN", "").strip()

DIVERSE_IMAGE_COUNT = _int_env("DIVERSE_IMAGE_COUNT", 4)
ARCHIVE_FAILED_JOBS = os.getenv("ARCHIVE_FAILED_JOBS", "false").lower() == "true"

MAX_UPLOAD_BYTES = _int_env("MAX_UPLOAD_BYTES", 10 * 1024 * 1024)

DEFAULT_VIDEO_DURATION = os.getenv("DEFAULT_VIDEO_DURATION", "5")
DEFAULT_VIDEO_RESOLUTION = os.getenv("DEFAULT_VIDEO_RESOLUTION", "720p")


def default_api_keys():
    """Credentials seeded from the environment, or None when no Kie key is set."""
    from .models import ApiKeys

    if not KIE_API_KEY:
        logger.warning("KIE_API_KEY is not set; configure credentials before generating")
        return None
    return ApiKeys(kie=KIE_API_KEY, openai=OPENAI_API_KEY or None)
