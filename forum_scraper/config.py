"""
Settings for the scraper service, loaded from ``config/settings.yaml`` and
validated into pydantic models. Missing sections fall back to the defaults
declared here.
"""
import os
import tempfile
from typing import Dict, List, Optional, Tuple

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from forum_scraper.logging_utils import get_logger

load_dotenv()

# --- Configuration ---
CONFIG_PATH_SETTINGS = os.getenv("FORUM_SCRAPER_SETTINGS", "config/settings.yaml")

DEFAULT_PORT = 3000
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

logger = get_logger("config")


def load_yaml_config(path: str, default: Dict = None) -> Dict:
    """Loads a YAML configuration file."""
    if default is None:
        default = {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or default
    except FileNotFoundError:
        logger.warning(f"Config file not found: {path}. Using defaults.", extra={"path": path, "event_type": "config_not_found"})
        return default
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML file {path}: {e}. Using defaults.", extra={"path": path, "event_type": "config_parse_error"})
        return default


class SessionSettings(BaseModel):
    profile_dir: str = "dropmms-api-profile"
    headless: bool = True
    args: List[str] = Field(default_factory=lambda: [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-infobars",
        "--window-size=1280,900",
        "--disable-blink-features=AutomationControlled",
    ])
    viewport: Dict[str, int] = Field(default_factory=lambda: {"width": 1280, "height": 900})
    user_agent: str = DEFAULT_USER_AGENT
    locale: str = "en-US"
    timezone_id: str = "Asia/Kolkata"
    bypass_csp: bool = True
    ignore_https_errors: bool = True
    stealth: bool = True

    def profile_path(self) -> str:
        """Absolute profile directory; relative names live under the temp dir."""
        if os.path.isabs(self.profile_dir):
            return self.profile_dir
        return os.path.join(tempfile.gettempdir(), self.profile_dir)


class NavigationSettings(BaseModel):
    timeout_ms: int = 60000
    wait_until: str = "networkidle"
    challenge_phrases: List[str] = Field(default_factory=lambda: ["Just a moment", "Attention Required"])
    # Delay ranges are (min, max) seconds.
    challenge_delay: Tuple[float, float] = (15.0, 25.0)
    settle_delay: Tuple[float, float] = (5.0, 8.0)
    post_scroll_delay: float = 3.0

    @field_validator("challenge_delay", "settle_delay")
    @classmethod
    def _ordered_range(cls, value):
        low, high = value
        if low < 0 or high < low:
            raise ValueError(f"invalid delay range {value!r}")
        return value


class ExtractionSettings(BaseModel):
    title_span_selector: str = "h1.ipsType_pageTitle span.ipsContained span"
    title_heading_selector: str = "h1.ipsType_pageTitle"
    content_wrapper_selector: str = ".cPost_contentWrap"
    default_title: str = "Untitled Thread"


class ClassificationRules(BaseModel):
    """Host substrings and image extensions used to sort links. Read-only."""
    model_config = ConfigDict(frozen=True)

    zip_hosts: Tuple[str, ...] = ("upfiles.com", "file-upload.org", "zapupload.top", "frdl.io")
    video_hosts: Tuple[str, ...] = (
        "strmup.cc",
        "luluvid.com",
        "vidnest.io",
        "vidoza.net",
        "streamtape.com",
        "vinovo.to",
        "up4fun.top",
    )
    image_extensions: Tuple[str, ...] = (".jpg", ".jpeg", ".png", ".gif", ".webp")

    @field_validator("zip_hosts", "video_hosts", "image_extensions")
    @classmethod
    def _lowercase(cls, value):
        return tuple(item.strip().lower() for item in value if item and item.strip())


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    allowed_prefixes: List[str] = Field(default_factory=lambda: [
        "http://dropmms.co",
        "https://dropmms.co",
        "https://videmms24.com",
    ])
    rate_limit: str = "60/minute"


class Settings(BaseModel):
    session: SessionSettings = Field(default_factory=SessionSettings)
    navigation: NavigationSettings = Field(default_factory=NavigationSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    classification: ClassificationRules = Field(default_factory=ClassificationRules)
    server: ServerSettings = Field(default_factory=ServerSettings)


def load_settings(path: Optional[str] = None) -> Settings:
    """Reads the settings file and applies the ``PORT`` environment override."""
    raw = load_yaml_config(path or CONFIG_PATH_SETTINGS)
    settings = Settings.model_validate(raw)
    port = os.getenv("PORT")
    if port:
        try:
            settings.server.port = int(port)
        except ValueError:
            logger.warning(f"Ignoring non-numeric PORT value: {port}", extra={"port": port, "event_type": "config_bad_port"})
    return settings
