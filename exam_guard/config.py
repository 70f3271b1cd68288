"""
exam-guard Configuration Settings

Device, model and reporting settings. Detection thresholds are fixed class
constants on the detectors and are intentionally not configurable here.
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Configuration for the proctoring client."""

    # App Settings
    APP_NAME: str = "exam-guard"
    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = False
    LOG_DIR: str = "logs"

    # Capture Settings
    CAMERA_INDEX: int = 0
    FRAME_WIDTH: int = 640
    FRAME_HEIGHT: int = 480
    AUDIO_SAMPLE_RATE: int = 48000
    AUDIO_DEVICE: Optional[str] = None

    # Face Mesh Settings
    MAX_NUM_FACES: int = 4
    MIN_DETECTION_CONFIDENCE: float = 0.5
    MIN_TRACKING_CONFIDENCE: float = 0.5

    # Object Detection Settings (COCO "cell phone" class)
    YOLO_MODEL: str = "yolov8n.pt"
    YOLO_CONFIDENCE: float = 0.5
    OBJECT_SCAN_INTERVAL_MS: int = 500

    # Reporting Settings
    REPORT_API_BASE_URL: str = "http://localhost:8000"
    REPORT_API_TOKEN: Optional[str] = None
    REPORT_INTERVAL_SECONDS: float = 30.0
    REPORT_TIMEOUT_SECONDS: float = 10.0
    REPORT_FLUSH_ON_STOP: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
