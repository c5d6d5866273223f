import logging
import platform
import re
import sys
from datetime import datetime
from typing import Any, Dict, List
from config.settings import settings

def setup_logging() -> None:
    """Configure application logging"""

    # Create formatter
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Setup root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper()))

    # Clear existing handlers
    root_logger.handlers.clear()

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Set specific logger levels
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    for noisy in ("motor", "pymongo", "httpx", "anthropic", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.info("Logging configured successfully")

def get_system_info() -> Dict[str, Any]:
    """Get system information for health checks"""
    return {
        "platform": platform.platform(),
        "python_version": platform.python_version(),
        "timestamp": datetime.now().isoformat(),
        "application": "Medical Note Generator",
        "version": "1.0.0",
        "environment": "development" if settings.debug else "production"
    }

def sanitize_transcript(transcript: str) -> str:
    """Sanitize transcript for processing"""
    if not transcript:
        return ""

    # Collapse speech-to-text line breaks and runs of spaces
    return re.sub(r'\s+', ' ', transcript.strip())

def split_transcript_into_segments(transcript: str) -> List[str]:
    """Split transcript into sentence-sized segments"""
    if not transcript:
        return []

    segments = []
    for sentence in re.split(r'[.!?]+\s+', transcript):
        sentence = sentence.strip()
        if sentence:
            segments.append(sentence)
    return segments

def truncate(text: str, limit: int) -> str:
    """Cut text at limit characters, marking the cut with an ellipsis"""
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."
