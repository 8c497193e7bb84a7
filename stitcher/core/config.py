"""
Service configuration, read once from the environment.

Environment Variables:
    SUPABASE_URL: Storage base URL (e.g. https://xyz.supabase.co)
    SUPABASE_SERVICE_KEY: Service role key used for storage requests
    STORAGE_BACKEND: "supabase" or "local" (default: supabase)
    STORAGE_ROOT: Root folder for the local backend (default: PROJECT_ROOT/shared_data/storage)
    STORAGE_TIMEOUT: Per-request HTTP timeout in seconds (default: 60)
    WORK_ROOT: Parent folder for per-job working directories (default: system temp)
    FFMPEG_BINARY: ffmpeg executable (default: ffmpeg)
    FFMPEG_THREADS: Encoder thread budget per stage (default: 2)
    DOWNLOAD_MAX_ATTEMPTS: Attempts per blob before giving up (default: 3)
    DOWNLOAD_RETRY_DELAY: Backoff unit in seconds (default: 1.0)
    PORT: HTTP port for run_server.py (default: 8080)
"""

import os
import tempfile

# Configuration - paths relative to project root by default
PROJECT_ROOT = os.path.dirname(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
)

SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY", "")
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "supabase")  # "supabase" or "local"
STORAGE_ROOT = os.getenv(
    "STORAGE_ROOT", os.path.join(PROJECT_ROOT, "shared_data", "storage")
)
STORAGE_TIMEOUT = float(os.getenv("STORAGE_TIMEOUT", "60"))

WORK_ROOT = os.getenv("WORK_ROOT", tempfile.gettempdir())

FFMPEG_BINARY = os.getenv("FFMPEG_BINARY", "ffmpeg")
FFMPEG_THREADS = int(os.getenv("FFMPEG_THREADS", "2"))

DOWNLOAD_MAX_ATTEMPTS = int(os.getenv("DOWNLOAD_MAX_ATTEMPTS", "3"))
DOWNLOAD_RETRY_DELAY = float(os.getenv("DOWNLOAD_RETRY_DELAY", "1.0"))

PORT = int(os.getenv("PORT", "8080"))

# Folder defaults used when the request omits them
DEFAULT_VIDEO_FOLDER = "composite-video"
DEFAULT_AUDIO_FOLDER = "composite-audio"
DEFAULT_OUTPUT_FOLDER = "composite-stitched"
DEFAULT_SAMPLE_RATE = 44100
