"""
Composite Stitcher - turns captured frames + audio chunks into one MP4.
"""

import logging
import os
import shutil
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stitcher import __version__
from stitcher.api import router
from stitcher.core import config

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    os.makedirs(config.WORK_ROOT, exist_ok=True)
    if shutil.which(config.FFMPEG_BINARY) is None:
        logger.warning(f"ffmpeg not found on PATH ({config.FFMPEG_BINARY}); jobs will fail")
    yield


app = FastAPI(title="Composite Stitcher", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/health")
def health():
    return {"status": "ok", "service": "composite-stitcher"}
