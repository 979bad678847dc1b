"""
Kotone TTS - Main Application

FastAPI server exposing voice management and speech synthesis.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import List, Literal, Optional

import psutil
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field, model_validator

from .config import (
    DEFAULT_LENGTH_SCALE,
    DEFAULT_SDP_RATIO,
    DEFAULT_STYLE_WEIGHT,
    HOST,
    LOG_LEVEL,
    MAX_TEXT_LENGTH,
    PORT,
    SynthesizeOptions,
    verify_config,
)
from .exceptions import (
    ArchiveFormatError,
    ModelNotFoundError,
    StyleVectorError,
    TextProcessingError,
)
from .streaming import get_audio_duration, stream_audio_chunks
from .tts import (
    generate_audio,
    get_cache_status,
    initialize_engine,
    is_engine_ready,
    list_models,
    register_voice,
    unregister_voice,
)

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# Request/Response models
class SpeechRequest(BaseModel):
    """Speech synthesis request."""
    model: str = Field(description="Registered voice ident")
    input: str = Field(description="Text to synthesize; lines are split on newlines")
    style_id: int = Field(default=0, ge=0, description="Style row of the voice")
    speaker_id: int = Field(default=0, ge=0, description="Speaker of multi-speaker voices")
    sdp_ratio: float = Field(default=DEFAULT_SDP_RATIO, ge=0.0, le=1.0)
    length_scale: float = Field(default=DEFAULT_LENGTH_SCALE, gt=0.0, description="Inverse speaking rate")
    style_weight: float = Field(default=DEFAULT_STYLE_WEIGHT, description="Blend towards the style")
    split_sentences: bool = Field(default=True)
    response_format: Literal["wav", "pcm"] = Field(default="wav", description="Audio format")

    @model_validator(mode='after')
    def validate_text_input(self):
        """Reject empty and oversized input."""
        if not self.input.strip():
            raise ValueError("Text cannot be empty")
        if len(self.input) > MAX_TEXT_LENGTH:
            raise ValueError(f"Text too long (max {MAX_TEXT_LENGTH} characters)")
        return self

    def to_options(self) -> SynthesizeOptions:
        return SynthesizeOptions(
            sdp_ratio=self.sdp_ratio,
            length_scale=self.length_scale,
            style_weight=self.style_weight,
            split_sentences=self.split_sentences,
        )


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    engine_loaded: bool
    uptime_seconds: float


class ModelInfo(BaseModel):
    ident: str
    loaded: bool
    styles: int


class ModelsResponse(BaseModel):
    """Registered voices."""
    models: List[ModelInfo]


class RegisterResponse(BaseModel):
    ident: str
    registered: bool


class StatusResponse(BaseModel):
    """Server status response."""
    status: str
    engine_loaded: bool
    models: int
    live_sessions: int
    max_loaded_models: Optional[int]
    saturated: bool
    memory_rss_mb: float
    uptime_seconds: float


# Server state
_start_time: float = 0
_init_time: float = 0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - initialize the engine on startup."""
    global _start_time, _init_time

    _start_time = time.time()

    logger.info("Starting Kotone TTS server...")

    if not is_engine_ready():
        try:
            verify_config()
            _init_time = initialize_engine()
            logger.info(f"Server ready on {HOST}:{PORT}")
        except Exception as e:
            logger.error(f"Failed to initialize engine: {e}")
            raise

    yield

    logger.info("Shutting down...")


# Create FastAPI app
app = FastAPI(
    title="Kotone TTS API",
    version="0.1.0",
    description="Japanese TTS server for Style-Bert-VITS2 ONNX voices",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _require_engine() -> None:
    if not is_engine_ready():
        raise HTTPException(status_code=503, detail="Engine not ready")


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="ok" if is_engine_ready() else "initializing",
        engine_loaded=is_engine_ready(),
        uptime_seconds=time.time() - _start_time,
    )


@app.get("/models", response_model=ModelsResponse)
async def get_models():
    """List registered voices."""
    _require_engine()
    return ModelsResponse(models=[ModelInfo(**info) for info in list_models()])


@app.get("/status", response_model=StatusResponse)
async def get_status():
    """Get server and model cache status."""
    _require_engine()
    cache_status = get_cache_status()
    rss = psutil.Process().memory_info().rss

    return StatusResponse(
        status="ok",
        engine_loaded=True,
        memory_rss_mb=rss / (1024 * 1024),
        uptime_seconds=time.time() - _start_time,
        **cache_status,
    )


@app.post("/models/{ident}", response_model=RegisterResponse)
async def add_model(ident: str, request: Request):
    """Register a voice package (.sbv2) sent as the request body."""
    _require_engine()
    data = await request.body()
    if not data:
        raise HTTPException(status_code=400, detail="Request body must be a voice package")

    try:
        registered = register_voice(ident, data)
    except (ModelNotFoundError, ArchiveFormatError, StyleVectorError) as e:
        logger.warning(f"Rejected voice package for '{ident}': {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to register '{ident}': {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return RegisterResponse(ident=ident, registered=registered)


@app.delete("/models/{ident}")
async def delete_model(ident: str):
    """Unregister a voice."""
    _require_engine()
    if not unregister_voice(ident):
        raise HTTPException(status_code=404, detail=f"Model not found: {ident}")
    return {"ident": ident, "deleted": True}


@app.post("/v1/audio/speech")
async def create_speech(request: SpeechRequest):
    """
    Generate speech from text.

    Streams 32-bit float audio at 44.1 kHz, as WAV or raw PCM.
    """
    _require_engine()

    logger.info(f"TTS request: model={request.model}, style={request.style_id}, "
                f"text='{request.input[:50]}...' ({len(request.input)} chars)")

    try:
        audio, gen_time = generate_audio(
            request.model,
            request.input,
            style_id=request.style_id,
            speaker_id=request.speaker_id,
            options=request.to_options(),
        )
    except ModelNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TextProcessingError as e:
        logger.warning(f"Text processing failed: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    except StyleVectorError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"TTS generation failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    audio_duration = get_audio_duration(audio)
    rtf = gen_time / audio_duration if audio_duration > 0 else 0

    include_wav = request.response_format == "wav"
    content_type = "audio/wav" if include_wav else "audio/pcm"

    return StreamingResponse(
        stream_audio_chunks(audio, include_wav_header=include_wav),
        media_type=content_type,
        headers={
            "X-Audio-Duration": str(audio_duration),
            "X-Generation-Time": str(gen_time),
            "X-RTF": str(rtf),
        },
    )


def main():
    """Run the server."""
    import uvicorn

    logger.info(f"Starting server on {HOST}:{PORT}")
    uvicorn.run(
        "kotone.main:app",
        host=HOST,
        port=PORT,
        reload=False,
        log_level=LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
