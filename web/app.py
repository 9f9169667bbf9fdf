"""FastAPI web adapter for the CHIP-8 virtual machine."""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field
from typing import Optional
from pathlib import Path
import base64
import binascii
import logging
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from chip8vm import run_rom, KeyEvent, Quirks, RunOptions
from chip8vm.memory import MAX_ROM_SIZE


# Constants
MAX_FRAMES = 60 * 60  # one emulated minute
STATIC_DIR = Path(__file__).parent.parent / "static"

logger = logging.getLogger(__name__)


# Request/Response models
class QuirksModel(BaseModel):
    shift_uses_vy: bool = True
    logic_resets_vf: bool = True
    load_store_increments_i: bool = True


class RunOptionsModel(BaseModel):
    ipf: int = Field(default=11, ge=1, le=1000)
    max_frames: int = Field(default=600, ge=1, le=MAX_FRAMES)
    seed: Optional[int] = None
    stop_on_self_jump: bool = True
    quirks: QuirksModel = Field(default_factory=QuirksModel)


class KeyEventModel(BaseModel):
    frame: int = Field(ge=0)
    key: int = Field(ge=0, le=15)
    pressed: bool


class RunRequest(BaseModel):
    rom: str  # base64
    key_events: list[KeyEventModel] = Field(default_factory=list)
    options: Optional[RunOptionsModel] = None


class RunResponse(BaseModel):
    status: str
    frames: int
    cycles: int
    final_state: dict
    display: list[str]
    error: Optional[dict] = None


# Create FastAPI app
app = FastAPI(
    title="CHIP-8 Virtual Machine",
    description="Web API for running CHIP-8 ROMs headlessly",
    version="0.1.0",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/api/run", response_model=RunResponse)
async def run_code(request: RunRequest):
    """Run a CHIP-8 ROM for a bounded number of frames.

    Args:
        request: Base64 ROM, scripted key events, and execution options

    Returns:
        Run result with final registers and the display as text rows
    """
    try:
        rom = base64.b64decode(request.rom, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="ROM is not valid base64")

    # Validate ROM size
    if len(rom) > MAX_ROM_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"ROM size exceeds limit of {MAX_ROM_SIZE} bytes",
        )

    opts = request.options or RunOptionsModel()
    run_opts = RunOptions(
        ipf=opts.ipf,
        max_frames=opts.max_frames,
        seed=opts.seed,
        stop_on_self_jump=opts.stop_on_self_jump,
        quirks=Quirks(
            shift_uses_vy=opts.quirks.shift_uses_vy,
            logic_resets_vf=opts.quirks.logic_resets_vf,
            load_store_increments_i=opts.quirks.load_store_increments_i,
        ),
    )
    key_events = [KeyEvent(e.frame, e.key, e.pressed) for e in request.key_events]

    logger.info("Running %d-byte ROM for up to %d frames", len(rom), run_opts.max_frames)
    result = run_rom(rom, key_events=key_events, options=run_opts)

    return result.to_dict()


# Mount static files AFTER API routes to prevent shadowing
if STATIC_DIR.exists():
    app.mount("/", StaticFiles(directory=str(STATIC_DIR), html=True), name="static")


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8080)
