"""
puzzlebox backend - FastAPI application entry point
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from puzzlebox.api import session
from puzzlebox.config import get_log_level
from puzzlebox.engine.loader import ExperienceLoader

logging.basicConfig(level=get_log_level())

app = FastAPI(
    title="puzzlebox",
    description="Escape-room experience runtime and solvability validator",
    version="0.1.0",
)

# Configure CORS for a local frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(session.router, prefix="/api/session", tags=["session"])


@app.get("/")
async def root():
    """Health check endpoint"""
    return {"status": "ok", "name": "puzzlebox", "version": "0.1.0"}


@app.get("/api/experiences")
async def list_experiences():
    """List available experiences"""
    loader = ExperienceLoader()
    return {"experiences": loader.list_experiences()}
