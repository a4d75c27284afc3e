"""FastAPI application for branching conversations."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dotenv import load_dotenv
load_dotenv()  # load environment variables from .env file

from server import conversation_db
from server.chat_routes import router as chat_router
from server.conversation_routes import router as conversation_router
from server.db import init_all

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# CORS origins - configurable via environment variable
# Use comma-separated values for multiple origins, or "*" for all (development only)
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database tables on startup."""
    init_all()
    yield


app = FastAPI(
    title="threadgraph API",
    description="API server for branching conversation graphs and context assembly",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(conversation_router, prefix="/api")
app.include_router(chat_router, prefix="/api")


@app.get("/")
def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": VERSION,
        "conversation_db": str(conversation_db.CONVERSATION_DB_PATH),
        "endpoints": {
            "conversations": "/api/conversations",
            "chat": "/api/chat",
            "chat_stream": "/api/chat/stream",
            "chat_health": "/api/chat/health",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
