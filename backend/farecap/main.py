"""
FastAPI entrypoint for the PearlCard fare engine.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from farecap.config import settings
from farecap.api.endpoints import router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/")
async def root():
    """Service banner."""
    return {
        "message": f"{settings.API_TITLE} is running",
        "version": settings.API_VERSION,
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("farecap.main:app", host="0.0.0.0", port=8000, reload=True)
