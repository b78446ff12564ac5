from typing import (
    Any,
    Dict,
)
from fastapi import (
    FastAPI,
    Request,
)
from fastapi.middleware.cors import CORSMiddleware
from app.api.v1.reports import router as reports_router

app = FastAPI(
    description="HealthTrackAI report service",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(reports_router, prefix="/api/v1/reports")


@app.get("/")
async def root(request: Request):
    """Root endpoint returning basic API information."""
    return {"name": "HealthTrackAI", "version": "0.1.0", "status": "healthy"}


@app.get("/health")
async def health_check(request: Request) -> Dict[str, Any]:
    """Health check endpoint returning basic API information."""
    return {"status": "healthy"}
