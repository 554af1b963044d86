"""
VeriFlow API

Verification lifecycle service: case creation, customer link, review loop.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from api.routes import customer, reviewers, templates, verifications
from veriflow.config import Settings
from veriflow.infra import InMemoryAuditSink
from veriflow.log import configure_logging
from veriflow.packs import TemplatePackLoader
from veriflow.service import VerificationService


settings = Settings.from_env()
logger = configure_logging(settings.log_level)

loader = TemplatePackLoader(strict_version=False)
service: VerificationService = None


def _templates_dir() -> Path:
    path = Path(settings.templates_dir)
    if not path.is_absolute() and not path.exists():
        path = Path(__file__).parent.parent / settings.templates_dir
    return path


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load template packs and wire the service into the routers on startup."""
    global service

    templates_dir = _templates_dir()
    loaded = loader.load_directory(templates_dir)
    logger.info("Loaded %d template packs from %s", loaded, templates_dir)

    service = VerificationService(audit=InMemoryAuditSink(), settings=settings)
    reviewers.reset()

    verifications.set_service(service, loader)
    customer.set_service(service)
    templates.set_loader(loader)

    yield

    logging.getLogger("veriflow").info("Shutting down")


app = FastAPI(
    title="VeriFlow API",
    description="""
**Policy verification lifecycle.**

Operators raise a verification case, the customer completes a branching
questionnaire with photo evidence through a time-limited link, and a
reviewer approves it or sends it back with field-level feedback.

## Quick Start

1. `PUT /reviewers/{id}` - Add reviewers to the assignment pool
2. `POST /verifications` - Raise a case (returns the customer link token)
3. `GET /verify/{token}` - Customer opens the link
4. `POST /verify/{token}/submit` - Customer submits
5. `POST /verifications/{id}/approve` or `/reject` - Reviewer decides
    """,
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(verifications.router)
app.include_router(customer.router)
app.include_router(templates.router)
app.include_router(reviewers.router)


@app.get("/health", tags=["Health"])
async def health():
    """Health check endpoint."""
    return {
        "healthy": True,
        "templates_loaded": len(loader.list_templates()),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
