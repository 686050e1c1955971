"""FastAPI application entry point."""
from __future__ import annotations
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from learnpath import container
from learnpath.api import assessment, auth, learn, roadmap
from learnpath.core.config import LOG_LEVEL
from learnpath.persistence.db import init_db

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# App creation
# ------------------------------------------------------------------
app = FastAPI(
    title="learnpath API",
    description="Personalized, prerequisite-gated learning roadmaps",
    version="1.0.0",
)

# CORS — allow everything for local dev (restrict for production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------------------------------------------
# Lifecycle: schema, catalog self-check, collaborators
# ------------------------------------------------------------------
@app.on_event("startup")
def on_startup():
    init_db()
    graph = container.get_concept_graph()
    capabilities = container.get_capabilities()
    logger.info(
        "Catalog loaded: %d concepts; classifier %s",
        len(graph),
        "enabled" if capabilities.classifier else "disabled (heuristics only)",
    )


@app.on_event("shutdown")
def on_shutdown():
    container.reset()


# ------------------------------------------------------------------
# Routers
# ------------------------------------------------------------------
app.include_router(auth.router)
app.include_router(roadmap.router)
app.include_router(learn.router)
app.include_router(assessment.router)
