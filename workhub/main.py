import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from workhub.core.database import get_prisma
from workhub.core.settings import settings
from workhub.domains.auth.routes import router as auth_router
from workhub.domains.organizations.routes import router as organizations_router
from workhub.domains.projects.routes import router as projects_router
from workhub.domains.workspaces.routes import router as workspaces_router

logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    prisma = get_prisma()
    await prisma.connect()
    yield
    # Shutdown
    await prisma.disconnect()


app = FastAPI(
    title="WorkHub Access API",
    description="Account lifecycle and authorization resolution for WorkHub",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL] if settings.FRONTEND_URL else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(organizations_router, prefix="/api/v1")
app.include_router(projects_router, prefix="/api/v1")
app.include_router(workspaces_router, prefix="/api/v1")


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "WorkHub Access API is running"}


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}
