from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Load environment variables
load_dotenv()

from app.api.routes import auth, database, files, projects, settings
from app.api import websocket
from app.api.deps import registry
from app.core.config import settings as app_settings
from app.db.database import connect_db, disconnect_db
from app.services.workspace import disconnect_project_databases


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the message store on startup; unmount workspaces on shutdown."""
    await connect_db()
    yield
    registry.close_all()
    await disconnect_project_databases()
    await disconnect_db()


app = FastAPI(
    title="App Builder Workspace API",
    version="1.0.0",
    description="Chat-driven code generation with a synchronized file tree and database browser",
    lifespan=lifespan,
)

# Attach limiter to app state
app.state.limiter = projects.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api")
app.include_router(projects.router, prefix="/api")
app.include_router(files.router, prefix="/api")
app.include_router(database.router, prefix="/api")
app.include_router(settings.router, prefix="/api")
app.include_router(websocket.router)


@app.get("/")
async def root():
    return {
        "name": "App Builder Workspace API",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}


def main():
    import uvicorn
    uvicorn.run("app.main:app", host="127.0.0.1", port=app_settings.backend_port, reload=False)


if __name__ == "__main__":
    main()
