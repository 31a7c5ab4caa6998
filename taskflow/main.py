import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import CORS_ORIGINS, LOG_LEVEL
from .database import create_tables
from .errors import ReferencedEntryError, TaskflowError
from .logging_setup import setup_logging
from .routers import auth, categories, task_levels, task_statuses, tasks, workflows

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Taskflow API",
    description="Multi-user task tracking with user-defined categories, statuses, levels and workflows",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(tasks.router, prefix="/api/tasks", tags=["tasks"])
app.include_router(categories.router, prefix="/api/categories", tags=["categories"])
app.include_router(task_statuses.router, prefix="/api/task-statuses", tags=["task-statuses"])
app.include_router(task_levels.router, prefix="/api/task-levels", tags=["task-levels"])
app.include_router(workflows.router, prefix="/api/workflows", tags=["workflows"])


@app.exception_handler(TaskflowError)
async def taskflow_error_handler(request: Request, exc: TaskflowError):
    content = {"detail": exc.message}
    if isinstance(exc, ReferencedEntryError):
        content["count"] = exc.count
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=content)


# Create tables on startup
@app.on_event("startup")
def on_startup():
    setup_logging(LOG_LEVEL)
    create_tables()
    logger.info("Taskflow API ready")

@app.get("/")
def read_root():
    return {"message": "Taskflow API"}

@app.get("/health")
def health_check():
    return {"status": "healthy"}
