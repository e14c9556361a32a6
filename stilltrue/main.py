from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import logging
import os

from stilltrue.db import create_db_and_tables, engine
from stilltrue.routes.fact_check import router as fact_check_router
from stilltrue.routes.facts import router as facts_router
from stilltrue.routes.observability import router as observability_router
from stilltrue.routes.reports import router as reports_router
from stilltrue.routes.school_memories import router as school_memories_router
from stilltrue.services.errors import InputError, PipelineError
from stilltrue.services.observability import metrics
from stilltrue.utils.env import ensure_env_loaded

logger = logging.getLogger("stilltrue")


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_env_loaded()
    create_db_and_tables()
    logger.info("LLM provider: %s", os.getenv("LLM_PROVIDER", "mock"))
    yield


app = FastAPI(
    title="Is That Still True?",
    description="Backend for debunked school facts, single fact checks and school memories. See `/docs` for OpenAPI UI.",
    version="0.3.0",
    lifespan=lifespan,
)

# CORS
allowed_origins = os.getenv("CORS_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in allowed_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg', 'invalid value')}" if field else first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"error": message, "details": jsonable_encoder(errors, exclude={"ctx", "input", "url"})},
    )


@app.exception_handler(InputError)
async def input_error_handler(request: Request, exc: InputError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    logger.error("Pipeline failed at stage %s on %s: %s", exc.stage, request.url.path, exc)
    metrics.incr(f"pipeline_error_{exc.stage}")
    return JSONResponse(
        status_code=500,
        content={"error": str(exc), "stage": exc.stage, "suggestion": exc.suggestion},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"},
    )


app.include_router(facts_router)
app.include_router(fact_check_router)
app.include_router(school_memories_router)
app.include_router(reports_router)
app.include_router(observability_router)


@app.options("/{path:path}", include_in_schema=False)
async def preflight(path: str):
    return Response(status_code=200)


@app.get("/health")
def health_check():
    checks: dict[str, object] = {"status": "ok"}
    try:
        from sqlalchemy import text
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        checks["db"] = "ok"
    except Exception as e:
        checks["db"] = f"error: {e}"
        checks["status"] = "degraded"
    checks["llm_provider"] = os.getenv("LLM_PROVIDER", "mock")
    checks["web_search"] = "enabled" if os.getenv("FIRECRAWL_API_KEY") else "disabled"
    return checks
