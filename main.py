import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette import status

from api.api import api_router
from core.async_engine import dispose_engine
from core.exceptions import PollError
from core.settings import settings
from schemas.poll_schema import ErrorDetailSchema, ErrorResponseSchema

logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await dispose_engine()


app = FastAPI(title="PollHub API", version="1.0.0", lifespan=lifespan)

if settings.BACKEND_CORS_ORIGINS:
    logger.info(f"Adding CORS middleware with origins: {settings.BACKEND_CORS_ORIGINS}")
    cors_origins = [str(origin) for origin in settings.BACKEND_CORS_ORIGINS]
else:
    logger.info("No CORS origins configured, using wildcard")
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_origins != ["*"],  # credentials are not allowed with a wildcard
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=32400,
)


def error_response(code: int, message: str) -> JSONResponse:
    body = ErrorResponseSchema(err=ErrorDetailSchema(code=code, message=message))
    return JSONResponse(status_code=code, content=body.model_dump())


@app.exception_handler(PollError)
async def poll_error_handler(request: Request, exc: PollError):
    return JSONResponse(status_code=exc.code, content=exc.to_envelope())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return error_response(422, message)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


app.include_router(api_router)


@app.get("/")
async def root():
    return {"message": "PollHub API", "version": "1.0.0"}


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "cors_origins": settings.BACKEND_CORS_ORIGINS,
    }


if __name__ == "__main__":
    run_args = {
        "app": "main:app",
        "host": settings.SERVER_ADDRESS,
        "port": settings.SERVER_PORT,
        "log_level": settings.LOG_LEVEL,
        "reload": settings.WATCH_FILES,
    }

    uvicorn.run(**run_args)
