from pathlib import Path

import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from veo_generator.api.routes import router as api_router
from veo_generator.config import settings
from veo_generator.logging_config import configure_logging

logger = logging.getLogger(__name__)

configure_logging(settings.log_level)

app = FastAPI(title="VEO Video Generator", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:8000", "http://127.0.0.1:8000", "*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)

videos_path = Path(settings.output_local_dir)
videos_path.mkdir(parents=True, exist_ok=True)

app.mount("/videos", StaticFiles(directory=str(videos_path)), name="videos")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"detail": jsonable_errors(exc)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def jsonable_errors(exc: RequestValidationError):
    # Validator errors carry the raised exception in ctx, which is not JSON serialisable.
    return [{key: value for key, value in error.items() if key != "ctx"} for error in exc.errors()]
