from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from storybook import __version__
from storybook.ai.errors import ProviderError
from storybook.api.routes import jobs, providers, stories
from storybook.config import get_settings
from storybook.core.exceptions import global_exception_handler, http_exception_handler, provider_exception_handler, request_validation_exception_handler
from storybook.core.lifespan import lifespan
from storybook.core.middleware import RequestLoggingMiddleware

settings = get_settings()

app = FastAPI(title="storybook-engine", version=__version__, lifespan=lifespan, docs_url="/docs" if settings.debug else None, redoc_url=None)

app.add_middleware(CORSMiddleware, allow_origins=settings.allowed_origins, allow_credentials=True, allow_methods=["GET", "POST", "PUT", "OPTIONS"], allow_headers=["content-type"], expose_headers=["content-length", "x-request-id"])

# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(ProviderError, provider_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": __version__}


app.include_router(jobs.router, prefix="/v1/jobs", tags=["jobs"])
app.include_router(stories.router, prefix="/v1/stories", tags=["stories"])
app.include_router(providers.router, prefix="/v1/providers", tags=["providers"])
