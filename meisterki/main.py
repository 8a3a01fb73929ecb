from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pathlib import Path
import logging

from .config import settings
from .log_setup import setup_logging
from .routers import auth, offers, projects

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger("meisterki")

app = FastAPI(
    title="MeisterKI",
    description="Offer calculation and documentation backend for craft businesses",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors: 400 with one message string."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"detail": "; ".join(parts)})


# API routes
app.include_router(offers.router, prefix="/api")
app.include_router(auth.router, prefix="/api")
app.include_router(projects.router, prefix="/api")

# Uploaded photos and exported PDFs
for mount, directory in (("/uploads", settings.UPLOADS_DIR), ("/generated", settings.GENERATED_DIR)):
    Path(directory).mkdir(parents=True, exist_ok=True)
    app.mount(mount, StaticFiles(directory=directory), name=mount.strip("/"))


LANDING_PAGE = """<!doctype html>
<html>
  <head>
    <meta charset="utf-8" />
    <title>MeisterKI</title>
  </head>
  <body>
    <h1>MeisterKI</h1>
    <p>The server is running. API endpoints:</p>
    <ul>
      <li><code>POST /api/offers/generate</code></li>
      <li><code>POST /api/offers/export-pdf</code></li>
      <li><code>POST /api/offers</code>, <code>GET /api/offers/mine</code></li>
      <li><code>POST /api/projects/{project_id}/photos</code></li>
      <li><code>POST /api/projects/{project_id}/report</code></li>
      <li><code>POST /api/auth/register</code>, <code>POST /api/auth/login</code></li>
    </ul>
  </body>
</html>"""


@app.get("/", response_class=HTMLResponse)
def landing_page():
    return LANDING_PAGE


@app.get("/health")
def health():
    return {"status": "ok", "app": "meisterki"}


logger.info("MeisterKI ready (data=%s, generated=%s)", settings.DATA_DIR, settings.GENERATED_DIR)
