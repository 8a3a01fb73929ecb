"""
Site documentation endpoints.

POST /api/projects/{project_id}/photos — upload site photos (max 10 per request)
POST /api/projects/{project_id}/report — turn free-form notes into a numbered report

Photos go to Cloudflare R2 if configured, otherwise the local uploads directory.
"""

import logging
import random
import re
import time
from io import BytesIO
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, File, HTTPException, UploadFile

from ..config import settings
from ..schemas import ReportRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "heic", "gif"}
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
MAX_FILES = 10

CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "heic": "image/heic",
    "gif": "image/gif",
}

_PROJECT_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

REPORT_HEADER = "Site report:"
REPORT_FOOTER = "Generated automatically with MeisterKI (MVP)."


def build_site_report(notes: Optional[str]) -> str:
    """
    Numbered report from free-form notes.
    One entry per non-empty line, whitespace trimmed, blank lines dropped.
    """
    lines = [line.strip() for line in re.split(r"\n+", notes or "")]
    lines = [line for line in lines if line]
    return "\n".join(
        [REPORT_HEADER]
        + [f"{i}. {line}" for i, line in enumerate(lines, start=1)]
        + ["", REPORT_FOOTER]
    )


def _check_project_id(project_id: str) -> str:
    if not _PROJECT_ID.match(project_id):
        raise HTTPException(
            status_code=400,
            detail="Project id may only contain letters, digits, '-' and '_'",
        )
    return project_id


def _get_extension(filename: str) -> str:
    """Extract the file extension; photos without one are stored as jpg."""
    if not filename or "." not in filename:
        return "jpg"
    return filename.rsplit(".", 1)[-1].lower()


def _unique_name(ext: str) -> str:
    return f"photo-{int(time.time() * 1000)}-{random.randint(0, 10**9)}.{ext}"


def _r2_configured() -> bool:
    """Check if Cloudflare R2 credentials are set."""
    return bool(
        settings.CLOUDFLARE_R2_ACCOUNT_ID
        and settings.CLOUDFLARE_R2_ACCESS_KEY_ID
        and settings.CLOUDFLARE_R2_SECRET_ACCESS_KEY
    )


def _upload_to_r2(file_bytes: bytes, key: str, content_type: str) -> str:
    """Upload file to Cloudflare R2 and return the public URL."""
    import boto3

    s3 = boto3.client(
        "s3",
        endpoint_url=f"https://{settings.CLOUDFLARE_R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=settings.CLOUDFLARE_R2_ACCESS_KEY_ID,
        aws_secret_access_key=settings.CLOUDFLARE_R2_SECRET_ACCESS_KEY,
    )
    s3.upload_fileobj(
        BytesIO(file_bytes),
        settings.CLOUDFLARE_R2_BUCKET,
        key,
        ExtraArgs={"ContentType": content_type},
    )
    return f"https://{settings.CLOUDFLARE_R2_BUCKET}.{settings.CLOUDFLARE_R2_ACCOUNT_ID}.r2.dev/{key}"


def _save_locally(file_bytes: bytes, project_id: str, filename: str) -> str:
    """Save file under <uploads>/<project_id>/ and return its public path."""
    upload_dir = Path(settings.UPLOADS_DIR) / project_id
    upload_dir.mkdir(parents=True, exist_ok=True)
    with open(upload_dir / filename, "wb") as f:
        f.write(file_bytes)
    return f"/uploads/{project_id}/{filename}"


@router.post("/{project_id}/photos")
def upload_photos(
    project_id: str,
    photos: List[UploadFile] = File(...),
):
    """
    Upload site photos for a project.

    - Up to 10 files per request
    - Validates file type (jpg, jpeg, png, webp, heic, gif) and size (max 10MB)
    - Returns filename and public path per stored photo
    """
    _check_project_id(project_id)
    if len(photos) > MAX_FILES:
        raise HTTPException(status_code=400, detail=f"Too many files. Maximum is {MAX_FILES}.")

    # Validate everything before storing anything
    prepared = []
    for photo in photos:
        ext = _get_extension(photo.filename or "")
        if ext not in ALLOWED_EXTENSIONS:
            raise HTTPException(
                status_code=400,
                detail=f"File type '{ext}' not allowed. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
            )
        file_bytes = photo.file.read()
        if len(file_bytes) > MAX_FILE_SIZE:
            raise HTTPException(
                status_code=400,
                detail=f"File too large ({len(file_bytes) / 1024 / 1024:.1f}MB). Maximum is 10MB.",
            )
        if len(file_bytes) == 0:
            raise HTTPException(status_code=400, detail=f"Empty file: {photo.filename}")
        prepared.append((file_bytes, ext))

    files = []
    for file_bytes, ext in prepared:
        filename = _unique_name(ext)
        if _r2_configured():
            try:
                path = _upload_to_r2(file_bytes, f"{project_id}/{filename}", CONTENT_TYPES[ext])
            except Exception:
                logger.exception("R2 upload failed for %s/%s", project_id, filename)
                raise
        else:
            path = _save_locally(file_bytes, project_id, filename)
        files.append({"filename": filename, "path": path})

    logger.info("Stored %d photo(s) for project %s", len(files), project_id)
    return {"ok": True, "files": files}


@router.post("/{project_id}/report")
def generate_report(project_id: str, request: ReportRequest):
    """Build a numbered site report from the notes."""
    _check_project_id(project_id)
    return {"ok": True, "report": build_site_report(request.notes)}
