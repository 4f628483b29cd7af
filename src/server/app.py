from __future__ import annotations
import logging
import os
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import BackgroundTasks, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field

from market_mapper.engine import transform, transform_many
from market_mapper.errors import ProfileNotFound, UnknownMarketplace
from market_mapper.io import read_any_rows, write_error_report, write_export
from market_mapper.profiles import MappingProfile, profile_to_dict
from market_mapper.registry import build_registry
from . import settings as app_settings


ROOT = Path(os.getenv("MAPPER_HOME") or Path(__file__).resolve().parents[2])
UPLOADS = ROOT / "uploads"
RESULTS = ROOT / "results"
UPLOADS.mkdir(parents=True, exist_ok=True)
RESULTS.mkdir(parents=True, exist_ok=True)

app_settings.init_settings(ROOT / "data" / "settings.json")
_settings = app_settings.get_settings()
logging.basicConfig(level=_settings.get("log_level", "INFO"), format="%(asctime)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)

# Populated once here and frozen; profile file changes apply on restart
REGISTRY = build_registry(_settings.get("profiles_paths") or [])

app = FastAPI(title="Marketplace Mapper API", version="0.1.0")


class JobStatus:
    queued = "queued"
    running = "running"
    succeeded = "succeeded"
    failed = "failed"


class Job(BaseModel):
    id: str
    kind: str
    status: str
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    params: Dict
    result_path: Optional[str] = None
    errors_path: Optional[str] = None
    error: Optional[str] = None
    counters: Dict = {}


JOBS: Dict[str, Job] = {}


class FileInfo(BaseModel):
    id: str
    name: str
    path: str
    size: int
    created_at: datetime


FILES: Dict[str, FileInfo] = {}


class ProfileSummary(BaseModel):
    id: str
    name: str
    marketplace: str
    version: str
    fields: int
    required_fields: List[str]
    delimiter: str
    encoding: str


class TransformRequest(BaseModel):
    profile_id: str
    record: Dict[str, Any]


class BatchTransformRequest(BaseModel):
    profile_id: str
    records: List[Dict[str, Any]] = Field(default_factory=list)


class ExportRequest(BaseModel):
    file_id: str
    profile_id: str
    only_valid: Optional[bool] = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _summary(p: MappingProfile) -> ProfileSummary:
    return ProfileSummary(
        id=p.id,
        name=p.name,
        marketplace=p.marketplace,
        version=p.metadata.version,
        fields=len(p.mappings),
        required_fields=list(p.metadata.required_fields),
        delimiter=p.metadata.delimiter,
        encoding=p.metadata.encoding,
    )


@app.exception_handler(ProfileNotFound)
@app.exception_handler(UnknownMarketplace)
async def _lookup_failed(request: Request, exc: LookupError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


# --- profiles ---
@app.get("/profiles", response_model=List[ProfileSummary])
def list_profiles() -> List[ProfileSummary]:
    return [_summary(p) for p in REGISTRY.profiles()]


@app.get("/profiles/{profile_id}")
def get_profile(profile_id: str) -> Dict[str, Any]:
    return profile_to_dict(REGISTRY.get_by_id(profile_id))


@app.get("/marketplaces")
def list_marketplaces() -> List[str]:
    return REGISTRY.marketplaces()


@app.get("/marketplaces/{marketplace}/profiles", response_model=List[ProfileSummary])
def marketplace_profiles(marketplace: str) -> List[ProfileSummary]:
    return [_summary(p) for p in REGISTRY.get_by_marketplace(marketplace)]


# --- synchronous transforms ---
@app.post("/transform")
def transform_record(req: TransformRequest) -> Dict[str, Any]:
    profile = REGISTRY.get_by_id(req.profile_id)
    return transform(req.record, profile).to_dict()


@app.post("/transform/batch")
def transform_batch(req: BatchTransformRequest) -> Dict[str, Any]:
    profile = REGISTRY.get_by_id(req.profile_id)
    max_rows = int(app_settings.get_settings().get("max_rows") or 0)
    if max_rows and len(req.records) > max_rows:
        raise HTTPException(413, f"too many records: {len(req.records)} > {max_rows}")
    return transform_many(req.records, profile).to_dict()


# --- files & export jobs ---
@app.post("/files", response_model=FileInfo)
async def upload_file(file: UploadFile = File(...)):
    fid = uuid.uuid4().hex
    name = Path(file.filename or "upload.csv").name
    dest = UPLOADS / f"{fid}_{name}"
    with dest.open("wb") as out:
        shutil.copyfileobj(file.file, out)
    size = dest.stat().st_size
    limit = int(app_settings.get_settings().get("max_upload_bytes") or 0)
    if limit and size > limit:
        dest.unlink(missing_ok=True)
        raise HTTPException(413, f"file too large: {size} bytes (max {limit})")
    info = FileInfo(id=fid, name=name, path=str(dest), size=size, created_at=_now())
    FILES[fid] = info
    log.info(f"Stored upload {name} as {fid} ({size} bytes)")
    return info


@app.get("/files", response_model=List[FileInfo])
def list_files() -> List[FileInfo]:
    return list(FILES.values())


@app.post("/jobs/export", response_model=Job)
def create_export_job(req: ExportRequest, bg: BackgroundTasks):
    if req.file_id not in FILES:
        raise HTTPException(404, "file_id not found")
    profile = REGISTRY.get_by_id(req.profile_id)
    job_id = uuid.uuid4().hex
    job = Job(
        id=job_id,
        kind="export",
        status=JobStatus.queued,
        created_at=_now(),
        params=req.model_dump(),
    )
    JOBS[job_id] = job

    def run():
        j = JOBS[job_id]
        j.status = JobStatus.running
        j.started_at = _now()
        try:
            s = app_settings.get_settings()
            rows = read_any_rows(Path(FILES[req.file_id].path))
            max_rows = int(s.get("max_rows") or 0)
            if max_rows and len(rows) > max_rows:
                raise ValueError(f"too many rows: {len(rows)} > {max_rows}")
            batch = transform_many(rows, profile)
            only_valid = s.get("only_valid_default", False) if req.only_valid is None else req.only_valid
            records = [r.record for r in batch.results if r.success] if only_valid else batch.records
            ext = "tsv" if profile.metadata.delimiter == "\t" else "csv"
            out = RESULTS / f"{job_id}.{ext}"
            written = write_export(out, records, profile, formula_guard=bool(s.get("formula_guard", True)))
            errors_out = RESULTS / f"{job_id}.errors.json"
            write_error_report(errors_out, batch, profile.id)
            j.counters = {"rows": len(rows), "written": written, "ok": batch.success_count, "failed": batch.failure_count, "warnings": batch.warning_count}
            j.result_path = str(out)
            j.errors_path = str(errors_out)
            j.status = JobStatus.succeeded
            log.info(f"Export job {job_id} done: {j.counters}")
        except Exception as e:
            log.exception(f"Export job {job_id} failed")
            j.status = JobStatus.failed
            j.error = str(e)
        finally:
            j.finished_at = _now()

    bg.add_task(run)
    return job


def _get_job(job_id: str) -> Job:
    job = JOBS.get(job_id)
    if not job:
        raise HTTPException(404, "job not found")
    return job


@app.get("/jobs", response_model=List[Job])
def list_jobs() -> List[Job]:
    return list(JOBS.values())[::-1]


@app.get("/jobs/{job_id}", response_model=Job)
def get_job(job_id: str) -> Job:
    return _get_job(job_id)


@app.get("/jobs/{job_id}/download")
def download_job(job_id: str):
    job = _get_job(job_id)
    if job.status != JobStatus.succeeded or not job.result_path:
        raise HTTPException(400, "job not completed or no result available")
    profile = REGISTRY.get_by_id(job.params["profile_id"])
    path = Path(job.result_path)
    media = "text/tab-separated-values" if path.suffix == ".tsv" else "text/csv"
    return FileResponse(path=str(path), filename=f"{profile.marketplace}_{job_id}{path.suffix}", media_type=media)


@app.get("/jobs/{job_id}/errors")
def job_errors(job_id: str):
    job = _get_job(job_id)
    if not job.errors_path:
        raise HTTPException(400, "job has no error report")
    return FileResponse(path=job.errors_path, media_type="application/json")


# --- settings ---
class SettingsUpdate(BaseModel):
    profiles_paths: Optional[List[str]] = None
    max_rows: Optional[int] = Field(None, ge=0)
    max_upload_bytes: Optional[int] = Field(None, ge=0)
    formula_guard: Optional[bool] = None
    only_valid_default: Optional[bool] = None
    log_level: Optional[str] = None


@app.get("/settings")
def get_settings() -> Dict[str, Any]:
    return app_settings.get_settings()


@app.put("/settings")
def put_settings(update: SettingsUpdate) -> Dict[str, Any]:
    cur = app_settings.get_settings()
    cur.update(update.model_dump(exclude_none=True))
    app_settings.save_settings(cur)
    return cur
