# =============================================================================
# SEO Health Audit: FastAPI Backend
# =============================================================================
# Scores one crawled page (plus optional Core Web Vitals) across 15 weighted
# categories, stores the report and derives recommendations, an AI coding
# agent prompt and a PDF from it.
#
# Run:  python main.py
# Test: curl http://localhost:8000/health
# =============================================================================

import asyncio
import json
import logging
import os
import re
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

load_dotenv()                       # reads .env into os.environ

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s  %(levelname)-8s  %(message)s",
)
logger = logging.getLogger("seo-health")

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
CLAUDE_MODEL = os.getenv("CLAUDE_MODEL", "claude-sonnet-4-6")
APP_VERSION = "1.0.0"

if not ANTHROPIC_API_KEY:
    logger.warning("ANTHROPIC_API_KEY is not set, recommendations will be rule-based only")

# ---------------------------------------------------------------------------
# Anthropic client: ASYNC so we never block the event loop
# ---------------------------------------------------------------------------

from anthropic import AsyncAnthropic          # requires anthropic >= 0.39

anthropic_client = AsyncAnthropic() if ANTHROPIC_API_KEY else None

# ---------------------------------------------------------------------------
# Engine, persistence, exporters
# ---------------------------------------------------------------------------

from advisor import generate_recommendations
from database import HealthReport, fingerprint, get_db, init_db
from health_engine import analyze_health
from health_models import (
    CoreWebVitalsSnapshot,
    HealthScoreResult,
    PageAuditSnapshot,
    Recommendation,
)
from pdf_export import build_pdf
from prompt_generator import generate_seo_prompt

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database tables ready")
    yield


app = FastAPI(
    title="SEO Health Audit API",
    version=APP_VERSION,
    description="15-category SEO health scoring for crawled pages",
    lifespan=lifespan,
)

# CORS: open for development, lock down for production
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Request / response models
# =============================================================================

class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScoreRequest(_ApiModel):
    keyword: str = ""
    page_audit: PageAuditSnapshot
    vitals: Optional[CoreWebVitalsSnapshot] = None


class ScoreResponse(_ApiModel):
    report_id: str
    url: str
    keyword: str
    cached: bool
    health_score: HealthScoreResult


class ReportSummary(_ApiModel):
    report_id: str
    url: str
    keyword: str
    overall: int
    grade: str
    created_at: datetime


# =============================================================================
# Utility functions
# =============================================================================

def extract_json(text: str) -> dict | list:
    """
    Robustly extract JSON from Claude responses.
    Handles markdown fences, preamble text, trailing commentary,
    and truncated JSON (from max_tokens cutoff).
    Returns a dict or list; wraps unparseable text in {"raw_response": text}.
    """
    text = text.strip()

    # Strip markdown code fences
    if text.startswith("```"):
        text = text.split("\n", 1)[-1]
        text = text.rsplit("```", 1)[0].strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # Find the outermost JSON object or array
    obj_start = text.find("{")
    arr_start = text.find("[")

    if obj_start == -1 and arr_start == -1:
        return {"raw_response": text}

    if arr_start != -1 and (obj_start == -1 or arr_start < obj_start):
        start, open_c, close_c = arr_start, "[", "]"
    else:
        start, open_c, close_c = obj_start, "{", "}"

    # String-aware bracket counting
    in_string = False
    escape = False
    depth = 0
    for i in range(start, len(text)):
        ch = text[i]
        if escape:
            escape = False
            continue
        if ch == "\\" and in_string:
            escape = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == open_c:
            depth += 1
        elif ch == close_c:
            depth -= 1
            if depth == 0:
                try:
                    return json.loads(text[start : i + 1])
                except json.JSONDecodeError:
                    break

    repaired = _repair_truncated_json(text[start:])
    if repaired is not None:
        return repaired

    return {"raw_response": text}


def _repair_truncated_json(fragment: str) -> dict | list | None:
    """Close an unterminated string and any open brackets, then re-parse."""
    trimmed = fragment.rstrip()

    stack = []
    in_str = False
    escape = False
    for ch in trimmed:
        if escape:
            escape = False
            continue
        if ch == "\\" and in_str:
            escape = True
            continue
        if ch == '"':
            in_str = not in_str
            continue
        if in_str:
            continue
        if ch in ("{", "["):
            stack.append(ch)
        elif ch == "}" and stack and stack[-1] == "{":
            stack.pop()
        elif ch == "]" and stack and stack[-1] == "[":
            stack.pop()

    if in_str:
        trimmed += '"'
    trimmed = trimmed.rstrip().rstrip(",")

    closers = {"[": "]", "{": "}"}
    for opener in reversed(stack):
        trimmed += closers[opener]

    try:
        return json.loads(trimmed)
    except json.JSONDecodeError:
        return None


# ---------------------------------------------------------------------------
# Claude helper: centralised, with retry
# ---------------------------------------------------------------------------

async def call_claude(
    system: str,
    prompt: str,
    max_tokens: int = 2000,
    retries: int = 3,
) -> dict | list:
    """
    Call Claude with a system prompt and user prompt.
    Retries on transient failures with backoff.
    On rate-limit (429) errors, waits 30 s before retrying.
    Returns parsed JSON; on failure a dict with an "error" key.
    """
    if anthropic_client is None:
        return {"error": "ANTHROPIC_API_KEY is not set"}

    last_error = None
    for attempt in range(1, retries + 1):
        try:
            response = await anthropic_client.messages.create(
                model=CLAUDE_MODEL,
                max_tokens=max_tokens,
                system=system,
                messages=[{"role": "user", "content": prompt}],
            )
            return extract_json(response.content[0].text)

        except Exception as e:
            last_error = e
            err_str = str(e)
            is_rate_limit = "rate_limit" in err_str.lower() or "429" in err_str
            wait = 30 if is_rate_limit else 2 * attempt
            logger.warning(
                f"Claude call attempt {attempt}/{retries} failed "
                f"({'rate limit, waiting 30 s' if is_rate_limit else f'retrying in {wait} s'}): {e}"
            )
            if attempt < retries:
                await asyncio.sleep(wait)

    logger.error(f"Claude call failed after {retries} attempts: {last_error}")
    return {"error": str(last_error)}


# ---------------------------------------------------------------------------
# Report helpers
# ---------------------------------------------------------------------------

def _load_report(db: Session, report_id: str) -> tuple[HealthReport, dict]:
    row = db.query(HealthReport).filter(HealthReport.id == report_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Report not found")
    report = json.loads(row.results_json)
    report["recommendations"] = (
        json.loads(row.recommendations_json) if row.recommendations_json else None
    )
    return row, report


def _report_inputs(report: dict) -> tuple[PageAuditSnapshot, Optional[CoreWebVitalsSnapshot], HealthScoreResult]:
    audit = PageAuditSnapshot.model_validate(report["pageAudit"])
    vitals = (
        CoreWebVitalsSnapshot.model_validate(report["vitals"])
        if report.get("vitals") is not None else None
    )
    health = HealthScoreResult.model_validate(report["healthScore"])
    return audit, vitals, health


def _find_by_fingerprint(db: Session, key: str) -> Optional[HealthReport]:
    return db.query(HealthReport).filter(HealthReport.fingerprint == key).first()


def _cached_response(row: HealthReport) -> ScoreResponse:
    report = json.loads(row.results_json)
    logger.info(f"Health score cache hit for {row.url} ({row.id})")
    return ScoreResponse(
        report_id=row.id,
        url=row.url,
        keyword=row.keyword,
        cached=True,
        health_score=HealthScoreResult.model_validate(report["healthScore"]),
    )


def _download_name(keyword: str, report_id: str) -> str:
    """ASCII-only attachment filename; HTTP headers are Latin-1."""
    slug = re.sub(r"[^A-Za-z0-9-]+", "-", keyword or "").strip("-")[:30].strip("-")
    return f"seo-health-{slug or 'report'}-{report_id[:8]}.pdf"


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to save {what}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to save {what}")


# =============================================================================
# Health score
# =============================================================================

@app.post("/health-score", response_model=ScoreResponse)
def score_page(req: ScoreRequest, db: Session = Depends(get_db)):
    """Score a crawled page. Identical inputs return the stored report."""
    key = fingerprint(req.page_audit, req.vitals, req.keyword)

    row = _find_by_fingerprint(db, key)
    if row:
        return _cached_response(row)

    health = analyze_health(req.page_audit, req.vitals)
    report_id = str(uuid.uuid4())
    created_at = datetime.utcnow()

    report = {
        "reportId": report_id,
        "url": req.page_audit.url,
        "keyword": req.keyword,
        "createdAt": created_at.isoformat(),
        "healthScore": health.model_dump(mode="json", by_alias=True),
        "pageAudit": req.page_audit.model_dump(mode="json", by_alias=True),
        "vitals": req.vitals.model_dump(mode="json", by_alias=True) if req.vitals else None,
    }

    db.add(HealthReport(
        id=report_id,
        fingerprint=key,
        url=req.page_audit.url,
        keyword=req.keyword,
        overall=health.overall,
        grade=health.grade,
        results_json=json.dumps(report, default=str),
        created_at=created_at,
    ))
    try:
        db.commit()
    except IntegrityError:
        # Same inputs stored by a concurrent request between lookup and insert
        db.rollback()
        row = _find_by_fingerprint(db, key)
        if row is None:
            logger.error(f"Fingerprint conflict without a stored report for {key}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to save health report")
        return _cached_response(row)
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to save health report: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save health report")

    logger.info(
        f"Scored {req.page_audit.url}: {health.overall}/100 ({health.grade}), "
        f"{len(health.issues)} issues -> report {report_id}"
    )
    return ScoreResponse(
        report_id=report_id,
        url=req.page_audit.url,
        keyword=req.keyword,
        cached=False,
        health_score=health,
    )


# =============================================================================
# Stored reports
# =============================================================================

@app.get("/reports", response_model=list[ReportSummary])
def list_reports(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Report metadata, newest first."""
    rows = (
        db.query(HealthReport)
        .order_by(HealthReport.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return [
        ReportSummary(
            report_id=r.id,
            url=r.url,
            keyword=r.keyword,
            overall=r.overall,
            grade=r.grade,
            created_at=r.created_at,
        )
        for r in rows
    ]


@app.get("/reports/{report_id}")
def get_report(report_id: str, db: Session = Depends(get_db)):
    _, report = _load_report(db, report_id)
    return report


@app.post("/reports/{report_id}/recommendations", response_model=list[Recommendation])
async def create_recommendations(report_id: str, db: Session = Depends(get_db)):
    """Generate prioritized recommendations and store them with the report."""
    row, report = _load_report(db, report_id)
    audit, vitals, health = _report_inputs(report)

    recs = await generate_recommendations(
        audit,
        vitals,
        health,
        claude_caller=call_claude if anthropic_client is not None else None,
    )

    row.recommendations_json = json.dumps(
        [r.model_dump(mode="json", by_alias=True) for r in recs], default=str
    )
    _commit(db, "recommendations")
    logger.info(f"Stored {len(recs)} recommendations for report {report_id}")
    return recs


@app.get("/reports/{report_id}/prompt", response_class=PlainTextResponse)
def get_report_prompt(report_id: str, db: Session = Depends(get_db)):
    """Plain-text fix instructions for an AI coding agent."""
    _, report = _load_report(db, report_id)
    audit, vitals, health = _report_inputs(report)
    recs = [Recommendation.model_validate(r) for r in report.get("recommendations") or []]

    return generate_seo_prompt(
        audit,
        health,
        keyword=report.get("keyword", ""),
        vitals=vitals,
        recommendations=recs,
    )


@app.post("/reports/{report_id}/export")
def export_report_pdf(report_id: str, db: Session = Depends(get_db)):
    """Generate and return a PDF for a stored report."""
    _, report = _load_report(db, report_id)

    try:
        pdf_bytes = build_pdf(report)
    except Exception as e:
        logger.error(f"PDF generation failed for {report_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="PDF generation failed")

    filename = _download_name(report.get("keyword", ""), report_id)

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# =============================================================================
# Health & info
# =============================================================================

@app.get("/health")
async def health():
    return {
        "status": "ok",
        "timestamp": datetime.now().isoformat(),
        "api_key_set": bool(ANTHROPIC_API_KEY),
    }


@app.get("/info")
async def info():
    return {
        "name": "SEO Health Audit API",
        "version": APP_VERSION,
        "model": CLAUDE_MODEL,
        "categories": 15,
        "endpoints": {
            "score": "POST /health-score",
            "reports": "GET /reports",
            "report": "GET /reports/{id}",
            "recommendations": "POST /reports/{id}/recommendations",
            "prompt": "GET /reports/{id}/prompt",
            "export": "POST /reports/{id}/export",
            "health": "GET /health",
        },
    }


# =============================================================================
# Run
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
