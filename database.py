"""
database.py: SQLAlchemy model and session management for scored reports.

Uses PostgreSQL in production (via DATABASE_URL env var).
Falls back to SQLite locally so you can develop without Postgres.

Scoring is a pure function of (page audit, vitals, keyword), so each report
is stored under a fingerprint of those inputs and re-used when the same
page snapshot is scored again.
"""

import hashlib
import json
import logging
import os
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from health_models import CoreWebVitalsSnapshot, PageAuditSnapshot

logger = logging.getLogger("seo-health")

# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./seo_health.db")

# Some hosts expose postgres:// but SQLAlchemy requires postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

engine = create_engine(
    DATABASE_URL,
    # SQLite needs this flag; ignored by Postgres
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
    pool_pre_ping=True,   # drop stale connections before use
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    pass


class HealthReport(Base):
    __tablename__ = "health_reports"

    id                   = Column(String(36), primary_key=True)
    fingerprint          = Column(String(64), nullable=False, unique=True, index=True)
    url                  = Column(String(2048), nullable=False)
    keyword              = Column(String(255), nullable=False, default="", index=True)
    overall              = Column(Integer, nullable=False)
    grade                = Column(String(1), nullable=False)
    # Full report JSON as text; avoids a JSON column type that behaves
    # differently across SQLite and Postgres.
    results_json         = Column(Text, nullable=False)
    recommendations_json = Column(Text, nullable=True)
    created_at           = Column(DateTime, default=datetime.utcnow, index=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def fingerprint(
    audit: PageAuditSnapshot,
    vitals: Optional[CoreWebVitalsSnapshot] = None,
    keyword: str = "",
) -> str:
    """sha256 over the canonical JSON of the scoring inputs."""
    payload = {
        "keyword": keyword,
        "pageAudit": audit.model_dump(mode="json", by_alias=True),
        "vitals": vitals.model_dump(mode="json", by_alias=True) if vitals is not None else None,
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def init_db() -> None:
    """Create all tables. Safe to call on every startup."""
    Base.metadata.create_all(bind=engine)


def get_db():
    """Yield a session and ensure it's closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
