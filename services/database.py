"""
Database configuration and models for the LLM Visibility Checker.
Uses SQLAlchemy (SQLite by default) to keep every submitted lead.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import create_engine, Column, Integer, String, DateTime, Text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from services.config import LEADS_DB_URL

logger = logging.getLogger(__name__)


def _make_engine(database_url: str):
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args)


engine = _make_engine(LEADS_DB_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Lead(Base):
    """A visibility audit form submission."""
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    company = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    website = Column(String(500), nullable=False)
    competitors = Column(Text, default="[]")
    keywords = Column(Text, default="[]")
    analysis_type = Column(String(20), default="standard")  # standard, historical
    days = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=_utcnow)

    def set_competitors(self, competitors: List[str]):
        self.competitors = json.dumps(competitors)

    def set_keywords(self, keywords: List[str]):
        self.keywords = json.dumps(keywords)


def init_db(database_url: Optional[str] = None):
    """Create all tables if they don't exist, optionally rebinding to another database."""
    global engine
    if database_url:
        engine = _make_engine(database_url)
        SessionLocal.configure(bind=engine)
    Base.metadata.create_all(bind=engine)


def get_db_session() -> Session:
    """Get a new database session directly."""
    return SessionLocal()


def save_lead(lead_data: Dict[str, Any]) -> Optional[int]:
    """
    Persist a lead. Returns the new lead id, or None if it could not be saved.
    A failed save never blocks the analysis.
    """
    db = get_db_session()
    try:
        lead = Lead(
            full_name=lead_data["fullName"],
            email=lead_data["email"],
            company=lead_data.get("company"),
            phone=lead_data.get("phone"),
            website=lead_data["website"],
            analysis_type=lead_data.get("analysisType", "standard"),
            days=lead_data.get("days"),
        )
        lead.set_competitors(lead_data.get("competitors", []))
        lead.set_keywords(lead_data.get("keywords", []))
        db.add(lead)
        db.commit()
        db.refresh(lead)
        logger.info("Saved lead: %s", lead.email)
        return lead.id
    except (SQLAlchemyError, KeyError) as e:
        db.rollback()
        logger.error("Error saving lead data: %s", e)
        return None
    finally:
        db.close()
