"""
SQLAlchemy ORM models for the CRM and marketing warehouse tables.

In production these tables are owned by the ingestion pipeline and only
read from; locally and in tests they are created in SQLite.
"""

from sqlalchemy import Column, Integer, String, Float, Date, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Deal(Base):
    """
    CRM deals synced from the sales CRM.
    """
    __tablename__ = "rd_station__deals"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=True)
    amount_total = Column(Float, nullable=True)

    # Won flag arrives as boolean or as its string form ("true", "TRUE")
    win = Column(String(10), nullable=True)
    win_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=True)

    organization_name = Column(String(255), nullable=True)
    user_name = Column(String(255), nullable=True)  # Responsible
    email = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)

    deal_source_name = Column(String(255), nullable=True)
    deal_stage_name = Column(String(255), nullable=True)

    def __repr__(self):
        return f"<Deal(id={self.id}, name='{self.name}', win={self.win})>"


class Contact(Base):
    """
    Marketing contacts.
    """
    __tablename__ = "rd_station__contacts"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=True)
    last_conversion_date = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Contact(id={self.id}, email='{self.email}')>"


class OverviewDaily(Base):
    """
    Daily funnel metrics per paid media platform.
    """
    __tablename__ = "dashboard_overview_daily"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False, index=True)
    platform = Column(String(32), nullable=True)

    # Site
    total_users = Column(Integer, nullable=True)
    visits = Column(Integer, nullable=True)

    # Funnel
    leads = Column(Integer, nullable=True)
    qualified_leads = Column(Integer, nullable=True)
    opportunities = Column(Integer, nullable=True)
    sales = Column(Integer, nullable=True)

    # Media
    spend = Column(Float, nullable=True)
    clicks = Column(Integer, nullable=True)
    impressions = Column(Integer, nullable=True)

    def __repr__(self):
        return f"<OverviewDaily(date={self.date}, platform='{self.platform}')>"
