from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from .db import Base

class Barangay(Base):
    __tablename__ = "barangays"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    code = Column(String, unique=True, index=True, nullable=False)
    municipality = Column(String, nullable=False)
    province = Column(String, nullable=False)
    population = Column(Integer, nullable=True)

    alerts = relationship("Alert", back_populates="barangay")

class DengueCase(Base):
    __tablename__ = "dengue_cases"

    id = Column(Integer, primary_key=True, index=True)
    barangay_id = Column(Integer, ForeignKey("barangays.id"), index=True, nullable=False)
    date_reported = Column(DateTime, index=True, nullable=False)
    status = Column(String, nullable=False, default="SUSPECTED")  # SUSPECTED | CONFIRMED
    source = Column(String, nullable=False)  # PUBLIC_HOSPITAL | PRIVATE_HOSPITAL | RHU | BHW
    age = Column(Integer, nullable=True)
    sex = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, index=True)

class EnvironmentalReport(Base):
    __tablename__ = "environmental_reports"

    id = Column(Integer, primary_key=True, index=True)
    barangay_id = Column(Integer, ForeignKey("barangays.id"), index=True, nullable=False)
    date_reported = Column(DateTime, index=True, nullable=False)
    stagnant_water = Column(Boolean, default=False, nullable=False)
    poor_waste_disposal = Column(Boolean, default=False, nullable=False)
    clogged_drainage = Column(Boolean, default=False, nullable=False)
    housing_congestion = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, index=True)

class Alert(Base):
    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, index=True)
    barangay_id = Column(Integer, ForeignKey("barangays.id"), index=True, nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    risk_level = Column(String, index=True, nullable=False)  # LOW | MEDIUM | HIGH
    status = Column(String, index=True, nullable=False, default="ACTIVE")  # ACTIVE | RESOLVED | DISMISSED
    triggered_at = Column(DateTime, default=datetime.now, index=True)
    resolved_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, index=True)
    # "metadata" is reserved on declarative classes
    details = Column("metadata", JSON, nullable=True)

    barangay = relationship("Barangay", back_populates="alerts")
