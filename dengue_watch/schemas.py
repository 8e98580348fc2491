from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class RiskLevel(str, Enum):
    """Persisted alert severity."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class PublicRiskLevel(str, Enum):
    """Display-only severity for the public forecast dashboard. Never persisted."""
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class AlertStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"
    DISMISSED = "DISMISSED"


class CaseStatus(str, Enum):
    SUSPECTED = "SUSPECTED"
    CONFIRMED = "CONFIRMED"


class CaseSource(str, Enum):
    PUBLIC_HOSPITAL = "PUBLIC_HOSPITAL"
    PRIVATE_HOSPITAL = "PRIVATE_HOSPITAL"
    RHU = "RHU"
    BHW = "BHW"


class CaseIn(BaseModel):
    barangay_id: int
    date_reported: datetime
    status: CaseStatus = CaseStatus.SUSPECTED
    source: CaseSource
    age: Optional[int] = Field(default=None, ge=0, le=130)
    sex: Optional[str] = None


class CaseUpdate(BaseModel):
    barangay_id: Optional[int] = None
    date_reported: Optional[datetime] = None
    status: Optional[CaseStatus] = None
    source: Optional[CaseSource] = None
    age: Optional[int] = Field(default=None, ge=0, le=130)
    sex: Optional[str] = None


class CaseOut(BaseModel):
    id: int
    barangay_id: int
    date_reported: datetime
    status: CaseStatus
    source: CaseSource
    age: Optional[int] = None
    sex: Optional[str] = None


class EnvironmentalReportIn(BaseModel):
    barangay_id: int
    date_reported: datetime
    stagnant_water: bool = False
    poor_waste_disposal: bool = False
    clogged_drainage: bool = False
    housing_congestion: bool = False
    notes: Optional[str] = None


class EnvironmentalReportUpdate(BaseModel):
    barangay_id: Optional[int] = None
    date_reported: Optional[datetime] = None
    stagnant_water: Optional[bool] = None
    poor_waste_disposal: Optional[bool] = None
    clogged_drainage: Optional[bool] = None
    housing_congestion: Optional[bool] = None
    notes: Optional[str] = None


class EnvironmentalReportOut(BaseModel):
    id: int
    barangay_id: int
    date_reported: datetime
    stagnant_water: bool
    poor_waste_disposal: bool
    clogged_drainage: bool
    housing_congestion: bool
    notes: Optional[str] = None


class AlertStatusUpdate(BaseModel):
    status: AlertStatus


class AlertOut(BaseModel):
    id: int
    barangay_id: int
    title: str
    message: str
    risk_level: RiskLevel
    status: AlertStatus
    triggered_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None
