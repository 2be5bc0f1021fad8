# models/advertising.py

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, model_validator

from .enums import CampaignStatus, AdMediaType, AdType, AdPosition


def _end_not_before_start(start, end):
    if start is not None and end is not None and end < start:
        raise ValueError("end_date cannot be before start_date")


# -------------------------------------------------
# Campaigns
# -------------------------------------------------
class CampaignCreate(BaseModel):
    name: str = Field(..., min_length=1)
    client: str = Field(..., min_length=1)
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    budget: Optional[float] = Field(None, ge=0)
    priority: str = "medium"
    status: CampaignStatus = CampaignStatus.active

    @model_validator(mode="after")
    def check_dates(self):
        _end_not_before_start(self.start_date, self.end_date)
        return self


class CampaignUpdate(BaseModel):
    name: Optional[str] = None
    client: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    budget: Optional[float] = Field(None, ge=0)
    priority: Optional[str] = None
    status: Optional[CampaignStatus] = None

    @model_validator(mode="after")
    def check_dates(self):
        _end_not_before_start(self.start_date, self.end_date)
        return self


# -------------------------------------------------
# Spaces (where an ad can render)
# -------------------------------------------------
class SpaceCreate(BaseModel):
    space_key: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    page_type: str = Field(..., min_length=1)
    position: AdPosition
    dimensions: Optional[str] = None
    max_file_size: Optional[int] = Field(None, ge=0)
    allowed_formats: Optional[List[str]] = None
    is_active: bool = True


class SpaceUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    page_type: Optional[str] = None
    position: Optional[AdPosition] = None
    dimensions: Optional[str] = None
    max_file_size: Optional[int] = Field(None, ge=0)
    allowed_formats: Optional[List[str]] = None
    is_active: Optional[bool] = None


# -------------------------------------------------
# Advertisements
# -------------------------------------------------
class AdvertisementCreate(BaseModel):
    campaign_id: Optional[int] = None
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    content: Optional[str] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    target_url: Optional[str] = None
    button_text: Optional[str] = None
    media_type: AdMediaType = AdMediaType.image
    ad_type: AdType = AdType.banner
    priority: int = Field(5, ge=1, le=10)
    is_active: bool = True


class AdvertisementUpdate(BaseModel):
    campaign_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    target_url: Optional[str] = None
    button_text: Optional[str] = None
    media_type: Optional[AdMediaType] = None
    ad_type: Optional[AdType] = None
    priority: Optional[int] = Field(None, ge=1, le=10)
    is_active: Optional[bool] = None


# -------------------------------------------------
# Placements (ad × space × optional page, with dates)
# -------------------------------------------------
class PlacementCreate(BaseModel):
    advertisement_id: int
    ad_space_id: int
    page_type: Optional[str] = None
    page_id: Optional[int] = None
    start_date: datetime
    end_date: datetime
    is_active: bool = True

    @model_validator(mode="after")
    def check_dates(self):
        _end_not_before_start(self.start_date, self.end_date)
        return self


class PlacementUpdate(BaseModel):
    page_type: Optional[str] = None
    page_id: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def check_dates(self):
        _end_not_before_start(self.start_date, self.end_date)
        return self


# -------------------------------------------------
# Public tracking payload
# -------------------------------------------------
class TrackingEvent(BaseModel):
    placement_id: int
    user_agent: Optional[str] = None
    page_url: Optional[str] = None
