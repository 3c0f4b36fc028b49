"""
Pydantic schemas for the marketing inquiry form and partner sign-ups.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, validator
from typing import Optional, Union


class MarketingInquiry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=20)
    address: str = Field(..., min_length=1)
    property_price: Union[float, str] = Field(..., alias="propertyPrice")
    package_title: str = Field(..., alias="packageTitle", min_length=1)
    package_price: Optional[str] = Field(None, alias="packagePrice")
    package_target: Optional[str] = Field(None, alias="packageTarget")


class PartnerBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=20)

    @validator("email")
    def normalize_email(cls, v):
        return v.strip().lower()


class AgentSignup(PartnerBase):
    model_config = ConfigDict(populate_by_name=True)

    agency_name: str = Field(..., alias="agencyName", min_length=1, max_length=255)
    experience: Optional[str] = Field(None, max_length=100)
    pdf_url: str = Field(..., alias="pdfUrl", min_length=1)


class InfluencerSignup(PartnerBase):
    model_config = ConfigDict(populate_by_name=True)

    meta_link: str = Field(..., alias="metaLink", min_length=1)
    followers: int = Field(..., ge=0)
