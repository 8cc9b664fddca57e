"""Request bodies for the public contact and site survey forms."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContactForm(BaseModel):
    clientname: str = Field(min_length=1)
    phonenumber: str = Field(min_length=1)
    email: Optional[str] = None
    address: Optional[str] = None
    issiteaddressdifferent: bool = False
    siteaddress: Optional[str] = None
    projectname: Optional[str] = None
    serviceparts: Optional[str] = None


class FenceLine(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    line_description: Optional[str] = Field(default=None, alias="lineDescription")
    length: str
    height: Optional[str] = None
    fence_type: str = Field(alias="fenceType")
    rail_wire_count: Optional[str] = Field(default=None, alias="railWireCount")
    special_notes: Optional[str] = Field(default=None, alias="specialNotes")


class SiteSurvey(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    customer_name: str = Field(alias="customerName", min_length=1)
    phone: str = Field(min_length=1)
    email: Optional[str] = None
    property_address: str = Field(alias="propertyAddress", min_length=1)
    removal_required: bool = Field(default=False, alias="removalRequired")
    additional_notes: Optional[str] = Field(default=None, alias="additionalNotes")
    fence_lines: List[FenceLine] = Field(alias="fenceLines", min_length=1)
    photo_urls: List[str] = Field(default_factory=list, alias="photoUrls")
