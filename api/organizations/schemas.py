"""
Pydantic schemas for organization records.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_DESCRIPTION = "GSoC Organization"


class Organization(BaseModel):
    model_config = {"frozen": True}

    name: str = Field(..., min_length=1)
    description: str = DEFAULT_DESCRIPTION
    url: str = ""
    year: int
