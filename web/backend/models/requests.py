#!/usr/bin/env python3
"""
Request models for API endpoints.
"""

from typing import Literal

from pydantic import BaseModel, Field


class SubmitMatchRequest(BaseModel):
    """Request to submit a question and match it immediately."""
    text: str = Field(..., min_length=1, max_length=2000, description="What the requester is curious about")


class RespondToMatchRequest(BaseModel):
    """Matched user's answer to a match."""
    action: Literal["accept", "decline"] = Field(..., description="accept or decline")
