from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class BoundingBox(BaseModel):
    """Box position and size as percentages of the image dimensions."""

    x: float = Field(..., ge=0, le=100)
    y: float = Field(..., ge=0, le=100)
    width: float = Field(..., ge=0, le=100)
    height: float = Field(..., ge=0, le=100)


class Detection(BaseModel):
    label: str
    confidence: float = Field(..., ge=0, le=1)
    bbox: BoundingBox
    temperature: Literal["hot", "warm", "cool", "cold"]


class DetectResponse(BaseModel):
    id: str
    image_url: Optional[str] = None
    detections: List[Detection]
    created_at: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
