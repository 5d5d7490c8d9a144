"""Media upload Pydantic schemas."""

from pydantic import BaseModel, Field

from comu_relay.schemas.message import ContentKind


class MediaUpload(BaseModel):
    """Schema for uploading a media payload ahead of sending it."""

    message_id: str = Field(..., description="Identifier the media will be attached to")
    kind: ContentKind = Field(..., description="Content kind the payload is sent as")
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field(..., description="MIME type of the payload")
    data: str = Field(..., description="Base64-encoded payload bytes")


class MediaUploaded(BaseModel):
    """Location of an uploaded media payload."""

    key: str
    url: str
    size: int
