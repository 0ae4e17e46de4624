"""Upload API request/response schemas"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UploadedFileResponse(BaseModel):
    """Metadata of a file stored in the upload area

    The fields line up with DocumentAttachment, so clients can put the
    response straight into a registration slot.
    """
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: str = Field(..., description="Random hex id of the stored file")
    name: str = Field(..., description="Sanitized original filename")
    mime_type: str = Field(..., description="MIME type")
    size_bytes: int = Field(..., description="File size in bytes")
    url: str = Field(..., description="Public URL of the file")
    storage_path: str = Field(..., description="{category}/{file} path inside the upload area")
    uploaded_at: datetime


class UploadResponse(BaseModel):
    """Response for POST /uploads"""
    success: bool = True
    file: UploadedFileResponse


class FileDeletedResponse(BaseModel):
    """Response for DELETE /uploads/file"""
    success: bool = True
    message: str = "File deleted successfully"
