# app/schemas/email_schemas.py
from pydantic import BaseModel
from typing import List, Optional, Union


class EmailAttachment(BaseModel):
    filename: str
    content: bytes
    content_type: str = "application/pdf"


class EmailMessage(BaseModel):
    to: Union[str, List[str]]
    subject: str
    html: str
    sender: Optional[str] = None
    attachments: List[EmailAttachment] = []

    @property
    def recipients(self) -> List[str]:
        return self.to if isinstance(self.to, list) else [self.to]


class EmailResult(BaseModel):
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class BulkEmailResult(BaseModel):
    successful: int
    failed: int
    total: int
