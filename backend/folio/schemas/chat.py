from pydantic import BaseModel, Field
from typing import List, Literal, Optional


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage]
    stream: bool = True
    pdf_base64: Optional[str] = Field(None, alias="pdfBase64")

    class Config:
        populate_by_name = True


class WizardRequest(BaseModel):
    messages: List[ChatMessage] = []
    avatar: Optional[str] = None
