import datetime
from typing import Optional
from pydantic import BaseModel, Field

def utcnow_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()

# Title and contents read from a POST/PUT body, presence is checked by the router
class PostIn(BaseModel):
    title: Optional[str] = None
    contents: Optional[str] = None

class Post(BaseModel):
    id: int
    title: str
    contents: str
    created_at: str = Field(default_factory=utcnow_iso)
    updated_at: str = Field(default_factory=utcnow_iso)

class Comment(BaseModel):
    id: int
    text: str
    post_id: int
    created_at: str = Field(default_factory=utcnow_iso)
    updated_at: str = Field(default_factory=utcnow_iso)
