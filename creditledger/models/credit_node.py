from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import Field


class CreditNode(Document):
    """One store node per account path; version increments on every write."""
    path: Indexed(str, unique=True)
    value: Any = None
    version: int = 1
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "credit_nodes"
