"""
Pydantic schema for topic extraction over citation contexts.
"""

from pydantic import BaseModel, Field, field_validator
from typing import List


class StructuredOutput(BaseModel):
    """
    Main topics discussed around the citations of a website.

    Labels are short (1-3 words) and shared by every citation of a run.
    """

    topics: List[str] = Field(
        min_length=1,
        max_length=10,
        description="5 to 10 short topic labels (1-3 words each), most prominent first."
    )

    @field_validator('topics')
    @classmethod
    def clean_topics(cls, topics: List[str]) -> List[str]:
        cleaned = [t.strip() for t in topics if t and t.strip()]
        if not cleaned:
            raise ValueError("topics must contain at least one non-empty label")
        return cleaned
