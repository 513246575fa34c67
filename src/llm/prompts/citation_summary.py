"""
Pydantic schema for the narrative summary of a domain's citations.
"""

from pydantic import BaseModel, Field


class StructuredOutput(BaseModel):
    """Narrative summary of a citation analysis."""

    summary: str = Field(
        min_length=1,
        description=(
            "Concise report covering: overall trend (2-3 sentences), main topics (bullets), "
            "interpretation of the sentiment split (1-2 sentences) and recommended actions (bullets)."
        )
    )
