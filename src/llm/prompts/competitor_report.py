"""
Pydantic schema for the competitor citation comparison report.
"""

from pydantic import BaseModel, Field


class StructuredOutput(BaseModel):
    """Narrative comparison of a domain's citations against its competitors."""

    report: str = Field(
        min_length=1,
        description=(
            "Comparison summary (3-4 sentences), strengths and weaknesses of the analyzed "
            "domain (bullets) and improvement opportunities with concrete actions (bullets)."
        )
    )
