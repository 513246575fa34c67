"""
Pydantic schema for citation sentiment classification.
"""

from pydantic import BaseModel, Field
from typing import Literal


class StructuredOutput(BaseModel):
    """Sentiment of the text surrounding one citation of a website."""

    sentiment: Literal['positive', 'neutral', 'negative'] = Field(
        description=(
            "How the surrounding text talks about the cited website:\n"
            "- 'positive': favorable, recommending, praising, highly rated\n"
            "- 'neutral': factual or descriptive, no evident opinion\n"
            "- 'negative': critical, unfavorable, pointing out problems"
        )
    )
