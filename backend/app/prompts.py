"""
GapHunter Backend — LLM Prompt Templates

All prompts are defined here. Persona system prompt is injected in llm.py.
The expected output shape is declared separately (response_schema) by gateway.py.
"""

import json

from app.config import REVIEW_SAMPLE_SIZE
from app.models import CompetitorAnalysis, Review


# -----------------------------------------------------------------------------
# 1. build_review_fetch_prompt
# -----------------------------------------------------------------------------

REVIEW_FETCH_PROMPT = """
# Role
Act as a data scraper collecting public customer feedback.

# Task
Generate {count} realistic, raw, negative user reviews for a SaaS product named "{competitor_name}".
The product is described as: "{description}".

# Rules
- Focus on common SaaS complaints: high pricing, poor support, buggy UI, missing specific features,
  complexity, data lock-in.
- Vary the length and tone. Some reviews are a single angry sentence, some are a detailed paragraph.
- Ratings should be mostly 1, 2, or 3 stars (integers from 1 to 5).
- "source" must be one of: "App Store", "Play Store", "G2", "Capterra", "Twitter".
- "date" is a plausible recent date in YYYY-MM-DD format. "id" is unique per review.

Return a JSON array only.
"""


def build_review_fetch_prompt(competitor_name: str, description: str) -> list[dict]:
    """
    Build prompt to synthesize negative reviews for a competitor.

    Expected output schema: list[Review]

    Returns:
        [{"role": "user", "content": "..."}]
    """
    content = REVIEW_FETCH_PROMPT.format(
        count=REVIEW_SAMPLE_SIZE,
        competitor_name=competitor_name,
        description=description,
    )
    return [{"role": "user", "content": content}]


# -----------------------------------------------------------------------------
# 2. build_analysis_prompt
# -----------------------------------------------------------------------------

ANALYSIS_PROMPT = """
# Role
You are a product analyst reading customer reviews of a competitor.

# Task
Analyze the following {review_count} reviews for competitor "{competitor_name}".
Identify the top recurring pain points and missing features that users are complaining about.
Summarize the overall sentiment.

# Output
- "sentiment_summary": two or three sentences on the overall mood.
- "average_rating": the mean star rating of the reviews (0.0 to 5.0).
- "pain_points": recurring complaint categories. "count" is how many reviews mention it,
  "severity" is one of "High", "Medium", "Low".
- "feature_gaps": capabilities users ask for. "demand_level" is "Critical" or "Nice to Have".

# Reviews
{reviews_text}
"""


def format_reviews_block(reviews: list[Review]) -> str:
    """One "[N stars] content" entry per review, separated by blank lines."""
    return "\n\n".join(f"[{r.rating} stars] {r.content}" for r in reviews)


def build_analysis_prompt(competitor_name: str, reviews: list[Review]) -> list[dict]:
    """
    Build prompt to extract pain points and feature gaps from reviews.

    An empty review list still produces a valid prompt (empty reviews block).

    Expected output schema: ReviewAnalysis
    """
    content = ANALYSIS_PROMPT.format(
        review_count=len(reviews),
        competitor_name=competitor_name,
        reviews_text=format_reviews_block(reviews),
    )
    return [{"role": "user", "content": content}]


# -----------------------------------------------------------------------------
# 3. build_blueprint_prompt
# -----------------------------------------------------------------------------

BLUEPRINT_PROMPT = """
# Role
You are a product strategist designing a challenger product.

# Task
Based on the provided competitor analysis (Pain Points and Feature Gaps), create a Product Blueprint
for a new SaaS that kills this competitor.
The product should directly address the high severity pain points and include the missing features.

# Output
- "product_name" and a one-line "tagline".
- "value_proposition": why a frustrated customer of the competitor would switch.
- "core_features": each with "title", "description" and "solves_gap" naming the pain point
  category or feature gap it fixes.
- "marketing_angles": short positioning statements.

# Context
{context}
"""


def build_blueprint_context(analysis: CompetitorAnalysis) -> str:
    """Serialize the parts of the analysis the blueprint is derived from."""
    return json.dumps({
        "competitor": analysis.competitor_name,
        "pain_points": [p.model_dump() for p in analysis.pain_points],
        "gaps": [g.model_dump() for g in analysis.feature_gaps],
    })


def build_blueprint_prompt(analysis: CompetitorAnalysis) -> list[dict]:
    """
    Build prompt to draft a product blueprint from a completed analysis.

    Expected output schema: ProductBlueprint
    """
    content = BLUEPRINT_PROMPT.format(context=build_blueprint_context(analysis))
    return [{"role": "user", "content": content}]
