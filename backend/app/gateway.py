"""
GapHunter Backend — External Analysis Gateway

The three one-shot operations against the hosted model:
fetch_reviews → analyze_reviews → generate_blueprint.
Each declares its output shape and validates the response before returning it.
Stateless between calls: nothing is cached, deduplicated or retried.
"""

import time

from app import llm, prompts
from app.config import log
from app.llm import GatewayError, MissingCredentialError
from app.models import CompetitorAnalysis, ProductBlueprint, Review, ReviewAnalysis


async def fetch_reviews(
    competitor_name: str,
    description: str,
    session_id: str | None = None,
) -> list[Review]:
    """
    Ask the model for a sample of negative reviews of the competitor.

    Degrades to an empty list when the remote call fails, returns no body,
    or returns a body that does not match list[Review].

    Raises:
        MissingCredentialError: No API key configured; no call is attempted.
    """
    start = time.perf_counter()
    log("INFO", "gateway operation started", session_id=session_id, operation="fetch_reviews")
    try:
        reviews = await llm.call_llm_structured(
            prompts.build_review_fetch_prompt(competitor_name, description),
            list[Review],
            session_id=session_id,
        )
    except MissingCredentialError:
        raise
    except GatewayError as e:
        log(
            "WARN",
            "review fetch degraded to empty result",
            session_id=session_id,
            operation="fetch_reviews",
            failure_kind=e.kind.value,
            error=str(e)[:300],
        )
        return []

    log(
        "INFO",
        "gateway operation succeeded",
        session_id=session_id,
        operation="fetch_reviews",
        review_count=len(reviews),
        duration_ms=int((time.perf_counter() - start) * 1000),
    )
    return reviews


async def analyze_reviews(
    competitor_name: str,
    reviews: list[Review],
    session_id: str | None = None,
) -> ReviewAnalysis:
    """
    Extract pain points, feature gaps and a sentiment summary from reviews.

    Raises:
        MissingCredentialError, LLMError, LLMValidationError: propagated as-is.
    """
    start = time.perf_counter()
    log(
        "INFO",
        "gateway operation started",
        session_id=session_id,
        operation="analyze_reviews",
        review_count=len(reviews),
    )
    analysis = await llm.call_llm_structured(
        prompts.build_analysis_prompt(competitor_name, reviews),
        ReviewAnalysis,
        session_id=session_id,
    )
    log(
        "INFO",
        "gateway operation succeeded",
        session_id=session_id,
        operation="analyze_reviews",
        pain_points=len(analysis.pain_points),
        feature_gaps=len(analysis.feature_gaps),
        duration_ms=int((time.perf_counter() - start) * 1000),
    )
    return analysis


async def generate_blueprint(
    analysis: CompetitorAnalysis,
    session_id: str | None = None,
) -> ProductBlueprint:
    """
    Draft a product that addresses the analysis' pain points and feature gaps.

    Raises:
        MissingCredentialError, LLMError, LLMValidationError: propagated as-is.
    """
    start = time.perf_counter()
    log(
        "INFO",
        "gateway operation started",
        session_id=session_id,
        operation="generate_blueprint",
        competitor=analysis.competitor_name,
    )
    blueprint = await llm.call_llm_structured(
        prompts.build_blueprint_prompt(analysis),
        ProductBlueprint,
        session_id=session_id,
    )
    log(
        "INFO",
        "gateway operation succeeded",
        session_id=session_id,
        operation="generate_blueprint",
        product_name=blueprint.product_name,
        duration_ms=int((time.perf_counter() - start) * 1000),
    )
    return blueprint
