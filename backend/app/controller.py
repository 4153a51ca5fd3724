"""
GapHunter Backend — View-State Controller

One ViewController per client session. It owns the active screen and the
in-flight analysis/blueprint snapshots; nothing else writes to them.

The two gateway-backed transitions are async generators that yield progress
events while they run (fetch → analyze, analyze → blueprint) and exit early on
the first failure. Once a generator is exhausted the controller's state is final.
"""

import time
from collections.abc import AsyncIterator
from datetime import date
from typing import Optional

from pydantic import BaseModel

from app import gateway
from app.config import generate_error_code, log
from app.demo import build_demo_analysis
from app.llm import GatewayError
from app.models import (
    AnalysisReadyEvent,
    AppState,
    BlueprintReadyEvent,
    CompetitorAnalysis,
    ErrorEvent,
    ProductBlueprint,
    Review,
    ReviewAnalysis,
    StateChangedEvent,
    StepStartedEvent,
)

ANALYSIS_FAILED_MESSAGE = "Analysis failed. Please check your API key or try again."
BLUEPRINT_FAILED_MESSAGE = "Failed to generate blueprint."

STEP_FETCHING_LABEL = "Scraping public reviews..."
STEP_ANALYZING_LABEL = "Analyzing {count} reviews with Gemini 2.5..."
STEP_BLUEPRINT_LABEL = "Drafting Product Blueprint..."

# Screens reachable by plain navigation from anywhere
FREE_NAVIGATION = frozenset({
    AppState.LANDING,
    AppState.DASHBOARD,
    AppState.ANALYZER_INPUT,
    AppState.SETTINGS,
})


class InvalidTransition(Exception):
    """Requested navigation is not allowed from the current state."""


def assemble_analysis(
    competitor_name: str,
    reviews: list[Review],
    partial: ReviewAnalysis,
) -> CompetitorAnalysis:
    """Build the full aggregate from fetched reviews and the model's analysis."""
    return CompetitorAnalysis(
        id=str(int(time.time() * 1000)),
        competitor_name=competitor_name,
        competitor_url=None,
        date_analyzed=date.today().isoformat(),
        total_reviews_analyzed=len(reviews),
        average_rating=partial.average_rating,
        sentiment_summary=partial.sentiment_summary,
        pain_points=list(partial.pain_points),
        feature_gaps=list(partial.feature_gaps),
        reviews=list(reviews),
    )


class ViewController:
    def __init__(self, session_id: str | None = None):
        self.session_id = session_id
        self.state: AppState = AppState.LANDING
        self.current_analysis: Optional[CompetitorAnalysis] = None
        self.blueprint: Optional[ProductBlueprint] = None
        self.error: Optional[str] = None
        self.analysis_step: str = ""
        self.competitor_name: str = ""
        self.competitor_description: str = ""
        self.busy: bool = False

    # ── Plain navigation ────────────────────────────────────────────────────

    def can_navigate(self, target: AppState) -> bool:
        if self.busy:
            return False
        if target in FREE_NAVIGATION:
            return True
        if target == AppState.INSIGHTS:
            return self.current_analysis is not None
        if target == AppState.BLUEPRINT:
            return self.blueprint is not None and self.current_analysis is not None
        return False

    def navigate(self, target: AppState) -> StateChangedEvent:
        """
        Move between screens without touching the gateway.

        Raises:
            InvalidTransition: target is ANALYZING, needs an aggregate that is
                not held, or an operation is in flight.
        """
        if not self.can_navigate(target):
            log(
                "WARN",
                "navigation rejected",
                session_id=self.session_id,
                from_state=self.state.value,
                to_state=target.value,
                busy=self.busy,
            )
            raise InvalidTransition(f"Cannot navigate from {self.state.value} to {target.value}")
        return self._transition(target)

    def view_sample(self) -> StateChangedEvent:
        """Load the demonstration analysis and show its insights."""
        if self.busy:
            raise InvalidTransition("An operation is already in progress")
        self.current_analysis = build_demo_analysis()
        self.blueprint = None
        return self._transition(AppState.INSIGHTS)

    # ── Gateway-backed transitions ──────────────────────────────────────────

    async def request_analysis(self, name: str, description: str) -> AsyncIterator[BaseModel]:
        """
        Fetch reviews, analyze them, store the resulting CompetitorAnalysis.

        No-op when either input is blank. Ends in INSIGHTS on success, in
        ANALYZER_INPUT with `error` set and no stored analysis on failure.
        """
        name = (name or "").strip()
        description = (description or "").strip()
        if not name or not description:
            log("INFO", "analysis request ignored, empty input", session_id=self.session_id)
            return
        if self.busy:
            raise InvalidTransition("An operation is already in progress")

        self.busy = True
        self.competitor_name = name
        self.competitor_description = description
        try:
            self.error = None
            yield self._transition(AppState.ANALYZING)
            yield self._step("fetch_reviews", STEP_FETCHING_LABEL)

            try:
                reviews = await gateway.fetch_reviews(name, description, session_id=self.session_id)
                yield self._step("analyze_reviews", STEP_ANALYZING_LABEL.format(count=len(reviews)))
                partial = await gateway.analyze_reviews(name, reviews, session_id=self.session_id)
                analysis = assemble_analysis(name, reviews, partial)
            except GatewayError as e:
                for event in self._abort_analysis("analysis failed", e, kind=e.kind.value):
                    yield event
                return
            except Exception as e:
                for event in self._abort_analysis("analysis pipeline error", e):
                    yield event
                return

            self.current_analysis = analysis
            self.blueprint = None
            yield AnalysisReadyEvent(analysis=analysis)
            yield self._transition(AppState.INSIGHTS)
        finally:
            self.busy = False

    async def request_blueprint(self) -> AsyncIterator[BaseModel]:
        """
        Draft a blueprint for the current analysis.

        No-op without a current analysis. Ends in BLUEPRINT on success, in
        INSIGHTS with the analysis untouched and `error` set on failure.
        """
        if self.current_analysis is None:
            log("INFO", "blueprint request ignored, no analysis", session_id=self.session_id)
            return
        if self.busy:
            raise InvalidTransition("An operation is already in progress")

        self.busy = True
        source = self.current_analysis
        try:
            self.error = None
            yield self._transition(AppState.ANALYZING)
            yield self._step("generate_blueprint", STEP_BLUEPRINT_LABEL)

            try:
                blueprint = await gateway.generate_blueprint(source, session_id=self.session_id)
            except GatewayError as e:
                for event in self._abort_blueprint("blueprint failed", e, kind=e.kind.value):
                    yield event
                return
            except Exception as e:
                for event in self._abort_blueprint("blueprint pipeline error", e):
                    yield event
                return

            self.blueprint = blueprint
            self.current_analysis = source.model_copy(update={"blueprint": blueprint})
            yield BlueprintReadyEvent(blueprint=blueprint)
            yield self._transition(AppState.BLUEPRINT)
        finally:
            self.busy = False

    async def run_analysis(self, name: str, description: str) -> AppState:
        """Drive request_analysis to completion, discarding events."""
        async for _ in self.request_analysis(name, description):
            pass
        return self.state

    async def run_blueprint(self) -> AppState:
        """Drive request_blueprint to completion, discarding events."""
        async for _ in self.request_blueprint():
            pass
        return self.state

    # ── Helpers ─────────────────────────────────────────────────────────────

    def _transition(self, to_state: AppState) -> StateChangedEvent:
        from_state = self.state
        self.state = to_state
        log(
            "INFO",
            "transition",
            session_id=self.session_id,
            from_state=from_state.value,
            to_state=to_state.value,
        )
        return StateChangedEvent(from_state=from_state, to_state=to_state)

    def _step(self, step: str, label: str) -> StepStartedEvent:
        self.analysis_step = label
        return StepStartedEvent(step=step, label=label)

    def _fail(self, message: str, log_message: str, error: Exception, **context) -> ErrorEvent:
        code = generate_error_code()
        log(
            "ERROR",
            log_message,
            session_id=self.session_id,
            error=str(error)[:300],
            error_code=code,
            **context,
        )
        self.error = message
        return ErrorEvent(message=message, recoverable=True, error_code=code)

    # Failure paths: the controller state is final before the error event is yielded

    def _abort_analysis(self, log_message: str, error: Exception, **context) -> list[BaseModel]:
        error_event = self._fail(ANALYSIS_FAILED_MESSAGE, log_message, error, **context)
        self.current_analysis = None
        self.blueprint = None
        return [error_event, self._transition(AppState.ANALYZER_INPUT)]

    def _abort_blueprint(self, log_message: str, error: Exception, **context) -> list[BaseModel]:
        error_event = self._fail(BLUEPRINT_FAILED_MESSAGE, log_message, error, **context)
        return [error_event, self._transition(AppState.INSIGHTS)]
