"""
GapHunter Backend — Screen Payloads

Pure functions turning controller state into what a client renders.
No independent logic: everything here is derived from the controller.
"""

from app.controller import ViewController
from app.demo import DEMO_ANALYZED_LABEL, build_demo_analysis
from app.models import AppState, CompetitorAnalysis, PainPoint, Screen


def sort_pain_points(pain_points: list[PainPoint]) -> list[PainPoint]:
    """Order by count descending. Stable: ties keep their input order."""
    return sorted(pain_points, key=lambda p: p.count, reverse=True)


def top_pain_point(analysis: CompetitorAnalysis) -> str | None:
    ranked = sort_pain_points(analysis.pain_points)
    return ranked[0].category if ranked else None


def render(controller: ViewController) -> Screen:
    """Build the payload for the controller's current screen."""
    renderer = _RENDERERS.get(controller.state)
    content = renderer(controller) if renderer else None
    return Screen(state=controller.state, content=content)


def _render_dashboard(controller: ViewController) -> dict:
    demo = build_demo_analysis()
    rows = [
        {
            "id": demo.id,
            "competitor_name": demo.competitor_name,
            "analyzed": DEMO_ANALYZED_LABEL,
            "top_pain_point": top_pain_point(demo),
            "status": "Complete",
        }
    ]
    current = controller.current_analysis
    if current is not None and current.id != demo.id:
        rows.insert(0, {
            "id": current.id,
            "competitor_name": current.competitor_name,
            "analyzed": current.date_analyzed,
            "top_pain_point": top_pain_point(current),
            "status": "Complete",
        })
    return {
        "stats": {
            "competitors": len(rows),
            "feature_gaps": sum(len(a.feature_gaps) for a in _held_analyses(controller, demo)),
            "blueprints": 1 if controller.blueprint is not None else 0,
        },
        "recent_analyses": rows,
    }


def _held_analyses(controller: ViewController, demo: CompetitorAnalysis) -> list[CompetitorAnalysis]:
    current = controller.current_analysis
    if current is None or current.id == demo.id:
        return [demo]
    return [current, demo]


def _render_analyzer_input(controller: ViewController) -> dict:
    return {
        "competitor_name": controller.competitor_name,
        "description": controller.competitor_description,
        "error": controller.error,
        "can_submit": bool(controller.competitor_name and controller.competitor_description),
    }


def _render_analyzing(controller: ViewController) -> dict:
    return {"step": controller.analysis_step}


def _render_insights(controller: ViewController) -> dict | None:
    analysis = controller.current_analysis
    if analysis is None:
        return None
    payload = analysis.model_dump(mode="json", exclude={"blueprint"})
    payload["pain_points"] = [p.model_dump(mode="json") for p in sort_pain_points(analysis.pain_points)]
    payload["critical_gaps"] = [
        g.feature_name for g in analysis.feature_gaps if g.demand_level == "Critical"
    ]
    payload["has_blueprint"] = analysis.blueprint is not None
    payload["error"] = controller.error
    return payload


def _render_blueprint(controller: ViewController) -> dict | None:
    if controller.blueprint is None or controller.current_analysis is None:
        return None
    return {
        "competitor_name": controller.current_analysis.competitor_name,
        "blueprint": controller.blueprint.model_dump(mode="json"),
    }


_RENDERERS = {
    AppState.DASHBOARD: _render_dashboard,
    AppState.ANALYZER_INPUT: _render_analyzer_input,
    AppState.ANALYZING: _render_analyzing,
    AppState.INSIGHTS: _render_insights,
    AppState.BLUEPRINT: _render_blueprint,
}


def blueprint_to_markdown(analysis: CompetitorAnalysis) -> str:
    """Export an analysis' blueprint as a Markdown document."""
    if analysis.blueprint is None:
        raise ValueError("Analysis has no blueprint")
    bp = analysis.blueprint
    lines = [
        f"# {bp.product_name}",
        "",
        f"_{bp.tagline}_",
        "",
        f"Challenger to **{analysis.competitor_name}**.",
        "",
        "## Value Proposition",
        "",
        bp.value_proposition,
        "",
        "## Core Features",
        "",
    ]
    for feature in bp.core_features:
        lines.append(f"### {feature.title}")
        lines.append("")
        lines.append(feature.description)
        lines.append("")
        lines.append(f"Solves: {feature.solves_gap}")
        lines.append("")
    lines.append("## Marketing Angles")
    lines.append("")
    lines.extend(f"- {angle}" for angle in bp.marketing_angles)
    return "\n".join(lines) + "\n"
