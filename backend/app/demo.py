"""
GapHunter Backend — Demonstration Data

The fixed sample analysis behind the dashboard's "Recent Analyses" row.
Loaded without any gateway call.
"""

from datetime import date

from app.models import CompetitorAnalysis, FeatureGap, PainPoint

DEMO_ANALYSIS_ID = "demo"
DEMO_ANALYZED_LABEL = "Oct 24, 2023"


def build_demo_analysis() -> CompetitorAnalysis:
    return CompetitorAnalysis(
        id=DEMO_ANALYSIS_ID,
        competitor_name="Salesforce (Demo)",
        date_analyzed=date.today().isoformat(),
        total_reviews_analyzed=124,
        average_rating=2.1,
        sentiment_summary=(
            "Users are heavily frustrated by the complexity of the UI and the steep learning curve. "
            "Pricing is a major point of contention for small businesses."
        ),
        pain_points=[
            PainPoint(category="Pricing", count=45, description="Hidden fees and high base cost", severity="High"),
            PainPoint(category="UX/UI", count=38, description="Cluttered interface, hard to navigate", severity="High"),
            PainPoint(category="Support", count=22, description="Slow response times on lower tiers", severity="Medium"),
            PainPoint(category="Performance", count=12, description="Slow loading on dashboards", severity="Medium"),
        ],
        feature_gaps=[
            FeatureGap(
                feature_name="Simple Export",
                demand_level="Critical",
                context="Users want 1-click CSV export without wizard",
            ),
            FeatureGap(
                feature_name="Dark Mode",
                demand_level="Nice to Have",
                context="Requested for late night work",
            ),
        ],
        reviews=[],
    )
