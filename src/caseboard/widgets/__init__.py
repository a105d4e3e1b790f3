"""Dashboard widgets and their display formatters."""

from caseboard.widgets.views import (
    DEFAULT_WIDGETS,
    AIEnginesStatus,
    CasesList,
    EvidenceList,
    StatusCards,
    ThreatFeed,
    ViewState,
    Widget,
    WidgetView,
)

__all__ = [
    "DEFAULT_WIDGETS",
    "AIEnginesStatus",
    "CasesList",
    "EvidenceList",
    "StatusCards",
    "ThreatFeed",
    "ViewState",
    "Widget",
    "WidgetView",
]
