"""Application state shared by the HTTP routers."""

from typing import Optional

from paperclassifier.config import Settings
from paperclassifier.services.classification_service import PaperClassifier
from paperclassifier.store import PaperStore


# ============================================================================
# Global State
# ============================================================================


class AppState:
    """Mutable singleton holding the session's paper store and services."""

    settings: Settings
    store: PaperStore
    classifier: Optional[PaperClassifier] = None


state = AppState()


def reset_state(settings: Settings) -> None:
    """(Re)initialise the session: fresh store, classifier built from *settings*."""
    state.settings = settings
    state.store = PaperStore()
    state.classifier = PaperClassifier.from_settings(settings)
