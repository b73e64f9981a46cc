"""
Preference profile document access.

The profile lives in the bot repository next to settings owned by other tools,
so updates overlay the learned fields and keep every other key as found.
"""

from pydantic import ValidationError

from src.learning.phases import LearnedPreferences
from src.store.document_store import DocumentStore
from src.utils.logger import logger
from src.utils.models import Document, PreferenceProfile, utc_now_iso


def default_profile_body() -> dict:
    """Pass-through profile used before anything has been learned."""
    return PreferenceProfile().model_dump(mode="json")


class PreferenceStore:
    """Reads and writes the preference profile document"""

    def __init__(self, store: DocumentStore, path: str = "user_preferences.json"):
        self.store = store
        self.path = path

    def read(self) -> Document:
        """Current profile document (defaults with version None if absent)."""
        return self.store.read_or_default(self.path, default_profile_body)

    @staticmethod
    def to_profile(document: Document) -> PreferenceProfile:
        """Lenient view of a profile body; invalid learned fields fall back to defaults."""
        body = document.body if isinstance(document.body, dict) else {}
        try:
            return PreferenceProfile.model_validate(body)
        except ValidationError as e:
            logger.warning(f"Stored profile has invalid fields, using defaults: {e}")
            extras = {k: v for k, v in body.items() if k not in PreferenceProfile.model_fields}
            return PreferenceProfile(**extras)

    def save_learned(
        self, learned: LearnedPreferences, signal_count: int, current: Document = None
    ) -> Document:
        """
        Overlay learned fields onto the stored profile with a CAS write.

        Args:
            learned: Phase-gated learned preferences
            signal_count: Number of signals analyzed (for the commit message)
            current: Profile document observed earlier in the same cycle

        Returns:
            The committed profile document

        Raises:
            VersionConflictError: If the write still conflicted after the retry
        """
        fields = learned.model_dump(mode="json")

        def overlay(body):
            if not isinstance(body, dict):
                body = default_profile_body()
            body.update(fields)
            body["last_updated"] = utc_now_iso()
            return body

        return self.store.update(
            self.path,
            overlay,
            f"Update preferences via LLM analysis ({signal_count} clicks)",
            default_factory=default_profile_body,
            current=current,
        )
