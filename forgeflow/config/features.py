"""Feature flag management."""

from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from .settings import Settings


class FeatureFlags:
    """Which optional parts of the runtime a configuration turns on."""

    def __init__(self, settings: "Settings"):
        """Initialize with settings."""
        self.settings = settings

    @property
    def poll_trigger_enabled(self) -> bool:
        return self.settings.enable_poll_trigger

    @property
    def gmail_trigger_enabled(self) -> bool:
        """Mailbox watching needs both the flag and a credential file."""
        return (
            self.settings.enable_gmail_trigger
            and self.settings.gmail_credentials_path is not None
        )

    @property
    def telegram_trigger_enabled(self) -> bool:
        return (
            self.settings.enable_telegram_trigger
            and self.settings.telegram_bot_token is not None
        )

    @property
    def retry_enabled(self) -> bool:
        return self.settings.retry_enabled and self.settings.retry_max_attempts > 0

    @property
    def timed_shutdown_enabled(self) -> bool:
        return self.settings.shutdown_after_seconds is not None

    @property
    def development_features_enabled(self) -> bool:
        return self.settings.development_mode

    def is_feature_enabled(self, feature_name: str) -> bool:
        """Generic feature check by name."""
        feature_map = {
            "poll_trigger": self.poll_trigger_enabled,
            "gmail_trigger": self.gmail_trigger_enabled,
            "telegram_trigger": self.telegram_trigger_enabled,
            "retry": self.retry_enabled,
            "timed_shutdown": self.timed_shutdown_enabled,
            "development": self.development_features_enabled,
        }
        return feature_map.get(feature_name, False)

    def get_enabled_features(self) -> List[str]:
        """Get list of all enabled features."""
        features = [
            "poll_trigger",
            "gmail_trigger",
            "telegram_trigger",
            "retry",
            "timed_shutdown",
            "development",
        ]
        return [name for name in features if self.is_feature_enabled(name)]
