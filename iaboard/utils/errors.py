from __future__ import annotations


class ProviderNotConfiguredError(RuntimeError):
    """Raised when a vendor is called without its API key."""

    def __init__(self, provider: str, setting: str | None = None) -> None:
        self.provider = provider
        self.setting = setting or f"{provider.upper()}_API_KEY"
        super().__init__(f"{provider} API key not configured ({self.setting})")


class QuotaExceededError(RuntimeError):
    """Raised when the hourly token budget for a service is exhausted."""

    def __init__(self, service: str, reset_time: str) -> None:
        self.service = service
        self.reset_time = reset_time
        super().__init__(f"Quota exceeded for {service}; resets at {reset_time}")
