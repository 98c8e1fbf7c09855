"""Onboarding exceptions."""


class OnboardingError(Exception):
    """Base class for onboarding failures."""


class StepGraphError(OnboardingError):
    """Impossible step transition (programmer error)."""


class AmendmentError(OnboardingError):
    """A message cannot be amended (wrong role, no step tag, unknown id)."""


class UpstreamError(OnboardingError):
    """An external collaborator (AI, directory, upload, checkout) failed."""


class CheckoutNotReadyError(OnboardingError):
    """Checkout requested before legal data and consent are complete."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Checkout not ready, missing: {', '.join(missing)}")
