from ...config import Settings
from .base import TryOnCollaborator
from .mock import MockTryOnCollaborator


def get_collaborator(settings: Settings) -> TryOnCollaborator:
    if settings.collaborator == "mock":
        return MockTryOnCollaborator()
    from .gradio import GradioTryOnCollaborator  # local import keeps gradio_client out of mock-only setups
    return GradioTryOnCollaborator(settings)
