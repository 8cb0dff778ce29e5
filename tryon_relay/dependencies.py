from fastapi import Request

from .config import Settings
from .services.collaborators import TryOnCollaborator


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_tryon_collaborator(request: Request) -> TryOnCollaborator:
    return request.app.state.collaborator
