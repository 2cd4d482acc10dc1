# telebridge/dependencies.py
"""
FastAPI dependencies shared by the routers.

Settings and the registry live on `app.state` (set up by create_app and the
lifespan); the upstream clients are built per request from those settings so
tests can swap them through `app.dependency_overrides`.
"""
from fastapi import Depends, Request

from telebridge.config import Settings
from telebridge.services.call_registry import CallRegistry
from telebridge.services.room_service import RoomProvisioner, build_room_provisioner
from telebridge.services.twilio_client import TwilioClient, build_twilio_client


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> CallRegistry:
    return request.app.state.registry


def get_twilio_client(settings: Settings = Depends(get_app_settings)) -> TwilioClient:
    return build_twilio_client(settings)


def get_room_provisioner(settings: Settings = Depends(get_app_settings)) -> RoomProvisioner:
    return build_room_provisioner(settings)


def public_base_url(request: Request, settings: Settings) -> str:
    """Base URL Twilio should call back on."""
    if settings.PUBLIC_BASE_URL:
        return settings.PUBLIC_BASE_URL.rstrip("/")
    return str(request.base_url).rstrip("/")
