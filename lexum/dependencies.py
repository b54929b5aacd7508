# dependencies.py

from fastapi import Request
from fastapi.params import Depends

from lexum.auth.token_handler import TokenHandler
from lexum.repositories.background_writes import BackgroundWrites
from lexum.services.ai_service import AIService
from lexum.tasks.dispatcher import EventDispatcher


def get_user_id(user_info: dict = Depends(TokenHandler.verify_access_token)) -> int:
    return int(user_info.get('sub'))


def get_dispatcher(request: Request) -> EventDispatcher:
    return request.app.state.dispatcher


def get_ai_service(request: Request) -> AIService:
    return request.app.state.ai_service


def get_background_writes(request: Request) -> BackgroundWrites:
    return request.app.state.background_writes
