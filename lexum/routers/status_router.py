# routers/status_router.py

from fastapi import APIRouter
from fastapi.params import Depends

from lexum.dependencies import get_dispatcher
from lexum.tasks.dispatcher import EventDispatcher

router = APIRouter()


@router.get("/dispatcher")
async def dispatcher_status(dispatcher: EventDispatcher = Depends(get_dispatcher)):
    """Counters of the best-effort side-write dispatcher"""
    return dispatcher.get_status()
