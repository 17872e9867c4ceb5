from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from school_intake.dependencies import get_messages
from school_intake.services.message_service import MessageService

router = APIRouter()


@router.get("/api/messages")
async def get_message_catalogue(messages: MessageService = Depends(get_messages)):
    """Message catalogue for the front-end (cacheable for an hour)"""
    return JSONResponse(
        content=messages.all(),
        headers={"Cache-Control": "public, max-age=3600"},
    )
