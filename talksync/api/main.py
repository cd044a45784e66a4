from typing import List

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, field_validator

from talksync.api.websocket import ArithmeticWebSocketHandler, BaseWebSocketHandler, ChatWebSocketHandler
from talksync.core.dependencies import get_container
from talksync.core.exceptions import SessionError
from talksync.core.logger import logger
from talksync.core.settings import settings

app = FastAPI(
    title="TalkSync API",
    description="Multilingual chat relay with translation and spoken replies",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.api.API_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class TextRequest(BaseModel):
    text: str

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be empty")
        return value


class SessionResponse(BaseModel):
    session_id: str


class MessageResponse(BaseModel):
    id: str
    sender: str
    text: str
    is_audio: bool
    created_at: str


class ExchangeResponse(BaseModel):
    detected_language: str
    messages: List[MessageResponse]


class AuxiliaryResponse(BaseModel):
    response: str


@app.exception_handler(SessionError)
async def session_error_handler(request: Request, exc: SessionError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "talksync",
        "version": "0.1.0",
    }


@app.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session():
    manager = get_container().get_session_manager()
    await manager.cleanup_expired_sessions()
    session = manager.create_session(metadata={"transport": "http"})
    return SessionResponse(session_id=session.session_id)


@app.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str):
    deleted = await get_container().get_session_manager().delete_session(session_id)
    if not deleted:
        raise SessionError(f"Session not found: {session_id}")


@app.get("/sessions/{session_id}/messages", response_model=List[MessageResponse])
async def list_messages(session_id: str):
    session = get_container().get_session_manager().require_session(session_id)
    return [message.to_dict() for message in session.conversation]


@app.post("/sessions/{session_id}/messages", response_model=ExchangeResponse)
async def send_message(session_id: str, body: TextRequest):
    session = get_container().get_session_manager().require_session(session_id)

    exchange = await session.pipeline.submit_text(body.text, is_audio=False)
    if exchange is None:
        raise HTTPException(status_code=409, detail="Conversation was cleared before the reply arrived")

    return ExchangeResponse(
        detected_language=exchange.detected_language,
        messages=[message.to_dict() for message in exchange.messages],
    )


@app.delete("/sessions/{session_id}/messages", status_code=204)
async def clear_messages(session_id: str):
    session = get_container().get_session_manager().require_session(session_id)
    await session.pipeline.clear()


@app.post("/test-app", response_model=AuxiliaryResponse)
async def send_test_app_request(body: TextRequest):
    response = await get_container().get_arithmetic_client().send(body.text)
    return AuxiliaryResponse(response=response)


async def _run_websocket(handler: BaseWebSocketHandler):
    try:
        await handler.connect()
        await handler.handle_conversation()
    except WebSocketDisconnect:
        logger.info("Client disconnected")
    except Exception as e:
        logger.error(f"WebSocket error: {e}", exc_info=True)
        await handler.send_json({"type": "error", "message": str(e)})
    finally:
        await handler.disconnect()


@app.websocket("/ws/chat")
async def websocket_chat_endpoint(websocket: WebSocket):
    await _run_websocket(ChatWebSocketHandler(websocket, get_container().get_session_manager()))


@app.websocket("/ws/test-app")
async def websocket_test_app_endpoint(websocket: WebSocket):
    await _run_websocket(ArithmeticWebSocketHandler(websocket, get_container().get_arithmetic_client()))


@app.on_event("startup")
async def startup_event():
    logger.info("Starting TalkSync API...")
    logger.info(f"Chat backend: {settings.backend.CHAT_BACKEND_URL}")
    logger.info(f"Translation endpoint: {settings.translation.TRANSLATION_URL}")
    get_container().get_session_manager().start_cleanup(settings.api.SESSION_CLEANUP_INTERVAL_SECONDS)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down TalkSync API...")
    await get_container().get_session_manager().stop_cleanup()
