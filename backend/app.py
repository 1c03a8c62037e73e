# backend/app.py
import asyncio
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from loguru import logger

import config
from docx_parser import DOCX_MIME, validate_upload
from errors import (
    ConversationError,
    DocAssistantError,
    InputRejected,
    InvalidMarkup,
    ParseFailed,
    SessionNotFound,
    SkipRejected,
)
from log_config import setup_logging
from models import PlaceholderOut, SessionOut, Turn, placeholder_rows, session_out
from question_source import build_question_source
from rate_limiter import RateLimiter
from sample import SAMPLE_NAME, build_sample_docx
from session_store import SessionStore

setup_logging()

limiter = RateLimiter(config.RATE_LIMIT_MAX_REQUESTS, config.RATE_LIMIT_WINDOW_SECONDS)
store = SessionStore(build_question_source(limiter))


async def _sweep_rate_limits(interval: int):
    while True:
        await asyncio.sleep(interval)
        limiter.sweep()


@asynccontextmanager
async def lifespan(app: FastAPI):
    task = asyncio.create_task(_sweep_rate_limits(config.RATE_LIMIT_SWEEP_SECONDS))
    try:
        yield
    finally:
        task.cancel()


app = FastAPI(title="Lexsy Legal Doc Assistant API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS, allow_credentials=True,
    allow_methods=["*"], allow_headers=["*"],
)


def get_store() -> SessionStore:
    return store


# ---------- helpers ----------
def client_identifier(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


def http_error(e: DocAssistantError, status_code: int) -> HTTPException:
    logger.info(f"{type(e).__name__}: {e.user_message()}")
    return HTTPException(status_code=status_code, detail=e.user_message())


def lookup(store: SessionStore, session_id: str):
    try:
        return store.get(session_id)
    except SessionNotFound as e:
        raise http_error(e, 404)


# ---------- routes ----------
@app.post("/api/upload", response_model=SessionOut)
def upload_doc(request: Request, file: UploadFile = File(...), api_key: str | None = Form(None),
               store: SessionStore = Depends(get_store)):
    # one byte past the limit is enough to reject an oversize upload
    data = file.file.read(config.MAX_UPLOAD_BYTES + 1)
    try:
        validate_upload(file.filename, file.content_type, len(data))
        session = store.open(file.filename, data, identifier=client_identifier(request), api_key=api_key)
    except InputRejected as e:
        raise http_error(e, 400)
    except ParseFailed as e:
        raise http_error(e, 422)
    return session_out(session)


@app.post("/api/sample", response_model=SessionOut)
def load_sample(request: Request, api_key: str | None = Form(None),
                store: SessionStore = Depends(get_store)):
    session = store.open(SAMPLE_NAME, build_sample_docx(),
                         identifier=client_identifier(request), api_key=api_key)
    return session_out(session)


@app.get("/api/placeholders", response_model=list[PlaceholderOut])
def list_placeholders(session_id: str, store: SessionStore = Depends(get_store)):
    session = lookup(store, session_id)
    return placeholder_rows(session.placeholders, session.conversation.answers)


@app.get("/api/messages", response_model=list[Turn])
def messages(session_id: str, store: SessionStore = Depends(get_store)):
    session = lookup(store, session_id)
    return [Turn(**t) for t in session.conversation.turns]


@app.post("/api/chat", response_model=SessionOut)
def chat(session_id: str = Form(...), message: str = Form(...),
         store: SessionStore = Depends(get_store)):
    if not message.strip():
        raise HTTPException(status_code=400, detail="Answer cannot be empty")
    try:
        session = store.answer(session_id, message)
    except SessionNotFound as e:
        raise http_error(e, 404)
    except ConversationError as e:
        raise http_error(e, 409)
    return session_out(session)


@app.post("/api/skip", response_model=SessionOut)
def skip(session_id: str = Form(...), index: int = Form(...),
         store: SessionStore = Depends(get_store)):
    try:
        session = store.skip(session_id, index)
    except SessionNotFound as e:
        raise http_error(e, 404)
    except SkipRejected:
        # skipping anything but the current question is a no-op
        return session_out(lookup(store, session_id), ignored=True)
    return session_out(session)


@app.post("/api/reset", response_model=SessionOut)
def reset(session_id: str = Form(...), store: SessionStore = Depends(get_store)):
    try:
        session = store.reset(session_id)
    except SessionNotFound as e:
        raise http_error(e, 404)
    return session_out(session)


@app.get("/api/render")
def render(session_id: str, store: SessionStore = Depends(get_store)):
    try:
        page = store.preview(session_id)
    except SessionNotFound as e:
        raise http_error(e, 404)
    except ParseFailed as e:
        raise http_error(e, 422)
    return JSONResponse({"html": page})


@app.get("/api/download")
def download(session_id: str, store: SessionStore = Depends(get_store)):
    try:
        content = store.generate(session_id)
    except SessionNotFound as e:
        raise http_error(e, 404)
    except ConversationError as e:
        raise http_error(e, 409)
    except (InvalidMarkup, ParseFailed) as e:
        logger.error(f"Document generation failed: {e.user_message()}")
        raise HTTPException(status_code=500, detail="Document generation failed. Please try again.")
    return Response(
        content=content,
        media_type=DOCX_MIME,
        headers={"Content-Disposition": 'attachment; filename="completed.docx"'},
    )
