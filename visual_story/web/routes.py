import asyncio

from fastapi import APIRouter, Request, HTTPException, Depends, UploadFile, File
from fastapi.responses import JSONResponse, Response
from fastapi.templating import Jinja2Templates
from pathlib import Path
from pydantic import BaseModel

from visual_story.agents.speech.text_to_speech import synthesize_speech
from visual_story.agents.translator.translator import SUPPORTED_LANGUAGES, DEFAULT_LANGUAGE
from visual_story.core.config import settings
from visual_story.core.logger import log_error
from visual_story.core.session import AppMode, SessionController, SessionStore, render_view

# Setup Templates
# This points to the 'visual_story/templates' folder
BASE_DIR = Path(__file__).resolve().parent.parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

router = APIRouter()

SESSION_COOKIE = "session_id"

# In-memory sessions, lost on restart
sessions = SessionStore(max_sessions=settings.MAX_SESSIONS)


class ModeRequest(BaseModel):
    mode: AppMode

class StoryRequest(BaseModel):
    text: str

class QuestionRequest(BaseModel):
    question: str

class TranslateRequest(BaseModel):
    language: str = DEFAULT_LANGUAGE

class AnswerSelection(BaseModel):
    question: int
    option: int

class SpeechRequest(BaseModel):
    text: str


def get_controller(request: Request) -> SessionController:
    """Session of the calling browser, created on first visit."""
    return sessions.get_or_create(request.cookies.get(SESSION_COOKIE))


def with_session_cookie(response: Response, controller: SessionController) -> Response:
    response.set_cookie(SESSION_COOKIE, controller.session_id, httponly=True, samesite="lax")
    return response


def state_response(controller: SessionController) -> JSONResponse:
    state = controller.state
    payload = {
        "state": state.model_dump(mode="json", by_alias=True, exclude={"document": {"text"}}),
        "view": render_view(state),
    }
    return with_session_cookie(JSONResponse(payload), controller)


@router.get("/")
async def home(request: Request, controller: SessionController = Depends(get_controller)):
    response = templates.TemplateResponse(request, "index.html", {
        "languages": SUPPORTED_LANGUAGES,
        "default_language": DEFAULT_LANGUAGE,
    })
    return with_session_cookie(response, controller)

@router.get("/api/state")
async def get_state(controller: SessionController = Depends(get_controller)):
    return state_response(controller)

@router.get("/api/languages")
async def get_languages():
    return {
        "default": DEFAULT_LANGUAGE,
        "supported_languages": [
            {"code": code, "name": name}
            for code, name in SUPPORTED_LANGUAGES.items()
        ]
    }

@router.post("/api/mode")
async def select_mode(body: ModeRequest, controller: SessionController = Depends(get_controller)):
    controller.select_mode(body.mode)
    return state_response(controller)

# Story mode
@router.post("/api/story")
async def generate_story(body: StoryRequest, controller: SessionController = Depends(get_controller)):
    await controller.generate_story(body.text)
    return state_response(controller)

# Document mode
@router.post("/api/document")
async def upload_document(
    file: UploadFile = File(...),
    controller: SessionController = Depends(get_controller)
):
    """
    Upload a PDF and extract its text for question answering.
    """
    filename = file.filename or "document.pdf"
    if not filename.lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail=f"Unsupported file type: {filename}")

    data = await file.read()
    await controller.load_document(filename, data)
    return state_response(controller)

@router.post("/api/document/ask")
async def ask_document(body: QuestionRequest, controller: SessionController = Depends(get_controller)):
    await controller.answer_document(body.question)
    return state_response(controller)

# Translation
@router.post("/api/translate")
async def translate(body: TranslateRequest, controller: SessionController = Depends(get_controller)):
    if body.language not in SUPPORTED_LANGUAGES:
        raise HTTPException(status_code=400, detail=f"Unsupported language: {body.language}")
    await controller.translate(body.language)
    return state_response(controller)

@router.post("/api/translate/clear")
async def clear_translation(controller: SessionController = Depends(get_controller)):
    controller.clear_translation()
    return state_response(controller)

# Quiz
@router.post("/api/quiz")
async def generate_quiz(controller: SessionController = Depends(get_controller)):
    await controller.generate_quiz()
    return state_response(controller)

@router.post("/api/quiz/select")
async def select_answer(body: AnswerSelection, controller: SessionController = Depends(get_controller)):
    controller.select_answer(body.question, body.option)
    return state_response(controller)

@router.post("/api/quiz/submit")
async def submit_quiz(controller: SessionController = Depends(get_controller)):
    controller.submit_quiz()
    return state_response(controller)

@router.post("/api/quiz/reset")
async def reset_quiz(controller: SessionController = Depends(get_controller)):
    controller.reset_quiz()
    return state_response(controller)

# Read-aloud
@router.post("/api/speech")
async def read_aloud(body: SpeechRequest):
    """
    Synthesize one utterance. The page plays at most one at a time.
    """
    try:
        audio = await asyncio.to_thread(synthesize_speech, body.text)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        log_error("Read-aloud failed", e)
        raise HTTPException(status_code=503, detail=str(e))
    return Response(content=audio, media_type="audio/mpeg")
