"""
Session state for one browser session.

The state is a serializable pydantic object. Every action has pure
transition functions (state in, new state out); SessionController applies
them around the awaited calls to the generation services. Each operation
has its own idle -> in_flight -> succeeded | failed state machine, and the
story generation and document answer share the single "primary" one, so
two primary operations can never be in flight together.
"""

import asyncio
import uuid
from collections import OrderedDict
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from visual_story.agents.context_loader import get_user_friendly_error
from visual_story.agents.document.reader import answer_from_document
from visual_story.agents.quiz.quiz_master import build_quiz_context, generate_quiz
from visual_story.agents.translator.translator import get_language_name, translate_story
from visual_story.core import quiz as quiz_scoring
from visual_story.core.dialogue import parse_dialogue, speech_text
from visual_story.core.document import extract_text
from visual_story.core.graph.workflow import run_story_pipeline
from visual_story.core.logger import log_error, log_session_event
from visual_story.core.quiz import QuizAttempt
from visual_story.schemas.schema import QuizItem, StoryResult


class AppMode(str, Enum):
    TOPIC = "topic"          # "Study Topic" tab
    DOCUMENT = "document"    # "Ask a PDF" tab


class OutputMode(str, Enum):
    EMPTY = "empty"
    STORY = "story"
    DOCUMENT = "document"


class OperationStatus(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class OperationState(BaseModel):
    status: OperationStatus = OperationStatus.IDLE
    error: Optional[str] = None

    @property
    def in_flight(self) -> bool:
        return self.status is OperationStatus.IN_FLIGHT


def idle() -> OperationState:
    return OperationState()

def started() -> OperationState:
    return OperationState(status=OperationStatus.IN_FLIGHT)

def succeeded() -> OperationState:
    return OperationState(status=OperationStatus.SUCCEEDED)

def failed(message: str) -> OperationState:
    return OperationState(status=OperationStatus.FAILED, error=message)


class DocumentSession(BaseModel):
    filename: Optional[str] = None
    text: Optional[str] = None
    parsing: OperationState = Field(default_factory=OperationState)


class SessionState(BaseModel):
    mode: AppMode = AppMode.TOPIC
    output_mode: OutputMode = OutputMode.EMPTY

    # Bumped by every primary operation; secondary results from an older
    # generation are dropped.
    generation: int = 0

    # Story generation / document answer
    primary: OperationState = Field(default_factory=OperationState)
    story_result: Optional[StoryResult] = None
    document: DocumentSession = Field(default_factory=DocumentSession)
    document_question: Optional[str] = None
    document_answer: Optional[str] = None

    # Translation
    translation: OperationState = Field(default_factory=OperationState)
    translated_result: Optional[StoryResult] = None
    translation_language: Optional[str] = None

    # Quiz. Bumped by every quiz request and by anything that invalidates
    # the displayed quiz; a result is kept only if its request is current.
    quiz_request: int = 0
    quiz_generation: OperationState = Field(default_factory=OperationState)
    quiz: List[QuizItem] = Field(default_factory=list)
    quiz_attempt: QuizAttempt = Field(default_factory=QuizAttempt)

    @property
    def displayed_result(self) -> Optional[StoryResult]:
        return self.translated_result or self.story_result


# =========================
# GUARDS
# =========================

def can_start_story(state: SessionState, input_text: str) -> bool:
    return bool(input_text and input_text.strip()) and not state.primary.in_flight

def can_answer_document(state: SessionState, question: str) -> bool:
    return (
        state.document.text is not None
        and bool(question and question.strip())
        and not state.primary.in_flight
    )

def can_load_document(state: SessionState) -> bool:
    return not state.document.parsing.in_flight and not state.primary.in_flight

def can_translate(state: SessionState) -> bool:
    return state.story_result is not None and not state.translation.in_flight

def can_generate_quiz(state: SessionState) -> bool:
    return state.displayed_result is not None and not state.quiz_generation.in_flight


# =========================
# TRANSITIONS
# =========================

def select_mode(state: SessionState, mode: AppMode) -> SessionState:
    return state.model_copy(update={"mode": mode})


def reset_outputs(state: SessionState) -> SessionState:
    """Clear every result and error; the extracted document text is kept."""
    return state.model_copy(update={
        "output_mode": OutputMode.EMPTY,
        "primary": idle(),
        "story_result": None,
        "document_question": None,
        "document_answer": None,
        "translation": idle(),
        "translated_result": None,
        "translation_language": None,
        "quiz_request": state.quiz_request + 1,
        "quiz_generation": idle(),
        "quiz": [],
        "quiz_attempt": quiz_scoring.reset_attempt(),
    })


def begin_story(state: SessionState) -> SessionState:
    state = reset_outputs(state)
    return state.model_copy(update={
        "output_mode": OutputMode.STORY,
        "primary": started(),
        "generation": state.generation + 1,
    })

def story_succeeded(state: SessionState, result: StoryResult) -> SessionState:
    return state.model_copy(update={"primary": succeeded(), "story_result": result})

def primary_failed(state: SessionState, message: str) -> SessionState:
    return state.model_copy(update={"primary": failed(message)})


def begin_document_answer(state: SessionState, question: str) -> SessionState:
    state = reset_outputs(state)
    return state.model_copy(update={
        "output_mode": OutputMode.DOCUMENT,
        "primary": started(),
        "generation": state.generation + 1,
        "document_question": question,
    })

def document_answer_succeeded(state: SessionState, answer: str) -> SessionState:
    return state.model_copy(update={"primary": succeeded(), "document_answer": answer})


def begin_document_load(state: SessionState, filename: str) -> SessionState:
    """A new file discards the previous extraction and answer."""
    update: Dict[str, Any] = {
        "document": DocumentSession(filename=filename, parsing=started()),
        "document_question": None,
        "document_answer": None,
    }
    if state.output_mode is OutputMode.DOCUMENT:
        update["output_mode"] = OutputMode.EMPTY
        update["primary"] = idle()
    return state.model_copy(update=update)

def document_loaded(state: SessionState, text: str) -> SessionState:
    document = state.document.model_copy(update={"text": text, "parsing": succeeded()})
    return state.model_copy(update={"document": document})

def document_failed(state: SessionState, message: str) -> SessionState:
    return state.model_copy(update={"document": DocumentSession(parsing=failed(message))})


def begin_translation(state: SessionState) -> SessionState:
    return state.model_copy(update={"translation": started()})

def translation_succeeded(state: SessionState, result: StoryResult, lang_code: str) -> SessionState:
    return state.model_copy(update={
        "translation": succeeded(),
        "translated_result": result,
        "translation_language": lang_code,
        "quiz_request": state.quiz_request + 1,
        "quiz_generation": idle(),
        "quiz": [],
        "quiz_attempt": quiz_scoring.reset_attempt(),
    })

def translation_failed(state: SessionState, message: str) -> SessionState:
    return state.model_copy(update={"translation": failed(message)})

def clear_translation(state: SessionState) -> SessionState:
    return state.model_copy(update={
        "translation": idle(),
        "translated_result": None,
        "translation_language": None,
        "quiz_request": state.quiz_request + 1,
        "quiz_generation": idle(),
        "quiz": [],
        "quiz_attempt": quiz_scoring.reset_attempt(),
    })


def begin_quiz(state: SessionState) -> SessionState:
    return state.model_copy(update={
        "quiz_request": state.quiz_request + 1,
        "quiz_generation": started(),
        "quiz": [],
        "quiz_attempt": quiz_scoring.reset_attempt(),
    })

def quiz_succeeded(state: SessionState, quiz: List[QuizItem]) -> SessionState:
    return state.model_copy(update={"quiz_generation": succeeded(), "quiz": quiz})

def quiz_failed(state: SessionState, message: str) -> SessionState:
    return state.model_copy(update={"quiz_generation": failed(message)})


def select_quiz_answer(state: SessionState, question: int, option: int) -> SessionState:
    attempt = quiz_scoring.select_answer(state.quiz_attempt, state.quiz, question, option)
    return state.model_copy(update={"quiz_attempt": attempt})

def submit_quiz(state: SessionState) -> SessionState:
    attempt = quiz_scoring.submit(state.quiz_attempt, state.quiz)
    return state.model_copy(update={"quiz_attempt": attempt})

def reset_quiz(state: SessionState) -> SessionState:
    return state.model_copy(update={"quiz_attempt": quiz_scoring.reset_attempt()})


def error_message(error: Exception, error_type: str) -> str:
    return str(error) or get_user_friendly_error(error_type)


# =========================
# CONTROLLER
# =========================

class SessionController:
    """Runs the actions of one session against its state."""

    def __init__(self, session_id: str, state: Optional[SessionState] = None):
        self.session_id = session_id
        self.state = state or SessionState()

    def _log(self, event: str, details: str = ""):
        log_session_event(self.session_id, event, details)

    def select_mode(self, mode: AppMode) -> SessionState:
        self.state = select_mode(self.state, mode)
        return self.state

    async def generate_story(self, input_text: str) -> SessionState:
        if not can_start_story(self.state, input_text):
            return self.state

        self.state = begin_story(self.state)
        self._log("story started", f"{len(input_text)} characters")
        try:
            result = await run_story_pipeline(input_text)
        except Exception as e:
            log_error("Story generation failed", e, {"session": self.session_id[:8]})
            self.state = primary_failed(self.state, error_message(e, "STORY_ERROR"))
        else:
            self.state = story_succeeded(self.state, result)
            self._log("story ready")
        return self.state

    async def load_document(self, filename: str, data: bytes) -> SessionState:
        if not can_load_document(self.state):
            return self.state

        self.state = begin_document_load(self.state, filename)
        self._log("document parsing", filename)
        try:
            text = await asyncio.to_thread(extract_text, data)
        except Exception as e:
            log_error("Document extraction failed", e, {"session": self.session_id[:8], "file": filename})
            self.state = document_failed(self.state, error_message(e, "DOCUMENT_ERROR"))
        else:
            self.state = document_loaded(self.state, text)
            self._log("document ready", f"{len(text)} characters")
        return self.state

    async def answer_document(self, question: str) -> SessionState:
        if not can_answer_document(self.state, question):
            return self.state

        self.state = begin_document_answer(self.state, question)
        document_text = self.state.document.text
        self._log("document question", question[:60])
        try:
            answer = await asyncio.to_thread(answer_from_document, document_text, question)
        except Exception as e:
            log_error("Document answer failed", e, {"session": self.session_id[:8]})
            self.state = primary_failed(self.state, error_message(e, "ANSWER_ERROR"))
        else:
            self.state = document_answer_succeeded(self.state, answer)
        return self.state

    async def translate(self, lang_code: str) -> SessionState:
        if not can_translate(self.state):
            return self.state

        source = self.state.displayed_result
        generation = self.state.generation
        self.state = begin_translation(self.state)
        self._log("translation started", get_language_name(lang_code))
        try:
            result = await asyncio.to_thread(translate_story, source, lang_code)
        except Exception as e:
            log_error("Translation failed", e, {"session": self.session_id[:8], "lang": lang_code})
            if self.state.generation == generation:
                self.state = translation_failed(self.state, error_message(e, "TRANSLATION_ERROR"))
        else:
            if self.state.generation == generation:
                self.state = translation_succeeded(self.state, result, lang_code)
            else:
                self._log("translation discarded", "story was replaced")
        return self.state

    def clear_translation(self) -> SessionState:
        self.state = clear_translation(self.state)
        return self.state

    async def generate_quiz(self) -> SessionState:
        if not can_generate_quiz(self.state):
            return self.state

        context = build_quiz_context(self.state.displayed_result)
        self.state = begin_quiz(self.state)
        request = self.state.quiz_request
        self._log("quiz started")
        try:
            quiz = await asyncio.to_thread(generate_quiz, context)
        except Exception as e:
            log_error("Quiz generation failed", e, {"session": self.session_id[:8]})
            if self.state.quiz_request == request:
                self.state = quiz_failed(self.state, error_message(e, "QUIZ_ERROR"))
        else:
            if self.state.quiz_request == request:
                self.state = quiz_succeeded(self.state, quiz)
            else:
                self._log("quiz discarded", "superseded by a newer request")
        return self.state

    def select_answer(self, question: int, option: int) -> SessionState:
        self.state = select_quiz_answer(self.state, question, option)
        return self.state

    def submit_quiz(self) -> SessionState:
        self.state = submit_quiz(self.state)
        if self.state.quiz_attempt.submitted:
            self._log("quiz submitted", f"score={self.state.quiz_attempt.score}/{len(self.state.quiz)}")
        return self.state

    def reset_quiz(self) -> SessionState:
        self.state = reset_quiz(self.state)
        return self.state


class SessionStore:
    """
    In-memory sessions keyed by the session cookie. Nothing is persisted.

    Holds at most max_sessions; the least recently used session is dropped
    first. Unknown cookies always get a freshly generated id.
    """

    def __init__(self, max_sessions: int = 200):
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, SessionController]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def get_or_create(self, session_id: Optional[str]) -> SessionController:
        if session_id and session_id in self._sessions:
            self._sessions.move_to_end(session_id)
            return self._sessions[session_id]

        controller = SessionController(uuid.uuid4().hex)
        self._sessions[controller.session_id] = controller
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            log_session_event(evicted, "session evicted", f"{self.max_sessions} sessions held")
        return controller

    def clear(self):
        self._sessions.clear()


# =========================
# RENDERING
# =========================

def story_view(state: SessionState) -> Optional[Dict[str, Any]]:
    result = state.displayed_result
    if result is None:
        return None
    turns = parse_dialogue(result.story)
    return {
        "result": result.model_dump(by_alias=True),
        "is_translated": state.translated_result is not None,
        "dialogue": [turn.model_dump() for turn in turns],
        "story_speech": speech_text(turns),
        "takeaways_speech": ". ".join(result.key_takeaways),
    }


def document_view(state: SessionState) -> Dict[str, Any]:
    return {
        "filename": state.document.filename,
        "question": state.document_question,
        "answer": state.document_answer,
    }


def render_view(state: SessionState) -> Dict[str, Any]:
    """What the output panel shows for the current output mode."""
    view: Dict[str, Any] = {
        "output_mode": state.output_mode.value,
        "loading": state.primary.in_flight,
        "document_ready": state.document.text is not None,
        "error": state.primary.error,
        "story": None,
        "document": None,
    }
    if state.output_mode is OutputMode.EMPTY:
        pass
    elif state.output_mode is OutputMode.STORY:
        view["story"] = story_view(state)
    elif state.output_mode is OutputMode.DOCUMENT:
        view["document"] = document_view(state)
    else:
        raise ValueError(f"Unhandled output mode: {state.output_mode}")
    return view
