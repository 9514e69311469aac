import json
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from visual_story.main import app
from visual_story.web import routes as web_routes
from visual_story.core import groq_client, session
from visual_story.core.mindmap import compile_mind_map
from visual_story.schemas.schema import (
    GeneratedStory, MindMapData, MindMapEdge, MindMapNode, QuizItem, StoryResult
)


STORY_TEXT = (
    "Professor Hoot: Today we learn how plants make food.\n"
    "Leafy: I use sunlight, water and air!\n"
    "Professor Hoot: That process is called photosynthesis."
)


class FakeCompletions:
    """Stands in for groq.Groq().chat.completions and records every call."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        content = self.responses.pop(0)
        if isinstance(content, Exception):
            raise content
        if not isinstance(content, str):
            content = json.dumps(content)
        message = SimpleNamespace(content=content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture(name="fake_groq")
def fake_groq_fixture(monkeypatch):
    """
    Replace the shared Groq client. Tests queue responses with
    fake_groq.chat.completions.responses.append(...).
    """
    completions = FakeCompletions([])
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    monkeypatch.setattr(groq_client, "get_client", lambda: client)
    return client


@pytest.fixture(name="mind_map")
def mind_map_fixture():
    return MindMapData(
        nodes=[
            MindMapNode(id="A", text="Photosynthesis"),
            MindMapNode(id="B", text="Sunlight"),
            MindMapNode(id="C", text="Water"),
        ],
        connections=[
            MindMapEdge(from_="A", to="B"),
            MindMapEdge(from_="A", to="C"),
        ],
    )


@pytest.fixture(name="generated_story")
def generated_story_fixture(mind_map: MindMapData):
    return GeneratedStory(
        image_prompt="Charming educational cartoon style. An owl teaching a leaf.",
        story=STORY_TEXT,
        mind_map=mind_map,
        key_takeaways=["Plants use sunlight", "Leaves make sugar"],
    )


@pytest.fixture(name="story_result")
def story_result_fixture(mind_map: MindMapData):
    return StoryResult(
        story=STORY_TEXT,
        mind_map=compile_mind_map(mind_map),
        mind_map_data=mind_map,
        image_url="data:image/png;base64,AAAA",
        key_takeaways=["Plants use sunlight", "Leaves make sugar"],
    )


@pytest.fixture(name="quiz_items")
def quiz_items_fixture():
    return [
        QuizItem(question="What do plants use?", options=["Sunlight", "Rocks", "Sand", "Metal"], correct_answer_index=0),
        QuizItem(question="Who teaches?", options=["Leafy", "Professor Hoot", "Nobody", "A cat"], correct_answer_index=1),
        QuizItem(question="What is made?", options=["Salt", "Oil", "Sugar", "Iron"], correct_answer_index=2),
    ]


@pytest.fixture(name="client")
def client_fixture():
    web_routes.sessions.clear()

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()
    web_routes.sessions.clear()


@pytest.fixture(name="fake_services")
def fake_services_fixture(monkeypatch, story_result, quiz_items):
    """Replace every collaborator of the controller with a recording fake."""
    calls = {"story": [], "translate": [], "quiz": [], "answer": []}

    async def fake_pipeline(topic):
        calls["story"].append(topic)
        return story_result

    def fake_translate(result, lang_code):
        calls["translate"].append((result, lang_code))
        nodes = [node.model_copy(update={"text": f"{node.text} ({lang_code})"}) for node in result.mind_map_data.nodes]
        data = result.mind_map_data.model_copy(update={"nodes": nodes})
        return result.model_copy(update={"story": f"[{lang_code}] {result.story}", "mind_map_data": data})

    def fake_quiz(context):
        calls["quiz"].append(context)
        return quiz_items

    def fake_answer(document_text, question):
        calls["answer"].append((document_text, question))
        return "The answer."

    monkeypatch.setattr(session, "run_story_pipeline", fake_pipeline)
    monkeypatch.setattr(session, "translate_story", fake_translate)
    monkeypatch.setattr(session, "generate_quiz", fake_quiz)
    monkeypatch.setattr(session, "answer_from_document", fake_answer)
    monkeypatch.setattr(session, "extract_text", lambda data: data.decode("utf-8"))
    return calls
