"""
Route Tests
===========
Tests for the page and the JSON API, with the generation services faked.
"""
from fastapi.testclient import TestClient

from visual_story.agents.speech import text_to_speech
from visual_story.web import routes as web_routes
from visual_story.core.config import settings


class TestPage:
    """Test the single page."""

    def test_home(self, client: TestClient):
        """Test the page renders with the language list and sets a session cookie."""
        response = client.get("/")
        assert response.status_code == 200
        assert "Generate Visual Story" in response.text
        assert '<option value="es" ' in response.text
        assert "session_id" in response.cookies

    def test_markdown_is_sanitized(self, client: TestClient):
        """Test model text rendered as markdown always goes through DOMPurify."""
        assert "purify.min.js" in client.get("/").text

        script = client.get("/static/js/app.js").text
        assert script.count("marked.parse(") == 1
        assert script.count("marked.parseInline(") == 1
        assert "DOMPurify.sanitize(marked.parse(" in script
        assert "DOMPurify.sanitize(marked.parseInline(" in script

    def test_languages(self, client: TestClient):
        """Test the supported language list."""
        data = client.get("/api/languages").json()
        assert data["default"] == "es"
        assert {"code": "hi", "name": "Hindi"} in data["supported_languages"]


class TestStateApi:
    """Test state round trips through the session cookie."""

    def test_initial_state(self, client: TestClient):
        """Test a fresh session."""
        data = client.get("/api/state").json()
        assert data["state"]["mode"] == "topic"
        assert data["view"]["output_mode"] == "empty"

    def test_session_persists(self, client: TestClient):
        """Test the cookie keeps the same session between requests."""
        client.post("/api/mode", json={"mode": "document"})
        assert client.get("/api/state").json()["state"]["mode"] == "document"

    def test_sessions_are_separate(self, client: TestClient):
        """Test two browsers do not share state."""
        client.post("/api/mode", json={"mode": "document"})
        other = TestClient(client.app)
        assert other.get("/api/state").json()["state"]["mode"] == "topic"

    def test_unknown_cookie_gets_new_session(self, client: TestClient):
        """Test a session id the server never issued is replaced."""
        response = client.get("/api/state", headers={"Cookie": "session_id=chosen-by-client"})
        assert response.cookies["session_id"] != "chosen-by-client"

    def test_sessions_are_bounded(self, client: TestClient, monkeypatch):
        """Test cookie-less visitors cannot grow the store past its cap."""
        monkeypatch.setattr(web_routes.sessions, "max_sessions", 20)
        for _ in range(100):
            TestClient(client.app).get("/api/state")
        assert len(web_routes.sessions) == 20

    def test_invalid_mode(self, client: TestClient):
        """Test an unknown mode is rejected."""
        assert client.post("/api/mode", json={"mode": "video"}).status_code == 422


class TestStoryApi:
    """Test story, translation and quiz endpoints."""

    def test_generate_story(self, client: TestClient, fake_services):
        """Test the story view is returned."""
        data = client.post("/api/story", json={"text": "Photosynthesis"}).json()
        story = data["view"]["story"]
        assert data["state"]["primary"]["status"] == "succeeded"
        assert story["result"]["mindMap"].startswith("graph TD")
        assert story["dialogue"][1]["speaker"] == "Leafy"

    def test_blank_story_is_noop(self, client: TestClient, fake_services):
        """Test blank input leaves the session untouched."""
        data = client.post("/api/story", json={"text": "  "}).json()
        assert data["view"]["output_mode"] == "empty"
        assert fake_services["story"] == []

    def test_translate(self, client: TestClient, fake_services):
        """Test translating and showing the original again."""
        client.post("/api/story", json={"text": "Photosynthesis"})
        data = client.post("/api/translate", json={"language": "ja"}).json()
        assert data["state"]["translation_language"] == "ja"
        assert data["view"]["story"]["is_translated"] is True

        data = client.post("/api/translate/clear").json()
        assert data["view"]["story"]["is_translated"] is False

    def test_unsupported_language(self, client: TestClient, fake_services):
        """Test an unknown language code."""
        client.post("/api/story", json={"text": "Photosynthesis"})
        response = client.post("/api/translate", json={"language": "xx"})
        assert response.status_code == 400
        assert fake_services["translate"] == []

    def test_quiz_flow(self, client: TestClient, fake_services):
        """Test generating, answering, submitting and resetting a quiz."""
        client.post("/api/story", json={"text": "Photosynthesis"})
        data = client.post("/api/quiz").json()
        assert len(data["state"]["quiz"]) == 3
        assert data["state"]["quiz"][0]["correctAnswerIndex"] == 0

        for question in range(3):
            client.post("/api/quiz/select", json={"question": question, "option": question})
        data = client.post("/api/quiz/submit").json()
        assert data["state"]["quiz_attempt"]["submitted"] is True
        assert data["state"]["quiz_attempt"]["score"] == 3

        data = client.post("/api/quiz/reset").json()
        assert data["state"]["quiz_attempt"] == {"selections": {}, "submitted": False, "score": None}


class TestDocumentApi:
    """Test the PDF endpoints."""

    def test_upload_and_ask(self, client: TestClient, fake_services):
        """Test uploading a PDF then asking about it."""
        response = client.post(
            "/api/document",
            files={"file": ("notes.pdf", b"Plants use light.", "application/pdf")},
        )
        data = response.json()
        assert data["view"]["document_ready"] is True
        assert data["state"]["document"]["filename"] == "notes.pdf"
        assert "text" not in data["state"]["document"]

        data = client.post("/api/document/ask", json={"question": "What?"}).json()
        assert data["view"]["output_mode"] == "document"
        assert data["view"]["document"]["answer"] == "The answer."

    def test_rejects_non_pdf(self, client: TestClient, fake_services):
        """Test other file types are refused."""
        response = client.post(
            "/api/document",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400


class TestSpeechApi:
    """Test read-aloud."""

    def test_speech(self, client: TestClient, monkeypatch):
        """Test audio bytes are returned as MP3."""
        monkeypatch.setattr(web_routes, "synthesize_speech", lambda text: b"ID3audio")
        response = client.post("/api/speech", json={"text": "Hello"})
        assert response.status_code == 200
        assert response.headers["content-type"] == "audio/mpeg"
        assert response.content == b"ID3audio"

    def test_blank_text(self, client: TestClient):
        """Test there is nothing to read."""
        assert client.post("/api/speech", json={"text": " "}).status_code == 400

    def test_not_configured(self, client: TestClient, monkeypatch):
        """Test a missing ElevenLabs key."""
        monkeypatch.setattr(settings, "ELEVENLABS_API_KEY", None)
        response = client.post("/api/speech", json={"text": "Hello"})
        assert response.status_code == 503
        assert "ELEVENLABS_API_KEY" in response.json()["detail"]

    def test_synthesis_joins_chunks(self, monkeypatch):
        """Test the streamed audio chunks are joined."""
        class FakeTextToSpeech:
            def convert(self, text, voice_id, model_id):
                return iter([b"ab", b"cd"])

        class FakeElevenLabs:
            def __init__(self, api_key):
                self.text_to_speech = FakeTextToSpeech()

        monkeypatch.setattr(settings, "ELEVENLABS_API_KEY", "key")
        monkeypatch.setattr(text_to_speech, "ElevenLabs", FakeElevenLabs)
        assert text_to_speech.synthesize_speech("Hello") == b"abcd"
