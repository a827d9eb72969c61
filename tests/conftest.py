from types import SimpleNamespace

import pytest

from renshu import create_app
from renshu.config import config
from renshu.services.ai_service import AIService


class FakeCompletions:
    def __init__(self, content="", error=None):
        self.content = content
        self.error = error
        self.on_call = None
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.on_call:
            self.on_call()
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeSpeech:
    def __init__(self, audio=b"", error=None):
        self.audio = audio
        self.error = error
        self.on_call = None
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.on_call:
            self.on_call()
        if self.error:
            raise self.error
        return SimpleNamespace(content=self.audio)


class FakeClient:
    def __init__(self, content="", audio=b"", chat_error=None, speech_error=None):
        self.chat = SimpleNamespace(completions=FakeCompletions(content, chat_error))
        self.audio = SimpleNamespace(speech=FakeSpeech(audio, speech_error))


@pytest.fixture
def fake_ai(monkeypatch):
    """Swap the routes' AI gateway for one backed by a fake client."""
    def install(**kwargs):
        client = FakeClient(**kwargs)
        service = AIService(client=client)
        monkeypatch.setattr("renshu.routes.api.ai_service", service)
        return client
    return install


@pytest.fixture
def make_app(tmp_path):
    """Build apps with test overrides; the shared config is restored afterwards."""
    saved = dict(vars(config))

    def build(**overrides):
        settings = {
            "TESTING": True,
            "LOG_DIR": str(tmp_path / "logs"),
            "SCENARIOS_PATH": "",
        }
        settings.update(overrides)
        return create_app(settings)

    yield build
    vars(config).clear()
    vars(config).update(saved)


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()
