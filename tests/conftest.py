"""Shared fixtures: a scripted DeepL service and session settings."""

from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl

import httpx
import pytest

from glossary_translator.api.models import ApiPlan, Credentials
from glossary_translator.config import SessionConfig

GLOSSARY_ID = "def3a26b-3e84-45b3-84ae-0c0aaf3525f7"
API_KEY = "test-key:fx"


def glossary_payload(**overrides) -> Dict[str, Any]:
    payload = {
        "glossary_id": GLOSSARY_ID,
        "ready": True,
        "name": "Tmp",
        "source_lang": "ja",
        "target_lang": "en",
        "creation_time": "2021-08-03T14:16:18.329Z",
        "entry_count": 0,
    }
    payload.update(overrides)
    return payload


class FakeDeepL:
    """
    Scripted DeepL API recording every request.

    Default behaviour: glossary creation succeeds (entry_count taken from the
    posted CSV), translate answers in English or Japanese depending on
    target_lang, delete answers 204, usage answers a fixed quota.
    Override a route with ``on(method, path, ...)``.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.routes: Dict[Tuple[str, str], Callable] = {}

    def on(
        self,
        method: str,
        path: str,
        status: int = 200,
        json: Any = None,
        raises: Optional[Exception] = None,
        handler: Optional[Callable] = None,
    ) -> None:
        if handler is None:
            def handler(request, status=status, json=json, raises=raises):
                if raises is not None:
                    raise raises
                return httpx.Response(status, json=json)
        self.routes[(method, path)] = handler

    def handle(self, request: httpx.Request):
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key in self.routes:
            return self.routes[key](request)
        return self.default(request)

    def default(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "POST" and path == "/v2/glossaries":
            entries = form_of(request).get("entries", "")
            return httpx.Response(200, json=glossary_payload(
                name=form_of(request)["name"],
                entry_count=len([line for line in entries.splitlines() if line.strip()]),
            ))
        if request.method == "POST" and path == "/v2/translate":
            if form_of(request)["target_lang"] == "JA":
                return httpx.Response(200, json={"translations": [{"detected_source_language": "EN", "text": "こんにちは、世界！"}]})
            return httpx.Response(200, json={"translations": [{"detected_source_language": "JA", "text": "Hello, world!"}]})
        if request.method == "DELETE" and path.startswith("/v2/glossaries/"):
            return httpx.Response(204)
        if request.method == "GET" and path == "/v2/usage":
            return httpx.Response(200, json={"character_count": 180118, "character_limit": 500000})
        return httpx.Response(404, json={"message": f"No route for {request.method} {path}"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @property
    def calls(self) -> List[Tuple[str, str]]:
        return [(r.method, r.url.path) for r in self.requests]

    def forms(self, method: str, path: str) -> List[Dict[str, str]]:
        return [form_of(r) for r in self.requests if r.method == method and r.url.path == path]


def form_of(request: httpx.Request) -> Dict[str, str]:
    return dict(parse_qsl(request.content.decode("utf-8"), keep_blank_values=True))


@pytest.fixture
def fake_deepl():
    return FakeDeepL()


@pytest.fixture
def credentials():
    return Credentials(api_key=API_KEY, plan=ApiPlan.FREE)


@pytest.fixture
def session_config(tmp_path, credentials):
    glossary_file = tmp_path / "glossary.csv"
    glossary_file.write_text("翻訳,translation\n", encoding="utf-8")
    return SessionConfig(
        credentials=credentials,
        source_lang="JA",
        target_lang="EN",
        glossary_name="Tmp",
        glossary_file=glossary_file,
        back_translate=True,
        unique_glossary_name=False,
        timeout=5.0,
    )


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep real credentials and config files out of the tests."""
    for name in ("DEEPL_AUTH_KEY", "DEEPL_API_PLAN", "LOG_MODE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GLOSSARY_TRANSLATOR_CONFIG", str(tmp_path / "config" / "config.json"))
    monkeypatch.setattr("glossary_translator.config.load_dotenv", lambda *args, **kwargs: False)
