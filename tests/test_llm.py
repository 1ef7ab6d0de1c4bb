"""Tests for the session, dispatcher and response extraction."""

from __future__ import annotations

import json
from collections.abc import Callable
from unittest.mock import patch

import httpx
import pytest

from aireadline.config import AIReadlineConfig
from aireadline.errors import (
    InitializationError,
    RemoteError,
    ResponseFormatError,
    TransportError,
)
from aireadline.history import ListHistory
from aireadline.llm import AISession, FetchResult, dispatch, extract_content
from aireadline.shots import Shot, ShotSet

ENDPOINT = "https://llm.example.com/v1/chat/completions"


def _reply(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _make_session(
    handler: Callable[[httpx.Request], httpx.Response],
    config: AIReadlineConfig | None = None,
) -> AISession:
    if config is None:
        config = AIReadlineConfig()
        config.provider.endpoint = ENDPOINT
        config.provider.api_key = "sk-test"
    return AISession.create(
        config, program_name="bash", transport=httpx.MockTransport(handler)
    )


class TestExtractContent:
    def test_success(self) -> None:
        raw = '{"choices":[{"message":{"content":"go home"}}]}'
        assert extract_content(raw) == "go home"

    def test_uses_first_choice(self) -> None:
        raw = json.dumps({"choices": [
            {"message": {"content": "first"}}, {"message": {"content": "second"}},
        ]})
        assert extract_content(raw) == "first"

    @pytest.mark.parametrize("raw", [
        '{"choices":[]}',
        "{}",
        "[]",
        '{"choices": {}}',
        '{"choices":[{}]}',
        '{"choices":[{"message": "hi"}]}',
        '{"choices":[{"message":{"content": null}}]}',
        '{"choices":[{"message":{"content": 42}}]}',
    ])
    def test_malformed_structure(self, raw: str) -> None:
        with pytest.raises(ResponseFormatError):
            extract_content(raw)

    def test_invalid_syntax_reports_position(self) -> None:
        with pytest.raises(ResponseFormatError, match="line 2, column"):
            extract_content('{"choices":\n  [oops]}')

    def test_empty_body(self) -> None:
        with pytest.raises(ResponseFormatError):
            extract_content("")

    def test_error_names_path(self) -> None:
        with pytest.raises(ResponseFormatError, match=r"choices\[0\]\.message"):
            extract_content('{"choices":[{"text":"x"}]}')


class TestDispatch:
    def test_sends_headers_and_body(self) -> None:
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["type"] = request.headers["content-type"]
            seen["body"] = request.content.decode()
            return httpx.Response(200, text="raw reply")

        session = _make_session(handler)
        assert dispatch(session, ENDPOINT, "Bearer k", '{"a": 1}') == "raw reply"
        assert seen == {
            "method": "POST",
            "url": ENDPOINT,
            "auth": "Bearer k",
            "type": "application/json",
            "body": '{"a": 1}',
        }

    def test_transport_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        session = _make_session(handler)
        with pytest.raises(TransportError, match="connection refused"):
            dispatch(session, ENDPOINT, "Bearer k", "{}")

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        session = _make_session(handler)
        with pytest.raises(TransportError):
            dispatch(session, ENDPOINT, "Bearer k", "{}")

    def test_remote_error_message(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": {"message": "temperature too high"}})

        session = _make_session(handler)
        with pytest.raises(RemoteError, match="temperature too high") as exc_info:
            dispatch(session, ENDPOINT, "Bearer k", "{}")
        assert exc_info.value.status_code == 400

    def test_remote_error_non_json(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        session = _make_session(handler)
        with pytest.raises(RemoteError, match="502"):
            dispatch(session, ENDPOINT, "Bearer k", "{}")


class TestSessionInit:
    def test_state_fixed_at_creation(self) -> None:
        config = AIReadlineConfig()
        config.provider.api_key = "sk-abc"
        config.prompt.system = "Expert on {program}."
        session = AISession.create(config, program_name="gdb")
        try:
            assert session.program_name == "gdb"
            assert session.authorization == "Bearer sk-abc"
            assert session.system_role == "Expert on gdb."
        finally:
            session.close()

    def test_program_name_defaults_to_argv0(self) -> None:
        with patch("aireadline.llm.short_program_name", return_value="psql"):
            session = AISession.create(AIReadlineConfig())
        with session:
            assert session.program_name == "psql"
        assert session.client.is_closed

    def test_client_failure(self) -> None:
        with (
            patch("aireadline.llm.httpx.Client", side_effect=ImportError("no h2")),
            pytest.raises(InitializationError, match="no h2"),
        ):
            AISession.create(AIReadlineConfig(), program_name="bash")


class TestFetch:
    def test_full_pipeline(self) -> None:
        sent: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            sent.update(json.loads(request.content))
            return httpx.Response(200, json=_reply("git status"))

        config = AIReadlineConfig(shots={"bash": ShotSet("bash", (Shot("list", "ls"),))})
        config.provider.endpoint = ENDPOINT
        config.prompt.context = 1
        session = _make_session(handler, config)

        result = session.fetch("git sta", ListHistory(["cd repo", "make"]))

        assert result == FetchResult(suggestion="git status")
        assert result.ok
        roles = [(m["role"], m["content"]) for m in sent["messages"]]
        assert roles[1:] == [
            ("user", "list"), ("assistant", "ls"), ("user", "make"), ("user", "git sta"),
        ]
        assert roles[0][0] == "system"

    def test_empty_suggestion_is_ok(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_reply(""))

        result = _make_session(handler).fetch("ls")
        assert result.ok
        assert result.suggestion == ""

    def test_undecodable_history_line_is_sent(self) -> None:
        sent: list[httpx.Request] = []
        line = b"cat caf\xe9.txt".decode("utf-8", "surrogateescape")

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            return httpx.Response(200, json=_reply("cat caf"))

        result = _make_session(handler).fetch("cat", ListHistory([line]))
        assert result.ok
        assert len(sent) == 1
        contents = [m["content"] for m in json.loads(sent[0].content)["messages"]]
        assert line in contents

    def test_transport_failure_returns_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("dns failure", request=request)

        result = _make_session(handler).fetch("ls")
        assert not result.ok
        assert result.suggestion is None
        assert isinstance(result.error, TransportError)

    def test_malformed_reply_returns_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": []})

        result = _make_session(handler).fetch("ls")
        assert result.suggestion is None
        assert isinstance(result.error, ResponseFormatError)

    def test_remote_failure_returns_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": {"message": "Incorrect API key"}})

        result = _make_session(handler).fetch("ls")
        assert isinstance(result.error, RemoteError)

    def test_unexpected_error_returns_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_reply("ls"))

        session = _make_session(handler)
        with patch("aireadline.llm.extract_content", side_effect=RuntimeError("boom")):
            result = session.fetch("ls")
        assert isinstance(result.error, RuntimeError)

    def test_explicit_history_length(self) -> None:
        sent: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            sent.update(json.loads(request.content))
            return httpx.Response(200, json=_reply("x"))

        session = _make_session(handler)
        session.fetch("p", ListHistory(["a", "b", "c", "d", "e"]), history_length=3)
        contents = [m["content"] for m in sent["messages"][1:]]
        assert contents == ["a", "b", "c", "p"]

    def test_session_reused_across_requests(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=_reply("ok"))

        session = _make_session(handler)
        client = session.client
        session.fetch("a")
        session.fetch("b")
        assert len(calls) == 2
        assert session.client is client
