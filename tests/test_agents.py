#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Tests for the agent adapters."""

import os
from unittest.mock import MagicMock, patch

import pytest
import requests

from verdict.agents import CLIAgent, OllamaAgent, create_agent
from verdict.agents import cli_agent
from verdict.agents.cli_agent import AgentCommand


def _http_response(payload=None, status_error=None, bad_json=False):
    resp = MagicMock()
    if status_error:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(status_error)
    if bad_json:
        resp.json.side_effect = ValueError("Expecting value")
    else:
        resp.json.return_value = payload or {}
    return resp


class TestOllamaAgent:
    @patch("verdict.agents.ollama_agent.requests.post")
    def test_success(self, mock_post):
        mock_post.return_value = _http_response({"response": "{\"verdict\": \"pass\"}"})

        agent = OllamaAgent(base_url="http://localhost:11434/", model="m1")
        response = agent.call("prompt", timeout_ms=2000)

        assert response.success
        assert response.output == "{\"verdict\": \"pass\"}"
        assert response.agent_used == "ollama:m1"
        mock_post.assert_called_once_with(
            "http://localhost:11434/api/generate",
            json={"model": "m1", "prompt": "prompt", "stream": False},
            timeout=2.0,
        )

    @patch("verdict.agents.ollama_agent.requests.post")
    def test_preferred_model(self, mock_post):
        mock_post.return_value = _http_response({"response": "ok"})
        OllamaAgent(model="m1").call("p", preferred_model="m2")
        assert mock_post.call_args.kwargs["json"]["model"] == "m2"

    @patch("verdict.agents.ollama_agent.requests.post")
    def test_timeout_is_reported_as_value(self, mock_post):
        mock_post.side_effect = requests.exceptions.ReadTimeout("Read timed out")
        response = OllamaAgent().call("p", timeout_ms=500)
        assert not response.success
        assert response.error == "Ollama request timed out after 500ms"

    @patch("verdict.agents.ollama_agent.requests.post")
    def test_connection_refused(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError("Connection refused")
        response = OllamaAgent().call("p")
        assert not response.success
        assert "Connection refused" in response.error

    @pytest.mark.parametrize("resp_kwargs, error", [
        ({"payload": {"error": "model not found"}}, "Ollama API error: model not found"),
        ({"status_error": "503 Server Error"}, "Ollama API error: 503 Server Error"),
        ({"bad_json": True}, "Ollama returned invalid JSON: Expecting value"),
    ])
    def test_api_errors(self, resp_kwargs, error):
        with patch("verdict.agents.ollama_agent.requests.post", return_value=_http_response(**resp_kwargs)):
            assert OllamaAgent().call("p").error == error


@pytest.mark.skipif(os.name != "posix", reason="uses a shell script as a fake agent CLI")
class TestCLIAgent:
    def _fake_cli(self, tmp_path, monkeypatch, body):
        script = tmp_path / "fake-agent"
        script.write_text("#!/bin/sh\n" + body, encoding="utf-8")
        script.chmod(0o755)
        monkeypatch.setitem(cli_agent.KNOWN_AGENTS, "fake", AgentCommand("fake", [str(script)]))
        return CLIAgent(priority=["missing-agent", "fake"])

    def test_prompt_goes_to_stdin(self, tmp_path, monkeypatch):
        agent = self._fake_cli(tmp_path, monkeypatch, 'echo "got: $(cat)"\n')

        response = agent.call("verify this", cwd=tmp_path)

        assert response.success
        assert response.agent_used == "fake"
        assert response.output.strip() == "got: verify this"

    def test_non_zero_exit(self, tmp_path, monkeypatch):
        agent = self._fake_cli(tmp_path, monkeypatch, "echo 'quota exceeded' >&2\nexit 3\n")

        response = agent.call("p")

        assert not response.success
        assert response.error == "fake exited with code 3: quota exceeded"

    def test_timeout(self, tmp_path, monkeypatch):
        agent = self._fake_cli(tmp_path, monkeypatch, "sleep 5\n")
        response = agent.call("p", timeout_ms=200)
        assert not response.success
        assert response.error.startswith("Agent timed out after")

    def test_no_cli_installed(self):
        response = CLIAgent(priority=["definitely-not-installed"]).call("p")
        assert not response.success
        assert "No AI agent CLI found" in response.error


def test_create_agent():
    assert isinstance(create_agent("cli"), CLIAgent)
    assert isinstance(create_agent("ollama"), OllamaAgent)
    with pytest.raises(ValueError):
        create_agent("telepathy")
