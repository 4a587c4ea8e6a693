"""Tests for the Reality Check chat persona."""

from __future__ import annotations

import pytest

from analysis.chat import SPEECHLESS_REPLY, chat_context, opening_line, reply
from analysis.errors import EmptyResponseError, UpstreamError
from analysis.schemas import AnalysisResult, RawModelResponse, Sentiment, StructuredData


class _ScriptedClient:
    def __init__(self, text: str = "", error: Exception | None = None):
        self.text = text
        self.error = error
        self.use_search = None
        self.prompt = ""

    def generate(self, system_instruction, prompt, *, use_search=False):
        self.use_search = use_search
        self.prompt = prompt
        if self.error:
            raise self.error
        return RawModelResponse(text=self.text)


class TestOpeningLine:
    def test_high_risk_roast(self):
        assert "Do you hate money? 🤡" in opening_line({"symbol": "GME", "risk_score": 85})

    def test_low_risk_praise(self):
        line = opening_line({"symbol": "KO", "risk_score": 20})
        assert "KO" in line
        assert "responsible" in line

    @pytest.mark.parametrize("score", [40, 50, 60])
    def test_mid_risk(self, score):
        assert opening_line({"symbol": "AAPL", "risk_score": score}).startswith("It's mid")


class TestChatContext:
    def test_from_result(self):
        result = AnalysisResult(
            markdown_report="x",
            structured_data=StructuredData(risk_score=77, market_sentiment=Sentiment.EUPHORIC),
        )
        assert chat_context("NVDA", result) == {"symbol": "NVDA", "risk_score": 77, "sentiment": "Euphoric"}

    def test_without_result(self):
        assert chat_context("", None) == {"symbol": "General", "risk_score": 0, "sentiment": "Unknown"}


class TestReply:
    def test_returns_model_text_without_search(self):
        client = _ScriptedClient(text="  VERDICT: RISKY. 🎢  ")
        answer = reply(client, {"symbol": "TSLA", "risk_score": 65}, [], "Should I buy?")
        assert answer == "VERDICT: RISKY. 🎢"
        assert client.use_search is False
        assert "Should I buy?" in client.prompt

    def test_empty_reply_is_speechless(self):
        client = _ScriptedClient(error=EmptyResponseError())
        assert reply(client, {}, [], "hello") == SPEECHLESS_REPLY

    def test_upstream_error_propagates(self):
        client = _ScriptedClient(error=UpstreamError("503 overloaded"))
        with pytest.raises(UpstreamError):
            reply(client, {}, [], "hello")


class TestGradioHistory:
    def test_chatbot_history_reaches_prompt_as_text(self, monkeypatch):
        gr = pytest.importorskip("gradio")
        import app

        chatbot = gr.Chatbot()
        history = chatbot.preprocess(chatbot.postprocess([
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "yo"},
        ]))
        client = _ScriptedClient(text="VERDICT: NO.")
        monkeypatch.setattr(app, "create_client", lambda: client)

        new_history, cleared = app.send_chat("Should I buy?", history, None)

        assert "User: hi\nAI: yo" in client.prompt
        assert "'type'" not in client.prompt
        assert new_history[-1] == {"role": "assistant", "content": "VERDICT: NO."}
        assert cleared == ""
