"""
Natural-language question tests.

The language model and the SQL procedure are replaced by fakes (see
conftest.fake_ask); the OpenAI clients are driven with stand-in SDK objects.
"""

import logging
from types import SimpleNamespace

import httpx
import openai
import pytest

from stockroom.errors import GenerationError, QueryFailed, TimedOut
from stockroom.services import ask_service
from stockroom.services.ask_service import (
    AssistantRunClient,
    ChatCompletionClient,
    RunState,
    StoredProcedureRunner,
    extract_sql,
    unwrap_result,
)


# =============================================================================
# SQL EXTRACTION
# =============================================================================


class TestExtractSql:

    @pytest.mark.parametrize("reply, expected", [
        ("```sql\nSELECT * FROM products;\n```", "SELECT * FROM products"),
        ("Here it is:\n```SQL\nSELECT 1\n```\nHope that helps.", "SELECT 1"),
        ("```\nSELECT 2\n```", "SELECT 2"),
        ("Sure. SELECT o.total FROM orders o;;", "SELECT o.total FROM orders o"),
        ("WITH t AS (SELECT 1 AS n) SELECT n FROM t", "WITH t AS (SELECT 1 AS n) SELECT n FROM t"),
        ("Sure, with pleasure. SELECT SUM(total) AS revenue FROM orders;", "SELECT SUM(total) AS revenue FROM orders"),
        ("Done with the join:\nWITH recent AS (SELECT * FROM orders) SELECT count(*) FROM recent",
         "WITH recent AS (SELECT * FROM orders) SELECT count(*) FROM recent"),
    ])
    def test_extracts_statement(self, reply, expected):
        assert extract_sql(reply) == expected

    def test_sql_fence_wins_over_other_fences(self):
        reply = "```text\nnot this\n```\n```sql\nSELECT 3\n```"
        assert extract_sql(reply) == "SELECT 3"

    @pytest.mark.parametrize("reply", [
        None,
        "",
        "I cannot answer that.",
        "Happy to help with that question.",
        "```sql\n;\n```",
    ])
    def test_nothing_usable(self, reply):
        assert extract_sql(reply) is None


class TestUnwrapResult:

    def test_procedure_row_shape(self):
        assert unwrap_result([{"result": [{"n": 1}]}]) == [{"n": 1}]

    def test_json_text(self):
        assert unwrap_result([{"result": '[{"n": 1}, {"n": 2}]'}]) == [{"n": 1}, {"n": 2}]

    def test_null_result_is_empty(self):
        assert unwrap_result([{"result": None}]) == []
        assert unwrap_result(None) == []

    def test_plain_rows_pass_through(self):
        rows = [{"order_id": 1, "total": 9.5}]
        assert unwrap_result(rows) == rows

    def test_malformed_json(self):
        with pytest.raises(QueryFailed):
            unwrap_result('{"result": [')

    def test_unexpected_type(self):
        with pytest.raises(QueryFailed):
            unwrap_result(42)


# =============================================================================
# /ask ROUTE
# =============================================================================


class TestAskRoute:

    def test_answer_has_rows_and_sql(self, client, staff_headers, fake_ask):
        completion, runner = fake_ask
        completion.reply = "```sql\nSELECT sum(o.total) AS total FROM orders o;\n```"
        runner.rows = [{"result": [{"total": 42.5}]}]

        resp = client.post("/ask", json={"question": "  Total sales?  "}, headers=staff_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["result"] == [{"total": 42.5}]
        assert body["sqlQuery"] == "SELECT sum(o.total) AS total FROM orders o"
        assert "```" not in body["sqlQuery"]
        assert runner.statements == ["SELECT sum(o.total) AS total FROM orders o"]
        assert 'Question: "Total sales?"' in completion.prompts[0]

    @pytest.mark.parametrize("payload", [{}, {"question": ""}, {"question": "   "}, {"question": 12}])
    def test_missing_question_is_400(self, client, staff_headers, fake_ask, payload):
        completion, _ = fake_ask
        resp = client.post("/ask", json=payload, headers=staff_headers)
        assert resp.status_code == 400
        assert completion.prompts == []

    @pytest.mark.parametrize("body", [["total revenue"], "total revenue", 7])
    def test_non_object_body_is_400(self, client, staff_headers, fake_ask, body):
        completion, _ = fake_ask
        resp = client.post("/ask", json=body, headers=staff_headers)
        assert resp.status_code == 400
        assert completion.prompts == []

    def test_reply_without_sql_is_500(self, client, staff_headers, fake_ask):
        completion, runner = fake_ask
        completion.reply = "I'm not sure what you mean."
        resp = client.post("/ask", json={"question": "hello?"}, headers=staff_headers)
        assert resp.status_code == 500
        body = resp.get_json()
        assert body["error"] == "No SQL extracted from model response"
        assert body["detail"] == "I'm not sure what you mean."
        assert runner.statements == []

    def test_procedure_failure_is_500_with_detail(self, client, staff_headers, fake_ask):
        _, runner = fake_ask
        runner.error = QueryFailed("Query failed", detail='relation "nope" does not exist')
        resp = client.post("/ask", json={"question": "q"}, headers=staff_headers)
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Query failed", "detail": 'relation "nope" does not exist'}

    def test_model_timeout_is_504(self, client, staff_headers, fake_ask):
        completion, runner = fake_ask
        completion.error = TimedOut("Language model timed out")
        resp = client.post("/ask", json={"question": "q"}, headers=staff_headers)
        assert resp.status_code == 504
        assert runner.statements == []

    def test_requires_token(self, client, fake_ask, db_session):
        assert client.post("/ask", json={"question": "q"}).status_code == 401


# =============================================================================
# PROCEDURE RUNNER
# =============================================================================


class TestStoredProcedureRunner:

    @pytest.mark.parametrize("name", ["execute_raw_sql", "public.execute_raw_sql", "EXECUTE_RAW_SQL"])
    def test_accepts_identifiers(self, name):
        assert StoredProcedureRunner(name).procedure_name == name

    @pytest.mark.parametrize("name", ["", "x; DROP TABLE users", "fn()", "1abc", "a..b"])
    def test_rejects_non_identifiers(self, name):
        with pytest.raises(ValueError):
            StoredProcedureRunner(name)

    def test_missing_procedure_is_query_failed(self, db_session):
        # SQLite has no such function
        with pytest.raises(QueryFailed) as excinfo:
            StoredProcedureRunner("execute_raw_sql").run("SELECT 1")
        assert excinfo.value.detail


class TestBuildBridge:

    def test_chat_backend(self):
        bridge = ask_service.build_bridge({"ASK_BACKEND": "chat", "OPENAI_API_KEY": "k"})
        assert isinstance(bridge.completion_client, ChatCompletionClient)

    def test_assistant_backend(self):
        bridge = ask_service.build_bridge({"ASK_BACKEND": "assistant", "OPENAI_ASSISTANT_ID": "asst_1"})
        assert isinstance(bridge.completion_client, AssistantRunClient)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            ask_service.build_bridge({"ASK_BACKEND": "oracle"})


# =============================================================================
# OPENAI CLIENTS
# =============================================================================


def _timeout_error():
    return openai.APITimeoutError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class TestChatCompletionClient:

    def _client(self, completions):
        sdk = SimpleNamespace(chat=SimpleNamespace(completions=completions))
        return ChatCompletionClient(api_key="k", model="gpt-4o-mini", timeout=5, client=sdk)

    def test_returns_message_text(self):
        completions = FakeCompletions(content="  ```sql\nSELECT 1\n```  ")
        assert self._client(completions).complete("prompt") == "```sql\nSELECT 1\n```"
        call = completions.calls[0]
        assert call["model"] == "gpt-4o-mini"
        assert call["temperature"] == 0
        assert call["messages"] == [{"role": "user", "content": "prompt"}]

    def test_timeout(self):
        with pytest.raises(TimedOut):
            self._client(FakeCompletions(error=_timeout_error())).complete("prompt")

    def test_api_error(self):
        with pytest.raises(GenerationError):
            self._client(FakeCompletions(error=openai.OpenAIError("boom"))).complete("prompt")

    def test_missing_key(self):
        with pytest.raises(GenerationError):
            ChatCompletionClient(api_key="", model="m", timeout=5).complete("prompt")


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeRuns:
    def __init__(self, statuses, last_error=None):
        self.statuses = list(statuses)
        self.last_error = last_error
        self.cancelled = []

    def _run(self):
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return SimpleNamespace(id="run_1", status=status, last_error=self.last_error)

    def create(self, *, thread_id, assistant_id):
        return self._run()

    def retrieve(self, run_id, *, thread_id):
        return self._run()

    def cancel(self, run_id, *, thread_id):
        self.cancelled.append(run_id)


def _assistant_sdk(runs, reply="```sql\nSELECT 4\n```"):
    text_block = SimpleNamespace(type="text", text=SimpleNamespace(value=reply))
    messages = SimpleNamespace(data=[
        SimpleNamespace(role="assistant", content=[text_block]),
        SimpleNamespace(role="user", content=[SimpleNamespace(type="text", text=SimpleNamespace(value="q"))]),
    ])
    threads = SimpleNamespace(
        create=lambda messages: SimpleNamespace(id="thread_1"),
        runs=runs,
        messages=SimpleNamespace(list=lambda **kwargs: messages),
    )
    return SimpleNamespace(beta=SimpleNamespace(threads=threads))


class TestAssistantRunClient:

    @pytest.fixture(autouse=True)
    def _capture_run_log(self, caplog):
        caplog.set_level(logging.INFO, logger=ask_service.logger.name)

    def _client(self, runs, clock, timeout=10):
        return AssistantRunClient(
            api_key="k",
            assistant_id="asst_1",
            timeout=timeout,
            client=_assistant_sdk(runs),
            sleep=clock.sleep,
            clock=clock,
        )

    def test_polls_until_completed(self, caplog):
        clock = FakeClock()
        runs = FakeRuns(["queued", "in_progress", "in_progress", "completed"])
        client = self._client(runs, clock)

        assert client.complete("prompt") == "```sql\nSELECT 4\n```"
        assert f"ended in state {RunState.COMPLETED.value}" in caplog.text
        assert clock.sleeps == [0.5, 1.0, 2.0]

    def test_backoff_is_capped(self):
        clock = FakeClock()
        runs = FakeRuns(["queued"] * 6 + ["completed"])
        self._client(runs, clock, timeout=60).complete("prompt")
        assert clock.sleeps == [0.5, 1.0, 2.0, 4.0, 4.0, 4.0]

    def test_timeout_cancels_run(self, caplog):
        clock = FakeClock()
        runs = FakeRuns(["in_progress"])
        client = self._client(runs, clock, timeout=3)

        with pytest.raises(TimedOut):
            client.complete("prompt")
        assert f"ended in state {RunState.TIMED_OUT.value}" in caplog.text
        assert runs.cancelled == ["run_1"]
        assert clock.now == 3

    def test_failed_run(self, caplog):
        clock = FakeClock()
        runs = FakeRuns(["queued", "failed"], last_error=SimpleNamespace(message="rate limited"))
        client = self._client(runs, clock)

        with pytest.raises(GenerationError) as excinfo:
            client.complete("prompt")
        assert excinfo.value.detail == "rate limited"
        assert f"ended in state {RunState.FAILED.value}" in caplog.text

    def test_shared_client_keeps_no_run_state(self):
        clock = FakeClock()
        runs = FakeRuns(["failed"])
        client = self._client(runs, clock)
        with pytest.raises(GenerationError):
            client.complete("first")

        runs.statuses = ["completed"]
        assert client.complete("second") == "```sql\nSELECT 4\n```"
        assert not hasattr(client, "state")
