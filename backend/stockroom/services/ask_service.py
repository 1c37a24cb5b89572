# Overview: Natural-language questions answered through a language model and a sandboxed SQL procedure.

"""
Ask Service (NL-to-SQL bridge)

FLOW:
1. build_prompt(question): fixed instructions + the schema the model may use
2. CompletionClient.complete(prompt): chat completion or assistant run
3. extract_sql(text): pull one statement out of the reply
4. StoredProcedureRunner.run(sql): execute via the database procedure, which
   runs the statement read-only and returns it as JSON
5. unwrap_result(rows): flatten the procedure's [{"result": [...]}] shape

SECURITY: this module does not inspect the generated SQL. The database
procedure is the sandbox (read-only transaction, restricted role). Only the
procedure name is validated, because it is interpolated into the statement.

ERRORS:
- no SQL in the reply -> GenerationError (500)
- model round trip over ASK_TIMEOUT_SECONDS -> TimedOut (504)
- procedure failure -> QueryFailed (500, detail carries the store message)

The components are plain objects built once per app from its config and kept
in app.extensions; tests swap in fakes there.
"""

from __future__ import annotations

import enum
import json
import logging
import re
import time

import openai
from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..errors import GenerationError, QueryFailed, TimedOut
from ..validation import ValidationError


logger = logging.getLogger(__name__)

EXTENSION_KEY = "stockroom.ask"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")
_SQL_FENCE = re.compile(r"```\s*sql\b[ \t]*\n?(.*?)```", re.IGNORECASE | re.DOTALL)
_ANY_FENCE = re.compile(r"```(?:[A-Za-z0-9_+-]*[ \t]*\n)?(.*?)```", re.DOTALL)
# WITH only counts when a CTE definition follows, so prose such as "with pleasure" is skipped
_SQL_START = re.compile(
    r"\bSELECT\b|\bWITH\s+(?:RECURSIVE\s+)?\w+\s*(?:\([^)]*\)\s*)?AS\s*\(",
    re.IGNORECASE,
)


SCHEMA_DESCRIPTION = """\
Tables (PostgreSQL):
- orders (alias o): order_id integer, customer_id integer, order_date timestamp, total numeric, status text
- order_items (alias oi): order_item_id integer, order_id integer -> orders, product_id integer -> products, quantity integer, unit_price numeric
- products (alias p): product_id integer, product_name text, sku text, price numeric, stock integer, category_id integer -> categories, is_active boolean
- categories (alias c): category_id integer, category_name text, is_active boolean
- vendors (alias v): vendor_id integer, vendor_name text, contact_email text, contact_phone text, address text, is_active boolean
- product_vendors (alias pv): product_id integer -> products, vendor_id integer -> vendors, supply_price numeric, lead_time_days integer, preferred boolean
- restock_orders (alias ro): restock_id integer, product_id integer -> products, vendor_id integer -> vendors, quantity integer, status text (PENDING, APPROVED, REJECTED, COMPLETED), requested_at timestamp, expected_delivery timestamp
- restock_deliveries (alias rd): delivery_id integer, restock_id integer -> restock_orders, product_id integer -> products, quantity_received integer, received_at timestamp
"""


def build_prompt(question: str) -> str:
    return f"""\
You are an assistant that writes SQL for a retail inventory system.
Convert the question into one PostgreSQL query.

{SCHEMA_DESCRIPTION}
Rules:
- Use only the tables and columns listed above, with the aliases shown.
- Write exactly one read-only SELECT statement (a WITH clause is fine). No INSERT, UPDATE, DELETE or DDL.
- Filter dates with half-open ranges, e.g. o.order_date >= DATE '2024-07-01' AND o.order_date < DATE '2024-08-01'.
- Use CURRENT_DATE for relative dates such as "today" or "last month".
- Give every computed column a readable alias.
- Exclude inactive products and vendors unless the question asks about them.

Only return the SQL query in a code block like this:
```sql
SELECT o.order_id, o.total FROM orders o ...
```

Question: "{question}"
"""


def extract_sql(reply: str | None) -> str | None:
    """
    Pull a SQL statement out of a model reply.

    Preference: a ```sql fenced block, then any fenced block, then everything
    from the first SELECT keyword (or a WITH that opens a CTE) on. Trailing
    semicolons and whitespace are stripped. Returns None when nothing usable is found.
    """
    if not reply:
        return None

    match = _SQL_FENCE.search(reply) or _ANY_FENCE.search(reply)
    if match:
        candidate = match.group(1)
    else:
        start = _SQL_START.search(reply)
        if not start:
            return None
        candidate = reply[start.start():]

    candidate = candidate.strip()
    while candidate.endswith(";"):
        candidate = candidate[:-1].rstrip()
    return candidate or None


def unwrap_result(data) -> list:
    """
    Flatten what the procedure returns into a list of row objects.

    Accepts the row list [{"result": [...]}], the same with the inner value
    as JSON text, a bare JSON array, or nothing at all.
    """
    if data is None:
        return []
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError:
            raise QueryFailed("Query failed", detail="Procedure returned malformed JSON")
        return unwrap_result(data)
    if isinstance(data, dict):
        if "result" in data:
            return unwrap_result(data["result"])
        return [data]
    if isinstance(data, list):
        if data and isinstance(data[0], dict) and set(data[0].keys()) == {"result"}:
            return unwrap_result(data[0]["result"])
        return data
    raise QueryFailed("Query failed", detail=f"Unexpected procedure result type: {type(data).__name__}")


# -- Completion clients --

class ChatCompletionClient:
    """One chat completion per question (temperature 0, no streaming)."""

    def __init__(self, *, api_key: str, model: str, timeout: float, client=None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client = client

    def _get_client(self):
        if self._client is None:
            if not self.api_key:
                raise GenerationError("Language model is not configured", detail="OPENAI_API_KEY is empty")
            self._client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def complete(self, prompt: str) -> str:
        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0,
                timeout=self.timeout,
            )
        except openai.APITimeoutError:
            raise TimedOut("Language model timed out", detail=f"No reply within {self.timeout:g}s")
        except openai.OpenAIError as e:
            raise GenerationError("Language model request failed", detail=str(e))

        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        return (choices[0].message.content or "").strip()


class RunState(enum.Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


_RUN_DONE = {"completed"}
_RUN_FAILED = {"failed", "cancelled", "cancelling", "expired", "incomplete", "requires_action"}


class AssistantRunClient:
    """
    Question answered by an assistant run, polled until it settles.

    STATES: SUBMITTED -> POLLING -> COMPLETED | FAILED | TIMED_OUT

    Polling backs off exponentially from poll_initial up to poll_max and
    never sleeps past the deadline. On timeout the run is cancelled (best
    effort) before TimedOut is raised.
    """

    def __init__(
        self,
        *,
        api_key: str,
        assistant_id: str,
        timeout: float,
        client=None,
        poll_initial: float = 0.5,
        poll_max: float = 4.0,
        sleep=time.sleep,
        clock=time.monotonic,
    ):
        self.api_key = api_key
        self.assistant_id = assistant_id
        self.timeout = timeout
        self.poll_initial = poll_initial
        self.poll_max = poll_max
        self._client = client
        self._sleep = sleep
        self._clock = clock

    def _get_client(self):
        if self._client is None:
            if not self.api_key or not self.assistant_id:
                raise GenerationError(
                    "Language model is not configured",
                    detail="OPENAI_API_KEY and OPENAI_ASSISTANT_ID are required for the assistant backend",
                )
            self._client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def _cancel(self, client, thread_id: str, run_id: str) -> None:
        try:
            client.beta.threads.runs.cancel(run_id, thread_id=thread_id)
        except openai.OpenAIError:
            logger.warning("Failed to cancel assistant run %s", run_id, exc_info=True)

    def complete(self, prompt: str) -> str:
        client = self._get_client()
        deadline = self._clock() + self.timeout
        # Local to this call; the client instance is shared by every request
        state = None
        run_id = None

        try:
            thread = client.beta.threads.create(messages=[{"role": "user", "content": prompt}])
            run = client.beta.threads.runs.create(thread_id=thread.id, assistant_id=self.assistant_id)
            run_id = run.id
            state = RunState.SUBMITTED

            delay = self.poll_initial
            while run.status not in _RUN_DONE:
                if run.status in _RUN_FAILED:
                    state = RunState.FAILED
                    last_error = getattr(run, "last_error", None)
                    detail = getattr(last_error, "message", None) or f"Run ended with status {run.status}"
                    raise GenerationError("Language model run failed", detail=detail)

                remaining = deadline - self._clock()
                if remaining <= 0:
                    state = RunState.TIMED_OUT
                    self._cancel(client, thread.id, run.id)
                    raise TimedOut("Language model timed out", detail=f"No reply within {self.timeout:g}s")

                state = RunState.POLLING
                self._sleep(min(delay, remaining))
                delay = min(delay * 2, self.poll_max)
                run = client.beta.threads.runs.retrieve(run.id, thread_id=thread.id)

            state = RunState.COMPLETED
            messages = client.beta.threads.messages.list(thread_id=thread.id, order="desc", limit=10)
        except openai.APITimeoutError:
            state = RunState.TIMED_OUT
            raise TimedOut("Language model timed out", detail=f"No reply within {self.timeout:g}s")
        except openai.OpenAIError as e:
            state = RunState.FAILED
            raise GenerationError("Language model request failed", detail=str(e))
        finally:
            logger.info("Assistant run %s ended in state %s", run_id, state.value if state else None)

        for message in messages.data:
            if message.role != "assistant":
                continue
            parts = [
                block.text.value
                for block in message.content
                if getattr(block, "type", None) == "text"
            ]
            return "\n".join(parts).strip()
        return ""


# -- Execution --

class StoredProcedureRunner:
    """
    Runs generated SQL through a single-argument set-returning procedure:
    SELECT * FROM <procedure>(:sql_text)
    """

    def __init__(self, procedure_name: str):
        if not procedure_name or not _IDENTIFIER.match(procedure_name):
            raise ValueError(f"Invalid SQL procedure name: {procedure_name!r}")
        self.procedure_name = procedure_name

    def run(self, sql_text: str) -> list:
        statement = text(f"SELECT * FROM {self.procedure_name}(:sql_text)")
        try:
            rows = db.session.execute(statement, {"sql_text": sql_text}).mappings().all()
        except SQLAlchemyError as e:
            db.session.rollback()
            orig = getattr(e, "orig", None)
            raise QueryFailed("Query failed", detail=str(orig or e))
        # The procedure only reads; end the transaction it opened.
        db.session.rollback()
        return unwrap_result([dict(row) for row in rows])


class AskBridge:
    def __init__(self, completion_client, procedure_runner):
        self.completion_client = completion_client
        self.procedure_runner = procedure_runner

    def ask(self, question) -> dict:
        """
        Answer a free-text question.

        Returns {"result": [...rows], "sqlQuery": "<statement without fences>"}.
        """
        if not isinstance(question, str) or not question.strip():
            raise ValidationError("question is required")
        question = question.strip()

        logger.info("Ask question received: %s", question)
        reply = self.completion_client.complete(build_prompt(question))

        sql = extract_sql(reply)
        if not sql:
            raise GenerationError(
                "No SQL extracted from model response",
                detail=(reply or "")[:500] or None,
            )

        logger.info("Executing generated SQL: %s", sql)
        rows = self.procedure_runner.run(sql)
        return {"result": rows, "sqlQuery": sql}


def build_bridge(config) -> AskBridge:
    """Construct the bridge for an app config mapping."""
    timeout = float(config.get("ASK_TIMEOUT_SECONDS", 30))
    backend = (config.get("ASK_BACKEND") or "chat").lower()

    if backend == "chat":
        completion_client = ChatCompletionClient(
            api_key=config.get("OPENAI_API_KEY", ""),
            model=config.get("OPENAI_MODEL", "gpt-4o-mini"),
            timeout=timeout,
        )
    elif backend == "assistant":
        completion_client = AssistantRunClient(
            api_key=config.get("OPENAI_API_KEY", ""),
            assistant_id=config.get("OPENAI_ASSISTANT_ID", ""),
            timeout=timeout,
        )
    else:
        raise ValueError(f"Unknown ASK_BACKEND: {backend!r} (expected 'chat' or 'assistant')")

    runner = StoredProcedureRunner(config.get("ASK_SQL_PROCEDURE", "execute_raw_sql"))
    return AskBridge(completion_client, runner)


def get_bridge() -> AskBridge:
    return current_app.extensions[EXTENSION_KEY]
