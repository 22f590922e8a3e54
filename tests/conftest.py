import threading
import time

import pytest

from translation_machine.ai.service import TranslationResponse
from translation_machine.core import database
from translation_machine.core.schema import initialize_database
from translation_machine.translation.job import Chunk, JobConfig, TranslationJob
from translation_machine.translation.retry import RetryController

PROMPT = (
    "You are a professional translator. Translate the following text from Portuguese to English. "
    "Provide ONLY the English translation, do not include the original text."
)


class ScriptedClient:
    """
    Stand-in for TranslationClient.

    Each call pops the next scripted outcome: a string is returned as the
    translation, an exception instance is raised. Once the script runs out
    every chunk comes back as "EN: <chunk text>".
    """

    def __init__(self, script=None, input_tokens=10, output_tokens=20, cost=0.001):
        self.script = list(script or [])
        self.calls = []
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.cost = cost

    def translate(self, chunk_text, prompt, model):
        self.calls.append((chunk_text, prompt))
        outcome = self.script.pop(0) if self.script else f"EN: {chunk_text}"
        if isinstance(outcome, Exception):
            raise outcome
        return TranslationResponse(outcome, self.input_tokens, self.output_tokens, self.cost)

    @property
    def chunk_texts(self):
        return [text for text, _ in self.calls]


class GatedClient(ScriptedClient):
    """Blocks inside the first call until released, to simulate an in-flight request."""

    def __init__(self, script=None, gate_call=0):
        super().__init__(script)
        self.gate_call = gate_call
        self.entered = threading.Event()
        self.release = threading.Event()

    def translate(self, chunk_text, prompt, model):
        if len(self.calls) == self.gate_call:
            self.entered.set()
            self.release.wait(5)
        return super().translate(chunk_text, prompt, model)


class MemoryStore:
    """Checkpoint store kept in a dict; records the cursor of every write."""

    def __init__(self):
        self.saved = {}
        self.cursors = []

    def put(self, job_id, snapshot):
        self.saved[job_id] = snapshot
        self.cursors.append(snapshot["cursor"])

    def get(self, job_id):
        return self.saved.get(job_id)


def wait_for(predicate, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Point the sqlite layer at a fresh database file."""
    monkeypatch.setattr(database, "DB_FILE", tmp_path / "test.db")
    initialize_database()
    return database.DB_FILE


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def retry(sleeps):
    return RetryController(sleep=sleeps.append)


@pytest.fixture
def job_config():
    return JobConfig(model="gpt-4o-mini", system_prompt=PROMPT)


@pytest.fixture
def make_job(job_config):
    def _make(count=3, job_id="job-1"):
        chunks = [Chunk(i, f"Parágrafo número {i + 1}.") for i in range(count)]
        return TranslationJob(id=job_id, chunks=chunks, config=job_config,
                              source_descriptor={"name": "doc.txt"})
    return _make
