import pytest

from conftest import ScriptedClient, wait_for
from translation_machine import config
from translation_machine.ai.exceptions import TransientRemoteError
from translation_machine.web import create_app, tasks

DOCUMENT = "Olá mundo.\n\nSegundo parágrafo."


@pytest.fixture
def app(temp_db):
    application = create_app()
    application.config["TESTING"] = True
    return application


@pytest.fixture
def http(app):
    return app.test_client()


@pytest.fixture
def scripted(app, monkeypatch):
    """Swap the remote client for a scripted one and keep retries instant."""
    clients = []

    def install(script=None):
        def factory(settings):
            client = ScriptedClient(script)
            clients.append(client)
            return client
        monkeypatch.setattr(tasks, "client_factory", factory)
        return clients

    settings = config.load_config()
    settings["openai"]["max_retries"] = 1
    config.save_config(settings)
    return install


def wait_until_finished(http, job_id):
    assert wait_for(lambda: http.get(f"/api/jobs/{job_id}").get_json()["finished_at"] is not None)
    return http.get(f"/api/jobs/{job_id}").get_json()


def test_health(http):
    response = http.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_estimate(http):
    response = http.post("/api/jobs/estimate", json={"text": "x" * 3500, "model": "gpt-4o"})

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["model"] == "gpt-4o"
    assert payload["chunks"] == 1
    assert payload["input_tokens"] > 1000
    assert payload["cost"] > 0
    assert payload["warnings"] == []


def test_estimate_requires_text(http):
    response = http.post("/api/jobs/estimate", json={"text": "   "})
    assert response.status_code == 400
    assert response.get_json()["code"] == "empty_document"


def test_estimate_rejects_unknown_model(http):
    response = http.post("/api/jobs/estimate", json={"text": "Olá", "model": "gpt-2"})
    assert response.status_code == 400
    assert response.get_json()["code"] == "unknown_model"


def test_custom_prompt_warnings(http):
    response = http.post("/api/jobs/estimate", json={"text": "Olá", "system_prompt": "Please help me."})
    warnings = response.get_json()["warnings"]
    assert len(warnings) == 3


def test_start_without_api_key_is_rejected(http):
    response = http.post("/api/jobs", json={"text": DOCUMENT})

    assert response.status_code == 400
    assert response.get_json()["code"] == "ai_config_missing"


def test_job_runs_to_completion_and_exports(http, scripted):
    clients = scripted()

    response = http.post("/api/jobs", json={"text": DOCUMENT, "source_name": "carta.txt"})
    assert response.status_code == 202
    job_id = response.get_json()["job_id"]

    status = wait_until_finished(http, job_id)
    assert status["summary"]["run_state"] == "completed"
    assert status["summary"]["succeeded"] == 1
    assert status["source"]["name"] == "carta.txt"
    assert status["progress"]["phase"] == "completed"
    assert clients[0].chunk_texts == [DOCUMENT]

    export = http.get(f"/api/jobs/{job_id}/export")
    assert export.status_code == 200
    assert export.mimetype == "text/plain"
    assert export.get_data(as_text=True) == f"EN: {DOCUMENT}"
    assert export.headers["X-Chunks-Succeeded"] == "1"
    assert export.headers["X-Chunks-Total"] == "1"


def test_invalid_transition_is_a_conflict(http, scripted):
    scripted()
    job_id = http.post("/api/jobs", json={"text": DOCUMENT}).get_json()["job_id"]
    wait_until_finished(http, job_id)

    response = http.post(f"/api/jobs/{job_id}/pause")
    assert response.status_code == 409
    assert response.get_json()["code"] == "invalid_state"


def test_unknown_job_is_not_found(http):
    assert http.get("/api/jobs/nope").status_code == 404
    assert http.post("/api/jobs/nope/resume").status_code == 404
    assert http.get("/api/jobs/nope/export").status_code == 404


def test_retry_failed_over_http(http, scripted):
    scripted([TransientRemoteError("timeout")])
    job_id = http.post("/api/jobs", json={"text": DOCUMENT}).get_json()["job_id"]
    status = wait_until_finished(http, job_id)
    assert status["summary"]["failed"] == 1
    assert "[TRANSLATION FAILED:" in http.get(f"/api/jobs/{job_id}/export").get_data(as_text=True)

    response = http.post(f"/api/jobs/{job_id}/retry-failed")
    assert response.status_code == 202
    assert wait_for(lambda: http.get(f"/api/jobs/{job_id}").get_json()["summary"]["failed"] == 0)
    status = wait_until_finished(http, job_id)
    assert status["summary"]["run_state"] == "completed"


def test_saved_sessions(http, scripted):
    scripted()
    job_id = http.post("/api/jobs", json={"text": DOCUMENT, "source_name": "carta.txt"}).get_json()["job_id"]
    wait_until_finished(http, job_id)

    listing = http.get("/api/checkpoints").get_json()
    assert listing["count"] == 1
    session = listing["checkpoints"][0]
    assert session["job_id"] == job_id
    assert session["source_name"] == "carta.txt"
    assert session["run_state"] == "completed"
    assert session["time_ago"] == "0 minutes ago"

    resumed = http.post(f"/api/checkpoints/{job_id}/resume")
    assert resumed.status_code == 202
    assert resumed.get_json()["job"]["summary"]["run_state"] == "completed"

    assert http.post("/api/checkpoints/missing/resume").status_code == 404
    assert http.delete("/api/checkpoints").get_json() == {"removed": 1}
    assert http.get("/api/checkpoints").get_json()["count"] == 0


def test_settings_mask_key_and_validate(http):
    response = http.put("/api/settings/", json={"config": {"openai": {"api_key": "sk-abcdefghijkl"},
                                                           "translation": {"model": "gpt-4o"}}})
    assert response.status_code == 200

    current = http.get("/api/settings/").get_json()["config"]
    assert current["openai"]["api_key"] == "sk-...ijkl"
    assert current["translation"]["model"] == "gpt-4o"
    assert config.load_config()["openai"]["api_key"] == "sk-abcdefghijkl"

    # Echoing the masked key back keeps the stored one
    http.put("/api/settings/", json={"config": current})
    assert config.load_config()["openai"]["api_key"] == "sk-abcdefghijkl"

    bad = http.put("/api/settings/", json={"config": {"log_mode": "verbose"}})
    assert bad.status_code == 400


def test_factory_reset_restores_defaults(http, scripted):
    scripted()
    job_id = http.post("/api/jobs", json={"text": DOCUMENT}).get_json()["job_id"]
    wait_until_finished(http, job_id)

    response = http.post("/api/settings/factory-reset")

    assert response.status_code == 200
    assert response.get_json()["config"]["openai"]["max_retries"] == config.DEFAULT_MAX_ATTEMPTS
    assert http.get("/api/checkpoints").get_json()["count"] == 0


@pytest.mark.parametrize("bad_config", [
    {"openai": {"max_retries": "lots"}},
    {"openai": {"max_retries": 0}},
    {"pipeline": {"pause_poll_interval": "soon"}},
    {"pipeline": {"pause_poll_interval": 0}},
    {"pipeline": {"checkpoint_every": "often"}},
])
def test_settings_reject_unusable_pipeline_values(http, bad_config):
    before = config.load_config()

    response = http.put("/api/settings/", json={"config": bad_config})

    assert response.status_code == 400
    assert config.load_config() == before
