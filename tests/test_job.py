import json

import pytest

from translation_machine.ai.exceptions import ConfigurationError, SlotAlreadySetError
from translation_machine.translation.job import (
    ChunkResult,
    JobConfig,
    RunState,
    TranslationJob,
    Usage,
)
from translation_machine.translation.prompts import STYLE_PRESETS


def test_create_chunks_document_and_starts_idle(job_config):
    job = TranslationJob.create("Primeiro.\n\nSegundo.", job_config, {"name": "doc.txt"})

    assert job.run_state is RunState.IDLE
    assert job.cursor == 0
    assert job.total_chunks == 1
    assert job.chunks[0].text == "Primeiro.\n\nSegundo."
    assert all(result.is_pending for result in job.results)
    assert job.source_descriptor == {"name": "doc.txt", "size": 19}
    assert len(job.id) == 32


def test_record_refuses_to_overwrite_without_flag(make_job):
    job = make_job(2)
    job.record(0, ChunkResult.success("One"))

    with pytest.raises(SlotAlreadySetError):
        job.record(0, ChunkResult.success("Again"))

    job.record(0, ChunkResult.success("Again"), overwrite=True)
    assert job.results[0].text == "Again"


def test_usage_never_decreases():
    usage = Usage()
    usage.add(10, 5, 0.01)
    usage.add(1, 1, 0.0)

    assert usage.total_tokens == 17
    with pytest.raises(ValueError):
        usage.add(-1, 0, 0.0)


def test_export_marks_failures_and_pending_chunks(make_job):
    job = make_job(4)
    job.record(0, ChunkResult.success("Paragraph one."))
    job.record(1, ChunkResult.failed("boom", "Parágrafo número 2."))
    job.record(2, ChunkResult.failed("too big", "Parágrafo número 3.", too_large=True))

    assert job.export_text() == "\n\n".join([
        "Paragraph one.",
        "[TRANSLATION FAILED: Parágrafo número 2.]",
        "[TRANSLATION FAILED - CHUNK TOO LARGE: Parágrafo número 3.]",
        "[UNTRANSLATED: Parágrafo número 4.]",
    ])


def test_summary_counts_outcomes(make_job):
    job = make_job(3)
    job.record(0, ChunkResult.success("a", suspect=True, corrected=True))
    job.record(1, ChunkResult.failed("boom", "b"))
    job.cursor = 2

    summary = job.summary()
    assert summary["succeeded"] == 1
    assert summary["failed"] == 1
    assert summary["pending"] == 1
    assert summary["suspect"] == 1
    assert summary["cursor"] == 2
    assert job.failed_indices() == [1]


def test_snapshot_survives_json_round_trip(make_job):
    job = make_job(3)
    job.record(0, ChunkResult.success("One", suspect=True, corrected=True))
    job.record(1, ChunkResult.failed("rate limited", "Parágrafo número 2."))
    job.cursor = 2
    job.usage.add(30, 60, 0.003)
    job.run_state = RunState.PAUSED

    restored = TranslationJob.from_snapshot(json.loads(json.dumps(job.to_snapshot())))

    assert restored.id == job.id
    assert restored.chunks == job.chunks
    assert restored.results == job.results
    assert restored.cursor == 2
    assert restored.usage == job.usage
    assert restored.config == job.config
    assert restored.run_state is RunState.PAUSED
    assert restored.source_descriptor == {"name": "doc.txt"}


def test_job_rejects_inconsistent_state(make_job):
    job = make_job(2)
    with pytest.raises(ValueError):
        TranslationJob(id="x", chunks=job.chunks, config=job.config, cursor=3)
    with pytest.raises(ValueError):
        TranslationJob(id="x", chunks=job.chunks, config=job.config, results=[ChunkResult()])


def test_config_validation(job_config):
    job_config.validate()

    with pytest.raises(ConfigurationError) as excinfo:
        JobConfig(model="gpt-2", system_prompt="Translate").validate()
    assert excinfo.value.code == "unknown_model"

    with pytest.raises(ConfigurationError):
        JobConfig(model="gpt-4o", system_prompt="   ").validate()
    with pytest.raises(ConfigurationError):
        JobConfig(model="gpt-4o", system_prompt="Translate", chunk_size=0).validate()


def test_chunk_budget_accounts_for_prompt():
    config = JobConfig(model="gpt-4o", system_prompt="p" * 350, chunk_size=1000)
    assert config.chunk_budget == 900


def test_from_settings_resolves_style_preset():
    settings = {"translation": {"model": "gpt-4o", "style": "academic",
                                "source_language": "pt", "target_language": "en"}}

    config = JobConfig.from_settings(settings)

    assert config.model == "gpt-4o"
    assert config.style == "academic"
    assert config.system_prompt == STYLE_PRESETS["academic"].format(
        source_language_name="Portuguese", target_language_name="English")


def test_from_settings_custom_prompt_override():
    config = JobConfig.from_settings({"translation": {"style": "formal"}},
                                     system_prompt="Translate into English only.", chunk_size="2000")

    assert config.style == "custom"
    assert config.system_prompt == "Translate into English only."
    assert config.chunk_size == 2000


def test_from_settings_rejects_unknown_style():
    with pytest.raises(ConfigurationError):
        JobConfig.from_settings({"translation": {}}, style="poetic")


def test_config_rejects_unknown_or_identical_languages():
    with pytest.raises(ConfigurationError) as excinfo:
        JobConfig(model="gpt-4o", system_prompt="Translate", source_language="xx").validate()
    assert excinfo.value.code == "invalid_language"

    with pytest.raises(ConfigurationError):
        JobConfig(model="gpt-4o", system_prompt="Translate", source_language="pt-BR",
                  target_language="pt").validate()

    JobConfig(model="gpt-4o", system_prompt="Translate", source_language="pt-BR",
              target_language="en-US").validate()
