"""End-to-end tests for the optimizer session."""

import threading

import pytest

from promptopt.dispatcher import Dispatcher
from promptopt.errors import StaleResultError, TransportError, ValidationError
from promptopt.history import HistoryStore
from promptopt.llm.base import OptimizerBackend
from promptopt.llm.providers import OpenAICompatibleBackend
from promptopt.models import TargetModel
from promptopt.session import OptimizerSession
from promptopt.settings import SettingsStore
from promptopt.storage import MemoryStorage


def test_summarize_scenario(session, fake_backend):
    session.set_prompt("Summarize {{text}} in {{language}}")
    session.set_variable("text", "Hello world")
    session.set_variable("language", "French")
    assert session.resolved_prompt() == "Summarize Hello world in French"

    entry = session.optimize(TargetModel.GEMINI)

    assert entry.optimized_prompt == "Résumez: Hello world."
    assert entry.original_prompt == "Summarize Hello world in French"
    assert entry.target_model is TargetModel.GEMINI
    assert fake_backend.calls[0]["prompt"] == "Summarize Hello world in French"
    assert session.history.entries == [entry]

    # The optimized text becomes the active prompt
    assert session.prompt == "Résumez: Hello world."
    assert session.variables == {}
    assert session.target is TargetModel.GEMINI


def test_whitespace_prompt_is_rejected(session, fake_backend):
    session.set_prompt("   ")
    with pytest.raises(ValidationError):
        session.optimize()
    assert len(session.history) == 0
    assert fake_backend.calls == []
    assert session.prompt == "   "


def test_prompt_of_only_empty_placeholders_is_rejected(session):
    session.set_prompt("{{a}} {{b}}")
    with pytest.raises(ValidationError):
        session.optimize()


def test_variable_map_follows_prompt(session):
    session.set_prompt("{{a}} {{b}}")
    session.set_variable("a", "1")
    session.set_prompt("{{a}} {{c}}")
    assert session.variables == {"a": "1", "c": ""}
    assert session.set_variable("b", "2") is False


def test_failure_leaves_state_untouched(storage, fake_backend_class):
    backend = fake_backend_class(error=TransportError("API error: 500"))
    session = OptimizerSession(
        HistoryStore(storage), SettingsStore(storage), Dispatcher(backends={"gemini": backend})
    )
    session.set_prompt("Write {{thing}}")
    session.set_variable("thing", "a poem")

    with pytest.raises(TransportError):
        session.optimize("anthropic")

    assert session.prompt == "Write {{thing}}"
    assert session.variables == {"thing": "a poem"}
    assert session.target is TargetModel.GEMINI
    assert len(session.history) == 0


def test_unknown_target_is_validation_error(session):
    session.set_prompt("hello")
    with pytest.raises(ValidationError, match="Unknown target"):
        session.optimize("mistral")


def test_optimize_prompt_only_touches_history(session):
    session.set_prompt("editor text")
    entry = session.optimize_prompt("Translate {{x}}", {"x": "bonjour", "y": "ignored"}, "chatgpt")
    assert entry.original_prompt == "Translate bonjour"
    assert entry.target_model is TargetModel.CHATGPT
    assert session.prompt == "editor text"
    assert len(session.history) == 1


def test_openai_settings_flow_through(storage, chat_server):
    settings = SettingsStore(storage)
    settings.set_variant("openai")
    settings.update_field("api_key", "sk-live")
    settings.update_field("base_url", "https://proxy.local/v1")
    settings.update_field("model", "mixtral")
    settings.set_temperature(0.9)

    dispatcher = Dispatcher(backends={"openai": OpenAICompatibleBackend(client=chat_server.client)})
    session = OptimizerSession(HistoryStore(storage), settings, dispatcher)
    session.set_prompt("Make it better")
    entry = session.optimize("llama")

    assert entry.optimized_prompt == "OPTIMIZED PROMPT"
    body = chat_server.last_json()
    assert body["model"] == "mixtral"
    assert body["temperature"] == 0.9
    assert str(chat_server.requests[0].url) == "https://proxy.local/v1/chat/completions"


def test_reuse_history_entry(session):
    session.set_prompt("first")
    entry = session.optimize()
    session.set_prompt("something else {{x}}")

    assert session.reuse(entry.id) == entry.optimized_prompt
    assert session.prompt == entry.optimized_prompt
    assert session.variables == {}
    assert session.target is TargetModel.GEMINI

    with pytest.raises(KeyError):
        session.reuse(123)


def test_optimized_placeholders_get_a_fresh_variable_map(storage, fake_backend_class):
    backend = fake_backend_class(reply="Write about {{topic}} for {{audience}}")
    session = OptimizerSession(
        HistoryStore(storage), SettingsStore(storage), Dispatcher(backends={"gemini": backend})
    )
    session.set_prompt("Write about {{subject}}")
    session.set_variable("subject", "owls")

    session.optimize("gemini")

    assert session.variables == {"topic": "", "audience": ""}
    assert session.set_variable("topic", "bees") is True
    session.set_variable("audience", "kids")
    assert session.resolved_prompt() == "Write about bees for kids"


def test_reuse_restores_target_and_placeholders(storage, fake_backend_class):
    backend = fake_backend_class(reply="Plan a trip to {{city}}")
    session = OptimizerSession(
        HistoryStore(storage), SettingsStore(storage), Dispatcher(backends={"gemini": backend})
    )
    session.set_prompt("trip")
    entry = session.optimize("llama")
    session.set_target("gemini")
    session.set_prompt("unrelated")

    session.reuse(entry.id)

    assert session.target is TargetModel.LLAMA
    assert session.variables == {"city": ""}


def test_sessions_sharing_a_directory_keep_both_entries(tmp_path, fake_backend):
    dispatcher = Dispatcher(backends={"gemini": fake_backend})
    first = OptimizerSession.from_storage(root=tmp_path, dispatcher=dispatcher)
    second = OptimizerSession.from_storage(root=tmp_path, dispatcher=dispatcher)

    first.set_prompt("one")
    first.optimize()
    second.set_prompt("two")
    second.optimize()

    reloaded = OptimizerSession.from_storage(root=tmp_path, dispatcher=dispatcher)
    assert [e.original_prompt for e in reloaded.history.entries] == ["two", "one"]


def test_preview_commits_nothing(session, fake_backend):
    session.set_prompt("Summarize {{text}}")
    session.set_variable("text", "notes")

    assert session.preview("anthropic") == "Résumez: Hello world."
    assert fake_backend.calls[0]["prompt"] == "Summarize notes"
    assert len(session.history) == 0
    assert session.prompt == "Summarize {{text}}"
    assert session.variables == {"text": "notes"}
    assert session.target is TargetModel.GEMINI


def test_preview_rejects_empty_prompt(session):
    with pytest.raises(ValidationError):
        session.preview()


def test_load_template(session):
    variables = session.load_template("Blog Post Idea Generator")
    assert variables == {"topic": "", "audience": ""}
    with pytest.raises(KeyError):
        session.load_template("does not exist")


def test_from_storage_rehydrates(tmp_path, fake_backend):
    dispatcher = Dispatcher(backends={"gemini": fake_backend})
    first = OptimizerSession.from_storage(root=tmp_path, dispatcher=dispatcher)
    first.settings.set_temperature(0.1)
    first.set_prompt("persist me")
    first.optimize()

    second = OptimizerSession.from_storage(root=tmp_path)
    assert second.settings.current.temperature == 0.1
    assert second.history.entries[0].original_prompt == "persist me"


class StateSwappingBackend(OptimizerBackend):
    """Replaces the session's stores while the request is in flight."""

    def __init__(self, session_ref):
        super().__init__()
        self.session_ref = session_ref

    def complete(self, prompt, instruction, settings):
        session = self.session_ref[0]
        session.reset_state(history=HistoryStore(MemoryStorage()))
        return "late result"


def test_stale_result_is_discarded(storage):
    ref = []
    session = OptimizerSession(
        HistoryStore(storage),
        SettingsStore(storage),
        Dispatcher(backends={"gemini": StateSwappingBackend(ref)}),
    )
    ref.append(session)
    old_history = session.history
    session.set_prompt("original")

    with pytest.raises(StaleResultError):
        session.optimize()

    assert len(old_history) == 0
    assert len(session.history) == 0
    assert session.prompt == "original"


class GatedBackend(OptimizerBackend):
    """Holds every call until all workers are in flight."""

    def __init__(self, parties):
        super().__init__()
        self.barrier = threading.Barrier(parties, timeout=10)

    def complete(self, prompt, instruction, settings):
        self.barrier.wait()
        return f"optimized {prompt}"


def test_concurrent_requests_all_commit(storage):
    workers = 6
    session = OptimizerSession(
        HistoryStore(storage),
        SettingsStore(storage),
        Dispatcher(backends={"gemini": GatedBackend(workers)}),
    )
    errors = []

    def run(n):
        try:
            session.optimize_prompt(f"prompt {n}")
        except Exception as e:  # surfaced through the assertion below
            errors.append(e)

    threads = [threading.Thread(target=run, args=(n,)) for n in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(session.history) == workers
    assert {e.original_prompt for e in session.history.entries} == {f"prompt {n}" for n in range(workers)}
    assert len(storage.get("promptHistory")) == workers
