from ai_agents.services.config import RefinementConfig
from server.config.settings import load_config


def test_testing_config_feeds_refinement_config():
    config = RefinementConfig.from_mapping(load_config("testing"))

    assert config.api_key
    assert config.timeout_seconds == 5.0
    assert config.min_answers == 2
    assert config.max_loopbacks == 2
    assert config.verify_facts is True
    assert not config.deadline_seconds


def test_environment_overrides_are_coerced(monkeypatch):
    monkeypatch.setenv("REFINEMENT_MAX_LOOPBACKS", "5")
    monkeypatch.setenv("REFINEMENT_VERIFY_FACTS", "false")
    monkeypatch.setenv("GENERATION_DEADLINE_SECONDS", "12.5")
    monkeypatch.setenv("LLM_MODEL", "gemini-2.5-flash")

    settings = load_config("production")
    config = RefinementConfig.from_mapping(settings)

    assert settings["REFINEMENT_MAX_LOOPBACKS"] == 5
    assert config.max_loopbacks == 5
    assert config.verify_facts is False
    assert config.deadline_seconds == 12.5
    assert config.model == "gemini-2.5-flash"


def test_unknown_config_name_falls_back_to_base():
    settings = load_config("staging")

    assert settings["DEBUG"] is False
    assert settings["STATEMENT_MAX_LENGTH"] == 350
