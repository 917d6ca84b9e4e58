import pytest

from studio import settings as settings_module
from studio.llm.adapter import reset_llm_adapter
from studio.llm.cache import clear_cache


@pytest.fixture(autouse=True)
def test_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_ROOT", str(tmp_path / "data"))
    monkeypatch.setenv("LLM_MODE", "mock")
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("COMPILE_DELAY_SECONDS", "0")
    monkeypatch.setenv("COMPILE_FAILURE_PROBABILITY", "0")
    monkeypatch.setenv("RESPONSE_POLICY", "lenient")
    monkeypatch.delenv("ADMIN_API_KEY", raising=False)
    settings_module.get_settings.cache_clear()
    reset_llm_adapter()
    clear_cache()
    yield
    settings_module.get_settings.cache_clear()
    reset_llm_adapter()
