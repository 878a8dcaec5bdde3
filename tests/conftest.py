import pytest


@pytest.fixture(autouse=True)
def _isolate_global_config(tmp_path_factory, monkeypatch):
    """Keep a real ~/.wgslpp/config.json from leaking into tests."""
    global_dir = tmp_path_factory.mktemp("global_home") / ".wgslpp"
    monkeypatch.setattr("wgslpp.discovery.config.GLOBAL_DIR", global_dir)
    monkeypatch.setattr("wgslpp.discovery.config.GLOBAL_CONFIG", global_dir / "config.json")
