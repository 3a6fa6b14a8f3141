"""
Tests for the command line interface.
"""

import json

import pytest

from facultyrank import __version__
from facultyrank.app import main


@pytest.fixture
def run_cli(monkeypatch, tmp_path, capsys):
    """Run ``facultyrank`` with the given arguments against a temp database."""
    db_path = tmp_path / "cli.db"
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.delenv("SCOPUS_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)

    def _run(*args):
        monkeypatch.setattr("sys.argv", ["facultyrank", "--db", str(db_path), *args])
        main()
        return capsys.readouterr().out

    _run.db_path = db_path
    return _run


class TestCli:
    def test_version(self, run_cli):
        assert run_cli("--version").strip() == __version__

    def test_init_db(self, run_cli):
        out = run_cli("init-db")

        assert "Database ready" in out
        assert run_cli.db_path.exists()

    def test_resolve(self, run_cli):
        result = json.loads(run_cli("resolve", "--institution", "IIT Delhi"))

        assert result["match"] == "Indian Institute of Technology Delhi"
        assert result["qs_score10"] == 8.7

    def test_model_info(self, run_cli):
        assert json.loads(run_cli("model-info"))["version"] == "1.0.0"

    def test_top_empty(self, run_cli):
        result = json.loads(run_cli("top", "--department", "All", "--limit", "5"))

        assert result == {"cache": "MISS", "data": []}

    def test_cache_clear(self, run_cli):
        result = json.loads(run_cli("cache-clear", "--pattern", "req:/applications*"))

        assert result["removed"] == 0
        assert result["cache"]["backend"] == "memory"

    def test_predict_missing_application_exits(self, run_cli):
        run_cli("init-db")

        with pytest.raises(SystemExit, match="Application not found: 404"):
            run_cli("predict", "--id", "404")

    def test_superscript_id_exits_cleanly(self, run_cli):
        with pytest.raises(SystemExit, match="Invalid input: Application id must be a positive integer"):
            run_cli("predict", "--id", "²")

    def test_invalid_batch_exits(self, run_cli):
        ids = ",".join(str(i) for i in range(1, 52))

        with pytest.raises(SystemExit, match="Invalid input: Maximum 50"):
            run_cli("batch-predict", "--ids", ids)

    def test_scopus_without_key_exits(self, run_cli):
        with pytest.raises(SystemExit, match="Scopus API key not configured"):
            run_cli("scopus", "--scopus-id", "57190000001")
