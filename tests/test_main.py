import json
from unittest.mock import patch

from typer.testing import CliRunner

from kinodeck.core.config import Settings
from kinodeck.main import app, build_context
from kinodeck.services.detail import DetailState
from kinodeck.services.source import MetadataSource
from kinodeck.services.storage import MemoryStorage

runner = CliRunner()


class FakeSource(MetadataSource):
    async def fetch_movie(self, media_id):
        return {"id": media_id, "title": "Inception", "poster_path": "/p.jpg"}

    async def fetch_series(self, media_id):
        return {"id": media_id, "name": "Breaking Bad"}


def test_build_context_wires_one_store_and_builder():
    settings = Settings(_env_file=None, watchlist_key="ctx")
    storage = MemoryStorage()
    context = build_context(settings, source=FakeSource(), storage=storage)

    assert context.watchlist.key == "ctx"
    assert context.watchlist.storage is storage
    assert context.details.source.__class__ is FakeSource


def test_show_and_toggle(tmp_path):
    settings = Settings(_env_file=None, database_url=f"sqlite:///{tmp_path / 'cli.db'}")
    storage = MemoryStorage()

    def fake_context():
        return build_context(settings, source=FakeSource(), storage=storage)

    with patch("kinodeck.main.build_context", side_effect=fake_context), patch(
        "kinodeck.main.get_settings", return_value=settings
    ):
        result = runner.invoke(app, ["show", "movie", "27205", "--toggle"])

    assert result.exit_code == 0, result.output
    assert "In watchlist: yes" in result.output
    assert json.loads(storage.get("watchlist"))[0]["id"] == 27205


def test_show_failure_exits_non_zero():
    class MissingSource(FakeSource):
        async def fetch_movie(self, media_id):
            return {"title": "no id"}

    settings = Settings(_env_file=None)

    def fake_context():
        return build_context(settings, source=MissingSource(), storage=MemoryStorage())

    with patch("kinodeck.main.build_context", side_effect=fake_context), patch(
        "kinodeck.main.get_settings", return_value=settings
    ):
        result = runner.invoke(app, ["show", "movie", "1"])

    assert result.exit_code == 1
    assert DetailState.FAILED.value in result.output


def test_watchlist_command(tmp_path):
    settings = Settings(_env_file=None, database_url=f"sqlite:///{tmp_path / 'cli.db'}")

    with patch("kinodeck.main.get_settings", return_value=settings):
        result = runner.invoke(app, ["watchlist"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == []


def test_toggle_save_failure_exits_non_zero():
    class ReadOnlyStorage(MemoryStorage):
        def set(self, key, value):
            raise OSError("read-only")

    settings = Settings(_env_file=None)
    storage = ReadOnlyStorage()

    def fake_context():
        return build_context(settings, source=FakeSource(), storage=storage)

    with patch("kinodeck.main.build_context", side_effect=fake_context), patch(
        "kinodeck.main.get_settings", return_value=settings
    ):
        result = runner.invoke(app, ["show", "movie", "27205", "--toggle"])

    assert result.exit_code == 1
    assert "Could not update watchlist" in result.output
    assert storage.get("watchlist") is None
