"""Tests for process startup -- shared context, migrations and the entrypoint."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cargo_hold.api import server
from cargo_hold.api.context import ServiceContext
from cargo_hold.api.main import create_private_app, create_public_app
from cargo_hold.common.config import Settings
from cargo_hold.common.errors import ConfigError


class TestServiceContext:
    async def test_builds_shared_collaborators(self):
        context = ServiceContext.from_settings(Settings(_env_file=None, worker_id=3, datacenter_id=4))
        try:
            assert context.generator.worker_id == 3
            assert context.generator.datacenter_id == 4
            assert context.storage.bucket == "cargo-hold"
        finally:
            await context.close()

    def test_invalid_worker_id_is_fatal(self):
        with pytest.raises(ConfigError):
            ServiceContext.from_settings(Settings(_env_file=None, worker_id=32))

    async def test_both_apps_share_one_generator(self):
        context = ServiceContext.from_settings(Settings(_env_file=None))
        try:
            public_app = create_public_app(context)
            private_app = create_private_app(context)
            assert public_app.state.generator is private_app.state.generator is context.generator
            assert public_app.state.session_factory is private_app.state.session_factory
        finally:
            await context.close()


class TestRunMigrations:
    def test_missing_scripts_are_fatal(self, tmp_path):
        with patch.object(server, "MIGRATIONS_DIR", tmp_path), patch.object(server.command, "upgrade") as upgrade:
            with pytest.raises(ConfigError, match="Migration scripts not found"):
                server.run_migrations("postgresql+psycopg://x@y/z")
        upgrade.assert_not_called()

    def test_upgrades_to_head_from_packaged_scripts(self):
        with patch.object(server.command, "upgrade") as upgrade:
            server.run_migrations("postgresql+psycopg://x:p%40ss@y/z")

        config, revision = upgrade.call_args.args
        assert revision == "head"
        assert config.config_file_name is None
        assert config.get_main_option("sqlalchemy.url") == "postgresql+psycopg://x:p%40ss@y/z"
        assert config.attributes["configure_logger"] is False

    def test_scripts_live_inside_the_package(self):
        package_dir = Path(server.__file__).resolve().parents[1]
        assert server.MIGRATIONS_DIR == package_dir / "migrations"
        assert (server.MIGRATIONS_DIR / "env.py").is_file()
        assert (server.MIGRATIONS_DIR / "script.py.mako").is_file()
        assert (server.MIGRATIONS_DIR / "versions" / "001_initial_schema.py").is_file()

    async def test_serve_aborts_when_scripts_missing(self, tmp_path):
        settings = Settings(_env_file=None, run_migrations=True)
        with (
            patch.object(server, "MIGRATIONS_DIR", tmp_path),
            patch.object(server, "seed_purposes", AsyncMock()) as seed,
        ):
            with pytest.raises(ConfigError):
                await server.serve(settings)
        seed.assert_not_awaited()


class TestSeedPurposes:
    async def test_upserts_allowed_purposes(self, generator):
        session = AsyncMock()
        session_cm = MagicMock()
        session_cm.__aenter__ = AsyncMock(return_value=session)
        session_cm.__aexit__ = AsyncMock(return_value=False)
        context = MagicMock(spec=ServiceContext)
        context.settings = Settings(_env_file=None, allowed_purposes=["avatar", "invoice"])
        context.generator = generator
        context.session_factory = MagicMock(return_value=session_cm)

        with patch.object(server, "FileStore") as store_cls:
            store = store_cls.return_value
            store.upsert_purposes = AsyncMock(return_value=2)
            store.commit = AsyncMock()
            await server.seed_purposes(context)

        store.upsert_purposes.assert_awaited_once_with(["avatar", "invoice"], generator)
        store.commit.assert_awaited_once()


class TestMain:
    def test_config_error_exits(self):
        with (
            patch.object(server, "get_settings", return_value=Settings(_env_file=None)),
            patch.object(server, "configure_logging"),
            patch.object(server, "serve", AsyncMock(side_effect=ConfigError("Worker ID must be between 0 and 31"))),
        ):
            with pytest.raises(SystemExit) as exc_info:
                server.main()
        assert exc_info.value.code == 1
