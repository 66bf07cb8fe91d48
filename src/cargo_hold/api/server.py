"""Process entrypoint: migrate, seed purposes, then serve both listeners."""

import asyncio
import sys
from pathlib import Path

import structlog
import uvicorn
from alembic import command
from alembic.config import Config
from pydantic import ValidationError

from cargo_hold.api.context import ServiceContext
from cargo_hold.api.main import create_private_app, create_public_app
from cargo_hold.common.config import Settings, get_settings
from cargo_hold.common.errors import ConfigError
from cargo_hold.common.logging import configure_logging
from cargo_hold.stores.postgres_store import FileStore

logger = structlog.get_logger()

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"


def run_migrations(database_url: str) -> None:
    """Upgrade the schema to head. Blocking; run it off the event loop.

    The scripts ship inside the package, so no alembic.ini is needed at runtime.
    """
    if not (MIGRATIONS_DIR / "env.py").exists():
        raise ConfigError(f"Migration scripts not found at {MIGRATIONS_DIR}")

    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    config.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    config.attributes["configure_logger"] = False
    command.upgrade(config, "head")
    logger.info("migrations_applied")


async def seed_purposes(context: ServiceContext) -> None:
    async with context.session_factory() as session:
        store = FileStore(session)
        await store.upsert_purposes(context.settings.allowed_purposes, context.generator)
        await store.commit()


async def serve(settings: Settings) -> None:
    context = ServiceContext.from_settings(settings)
    try:
        if settings.run_migrations:
            await asyncio.to_thread(run_migrations, settings.database_url)
        await seed_purposes(context)

        servers = [
            uvicorn.Server(
                uvicorn.Config(
                    create_public_app(context),
                    host=settings.public_host,
                    port=settings.public_port,
                    log_level=settings.log_level.lower(),
                    access_log=False,
                )
            ),
            uvicorn.Server(
                uvicorn.Config(
                    create_private_app(context),
                    host=settings.private_host,
                    port=settings.private_port,
                    log_level=settings.log_level.lower(),
                    access_log=False,
                )
            ),
        ]
        logger.info(
            "server_starting",
            public=settings.public_address,
            private=settings.private_address,
        )

        tasks = [asyncio.create_task(server.serve()) for server in servers]
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)

        # When one listener stops, take the other one down with it.
        for server in servers:
            server.should_exit = True
        await asyncio.gather(*pending)
        for task in done:
            task.result()
    finally:
        await context.close()
        logger.info("server_stopped")


def main() -> None:
    try:
        settings = get_settings()
    except ValidationError as exc:
        configure_logging()
        logger.error("invalid_configuration", error=str(exc))
        sys.exit(1)

    configure_logging(
        settings.log_level,
        service="cargo-hold",
        worker_id=settings.worker_id,
        datacenter_id=settings.datacenter_id,
    )
    try:
        asyncio.run(serve(settings))
    except ConfigError as exc:
        logger.error("invalid_configuration", error=str(exc))
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
