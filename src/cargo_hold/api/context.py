"""Process-wide collaborators shared by the public and private apps."""

from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from cargo_hold.common.config import Settings
from cargo_hold.common.database import create_engine, create_session_factory
from cargo_hold.identity import SnowflakeGenerator
from cargo_hold.storage.object_store import ObjectStorageClient

logger = structlog.get_logger()


@dataclass
class ServiceContext:
    """One generator, one storage client and one connection pool per process.

    Both listeners must draw ids from the same :class:`SnowflakeGenerator`;
    two generators with the same worker and datacenter would collide.
    """

    settings: Settings
    generator: SnowflakeGenerator
    storage: ObjectStorageClient
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServiceContext":
        # Raises ConfigError for out-of-range worker or datacenter ids.
        generator = SnowflakeGenerator(worker_id=settings.worker_id, datacenter_id=settings.datacenter_id)
        storage = ObjectStorageClient(
            settings.storage_base_url,
            settings.storage_bucket,
            timeout=settings.storage_timeout_seconds,
        )
        engine = create_engine(settings.database_url)
        logger.info(
            "service_context_ready",
            worker_id=settings.worker_id,
            datacenter_id=settings.datacenter_id,
            bucket=settings.storage_bucket,
        )
        return cls(
            settings=settings,
            generator=generator,
            storage=storage,
            engine=engine,
            session_factory=create_session_factory(engine),
        )

    async def close(self) -> None:
        await self.storage.close()
        await self.engine.dispose()
