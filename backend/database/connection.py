import logging
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError
from config.settings import settings

logger = logging.getLogger(__name__)

class DatabaseManager:
    """Singleton database connection manager with connection pooling"""

    _instance: Optional['DatabaseManager'] = None
    _client: Optional[AsyncIOMotorClient] = None
    _database: Optional[AsyncIOMotorDatabase] = None

    def __new__(cls) -> 'DatabaseManager':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def connect(self) -> None:
        """Initialize database connection with connection pooling"""
        if self._client is None:
            try:
                self._client = AsyncIOMotorClient(
                    settings.mongo_url,
                    maxPoolSize=settings.db_connection_pool_size,
                    minPoolSize=1,
                    maxIdleTimeMS=30000,
                    serverSelectionTimeoutMS=5000,
                    connectTimeoutMS=10000,
                    socketTimeoutMS=10000
                )

                # Test connection
                await self._client.admin.command('ping')
                self._database = self._client[settings.db_name]

                await self._create_indexes()

                logger.info(f"Connected to MongoDB: {settings.db_name}")

            except ServerSelectionTimeoutError as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                self._client = None
                raise
            except Exception as e:
                logger.error(f"Database connection error: {e}")
                self._client = None
                raise

    async def disconnect(self) -> None:
        """Close database connection"""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """Create database indexes; the unique encounter index backs one-note-per-encounter"""
        if self._database is not None:
            try:
                await self._database.medical_notes.create_index("encounter_id", unique=True)
                await self._database.medical_notes.create_index("updated_at")
                await self._database.templates.create_index("template_id", unique=True)

                logger.info("Database indexes created successfully")

            except PyMongoError as e:
                logger.warning(f"Failed to create indexes: {e}")

    @property
    def database(self) -> AsyncIOMotorDatabase:
        """Get database instance"""
        if self._database is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._database

    @property
    def medical_notes(self) -> AsyncIOMotorCollection:
        """Get medical notes collection"""
        return self.database.medical_notes

    @property
    def templates(self) -> AsyncIOMotorCollection:
        """Get note templates collection"""
        return self.database.templates

# Global database manager instance
db_manager = DatabaseManager()

async def get_database() -> DatabaseManager:
    """Get database manager instance"""
    if db_manager._database is None:
        await db_manager.connect()
    return db_manager
