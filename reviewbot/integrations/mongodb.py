from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from reviewbot.config import Settings
from reviewbot.models.integration import PrReviewIntegration, UserIntegration
import logging

logger = logging.getLogger(__name__)


async def connect_db(settings: Settings) -> AsyncIOMotorClient:
    """Open the MongoDB connection and verify it."""
    logger.info(f"Connecting to MongoDB database: {settings.mongodb_database} ({settings.deployment_region})")

    client = AsyncIOMotorClient(settings.mongodb_uri)
    await client.admin.command("ping")
    logger.info("MongoDB connection established")
    return client


def close_db(client: AsyncIOMotorClient | None) -> None:
    """Close MongoDB connection."""
    if client:
        client.close()
        logger.info("MongoDB connection closed")


class SettingsStore:
    """
    Read access to the integration settings documents.

    Repository documents are keyed by ``repository`` and
    ``source_id = "github:<branch>"`` and hold an ``integrations`` map.
    User documents are keyed by ``user_id``.
    """

    def __init__(self, db: AsyncIOMotorDatabase, repositories_collection: str, integrations_collection: str):
        self._repositories = db[repositories_collection]
        self._users = db[integrations_collection]

    @classmethod
    def from_client(cls, client: AsyncIOMotorClient, settings: Settings) -> "SettingsStore":
        return cls(
            client[settings.mongodb_database],
            repositories_collection=settings.repositories_collection,
            integrations_collection=settings.integrations_collection,
        )

    async def ping(self) -> bool:
        await self._repositories.database.command("ping")
        return True

    async def get_integration(self, repository: str, branch: str, integration: str) -> PrReviewIntegration | None:
        """The named integration of a repository, or None when it is not enabled."""
        doc = await self._repositories.find_one({"repository": repository, "source_id": f"github:{branch}"})
        if not doc:
            return None

        config = (doc.get("integrations") or {}).get(integration)
        if not config:
            return None
        return PrReviewIntegration.model_validate(config)

    async def get_user_integration(self, user_id: str) -> UserIntegration | None:
        doc = await self._users.find_one({"user_id": user_id})
        if not doc:
            return None
        return UserIntegration.from_document(doc)

    async def delete_integration(self, repository: str, branch: str, integration: str) -> None:
        """Remove one integration from a repository document."""
        field = f"integrations.{integration}"
        result = await self._repositories.update_one(
            {"repository": repository, "source_id": f"github:{branch}", field: {"$exists": True}},
            {"$unset": {field: ""}},
        )
        logger.info(f"Removed {integration} from {repository}:{branch} (matched {result.matched_count})")
