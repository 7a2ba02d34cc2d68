import motor.motor_asyncio
from pymongo import ASCENDING, DESCENDING

from app.utils import config
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

logger.info(f"Initializing MongoDB connection to database: {config.DB_NAME}")

# Client construction is lazy; nothing connects until the first operation
client = motor.motor_asyncio.AsyncIOMotorClient(config.MONGO_DETAILS)
db = client[config.DB_NAME]

# Collections
jobs_coll = db["jobs"]
resumes_coll = db["resumes"]
subscriptions_coll = db["subscriptions"]
auth_sessions_coll = db["auth_sessions"]
rate_limits_coll = db["rate_limits"]


async def _create_index(coll, keys, label: str, **kwargs):
    try:
        await coll.create_index(keys, **kwargs)
        logger.debug(f"Created index on {label}")
    except Exception as e:
        if "already exists" in str(e).lower():
            logger.debug(f"Index on {label} already exists")
        else:
            logger.warning(f"Could not create index on {label}: {e}")


async def init_indexes():
    """Index initialization for collections."""
    logger.info("Starting database index initialization")

    await _create_index(jobs_coll, [("id", ASCENDING)], "jobs.id", unique=True)
    await _create_index(jobs_coll, [("is_active", ASCENDING), ("created_at", DESCENDING)], "jobs.(is_active, created_at)")
    await _create_index(jobs_coll, [("user_id", ASCENDING)], "jobs.user_id")
    await _create_index(jobs_coll, [("keywords", ASCENDING)], "jobs.keywords")

    await _create_index(resumes_coll, [("id", ASCENDING)], "resumes.id", unique=True)
    await _create_index(resumes_coll, [("job_id", ASCENDING)], "resumes.job_id")
    await _create_index(resumes_coll, [("user_id", ASCENDING)], "resumes.user_id")

    await _create_index(subscriptions_coll, [("user_id", ASCENDING)], "subscriptions.user_id", unique=True)
    await _create_index(auth_sessions_coll, [("token", ASCENDING)], "auth_sessions.token", unique=True)
    await _create_index(auth_sessions_coll, [("expires_at", ASCENDING)], "auth_sessions.expires_at", expireAfterSeconds=0)

    await _create_index(rate_limits_coll, [("key", ASCENDING), ("window_start", ASCENDING)],
                        "rate_limits.(key, window_start)", unique=True)
    await _create_index(rate_limits_coll, [("expires_at", ASCENDING)], "rate_limits.expires_at", expireAfterSeconds=0)

    logger.info("Database index initialization completed")


def to_dict(doc):
    """Strip Mongo's internal _id; records are keyed by their own `id`"""
    if not doc:
        return None
    doc = dict(doc)
    doc.pop("_id", None)
    return doc
