from motor.motor_asyncio import AsyncIOMotorClient
import logging
import os
from pathlib import Path
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# .env next to the package first, then the working directory
current_dir = Path(__file__).resolve().parent
backend_dir = current_dir.parent
env_path = backend_dir / ".env"

if env_path.exists():
    load_dotenv(dotenv_path=env_path)
else:
    load_dotenv()

MONGO_URI = os.getenv("MONGO_URI")
DATABASE_NAME = os.getenv("DATABASE_NAME", "accelerator")

client = None
db = None


async def connect_to_mongo():
    global client, db

    if not MONGO_URI:
        raise ValueError("MONGO_URI environment variable is not set! Check your .env file.")

    client = AsyncIOMotorClient(MONGO_URI)
    db = client[DATABASE_NAME]
    await client.admin.command('ping')
    await ensure_indexes(db)

    logger.info("Connected to MongoDB database %s", DATABASE_NAME)


async def ensure_indexes(database):
    await database.users.create_index("email", unique=True)
    await database.users.create_index([("role", 1), ("status", 1)])
    await database.users.create_index("cohort_id")
    await database.phase1_applications.create_index("applicant_id", unique=True)
    await database.phase3_applications.create_index("applicant_id", unique=True)
    await database.webinar_attendance.create_index("applicant_id")
    await database.interviews.create_index([("applicant_id", 1), ("created_at", -1)])
    await database.interviewers.create_index("user_id", unique=True)
    await database.audit_logs.create_index([("target_id", 1), ("timestamp", -1)])


async def close_mongo_connection():
    if client:
        client.close()
        logger.info("MongoDB connection closed")


def get_db():
    return db
