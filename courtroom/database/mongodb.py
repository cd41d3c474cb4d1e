# courtroom/database/mongodb.py

from motor.motor_asyncio import AsyncIOMotorClient

from courtroom.config import MONGO_DB, MONGO_URL

client = AsyncIOMotorClient(MONGO_URL)

db = client[MONGO_DB]
users_collection = db.get_collection("users")
auth_sessions_collection = db["sessions"]  # cookie login sessions
cases_collection = db.get_collection("cases")
progress_collection = db["user_progress"]
achievements_collection = db["achievements"]
