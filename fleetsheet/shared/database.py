"""
Database Module

This module manages MongoDB database connections and collections
for the application.

Features:
- Connection management
- Collection access
- Database initialization
- Error handling
- Lifecycle management

Data Model:
- Timesheets
- Employees
- Clients and projects
- Vehicles
- Vehicle reviews

Security:
- Optional TLS with certifi bundle
- Credentials from environment
- Retry logic
- Connection pooling

Dependencies:
- Motor for async MongoDB
- FastAPI for lifecycle
- certifi for SSL

Author: Fleetsheet Development Team
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import certifi
from fastapi import FastAPI
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from fleetsheet.shared.config import DB_NAME, MONGODB_TLS, MONGODB_URL

logger = logging.getLogger(__name__)

# Collection names
TIMESHEETS = "timesheets"
EMPLOYEES = "employees"
CLIENTS = "clients"
PROJECTS = "projects"
VEHICLES = "vehicles"
VEHICLE_REVIEWS = "vehicle_reviews"

# MongoDB Connection Settings
MONGO_SETTINGS = {
    "serverSelectionTimeoutMS": 10000,
    "connectTimeoutMS": 20000,
    "maxPoolSize": 100,
    "retryWrites": True,
}
if MONGODB_TLS:
    MONGO_SETTINGS.update({"tls": True, "tlsCAFile": certifi.where()})

_async_client: Optional[AsyncIOMotorClient] = None


def get_client() -> AsyncIOMotorClient:
    """Return the shared Motor client, creating it on first use."""
    global _async_client
    if _async_client is None:
        _async_client = AsyncIOMotorClient(MONGODB_URL, **MONGO_SETTINGS)
    return _async_client


def get_database() -> AsyncIOMotorDatabase:
    """
    FastAPI dependency returning the application database.

    Returns:
        AsyncIOMotorDatabase: Database handle; collections are looked up
        with ``db[TIMESHEETS]`` and friends.
    """
    return get_client()[DB_NAME]


async def init_db() -> bool:
    """
    Initialize database connection.

    Returns:
        bool: Connection status

    Notes:
        - Retries connection
        - Validates ping
        - Logs status
    """
    retry_count = 3
    retry_delay = 5  # seconds

    for attempt in range(retry_count):
        try:
            logger.info(f"Database initialization attempt {attempt + 1}/{retry_count}...")
            await get_client().admin.command("ping")
            logger.info("MongoDB ping successful")
            return True
        except Exception as e:
            logger.warning(f"Database connection attempt {attempt + 1} failed: {e}")
            if attempt < retry_count - 1:
                logger.info(f"Retrying in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
    logger.error("All connection attempts failed")
    return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage database lifecycle.

    Args:
        app: FastAPI application

    Yields:
        None

    Raises:
        RuntimeError: When the database cannot be reached at startup
    """
    logger.info("Starting database initialization...")
    if not await init_db():
        raise RuntimeError("Failed to initialize database")
    logger.info("Database initialization complete")

    yield

    global _async_client
    logger.info("Shutting down database connections...")
    if _async_client is not None:
        _async_client.close()
        _async_client = None
    logger.info("Database connections closed")


__all__ = [
    "TIMESHEETS",
    "EMPLOYEES",
    "CLIENTS",
    "PROJECTS",
    "VEHICLES",
    "VEHICLE_REVIEWS",
    "get_client",
    "get_database",
    "init_db",
    "lifespan",
]
