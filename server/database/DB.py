import functools
import logging
import socket
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING
from pymongo.errors import PyMongoError
from fastapi import Request

from config.config import (
    MONGODB_USERNAME, MONGODB_PASSWORD, CLUSTER_NAME, APP_NAME, DATABASE_NAME,
    MONGODB_URI, ENFORCE_UNIQUE_ATTENDANCE,
)
from helpers.DocumentSerializer import DocumentSerializerVisitor
from .errors import StoreUnavailableError

logger = logging.getLogger(__name__)

ATTENDANCE_PAIR_INDEX = "eventId_1_userEmail_1"


def get_db(request: Request):
    """Dependency to get database instance from app state"""
    return request.app.state.db


def store_operation(operation):
    """Translate driver failures into StoreUnavailableError for the wrapped coroutine."""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, collection_name, *args, **kwargs):
            try:
                return await func(self, collection_name, *args, **kwargs)
            except PyMongoError as e:
                logger.error("Store %s on '%s' failed: %s", operation, collection_name, e)
                raise StoreUnavailableError(operation, collection_name, e) from e
        return wrapper
    return decorator


class Database:
    def __init__(self):
        self.MONGO_URI = MONGODB_URI or f"mongodb+srv://{MONGODB_USERNAME}:{MONGODB_PASSWORD}@{CLUSTER_NAME}.mongodb.net/?retryWrites=true&w=majority&appName={APP_NAME}"
        self.client = None
        self.db = None

    def connect(self):
        self.client = AsyncIOMotorClient(self.MONGO_URI)
        self.db = self.client[DATABASE_NAME]
        logger.info("Connected to MongoDB database '%s' from host %s", DATABASE_NAME, socket.gethostname())

    def close(self):
        if self.client is not None:
            self.client.close()
            logger.info("MongoDB client closed")

    def serializer(self, obj):
        visitor = DocumentSerializerVisitor()
        return visitor.visit(obj)

    def check_connection(self):
        if MONGODB_URI:
            return
        hostname = f"{CLUSTER_NAME}.mongodb.net"
        logger.info("Testing DNS resolution for: %s", hostname)

        try:
            ip = socket.gethostbyname(hostname)
            logger.info("DNS resolution successful: %s -> %s", hostname, ip)
        except socket.gaierror as dns_error:
            logger.warning(
                "DNS resolution failed for %s: %s. Check the cluster name, "
                "firewall or DNS server; continuing, the driver may still connect",
                hostname, dns_error,
            )

    async def ensure_indexes(self):
        """
        Create the unique indexes the scoring flows rely on.

        With ENFORCE_UNIQUE_ATTENDANCE off, attendance is append-only, so a pair
        index left over from an earlier run is dropped.
        """
        try:
            await self.db["users"].create_index([("email", ASCENDING)], unique=True)
            attendance = self.db["attendance"]
            if ENFORCE_UNIQUE_ATTENDANCE:
                await attendance.create_index(
                    [("eventId", ASCENDING), ("userEmail", ASCENDING)],
                    unique=True, name=ATTENDANCE_PAIR_INDEX
                )
            elif ATTENDANCE_PAIR_INDEX in await attendance.index_information():
                await attendance.drop_index(ATTENDANCE_PAIR_INDEX)
                logger.warning("Dropped unique index %s: attendance is append-only", ATTENDANCE_PAIR_INDEX)
        except PyMongoError as e:
            raise StoreUnavailableError("create_index", "users/attendance", e) from e

    @store_operation("insert")
    async def add(self, collection_name, data):
        collection = self.db[collection_name]
        result = await collection.insert_one(data)

        if result.inserted_id:
            data["_id"] = str(result.inserted_id)
            data = self.serializer(data)
            return {
                "status": 200,
                "data": data,
                "message": "Document added successfully"
            }
        else:
            return {
                "status": 500,
                "message": "Failed to add document"
            }

    @store_operation("find")
    async def find_many(self, collection_name, query=None, projection=None, sort=None, limit=None):
        """Find multiple documents matching query"""
        collection = self.db[collection_name]
        cursor = collection.find(query or {}, projection)

        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)

        documents = []
        async for doc in cursor:
            documents.append(self.serializer(doc))

        return {
            "status": 200,
            "data": documents,
            "message": "Documents retrieved successfully"
        }

    async def get_all(self, collection_name, sort=None):
        """Every document in a collection, in store order unless sort is given"""
        result = await self.find_many(collection_name, {}, sort=sort)
        return result["data"]

    async def get_where(self, collection_name, field, value, sort=None):
        """Documents whose field equals value"""
        result = await self.find_many(collection_name, {field: value}, sort=sort)
        return result["data"]

    @store_operation("find_one")
    async def find_one(self, collection_name, query):
        """Find a single document (returns document directly or None)"""
        collection = self.db[collection_name]
        document = await collection.find_one(query)

        if document:
            document = self.serializer(document)

        return document

    @store_operation("update")
    async def update(self, collection_name, query, update_string, upsert=False):
        collection = self.db[collection_name]
        result = await collection.update_one(query, update_string, upsert=upsert)
        upserted_id = str(result.upserted_id) if result.upserted_id is not None else None
        changed = result.modified_count > 0 or upserted_id is not None

        return {
            "status": 200 if changed else 404,
            "matched_count": result.matched_count,
            "modified_count": result.modified_count,
            "upserted_id": upserted_id,
            "message": "Document updated successfully" if changed else "Document not found or no changes made"
        }

    @store_operation("increment")
    async def increment(self, collection_name, query, field, delta):
        """
        Atomically add delta to field on the first document matching query.
        The addition happens server side with $inc; returns the matched count.
        """
        collection = self.db[collection_name]
        result = await collection.update_one(query, {"$inc": {field: delta}})
        return result.matched_count

    @store_operation("delete")
    async def delete(self, collection_name, query):
        collection = self.db[collection_name]
        result = await collection.delete_one(query)

        return {
            "status": 200 if result.deleted_count > 0 else 404,
            "deleted_count": result.deleted_count,
            "message": "Document deleted successfully" if result.deleted_count > 0 else "Document not found"
        }

    @store_operation("delete")
    async def delete_many(self, collection_name, query):
        collection = self.db[collection_name]
        result = await collection.delete_many(query)

        return {
            "status": 200,
            "deleted_count": result.deleted_count,
            "message": f"Deleted {result.deleted_count} documents"
        }

    async def subscribe(self, collection_name, sort=None):
        """
        Yield a full snapshot of the collection now and again after every change.

        Backed by a MongoDB change stream, so the deployment must be a replica set
        (Atlas clusters are). Closing the generator closes the stream.
        """
        collection = self.db[collection_name]
        try:
            async with collection.watch() as stream:
                yield await self.get_all(collection_name, sort=sort)
                async for _change in stream:
                    yield await self.get_all(collection_name, sort=sort)
        except PyMongoError as e:
            logger.error("Subscription on '%s' failed: %s", collection_name, e)
            raise StoreUnavailableError("subscribe", collection_name, e) from e
        finally:
            logger.debug("Subscription on '%s' closed", collection_name)
