"""
app/services/cms_service.py

Purpose: Content management

- Versioned content documents (terms, privacy, ...)
- FAQ items ordered for display
"""

from datetime import datetime
from typing import Optional, Dict, Any, List

from pymongo import ASCENDING

from app.core.exceptions import ResourceNotFoundError
from app.core.logging import get_logger
from app.db.mongo import get_collection, new_document_id, serialize_document, serialize_documents
from utils.constants import CONTENT_COLLECTION, FAQ_ITEMS_COLLECTION

logger = get_logger(__name__)


async def get_content(content_id: str) -> Dict[str, Any]:
    content = await get_collection(CONTENT_COLLECTION).find_one({"_id": content_id})
    if not content:
        raise ResourceNotFoundError("Content not found", details={"content_id": content_id})
    return serialize_document(content)


async def update_content(content_id: str, content_data: Dict[str, Any], admin_id: str) -> Dict[str, Any]:
    """
    Saves a content document and bumps its version.

    The new version is one more than the version the editor loaded, or the
    stored version when the editor did not send one.
    """
    collection = get_collection(CONTENT_COLLECTION)
    current = await collection.find_one({"_id": content_id})
    if not current:
        raise ResourceNotFoundError("Content not found", details={"content_id": content_id})

    base_version = content_data.get("version")
    if base_version is None:
        base_version = current.get("version") or 0

    fields = {key: value for key, value in content_data.items() if key not in ("id", "_id")}
    fields.update({
        "updatedAt": datetime.utcnow(),
        "updatedBy": admin_id,
        "version": int(base_version) + 1,
    })

    await collection.update_one({"_id": content_id}, {"$set": fields})

    logger.info(f"Content {content_id} saved as version {fields['version']}", extra={"admin_id": admin_id})
    return {"success": True, "version": fields["version"]}


async def get_faq_items(published_only: bool = False) -> List[Dict[str, Any]]:
    """FAQ items by display order."""
    query = {"isPublished": True} if published_only else {}
    items = await (
        get_collection(FAQ_ITEMS_COLLECTION)
        .find(query)
        .sort("order", ASCENDING)
        .to_list(length=None)
    )
    return serialize_documents(items)


async def create_faq_item(faq_data: Dict[str, Any], admin_id: str) -> Dict[str, str]:
    now = datetime.utcnow()
    faq_id = new_document_id()

    await get_collection(FAQ_ITEMS_COLLECTION).insert_one({
        **faq_data,
        "_id": faq_id,
        "createdAt": now,
        "updatedAt": now,
        "updatedBy": admin_id,
        "isPublished": bool(faq_data.get("isPublished", False)),
    })

    logger.info(f"FAQ item {faq_id} created", extra={"admin_id": admin_id})
    return {"id": faq_id}


async def update_faq_item(faq_id: str, faq_data: Dict[str, Any], admin_id: str) -> Dict[str, Any]:
    fields = {key: value for key, value in faq_data.items() if key not in ("id", "_id")}
    result = await get_collection(FAQ_ITEMS_COLLECTION).update_one(
        {"_id": faq_id},
        {"$set": {**fields, "updatedAt": datetime.utcnow(), "updatedBy": admin_id}}
    )
    if result.matched_count == 0:
        raise ResourceNotFoundError("FAQ item not found", details={"faq_id": faq_id})
    return {"success": True}


async def delete_faq_item(faq_id: str) -> Dict[str, Any]:
    result = await get_collection(FAQ_ITEMS_COLLECTION).delete_one({"_id": faq_id})
    if result.deleted_count == 0:
        raise ResourceNotFoundError("FAQ item not found", details={"faq_id": faq_id})

    logger.info(f"FAQ item {faq_id} deleted")
    return {"success": True}
