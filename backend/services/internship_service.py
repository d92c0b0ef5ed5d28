from datetime import datetime
from typing import List, Optional
import re
from bson import ObjectId
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from core.exceptions import AppError, InvalidInput, InvalidDeadline, NotFound, Forbidden, DependencyFailure
from db.mongodb import get_mongo_db
from db.session import get_or_use_session
from db.models.internship import Internship as InternshipModel
from schemas.internship_schema import Internship, InternshipFields
from utils.db import safe_commit
from utils.timing import timeit, utcnow, to_naive_utc
import logging

logger = logging.getLogger(__name__)

LINK_PATTERN = re.compile(r"^https?://[^\s$.?#].[^\s]*$")


def _clean_fields(fields: InternshipFields) -> InternshipFields:
    cleaned = {name: (value or "").strip() for name, value in fields.model_dump().items()}
    for name, value in cleaned.items():
        if not value:
            raise InvalidInput(f"{name.capitalize()} is required")
    if not LINK_PATTERN.match(cleaned["link"]):
        raise InvalidInput("Please use a valid URL for the link")
    return InternshipFields(**cleaned)


def _internship_from_doc(doc: dict) -> Internship:
    return Internship(
        id=str(doc["_id"]),
        company=doc["company"],
        batch=doc["batch"],
        description=doc["description"],
        link=doc["link"],
        deadline=doc["deadline"],
        posted_by=str(doc["posted_by"]),
        created_at=doc["created_at"],
    )


def _internship_from_row(row: InternshipModel) -> Internship:
    return Internship(
        id=str(row.id),
        company=row.company,
        batch=row.batch,
        description=row.description,
        link=row.link,
        deadline=row.deadline,
        posted_by=str(row.posted_by),
        created_at=row.created_at,
    )


def _object_id(value: str) -> Optional[ObjectId]:
    return ObjectId(value) if ObjectId.is_valid(value) else None


def _int_id(value: str) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@timeit("create_internship")
async def create_internship(owner_id: str, fields: InternshipFields, deadline: datetime, db: AsyncSession = None, now: Optional[datetime] = None) -> Internship:
    now = now or utcnow()
    deadline = to_naive_utc(deadline)
    if deadline <= now:
        raise InvalidDeadline()
    fields = _clean_fields(fields)
    try:
        mongo = get_mongo_db()
        if mongo is not None:
            owner = _object_id(owner_id)
            if owner is None:
                raise InvalidInput("Unknown poster")
            doc = {**fields.model_dump(), "deadline": deadline, "posted_by": owner, "created_at": now}
            result = await mongo.internships.insert_one(doc)
            doc["_id"] = result.inserted_id
            logger.info(f"Internship {result.inserted_id} posted by {owner_id}")
            return _internship_from_doc(doc)

        owner = _int_id(owner_id)
        if owner is None:
            raise InvalidInput("Unknown poster")
        async with get_or_use_session(db) as _db:
            row = InternshipModel(**fields.model_dump(), deadline=deadline, posted_by=owner, created_at=now)
            _db.add(row)
            await safe_commit(_db)
            logger.info(f"Internship {row.id} posted by {owner_id}")
            return _internship_from_row(row)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error creating internship: {e}")
        raise DependencyFailure()


async def list_internships(limit: int, newest_first: bool = True, db: AsyncSession = None) -> List[Internship]:
    try:
        mongo = get_mongo_db()
        if mongo is not None:
            direction = -1 if newest_first else 1
            docs = await mongo.internships.find({}).sort([("created_at", direction), ("_id", direction)]).limit(limit).to_list(length=limit)
            return [_internship_from_doc(d) for d in docs]

        order = (InternshipModel.created_at.desc(), InternshipModel.id.desc()) if newest_first else (InternshipModel.created_at.asc(), InternshipModel.id.asc())
        async with get_or_use_session(db) as _db:
            result = await _db.execute(select(InternshipModel).order_by(*order).limit(limit))
            return [_internship_from_row(r) for r in result.scalars().all()]
    except Exception as e:
        logger.error(f"Error listing internships: {e}")
        raise DependencyFailure()


async def get_internship(internship_id: str, db: AsyncSession = None) -> Internship:
    try:
        mongo = get_mongo_db()
        if mongo is not None:
            oid = _object_id(internship_id)
            doc = await mongo.internships.find_one({"_id": oid}) if oid is not None else None
            if not doc:
                raise NotFound("Internship not found")
            return _internship_from_doc(doc)

        pk = _int_id(internship_id)
        async with get_or_use_session(db) as _db:
            row = await _db.get(InternshipModel, pk) if pk is not None else None
            if row is None:
                raise NotFound("Internship not found")
            return _internship_from_row(row)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error loading internship {internship_id}: {e}")
        raise DependencyFailure()


@timeit("delete_internship")
async def delete_internship(internship_id: str, requester_id: str, db: AsyncSession = None) -> None:
    """Delete a listing; only its poster may do so."""
    listing = await get_internship(internship_id, db=db)
    if listing.posted_by != requester_id:
        logger.warning(f"User {requester_id} tried to delete internship {internship_id} owned by {listing.posted_by}")
        raise Forbidden()
    try:
        mongo = get_mongo_db()
        if mongo is not None:
            await mongo.internships.delete_one({"_id": ObjectId(listing.id), "posted_by": ObjectId(requester_id)})
        else:
            async with get_or_use_session(db) as _db:
                await _db.execute(
                    delete(InternshipModel).where(
                        InternshipModel.id == int(listing.id),
                        InternshipModel.posted_by == int(requester_id),
                    )
                )
                await safe_commit(_db)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error deleting internship {internship_id}: {e}")
        raise DependencyFailure()
    logger.info(f"Internship {internship_id} deleted by {requester_id}")


@timeit("sweep_expired")
async def sweep_expired(now: datetime, db: AsyncSession = None) -> int:
    """Delete every listing whose deadline is at or before ``now``."""
    now = to_naive_utc(now)
    mongo = get_mongo_db()
    if mongo is not None:
        result = await mongo.internships.delete_many({"deadline": {"$lte": now}})
        return int(result.deleted_count)

    async with get_or_use_session(db) as _db:
        result = await _db.execute(delete(InternshipModel).where(InternshipModel.deadline <= now))
        await safe_commit(_db)
        return int(result.rowcount or 0)
