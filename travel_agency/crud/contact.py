import logging
import math
from typing import Optional
from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from travel_agency.core.exceptions import NotFoundError
from travel_agency.models import utcnow
from travel_agency.models.contact import Contact, ContactPriority, ContactStatus
from travel_agency.schemas.contact import ContactCreate, ContactUpdate

logger = logging.getLogger(__name__)

PRIORITY_RANK = case(
    (Contact.priority == ContactPriority.URGENT, 4),
    (Contact.priority == ContactPriority.HIGH, 3),
    (Contact.priority == ContactPriority.NORMAL, 2),
    else_=1,
)


class CRUDContact:
    async def create_contact(self, db: AsyncSession, data: ContactCreate) -> Contact:
        contact = Contact(
            name=data.name.strip(),
            email=str(data.email),
            phone=data.phone or None,
            subject=data.subject or None,
            message=data.message.strip(),
            status=ContactStatus.PENDING,
            priority=ContactPriority.NORMAL,
        )
        db.add(contact)
        await db.commit()
        await db.refresh(contact)
        logger.info("New contact message %s from %s", contact.id, contact.email)
        return contact

    async def list_contacts(self,
                            db: AsyncSession,
                            status: Optional[ContactStatus] = None,
                            priority: Optional[ContactPriority] = None,
                            search: Optional[str] = None,
                            page: int = 1,
                            limit: int = 20) -> dict:
        conditions = []
        if status is not None:
            conditions.append(Contact.status == status)
        if priority is not None:
            conditions.append(Contact.priority == priority)
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(Contact.name.ilike(pattern), Contact.email.ilike(pattern),
                                  Contact.phone.ilike(pattern), Contact.message.ilike(pattern)))

        result = await db.execute(
            select(Contact)
            .where(*conditions)
            .order_by(PRIORITY_RANK.desc(), Contact.created_at.desc(), Contact.id.desc())
            .offset((page - 1) * limit)
            .limit(limit))
        contacts = result.scalars().all()
        total = await db.scalar(select(func.count(Contact.id)).where(*conditions))

        stats = {s.value: 0 for s in ContactStatus}
        stats_rows = await db.execute(select(Contact.status, func.count(Contact.id)).group_by(Contact.status))
        for row_status, count in stats_rows.all():
            stats[row_status.value] = count
        stats["total"] = sum(stats.values())

        return {
            "data": contacts,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit) if total else 0,
            },
            "stats": stats,
        }

    async def get_contact(self, db: AsyncSession, contact_id: int) -> Contact:
        """Fetching a message marks it as read."""
        contact = await db.get(Contact, contact_id)
        if contact is None:
            raise NotFoundError("Contact")
        if contact.read_at is None:
            contact.read_at = utcnow()
            await db.commit()
            await db.refresh(contact)
        return contact

    async def update_contact(self, db: AsyncSession, contact_id: int, data: ContactUpdate) -> Contact:
        contact = await db.get(Contact, contact_id)
        if contact is None:
            raise NotFoundError("Contact")
        changes = data.model_dump(exclude_unset=True)
        if changes.get("status") == ContactStatus.RESOLVED and contact.resolved_at is None:
            contact.resolved_at = utcnow()
        for field, value in changes.items():
            if field in ("status", "priority") and value is None:
                continue
            setattr(contact, field, value)
        await db.commit()
        await db.refresh(contact)
        return contact

    async def delete_contact(self, db: AsyncSession, contact_id: int) -> None:
        contact = await db.get(Contact, contact_id)
        if contact is None:
            raise NotFoundError("Contact")
        await db.delete(contact)
        await db.commit()
        logger.info("Deleted contact %s", contact_id)


crud_contact = CRUDContact()
