from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from codearena.utils import generate_id, serialize_many, utcnow


async def log_audit(
    db: AsyncIOMotorDatabase,
    actor_user_id: str,
    role: str,
    action: str,
    target_type: str,
    target_id: Optional[str],
    metadata: dict = None,
) -> str:
    """
    Record an evaluation for auditability

    Args:
        actor_user_id: User who triggered the action
        role: Role of the actor at the time
        action: Label, e.g. 'Submission evaluated', 'Code run', 'Test run'
        target_type: Resource type ('submission', 'problem')
        target_id: ID of the resource
        metadata: Additional context (verdict, language, ...)
    """
    audit_id = generate_id("AUD")
    await db.audit_logs.insert_one({
        "audit_id": audit_id,
        "actor_user_id": actor_user_id,
        "role": role,
        "action": action,
        "target_type": target_type,
        "target_id": target_id,
        "metadata": metadata or {},
        "timestamp": utcnow(),
    })
    return audit_id


async def get_audit_trail(
    db: AsyncIOMotorDatabase,
    target_type: str = None,
    target_id: str = None,
    limit: int = 100,
):
    """Retrieve audit logs, newest first, with optional filters"""
    query = {}

    if target_type:
        query["target_type"] = target_type

    if target_id:
        query["target_id"] = target_id

    cursor = db.audit_logs.find(query).sort("timestamp", -1).limit(limit)
    return serialize_many(await cursor.to_list(length=limit))
