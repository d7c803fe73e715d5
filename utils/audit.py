import json
import logging

from flask import g, has_request_context, request

from models import db
from models.audit_log import AuditLog

logger = logging.getLogger("chamberslot.audit")


def client_ip():
    # left-most X-Forwarded-For entry is the original client
    forwarded = request.headers.get("X-Forwarded-For", "")
    return forwarded.split(",")[0].strip() or request.remote_addr


def client_agent():
    return (request.headers.get("User-Agent") or "")[:255] or None


def log_event(action: str, user_id=None, entity=None, entity_id=None, metadata=None) -> AuditLog:
    """
    Append an audit row and commit it.

    ``user_id`` defaults to the logged-in user when there is one.
    """
    if user_id is None:
        user = getattr(g, "user", None)
        user_id = user.id if user is not None else None

    in_request = has_request_context()
    row = AuditLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=client_ip() if in_request else None,
        user_agent=client_agent() if in_request else None,
        metadata_json=json.dumps(metadata, default=str) if metadata else None,
    )
    db.session.add(row)
    db.session.commit()

    logger.info("%s user=%s %s=%s", action, user_id, entity or "-", entity_id or "-")
    return row
