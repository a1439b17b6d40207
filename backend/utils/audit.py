from fastapi import Request
from sqlalchemy.orm import Session
from models.log import Log

def client_ip(request: Request = None):
    if request is None or request.client is None:
        return None
    return request.client.host

def write_log(db: Session, *, user_id, action, resource, entity_id=None, status="SUCCESS", ip=None, meta=None):
    entry = Log(user_id=user_id, action=action, resource=resource, entity_id=entity_id,
                status=status, ip=ip, meta=meta or {})
    db.add(entry)
    db.commit()
