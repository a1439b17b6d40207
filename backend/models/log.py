from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, func
from sqlalchemy.orm import relationship
from database import Base

# Activity trail: who changed which back-office record and how it went
class Log(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)

    ts = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    action = Column(String(50), index=True)  # e.g. PRODUCTION_CREATE
    resource = Column(String(50), index=True)  # e.g. open_production
    entity_id = Column(Integer, nullable=True, index=True)
    status = Column(String(20), index=True)
    ip = Column(String(64), nullable=True)

    # Free-form context (amounts, numbers, old/new status)
    meta = Column(JSON, nullable=True)

    user = relationship("User", lazy="joined", uselist=False)
