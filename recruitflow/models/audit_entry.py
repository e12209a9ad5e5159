from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import uuid
from recruitflow.core.database import Base
from recruitflow.models.actor import ActorRole
from recruitflow.models.application import ApplicationStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEntry(Base):
    """One accepted transition. Rows are inserted once and never updated."""

    __tablename__ = "application_audit_entries"
    __table_args__ = (
        # A given application version can only be produced once
        UniqueConstraint("application_id", "sequence", name="uq_audit_application_sequence"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    application_id = Column(
        UUID(as_uuid=True), ForeignKey("applications.id"), nullable=False, index=True
    )

    # Application version produced by this transition (1, 2, 3...)
    sequence = Column(Integer, nullable=False)

    from_status = Column(Enum(ApplicationStatus, name="applicationstatus"), nullable=False)
    to_status = Column(Enum(ApplicationStatus, name="applicationstatus"), nullable=False)
    action = Column(String(50), nullable=False)

    performed_by_role = Column(Enum(ActorRole, name="actorrole"), nullable=False)
    performed_by_id = Column(String(255), nullable=False, index=True)
    performed_by_name = Column(String(255), nullable=True)

    note = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    application = relationship("Application", back_populates="audit_entries")

    def __repr__(self):
        return (
            f"<AuditEntry(application_id={self.application_id}, seq={self.sequence}, "
            f"{self.from_status} -> {self.to_status})>"
        )
