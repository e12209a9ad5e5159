from sqlalchemy import Column, DateTime, Enum, Integer
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
import enum
from recruitflow.core.database import Base


class ApplicationStatus(str, enum.Enum):
    PENDING = "PENDING"
    UNDER_REVIEW = "UNDER_REVIEW"
    INTERVIEW_SCHEDULED = "INTERVIEW_SCHEDULED"
    INTERVIEW_COMPLETED = "INTERVIEW_COMPLETED"
    ACCEPTED = "ACCEPTED"
    HIRED = "HIRED"
    REJECTED = "REJECTED"


class Application(Base):
    __tablename__ = "applications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)

    # Owned by the job-posting and applicant services, not by this engine
    job_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    applicant_id = Column(UUID(as_uuid=True), nullable=False, index=True)

    status = Column(
        Enum(ApplicationStatus, name="applicationstatus"),
        nullable=False,
        default=ApplicationStatus.PENDING,
        index=True,
    )

    # Optimistic concurrency token, bumped by every accepted transition
    version = Column(Integer, nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    audit_entries = relationship(
        "AuditEntry",
        back_populates="application",
        order_by="AuditEntry.sequence",
        lazy="noload",
    )

    def __repr__(self):
        return f"<Application(id={self.id}, status={self.status}, version={self.version})>"
