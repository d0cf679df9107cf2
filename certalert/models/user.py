"""User model for workers and the people notified about them."""
from sqlalchemy import Column, String, Enum, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from certalert.database import Base


class UserRole(str, enum.Enum):
    """User role enumeration."""
    WORKER = "worker"
    SUPERVISOR = "supervisor"
    ADMIN = "admin"
    INTERNAL_AUDITOR = "internal_auditor"


class User(Base):
    """User model representing workers, supervisors, safety managers and auditors."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False, default="")
    role = Column(Enum(UserRole), nullable=False, default=UserRole.WORKER, index=True)
    supervisor_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    company = relationship("Company", back_populates="users")
    supervisor = relationship("User", remote_side=[id])
    certifications = relationship("Certification", back_populates="worker")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.full_name}, role={self.role})>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def validate(self) -> None:
        """Validate user data."""
        if not self.id:
            raise ValueError("User ID is required")
        if not self.company_id:
            raise ValueError("Company ID is required")
        if not self.first_name:
            raise ValueError("First name is required")
        if not self.role:
            raise ValueError("Role is required")
        if self.email is not None and "@" not in self.email:
            raise ValueError("Email must contain '@'")
