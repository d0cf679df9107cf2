"""Company model holding sender identity and safety contacts."""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
from certalert.database import Base


class Company(Base):
    """Company whose workers hold certifications."""

    __tablename__ = "companies"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    domain = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    safety_manager_name = Column(String(255), nullable=True)
    safety_manager_email = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    users = relationship("User", back_populates="company")
    certifications = relationship("Certification", back_populates="company")

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name={self.name}, domain={self.domain})>"

    def validate(self) -> None:
        """Validate company data."""
        if not self.id:
            raise ValueError("Company ID is required")
        if not self.name:
            raise ValueError("Company name is required")
        if self.domain and "@" in self.domain:
            raise ValueError("Company domain must not contain '@'")
