from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index
from db.session import Base


class Internship(Base):
    __tablename__ = "internships"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company = Column(String(255), nullable=False)
    batch = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    link = Column(String(2048), nullable=False)
    deadline = Column(DateTime, nullable=False, index=True)
    posted_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_internships_created_at", "created_at"),
    )
