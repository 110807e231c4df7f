from sqlalchemy import Column, ForeignKey, Integer, String

from keyshare.core.database import Base


class Upload(Base):
    __tablename__ = "uploads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    file_path = Column(String, unique=True, index=True, nullable=False)
    uploader = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
