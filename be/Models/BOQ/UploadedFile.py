"""
Uploaded File Model
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from Database.session import Base, new_document_id


class UploadedFile(Base):
    __tablename__ = 'uploaded_files'

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(String(32), unique=True, index=True, default=new_document_id)
    name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    url = Column(String(500), nullable=False)
    mime = Column(String(100), nullable=True)
    size = Column(Integer, nullable=False, default=0)
    uploaded_by = Column(Integer, ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
