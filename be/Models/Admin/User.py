from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from Database.session import Base, new_document_id
from .AuditLog import AuditLog


# Define the Role and User classes together to resolve the relationship dependency
class Role(Base):
    __tablename__ = 'roles'
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, index=True)

    users = relationship("User", back_populates="role")


class User(Base):
    __tablename__ = 'users'
    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(String(32), unique=True, index=True, default=new_document_id)
    username = Column(String(100), unique=True, index=True)
    email = Column(String(100), unique=True, index=True)
    hashed_password = Column(String)
    full_name = Column(String(200), nullable=True)
    phone_number = Column(String(20), nullable=True)
    registered_at = Column(DateTime, default=datetime.utcnow)

    role_id = Column(Integer, ForeignKey('roles.id'))
    role = relationship("Role", back_populates="users")

    audit_logs = relationship("AuditLog", back_populates="user", lazy="dynamic")
