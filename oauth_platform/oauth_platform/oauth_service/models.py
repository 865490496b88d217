from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, Index
from datetime import datetime
from .db import Base


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    role = Column(String, default="user", nullable=False)
    projects = Column(JSON, nullable=False)


class LoginAttempt(Base):
    __tablename__ = "login_attempts"
    id = Column(Integer, primary_key=True, index=True)
    client_key = Column(String, nullable=False)
    email = Column(String, nullable=True)
    success = Column(Boolean, default=False, nullable=False)
    attempted_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('ix_login_attempts_client_time', 'client_key', 'attempted_at'),
    )
