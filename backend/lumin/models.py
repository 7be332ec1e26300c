from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class UserRow(Base):
	__tablename__ = "users"
	id = Column(String(64), primary_key=True)
	username = Column(String(128), unique=True, index=True, nullable=False)
	password_hash = Column(String(256), nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class LessonRow(Base):
	__tablename__ = "lessons"
	id = Column(String(64), primary_key=True)
	owner_id = Column(String(64), index=True, nullable=False)
	# Full lesson document as camelCase JSON
	payload = Column(Text, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
