from __future__ import annotations
import logging
from typing import List, Optional
from sqlalchemy import create_engine, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from .errors import ValidationError
from .models import Base, LessonRow, UserRow
from .schemas import LessonDocument, UserRecord
from .store import LessonStore


logger = logging.getLogger(__name__)


def make_engine(database_url: str):
	connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
	return create_engine(database_url, connect_args=connect_args, future=True)


class SqlStore(LessonStore):
	def __init__(self, database_url: str) -> None:
		self.engine = make_engine(database_url)
		self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine, future=True)
		Base.metadata.create_all(bind=self.engine)

	def get_user(self, username: str) -> Optional[UserRecord]:
		with self.SessionLocal() as db:
			row = db.query(UserRow).filter(UserRow.username == username).first()
			if row is None:
				return None
			return UserRecord(id=row.id, username=row.username, password_hash=row.password_hash)

	def add_user(self, user: UserRecord) -> None:
		with self.SessionLocal() as db:
			if db.query(UserRow).filter(UserRow.username == user.username).first():
				raise ValidationError("User exists")
			db.add(UserRow(id=user.id, username=user.username, password_hash=user.password_hash))
			try:
				db.commit()
			except IntegrityError:
				db.rollback()
				raise ValidationError("User exists")
		logger.info("Registered user %s", user.username)

	def list_lessons(self, owner_id: str) -> List[LessonDocument]:
		with self.SessionLocal() as db:
			rows = db.query(LessonRow).filter(LessonRow.owner_id == owner_id).all()
			return [LessonDocument.model_validate_json(row.payload) for row in rows]

	def get_lesson(self, lesson_id: str, owner_id: str) -> Optional[LessonDocument]:
		with self.SessionLocal() as db:
			row = db.get(LessonRow, lesson_id)
			if row is None or row.owner_id != owner_id:
				return None
			return LessonDocument.model_validate_json(row.payload)

	def put_lesson(self, lesson: LessonDocument) -> None:
		with self.SessionLocal() as db:
			db.add(LessonRow(id=lesson.id, owner_id=lesson.owner_id, payload=lesson.model_dump_json(by_alias=True)))
			try:
				db.commit()
			except IntegrityError:
				db.rollback()
				raise ValidationError(f"Lesson {lesson.id} already exists")

	def delete_lesson(self, lesson_id: str, owner_id: str) -> bool:
		with self.SessionLocal() as db:
			res = db.execute(delete(LessonRow).where(LessonRow.id == lesson_id, LessonRow.owner_id == owner_id))
			db.commit()
			removed = bool(res.rowcount)
		if removed:
			logger.info("Deleted lesson %s", lesson_id)
		return removed
