from fastapi import APIRouter, Depends
from ..errors import ValidationError
from ..generation import LessonGenerator
from ..schemas import GenerateRequest, LessonDocument
from ..store import LessonStore, get_store
from .auth import User, get_current_user

router = APIRouter(prefix="/api", tags=["generate"])


def get_generator(store: LessonStore = Depends(get_store)) -> LessonGenerator:
	return LessonGenerator(store)


@router.post("/generate", response_model=LessonDocument)
async def generate(
	req: GenerateRequest,
	user: User = Depends(get_current_user),
	generator: LessonGenerator = Depends(get_generator),
):
	topic = req.topic.strip()
	if not topic:
		raise ValidationError("topic is required")
	return await generator.generate(topic, req.difficulty, req.duration, owner_id=user.id)
