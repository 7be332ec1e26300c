import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import LuminError
from .settings import settings
from .routers import auth
from .routers import lessons
from .routers import generate
from .routers import sessions

logging.basicConfig(
	level=settings.log_level.upper(),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("lumin")

app = FastAPI(title="Lumin Lesson Studio API")
app.add_middleware(
	CORSMiddleware,
	allow_origins=settings.allowed_origins,
	allow_methods=["*"],
	allow_headers=["*"],
)
app.include_router(auth.router)
app.include_router(lessons.router)
app.include_router(generate.router)
app.include_router(sessions.router)


@app.exception_handler(LuminError)
async def lumin_error_handler(request: Request, exc: LuminError):
	if exc.status_code >= 500:
		logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
	return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
	logger.exception("%s %s failed", request.method, request.url.path)
	return JSONResponse(status_code=500, content={"error": str(exc) or exc.__class__.__name__})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
	errors = exc.errors()
	if errors:
		first = errors[0]
		field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
		message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
	else:
		message = "Invalid request"
	return JSONResponse(status_code=400, content={"error": message})


@app.get("/health")
def health():
	return {"status": "ok", "providerConfigured": settings.provider_configured}


if __name__ == "__main__":
	import uvicorn

	logger.info("LLM provider %s: %s", settings.llm_provider, "configured" if settings.provider_configured else "missing API key")
	uvicorn.run(app, host="0.0.0.0", port=settings.port)
