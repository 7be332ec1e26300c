from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field

class Settings(BaseSettings):
	# Provider can be "anthropic" (Messages API) or "gemini" (Generative Language API)
	llm_provider: str = Field(default="anthropic", validation_alias="LLM_PROVIDER")
	llm_api_key: str | None = Field(default=None, validation_alias=AliasChoices("LLM_API_KEY", "ANTHROPIC_API_KEY", "GEMINI_API_KEY"))
	# Primary model; the fallback is only tried when the provider reports the primary as unknown
	llm_model: str = Field(default="claude-sonnet-4-20250514", validation_alias="LLM_MODEL")
	llm_fallback_model: str = Field(default="claude-3-5-sonnet-20241022", validation_alias="LLM_FALLBACK_MODEL")
	llm_base_url: str | None = Field(default=None, validation_alias="LLM_BASE_URL")
	llm_max_tokens: int = Field(default=8000, validation_alias="LLM_MAX_TOKENS")
	llm_temperature: float = Field(default=0.8, validation_alias="LLM_TEMPERATURE")
	# Lessons take 15-30s to generate
	llm_timeout_seconds: float = Field(default=120.0, validation_alias="LLM_TIMEOUT_SECONDS")

	# Auth configuration
	jwt_secret_key: str = Field(default="lumin-secret", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=7 * 24 * 60, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")
	# sha256_crypt rounds (passlib minimum is 1000)
	password_hash_rounds: int = Field(default=50000, validation_alias="PASSWORD_HASH_ROUNDS")

	# Storage: flat JSON file unless a SQL database url is given
	database_file: str = Field(default="database.json", validation_alias="DATABASE_FILE")
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# Code runner
	code_run_timeout_seconds: float = Field(default=10.0, validation_alias="CODE_RUN_TIMEOUT_SECONDS")

	cors_origins: str = Field(default="*", validation_alias="CORS_ORIGINS")
	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
	port: int = Field(default=3001, validation_alias="PORT")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

	@property
	def allowed_origins(self) -> list[str]:
		return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

	@property
	def provider_configured(self) -> bool:
		return bool(self.llm_api_key)

settings = Settings()
