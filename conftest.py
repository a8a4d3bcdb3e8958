"""Global pytest configuration."""

import os

# Tests never reach a real generation backend or shared stores
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("DATABASE_URL", None)
os.environ.pop("REDIS_URL", None)
os.environ.setdefault("ALLOW_OFFLINE_GENERATION", "true")
