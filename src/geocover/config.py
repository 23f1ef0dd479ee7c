"""
Runtime configuration for the geocover service.

Values come from the environment; a local .env file is loaded first so
developers can override them without exporting variables.
"""
import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Largest cover length the HTTP layer accepts. Each extra character can
# multiply the number of cells by up to 32, so keep this conservative.
API_MAX_COVER_LENGTH = int(os.getenv("GEOCOVER_API_MAX_LENGTH", "9"))

LOG_LEVEL = os.getenv("GEOCOVER_LOG_LEVEL", "INFO").upper()
