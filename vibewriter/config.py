import os
from pathlib import Path
from dotenv import load_dotenv

# Base Directories
BASE_DIR = Path(__file__).resolve().parent.parent

# Load environment variables
load_dotenv(BASE_DIR / ".env")

# API Configuration
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
GPT_MODEL = os.getenv("GPT_MODEL", "meta-llama/Llama-3.1-8B-Instruct")  # HF Router compatible
HF_BASE_URL = "https://router.huggingface.co/v1"

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
COHERE_API_KEY = os.getenv("COHERE_API_KEY")
COHERE_MODEL = os.getenv("COHERE_MODEL", "command-r-plus")

# Citation Configuration
MAX_CITATIONS = 3
MAX_KEYWORDS = 5
MIN_KEYWORD_TEXT_LENGTH = 50
KEYWORD_CONTEXT_CHARS = 500
CITATION_CONTEXT_CHARS = 1000

# Style Configuration
STYLE_SAMPLE_CHARS = 3000
MIN_CALIBRATION_LENGTH = 50

# Library Configuration
UPLOAD_PREVIEW_CHARS = 200

# Live Context Configuration
QUIET_PERIOD_SECONDS = float(os.getenv("QUIET_PERIOD_SECONDS", "30"))
LIVE_CONTEXT_MIN_LENGTH = 20

# Writing Configuration
GHOSTWRITE_CONTEXT_WORDS = 300
GHOSTWRITE_TRIGGER = "+++"
