"""
AI Engine Component
Multi-provider text generation: Cohere (Primary) → Gemini (Secondary) → HuggingFace/OpenAI (Tertiary).
All providers are initialized; generation falls through on failure.
Features:
  - Single attempt per provider per call: no retries, no backoff
  - API key validation: skips providers with missing keys or incompatible models
  - Optional JSON response mode (honoured by Gemini, requested in the prompt elsewhere)
  - Structured failure object returned when all providers are exhausted
"""

import google.generativeai as genai
import cohere
from openai import OpenAI
from vibewriter.config import (
    OPENAI_API_KEY, GPT_MODEL, HF_BASE_URL,
    GEMINI_API_KEY, GEMINI_MODEL,
    COHERE_API_KEY, COHERE_MODEL
)
from vibewriter.utils import setup_logger

logger = setup_logger(__name__)


def _is_api_key_missing(api_key):
    return not api_key or api_key.strip() == ""


def _is_model_incompatible_with_hf(model_name, api_key):
    """Check if model name is incompatible with HuggingFace (e.g., 'gpt' model)."""
    if not api_key or not api_key.startswith("hf_"):
        return False
    return "gpt" in model_name.lower()


class AIEngine:
    """Multi-provider AI engine with automatic fallback: Cohere → Gemini → OpenAI/HF."""

    def __init__(self):
        self.gemini_ready = False
        self.cohere_client = None
        self.openai_client = None
        self.provider = "None"
        self._initialize_clients()

    def _initialize_clients(self):
        """Initialize ALL available providers (all are tried independently)."""

        # 1. Google Gemini
        if not _is_api_key_missing(GEMINI_API_KEY):
            try:
                genai.configure(api_key=GEMINI_API_KEY)
                self.gemini_ready = True
                logger.info(f"[OK] Gemini initialized ({GEMINI_MODEL})")
            except Exception as e:
                logger.error(f"Failed to initialize Gemini: {e}")

        # 2. OpenAI / HuggingFace
        if not _is_api_key_missing(OPENAI_API_KEY):
            try:
                base_url = None
                if OPENAI_API_KEY.startswith("hf_"):
                    base_url = HF_BASE_URL
                    logger.info(f"[OK] HuggingFace initialized ({GPT_MODEL})")
                else:
                    logger.info(f"[OK] OpenAI initialized ({GPT_MODEL})")

                self.openai_client = OpenAI(
                    api_key=OPENAI_API_KEY,
                    base_url=base_url,
                    timeout=60.0
                )
            except Exception as e:
                logger.error(f"Failed to initialize OpenAI/HF: {e}")

        # 3. Cohere
        if not _is_api_key_missing(COHERE_API_KEY):
            try:
                self.cohere_client = cohere.Client(COHERE_API_KEY)
                logger.info(f"[OK] Cohere initialized ({COHERE_MODEL})")
            except Exception as e:
                logger.error(f"Failed to initialize Cohere: {e}")

        # Primary provider label (Cohere > Gemini > OpenAI/HF)
        if self.cohere_client:
            self.provider = "Cohere"
        elif self.gemini_ready:
            self.provider = "Google Gemini"
        elif self.openai_client:
            self.provider = "OpenAI/HF"
        else:
            logger.warning("[WARN] No AI providers available. AI features will degrade to fallbacks.")

    def is_ready(self) -> bool:
        """Check if any AI provider is available."""
        return self.gemini_ready or self.cohere_client is not None or self.openai_client is not None

    def generate(self, prompt: str, system_prompt: str = "", max_tokens: int = 1000,
                 json_output: bool = False) -> dict:
        """
        Attempt generation on each configured provider once, in order:
        Cohere (Primary) → Gemini (Secondary) → HuggingFace (Tertiary).
        Returns detailed object: {"text": str, "status": "success"|"failed", "provider": str, "error": str|None}
        """
        full_prompt = f"{system_prompt}\n\n{prompt}" if system_prompt else prompt
        errors = []

        # 1. Cohere
        if self.cohere_client:
            try:
                response = self.cohere_client.chat(message=full_prompt, model=COHERE_MODEL)
                if response.text:
                    return self._success(response.text, "Cohere")
                errors.append("Cohere: empty response")
            except Exception as e:
                logger.warning(f"Cohere generation failed: {e}")
                errors.append(f"Cohere: {e}")

        # 2. Gemini
        if self.gemini_ready:
            try:
                model = genai.GenerativeModel(GEMINI_MODEL)
                generation_config = {"response_mime_type": "application/json"} if json_output else None
                response = model.generate_content(full_prompt, generation_config=generation_config)
                if response.text:
                    return self._success(response.text, "Google Gemini")
                errors.append("Gemini: empty response")
            except Exception as e:
                logger.warning(f"Gemini generation failed: {e}")
                errors.append(f"Gemini: {e}")

        # 3. HuggingFace Router / OpenAI
        if self.openai_client:
            if _is_model_incompatible_with_hf(GPT_MODEL, OPENAI_API_KEY):
                logger.warning(f"Skipping HF: model '{GPT_MODEL}' is not compatible with HuggingFace API")
            else:
                try:
                    resp = self.openai_client.chat.completions.create(
                        model=GPT_MODEL,
                        messages=[
                            {"role": "system", "content": system_prompt},
                            {"role": "user", "content": prompt}
                        ],
                        max_tokens=max_tokens
                    )
                    text = resp.choices[0].message.content
                    if text:
                        return self._success(text, "OpenAI/HF")
                    errors.append("OpenAI/HF: empty response")
                except Exception as e:
                    logger.warning(f"HF generation failed: {e}")
                    errors.append(f"OpenAI/HF: {e}")

        error_msg = "; ".join(errors) if errors else "No AI providers configured"
        logger.error(f"[ERROR] All providers exhausted: {error_msg}")
        return {"text": "", "status": "failed", "provider": "None", "error": error_msg}

    def _success(self, text: str, provider: str) -> dict:
        self.provider = provider
        return {"text": text, "status": "success", "provider": provider, "error": None}

    def safe_generate(self, prompt: str, system_prompt: str = "", max_tokens: int = 1000,
                      json_output: bool = False) -> dict:
        """Safe wrapper that guarantees a return object."""
        try:
            return self.generate(prompt, system_prompt, max_tokens, json_output)
        except Exception as e:
            logger.critical(f"Critical Engine Failure: {e}")
            return {"text": "", "status": "failed", "provider": "None", "error": str(e)}
