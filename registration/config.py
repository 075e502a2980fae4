import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Practice identity printed on the PDF and in emails
    PRACTICE_NAME: str = os.getenv("PRACTICE_NAME", "Danville Pediatrics")
    PRACTICE_PHONE: str = os.getenv("PRACTICE_PHONE", "(925) 362-1861")

    # Transactional email (Resend)
    RESEND_API_KEY: str = os.getenv("RESEND_API_KEY", "")
    RESEND_FROM_EMAIL: str = os.getenv("RESEND_FROM_EMAIL", "admin@1to1pediatrics.com").strip()
    PRACTICE_EMAIL: str = os.getenv("PRACTICE_EMAIL", "admin@1to1pediatrics.com").strip()

    # Insurance card extraction (OpenAI-compatible chat completions)
    VISION_API_KEY: str = os.getenv("VISION_API_KEY", "")
    VISION_API_URL: str = os.getenv(
        "VISION_API_URL", "https://api.openai.com/v1/chat/completions"
    )
    VISION_MODEL: str = os.getenv("VISION_MODEL", "gpt-4o-mini")

    PHI_ENCRYPTION_KEY: str = os.getenv("PHI_ENCRYPTION_KEY", "")
    MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))


settings = Settings()
