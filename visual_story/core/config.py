import os
from dotenv import load_dotenv

# Load variables from .env file
load_dotenv()

class Settings:
    PROJECT_NAME: str = "Visual Story Studio"
    VERSION: str = "1.0.0"

    # Text generation (Groq) - the only required credential, checked on first use
    GROQ_API_KEY: str = os.getenv("GROQ_API_KEY")
    TEXT_MODEL: str = os.getenv("TEXT_MODEL", "llama-3.3-70b-versatile")

    # Image generation (ModelsLab). Without a key the placeholder image is used.
    STABLE_DIFFUSION_API_KEY: str = os.getenv("STABLE_DIFFUSION_API_KEY")
    IMAGE_MODEL: str = os.getenv("IMAGE_MODEL", "nano-banana-t2i")

    # Read-aloud (ElevenLabs)
    ELEVENLABS_API_KEY: str = os.getenv("ELEVENLABS_API_KEY")
    ELEVENLABS_VOICE_ID: str = os.getenv("ELEVENLABS_VOICE_ID", "21m00Tcm4TlvDq8ikWAM")  # Rachel
    TTS_MODEL: str = os.getenv("TTS_MODEL", "eleven_multilingual_v2")

    # In-memory browser sessions kept before the least recently used is dropped
    MAX_SESSIONS: int = int(os.getenv("MAX_SESSIONS", "200"))

settings = Settings()
