from pydantic import BaseModel
import os


class Settings(BaseModel):
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))
    cors_origins: str = os.getenv("CORS_ORIGINS", "*")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    stockfish_path: str = os.getenv("STOCKFISH_PATH") or "stockfish"
    stockfish_timeout_ms: int = int(os.getenv("STOCKFISH_TIMEOUT_MS", "15000"))
    # Streams stay open much longer than a single request/response
    stockfish_stream_timeout_ms: int = int(os.getenv("STOCKFISH_STREAM_TIMEOUT_MS", "120000"))
    stockfish_multipv: int = int(os.getenv("STOCKFISH_MULTIPV", "3"))
    stockfish_depth: int = int(os.getenv("STOCKFISH_DEPTH", "14"))
    stockfish_stream_depth: int = int(os.getenv("STOCKFISH_STREAM_DEPTH", "18"))


settings = Settings()
