import json
import logging

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from engine import evaluate_fen, is_configured
from errors import EngineError
from review import analyze_game
from schemas import AnalyzeRequest, EngineEvaluation, EvaluateRequest, GameAnalysisResponse
from settings import settings
from streaming import stream_evaluation

logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Chess Engine Review", version="0.3.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.cors_origins] if settings.cors_origins != "*" else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
    if exc.status_code >= 500:
        logger.error(f"{request.url.path} failed ({exc.kind}): {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"{request.url.path} failed unexpectedly", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report bad request bodies as 400 with a single readable message."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = str(first["loc"][-1]) if first.get("loc") else "body"
        if first.get("type") == "missing":
            message = f"{field} is required"
        else:
            message = f"{field}: {first.get('msg', 'invalid value')}"
    return JSONResponse(status_code=400, content={"error": message})


@app.get("/healthz")
def healthz():
    return {"ok": True, "engine": {"path": settings.stockfish_path, "configured": is_configured()}}


@app.post("/api/review/evaluate", response_model=EngineEvaluation)
async def evaluate(request: EvaluateRequest):
    return await evaluate_fen(request.fen, request.depth)


@app.post("/api/review/analyze", response_model=GameAnalysisResponse)
async def analyze(request: AnalyzeRequest):
    return await analyze_game(request.pgn, request.samples, request.depth)


@app.get("/api/review/stream")
async def stream(fen: str = Query(...), depth: int | float | None = Query(None)):
    async def events():
        async for event in stream_evaluation(fen, depth):
            yield f"data: {json.dumps(event)}\n\n"

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


def main():
    """Entry point for running the server."""
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
