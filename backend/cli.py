import argparse
import asyncio
import sys

from engine import evaluate_fen
from errors import EngineError
from review import analyze_game
from streaming import stream_evaluation


def format_score(score: dict | None) -> str:
    if score is None:
        return "-"
    if score["type"] == "mate":
        return f"#{score['value']}"
    return f"{score['value'] / 100:+.2f}"


def print_evaluation(evaluation: dict, indent: str = "") -> None:
    print(f"{indent}best={evaluation['bestMove']} score={format_score(evaluation['score'])} depth={evaluation['depth']}")
    for rank, line in enumerate(evaluation["lines"], start=1):
        print(f"{indent}  {rank}. {format_score(line['score'])} {' '.join(line['pv'][:8])}")


async def run_stream(fen: str, depth: int | None) -> int:
    async for event in stream_evaluation(fen, depth):
        if "error" in event:
            print(f"Error: {event['error']}", file=sys.stderr)
            return 1
        if "evaluation" in event:
            print_evaluation(event["evaluation"])
    return 0


async def run(args: argparse.Namespace) -> int:
    if args.fen and args.stream:
        return await run_stream(args.fen, args.depth)
    if args.fen:
        print_evaluation(await evaluate_fen(args.fen, args.depth))
        return 0

    with open(args.pgn, encoding="utf-8") as fh:
        pgn = fh.read()
    analysis = await analyze_game(pgn, args.samples, args.depth)
    summary = analysis["summary"]
    print(f"Moves: {summary['totalMoves']}  sampled: {summary['sampled']}/{summary['requested']}  depth: {summary['depth']}")
    for sample in analysis["samples"]:
        dots = "." if sample["color"] == "white" else "..."
        print(f"{sample['moveNumber']}{dots} {sample['san']}")
        if sample.get("error"):
            print(f"  error: {sample['error']}")
        else:
            print_evaluation(sample["evaluation"], indent="  ")
    return 0


def main():
    p = argparse.ArgumentParser(description="Chess Engine Review (CLI)")
    source = p.add_mutually_exclusive_group(required=True)
    source.add_argument("--fen", help="FEN string of a position to evaluate")
    source.add_argument("--pgn", help="Path to a PGN file to review")
    p.add_argument("--depth", type=int, help="Search depth")
    p.add_argument("--samples", type=int, help="Closing positions to evaluate (with --pgn)")
    p.add_argument("--stream", action="store_true", help="Print progressive updates (with --fen)")
    args = p.parse_args()

    try:
        sys.exit(asyncio.run(run(args)))
    except EngineError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
