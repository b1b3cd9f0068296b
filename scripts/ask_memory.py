# Path: scripts/ask_memory.py
# Purpose: Simple CLI to ask a question against stored caption memories.
# Layer: scripts.
# Details: Loads the persisted memory store, retrieves relevant captions, and prints the summary.

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import AppSettings, setup_logging
from core.embedders import build_embedder
from core.errors import EmbeddingError
from core.search.pipeline import RetrievalCoordinator
from core.search.summarizer import build_summarizer
from core.service import build_memory_store


def main() -> None:
    """Execute a memory query from the command line."""

    parser = argparse.ArgumentParser(description="Ask what the camera has seen")
    parser.add_argument("--text", type=str, required=True, help="Question to answer from memories")
    parser.add_argument("--k", type=int, default=None, help="Number of memories to retrieve")
    args = parser.parse_args()

    settings = AppSettings.from_env()
    setup_logging(settings.log_level)
    settings.vector_store.autosave = False

    coordinator = RetrievalCoordinator(
        embedder=build_embedder(settings.embedder),
        vector_store=build_memory_store(settings),
        summarizer=build_summarizer(settings.summarizer),
        k=args.k or settings.retrieval_k,
    )
    try:
        result = coordinator.retrieve(args.text)
    except EmbeddingError as exc:
        print(f"Could not embed query: {exc}", file=sys.stderr)
        sys.exit(1)
    finally:
        coordinator.close()

    if result.no_matches:
        print("No relevant memories.")
        return
    for match in result.matches:
        print(f"[{match.rank}] score={match.score:.3f} {match.record.text}")
    if result.summary_error:
        print(f"Summary unavailable: {result.summary_error}")
    elif result.summary and settings.summarizer.enabled:
        print(f"\n{result.summary}")


if __name__ == "__main__":
    main()
