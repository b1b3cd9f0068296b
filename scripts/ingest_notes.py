# Path: scripts/ingest_notes.py
# Purpose: CLI tool to bulk-load user notes into the memory store.
# Layer: scripts.
# Details: Reads one note per line and stores them through the note ingestor.

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import AppSettings, setup_logging
from core.embedders import build_embedder
from core.indexing.index_builder import NoteIngestor
from core.service import build_memory_store


def main() -> None:
    """Ingest a text file of notes, one per line."""

    parser = argparse.ArgumentParser(description="Store notes as searchable memories")
    parser.add_argument("--file", type=Path, required=True, help="Text file with one note per line")
    parser.add_argument("--batch-size", type=int, default=32, help="Number of notes to embed per batch")
    parser.add_argument("--no-timestamp", action="store_true", help="Store notes without a timestamp prefix")
    args = parser.parse_args()

    settings = AppSettings.from_env()
    setup_logging(settings.log_level)
    settings.vector_store.autosave = False

    store = build_memory_store(settings)
    ingestor = NoteIngestor(build_embedder(settings.embedder), store, batch_size=args.batch_size)
    notes = args.file.read_text(encoding="utf-8").splitlines()
    stored = ingestor.ingest(notes, timestamped=not args.no_timestamp)

    store.save(str(settings.vector_store.index_path))
    print(f"Stored {len(stored)} notes into {settings.vector_store.index_path}")


if __name__ == "__main__":
    main()
