"""Command line runner for the docmapper pipeline.

Analyzes the given files with a bounded pool of workers and, when a
schema file is given, maps each analysis onto the schema. Failed files
are kept in the durable ledger between runs.

Usage:
    python run_batch.py invoice.pdf scan.png notes.txt --schema invoice.json
    python run_batch.py --retry-failed --schema invoice.json
"""

import argparse
import asyncio
import json
import logging
import mimetypes
import os
import sys
import time
import uuid
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from docmapper import (
    AIExtractor,
    AsyncBatchProcessor,
    AsyncDocumentProcessor,
    BlobStore,
    Config,
    DatabaseManager,
    FailedFileLedger,
    FileRecord,
    FileStatus,
    FileStore,
    OpenAITransport,
    PipelineController,
    RateLimitedClient,
    Schema,
    SessionSnapshotRepository,
)
from docmapper.extractors import encode_data_url
from docmapper.processors import ProgressEvent, ProgressEventType

TEXT_MEDIA_PREFIXES = ("text/",)
TEXT_MEDIA_TYPES = {"application/json", "application/xml"}


def progress_callback(event: ProgressEvent) -> None:
    """Print progress events as they arrive."""
    timestamp = time.strftime("%H:%M:%S")

    if event.event_type == ProgressEventType.RUN_STARTED:
        print(f"🚀 [{timestamp}] {event.message}")

    elif event.event_type == ProgressEventType.BATCH_STARTED:
        print(f"📦 [{timestamp}] {event.message}")

    elif event.event_type == ProgressEventType.FILE_STARTED:
        print(f"📄 [{timestamp}] Processing {event.file_name} ({event.current_file}/{event.total_files})")

    elif event.event_type == ProgressEventType.FILE_COMPLETED:
        print(f"✅ [{timestamp}] Completed {event.file_name}")

    elif event.event_type == ProgressEventType.FILE_FAILED:
        print(f"❌ [{timestamp}] Failed {event.file_name}: {event.error}")

    elif event.event_type == ProgressEventType.MAPPING_FAILED:
        print(f"⚠️ [{timestamp}] {event.message}: {event.error}")

    elif event.event_type == ProgressEventType.PIPELINE_HALTED:
        print(f"🛑 [{timestamp}] {event.message}")

    elif event.event_type == ProgressEventType.RUN_COMPLETED:
        print(f"🎉 [{timestamp}] {event.message}")


def load_file(path: Path) -> FileRecord:
    """Build a pending file record from a file on disk.

    Text files carry their content; everything else carries a data URL
    for the vision path.
    """
    media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    raw = path.read_bytes()
    record = FileRecord(
        id=str(uuid.uuid4()),
        name=path.name,
        size=len(raw),
        media_type=media_type,
        path=str(path),
    )

    if media_type.startswith(TEXT_MEDIA_PREFIXES) or media_type in TEXT_MEDIA_TYPES:
        return replace(record, content=raw.decode("utf-8", errors="replace"))
    return replace(record, data_url=encode_data_url(media_type, raw))


def load_schema(path: Optional[str]) -> Optional[Schema]:
    if not path:
        return None
    with open(path, "r", encoding="utf-8") as handle:
        return Schema.from_dict(json.load(handle))


def build_controller(database_url: str) -> PipelineController:
    """Wire the pipeline components together."""
    api_key = os.getenv("OPENAI_API_KEY", "")
    client = RateLimitedClient(OpenAITransport(api_key))
    extractor = AIExtractor(client)

    store = BlobStore(DatabaseManager(database_url))
    batch_processor = AsyncBatchProcessor(
        document_processor=AsyncDocumentProcessor(extractor),
        file_store=FileStore(),
        max_concurrent=Config.MAX_CONCURRENT,
        progress_callback=progress_callback,
    )
    return PipelineController(
        batch_processor,
        ledger=FailedFileLedger(store),
        snapshots=SessionSnapshotRepository(store),
    )


def print_summary(controller: PipelineController) -> None:
    print("\n=== Results ===")
    for file in controller.files():
        line = f"  {file.name}: {file.status.value}"
        if file.status == FileStatus.MAPPED and file.mapped_data:
            line += f" ({file.mapped_data.confidence}% confidence)"
        elif file.status == FileStatus.ERROR:
            line += f" - {file.error_message}"
        print(line)

    failed = controller.failed_files()
    if failed:
        print(f"\n{len(failed)} files in the failed ledger:")
        for entry in failed:
            print(f"  - {entry.path} (retries: {entry.retry_count}): {entry.error_message}")

    status = controller.status()
    if status.credits_exhausted:
        print(f"\n🛑 Credits exhausted: {status.message}")


def parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Analyze documents and map them onto a schema")
    parser.add_argument("files", nargs="*", help="Files to process")
    parser.add_argument("--schema", help="Path to a schema JSON file")
    parser.add_argument("--retry-failed", action="store_true", help="Resubmit every file in the failed ledger")
    parser.add_argument("--clear-failed", action="store_true", help="Empty the failed ledger and exit")
    parser.add_argument("--database-url", default=Config.DATABASE_URL, help="SQLAlchemy database URL")
    parser.add_argument("--save-session", action="store_true", help="Save the results for a later session")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


async def main(argv: List[str]) -> int:
    load_dotenv()
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    controller = build_controller(args.database_url)

    if args.clear_failed:
        controller.clear_failed()
        print("Failed ledger cleared")
        return 0

    if args.retry_failed:
        retried = controller.retry_all()
        print(f"Resubmitting {len(retried)} failed files")

    controller.add_files(load_file(Path(p)) for p in args.files)
    if not controller.files():
        print("Nothing to process")
        return 1

    await controller.run(schema=load_schema(args.schema))
    print_summary(controller)

    if args.save_session:
        saved = controller.save_session()
        print(f"Saved {saved} files to the session snapshot")

    return 2 if controller.status().credits_exhausted else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
