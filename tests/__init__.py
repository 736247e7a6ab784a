"""Test package for the docmapper pipeline.

This package contains unit tests for all components of the pipeline
including the rate-limited client, result parser, state machines,
persistence, extractors and the batch processor.

Test Structure:
- conftest.py: Shared fixtures, fake clock, scripted transport and fake extractor
- test_rate_limited_client.py: Request spacing, retry and backoff
- test_result_parser.py: Schema-driven parsing and confidence
- test_file_store.py / test_processing_queue.py: File and queue state
- test_batch_processor.py / test_controller.py: Orchestration and commands
- test_database.py: Blob store, failed-file ledger and session snapshots
- test_extractors.py / test_openai_transport.py: Service requests
- test_classifier.py / test_validators.py / test_models.py: Helpers and models

Usage:
    Run all tests: pytest
    Run specific module: pytest tests/test_batch_processor.py
"""

__version__ = "1.0.0"
