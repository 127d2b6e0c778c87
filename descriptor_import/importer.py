from __future__ import annotations

import logging
import time
from typing import Callable, Sequence, TypeVar

from .config import BATCH_SIZE
from .models import BatchResult, ImportResult
from .store import DescriptorStore
from .validation import DescriptorImport

logger = logging.getLogger(__name__)

T = TypeVar("T")
CancelCheck = Callable[[], bool] | None


class ImportAbortedError(RuntimeError):
    def __init__(self, message: str, result: ImportResult) -> None:
        super().__init__(message)
        self.result = result


class ImportCancelledError(RuntimeError):
    def __init__(self, message: str, result: ImportResult) -> None:
        super().__init__(message)
        self.result = result


def chunk(items: Sequence[T], size: int) -> list[list[T]]:
    if size < 1:
        raise ValueError(f"chunk size must be positive, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class BatchImporter:
    def __init__(self, store: DescriptorStore, batch_size: int = BATCH_SIZE) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.store = store
        self.batch_size = batch_size

    def import_descriptors(
        self,
        records: Sequence[DescriptorImport],
        *,
        continue_on_error: bool = True,
        cancel_check: CancelCheck = None,
    ) -> ImportResult:
        batches = chunk(records, self.batch_size)
        result = ImportResult(total_processed=len(records))
        total = len(batches)

        logger.info("Importing %d descriptors in %d batches", len(records), total)

        for number, batch in enumerate(batches, start=1):
            if cancel_check is not None and cancel_check():
                logger.warning("Import cancelled before batch %d/%d", number, total)
                raise ImportCancelledError(f"Import cancelled before batch {number}", result)

            start = time.perf_counter()
            try:
                inserted = int(self.store.insert_many(batch))
            except Exception as exc:
                duration_ms = round((time.perf_counter() - start) * 1000, 1)
                message = str(exc) or exc.__class__.__name__
                result.failed_count += len(batch)
                result.batches.append(
                    BatchResult(
                        batch_number=number,
                        record_count=len(batch),
                        success=False,
                        inserted_count=0,
                        duration_ms=duration_ms,
                        error=message,
                    )
                )
                logger.error("Batch %d/%d: FAILED [%sms]: %s", number, total, duration_ms, message)
                if not continue_on_error:
                    raise ImportAbortedError(f"Import aborted at batch {number}: {message}", result) from exc
                continue

            duration_ms = round((time.perf_counter() - start) * 1000, 1)
            duplicates = len(batch) - inserted
            result.success_count += inserted
            result.duplicate_count += duplicates
            result.batches.append(
                BatchResult(
                    batch_number=number,
                    record_count=len(batch),
                    success=True,
                    inserted_count=inserted,
                    duration_ms=duration_ms,
                )
            )
            logger.info(
                "Batch %d/%d: %d inserted (%d duplicates) [%sms]",
                number,
                total,
                inserted,
                duplicates,
                duration_ms,
            )

        logger.info(
            "Import finished: %d processed, %d inserted, %d duplicates, %d failed",
            result.total_processed,
            result.success_count,
            result.duplicate_count,
            result.failed_count,
        )
        return result

    def count_descriptors(self, source: str | None = None) -> int:
        return int(self.store.count(source))

    def delete_descriptors_by_source(self, source: str) -> int:
        deleted = int(self.store.delete_by_source(source))
        logger.info("Deleted %d descriptors with source %r", deleted, source)
        return deleted


def import_descriptors(
    store: DescriptorStore,
    records: Sequence[DescriptorImport],
    *,
    continue_on_error: bool = True,
    batch_size: int = BATCH_SIZE,
    cancel_check: CancelCheck = None,
) -> ImportResult:
    importer = BatchImporter(store, batch_size=batch_size)
    return importer.import_descriptors(
        records,
        continue_on_error=continue_on_error,
        cancel_check=cancel_check,
    )
