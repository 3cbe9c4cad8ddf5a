from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any


logger = logging.getLogger(__name__)


@dataclass
class TableStats:
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    skipped_reasons: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class ImportStats:
    tables: dict[str, TableStats] = field(default_factory=dict)
    warnings: list[dict[str, Any]] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)
    skipped_records: list[dict[str, Any]] = field(default_factory=list)
    records_fetched: int = 0

    def table(self, name: str) -> TableStats:
        if name not in self.tables:
            self.tables[name] = TableStats()
        return self.tables[name]

    def warn(self, message: str, **context: Any) -> None:
        self.warnings.append({'message': message, 'context': context})
        logger.warning('import_warning message=%s context=%s', message, context)

    def error(self, table: str, message: str) -> None:
        self.errors.append({'table': table, 'error': message})
        logger.error('import_error table=%s error=%s', table, message)

    def skip(self, table: str, record_id: str, reason: str, **details: Any) -> None:
        stats = self.table(table)
        stats.skipped += 1
        stats.skipped_reasons.setdefault(reason, []).append(record_id)
        self.skipped_records.append({'table': table, 'record_id': record_id, 'reason': reason, 'details': details})

    @property
    def total_imported(self) -> int:
        return sum(stats.succeeded for stats in self.tables.values())

    @property
    def total_skipped(self) -> int:
        return sum(stats.skipped for stats in self.tables.values())

    def log_summary(self) -> None:
        logger.info(
            'import_summary fetched=%s imported=%s skipped=%s warnings=%s errors=%s',
            self.records_fetched,
            self.total_imported,
            self.total_skipped,
            len(self.warnings),
            len(self.errors),
        )
        for name, stats in self.tables.items():
            logger.info(
                'import_table table=%s attempted=%s succeeded=%s failed=%s skipped=%s',
                name,
                stats.attempted,
                stats.succeeded,
                stats.failed,
                stats.skipped,
            )
            for reason, record_ids in stats.skipped_reasons.items():
                logger.info('import_skip_reason table=%s reason=%s count=%s', name, reason, len(record_ids))
