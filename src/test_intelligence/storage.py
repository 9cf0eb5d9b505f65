"""
SQLite storage backend for suite results and flakiness reports.

Implements the ``SuiteResultStore`` contract with persistent tables plus a few
read helpers for reporting. Every driver error is raised as ``StorageError``.
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union
from uuid import uuid4

from loguru import logger

from .errors import StorageError
from .models import CoverageMetrics, FlakyTestAnalysis, TestResult, TestSuiteResult


class SQLiteSuiteResultStore:
    """SQLite storage backend for suite results."""

    def __init__(self, db_path: Union[str, Path]):
        """
        Initialize storage backend.

        Args:
            db_path: Path to SQLite database file; parent directories are created
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn: Optional[sqlite3.Connection] = None
        try:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            if conn is not None:
                conn.rollback()
            raise StorageError(f"SQLite error in {self.db_path}: {e}") from e
        finally:
            if conn is not None:
                conn.close()

    def _init_database(self) -> None:
        """Initialize database schema."""
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS suite_results (
                    suite_result_id TEXT PRIMARY KEY,
                    suite_name TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    framework TEXT NOT NULL,
                    total_tests INTEGER DEFAULT 0,
                    passed_tests INTEGER DEFAULT 0,
                    failed_tests INTEGER DEFAULT 0,
                    skipped_tests INTEGER DEFAULT 0,
                    duration REAL DEFAULT 0.0,
                    coverage TEXT,  -- JSON
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS test_results (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    suite_result_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    test_id TEXT NOT NULL,
                    test_suite TEXT NOT NULL,
                    test_name TEXT NOT NULL,
                    status TEXT NOT NULL,
                    duration REAL NOT NULL,
                    error_message TEXT,
                    stack_trace TEXT,
                    coverage TEXT,  -- JSON
                    performance TEXT,  -- JSON
                    FOREIGN KEY (suite_result_id)
                        REFERENCES suite_results(suite_result_id) ON DELETE CASCADE
                )
                """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS flaky_test_analyses (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    batch_id TEXT NOT NULL,
                    test_id TEXT NOT NULL,
                    test_name TEXT NOT NULL,
                    flaky_score REAL NOT NULL,
                    total_runs INTEGER NOT NULL,
                    failure_rate REAL NOT NULL,
                    success_rate REAL NOT NULL,
                    recent_failures INTEGER NOT NULL,
                    patterns TEXT,  -- JSON
                    recommendations TEXT,  -- JSON array
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )

            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_suite_results_timestamp ON suite_results(timestamp)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_test_results_suite ON test_results(suite_result_id)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_test_results_test_id ON test_results(test_id)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_flaky_test_id ON flaky_test_analyses(test_id)"
            )

    def store_test_suite_result(self, suite: TestSuiteResult) -> str:
        """
        Save a suite result with all its test results.

        Returns:
            The generated suite result id
        """
        suite_result_id = str(uuid4())
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO suite_results
                (suite_result_id, suite_name, timestamp, framework, total_tests,
                 passed_tests, failed_tests, skipped_tests, duration, coverage)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    suite_result_id,
                    suite.suite_name,
                    suite.timestamp.isoformat(),
                    suite.framework,
                    suite.total_tests,
                    suite.passed_tests,
                    suite.failed_tests,
                    suite.skipped_tests,
                    suite.duration,
                    json.dumps(suite.coverage.to_dict()) if suite.coverage else None,
                ),
            )
            conn.executemany(
                """
                INSERT INTO test_results
                (suite_result_id, position, test_id, test_suite, test_name, status,
                 duration, error_message, stack_trace, coverage, performance)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        suite_result_id,
                        position,
                        result.test_id,
                        result.test_suite,
                        result.test_name,
                        result.status.value,
                        result.duration,
                        result.error_message,
                        result.stack_trace,
                        json.dumps(result.coverage.to_dict()) if result.coverage else None,
                        json.dumps(result.performance.to_dict())
                        if result.performance
                        else None,
                    )
                    for position, result in enumerate(suite.results)
                ],
            )

        logger.debug(
            f"Stored suite result {suite_result_id} ({suite.total_tests} tests)"
        )
        return suite_result_id

    def store_flaky_test_analyses(self, analyses: List[FlakyTestAnalysis]) -> str:
        """
        Save one batch of flakiness reports.

        Returns:
            The generated batch id
        """
        batch_id = str(uuid4())
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO flaky_test_analyses
                (batch_id, test_id, test_name, flaky_score, total_runs, failure_rate,
                 success_rate, recent_failures, patterns, recommendations)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        batch_id,
                        a.test_id,
                        a.test_name,
                        a.flaky_score,
                        a.total_runs,
                        a.failure_rate,
                        a.success_rate,
                        a.recent_failures,
                        json.dumps(a.patterns),
                        json.dumps(a.recommendations),
                    )
                    for a in analyses
                ],
            )
        return batch_id

    def get_suite_result(self, suite_result_id: str) -> Optional[TestSuiteResult]:
        """
        Retrieve a stored suite result by id.

        Returns:
            TestSuiteResult or None if not found
        """
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM suite_results WHERE suite_result_id = ?",
                (suite_result_id,),
            ).fetchone()
            if not row:
                return None

            result_rows = conn.execute(
                "SELECT * FROM test_results WHERE suite_result_id = ? ORDER BY position",
                (suite_result_id,),
            ).fetchall()

        return TestSuiteResult(
            suite_name=row["suite_name"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            framework=row["framework"],
            total_tests=row["total_tests"],
            passed_tests=row["passed_tests"],
            failed_tests=row["failed_tests"],
            skipped_tests=row["skipped_tests"],
            duration=row["duration"],
            results=[self._row_to_result(r) for r in result_rows],
            coverage=CoverageMetrics.from_dict(json.loads(row["coverage"]))
            if row["coverage"]
            else None,
        )

    def list_suite_results(
        self,
        limit: int = 100,
        framework: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """
        List suite result summaries, newest first.

        Args:
            limit: Maximum number of summaries to return
            framework: Filter by framework
            start_date: Filter results at or after this time
            end_date: Filter results at or before this time
        """
        query = "SELECT * FROM suite_results WHERE 1=1"
        params: List[Any] = []

        if framework:
            query += " AND framework = ?"
            params.append(framework)
        if start_date:
            query += " AND timestamp >= ?"
            params.append(start_date.isoformat())
        if end_date:
            query += " AND timestamp <= ?"
            params.append(end_date.isoformat())

        query += " ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            {
                "suite_result_id": row["suite_result_id"],
                "suite_name": row["suite_name"],
                "timestamp": row["timestamp"],
                "framework": row["framework"],
                "total_tests": row["total_tests"],
                "passed_tests": row["passed_tests"],
                "failed_tests": row["failed_tests"],
                "skipped_tests": row["skipped_tests"],
                "duration": row["duration"],
            }
            for row in rows
        ]

    def list_flaky_analyses(self, test_id: Optional[str] = None) -> List[FlakyTestAnalysis]:
        """List stored flakiness reports in insertion order, optionally for one test."""
        query = "SELECT * FROM flaky_test_analyses"
        params: List[Any] = []
        if test_id:
            query += " WHERE test_id = ?"
            params.append(test_id)
        query += " ORDER BY id"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            FlakyTestAnalysis(
                test_id=row["test_id"],
                test_name=row["test_name"],
                flaky_score=row["flaky_score"],
                total_runs=row["total_runs"],
                failure_rate=row["failure_rate"],
                success_rate=row["success_rate"],
                recent_failures=row["recent_failures"],
                patterns=json.loads(row["patterns"]) if row["patterns"] else {},
                recommendations=json.loads(row["recommendations"])
                if row["recommendations"]
                else [],
            )
            for row in rows
        ]

    @staticmethod
    def _row_to_result(row: sqlite3.Row) -> TestResult:
        return TestResult.from_dict(
            {
                "test_id": row["test_id"],
                "test_suite": row["test_suite"],
                "test_name": row["test_name"],
                "status": row["status"],
                "duration": row["duration"],
                "error_message": row["error_message"],
                "stack_trace": row["stack_trace"],
                "coverage": json.loads(row["coverage"]) if row["coverage"] else None,
                "performance": json.loads(row["performance"])
                if row["performance"]
                else None,
            }
        )
