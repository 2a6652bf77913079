# repository.py
from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from commhealth.app.errors import RepositoryError
from commhealth.app.logging import get_logger
from .connection import connect, db_session
from .models import Question, ResponseRecord, Section, group_into_sections


logger = get_logger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


def to_iso_utc(value: Optional[datetime]) -> Optional[str]:
    # Stored timestamps are UTC ISO strings so SQL range filters compare correctly.
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0).isoformat()


def parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    if raw is None or raw == "":
        return None
    try:
        dt = datetime.fromisoformat(str(raw).strip().replace("Z", "+00:00"))
    except ValueError as e:
        raise RepositoryError(f"Unreadable timestamp: {raw!r}") from e
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _loads(raw: Optional[str], default: Any) -> Any:
    if raw is None or raw == "":
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise RepositoryError(f"Unreadable JSON column: {raw[:80]!r}") from e


class SQLiteRepository:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def init_schema(self, schema_sql: Optional[str] = None) -> None:
        # Execute schema SQL in a single transaction.
        schema_sql = schema_sql or SCHEMA_PATH.read_text(encoding="utf-8")
        with db_session(self.db_path) as conn:
            conn.executescript(schema_sql)

    # -------------------------
    # Question bank
    # -------------------------
    def upsert_question(self, q: Question) -> None:
        conn = connect(self.db_path)
        try:
            conn.execute(
                """
                INSERT INTO questions(
                  question_id, section_key, section_name, question_number, question_text,
                  question_type, options, weight, is_active, sort_order, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, datetime('now'))
                ON CONFLICT(question_id) DO UPDATE SET
                  section_key=excluded.section_key,
                  section_name=excluded.section_name,
                  question_number=excluded.question_number,
                  question_text=excluded.question_text,
                  question_type=excluded.question_type,
                  options=excluded.options,
                  weight=excluded.weight,
                  is_active=excluded.is_active,
                  sort_order=excluded.sort_order,
                  updated_at=datetime('now')
                """,
                (
                    q.question_id,
                    q.section_key,
                    q.section_name,
                    q.question_number,
                    q.question_text,
                    q.question_type,
                    json.dumps(list(q.options), ensure_ascii=False) if q.options else None,
                    float(q.weight),
                    1 if q.is_active else 0,
                    q.sort_order,
                ),
            )
            conn.commit()
        finally:
            conn.close()

    def load_questions(self, active_only: bool = True) -> List[Question]:
        conn = connect(self.db_path)
        try:
            rows = conn.execute(
                """
                SELECT question_id, section_key, section_name, question_number, question_text,
                       question_type, options, weight, is_active, sort_order
                FROM questions
                """
                + (" WHERE is_active = 1" if active_only else "")
                + " ORDER BY sort_order ASC, question_number ASC",
            ).fetchall()

            return [
                Question(
                    question_id=r["question_id"],
                    section_key=r["section_key"],
                    section_name=r["section_name"],
                    question_number=r["question_number"],
                    question_text=r["question_text"],
                    question_type=r["question_type"],
                    options=tuple(_loads(r["options"], [])),
                    weight=float(r["weight"]),
                    is_active=bool(r["is_active"]),
                    sort_order=r["sort_order"],
                )
                for r in rows
            ]
        finally:
            conn.close()

    def load_sections(self, active_only: bool = True) -> List[Section]:
        return group_into_sections(self.load_questions(active_only=active_only), active_only=active_only)

    # -------------------------
    # Responses
    # -------------------------
    def insert_response(self, record: ResponseRecord) -> None:
        # Completed rows are never updated; a second insert of the same id fails.
        conn = connect(self.db_path)
        try:
            conn.execute(
                """
                INSERT INTO responses(
                  response_id, assessment_id, respondent_name, respondent_email,
                  respondent_company, respondent_department, respondent_role, company_size,
                  answers, open_responses, section_scores, overall_score,
                  created_at, completed_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, COALESCE(?, datetime('now')), ?)
                """,
                (
                    record.response_id,
                    record.assessment_id,
                    record.respondent_name,
                    record.respondent_email,
                    record.respondent_company,
                    record.respondent_department,
                    record.respondent_role,
                    record.company_size,
                    json.dumps(dict(record.answers), ensure_ascii=False),
                    json.dumps(dict(record.open_responses), ensure_ascii=False),
                    json.dumps(dict(record.section_scores), ensure_ascii=False),
                    record.overall_score,
                    to_iso_utc(record.created_at),
                    to_iso_utc(record.completed_at),
                ),
            )
            conn.commit()
        finally:
            conn.close()

    def fetch_responses(
        self,
        company: Optional[str] = None,
        department: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        completed_only: bool = True,
    ) -> List[ResponseRecord]:
        where: List[str] = []
        params: List[Any] = []

        if completed_only:
            where.append("completed_at IS NOT NULL")
        if company:
            where.append("respondent_company = ?")
            params.append(company)
        if department:
            where.append("respondent_department = ?")
            params.append(department)
        if date_from:
            where.append("completed_at >= ?")
            params.append(to_iso_utc(date_from))
        if date_to:
            where.append("completed_at < ?")
            params.append(to_iso_utc(date_to))

        sql = "SELECT * FROM responses"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY created_at DESC"

        conn = connect(self.db_path)
        try:
            rows = conn.execute(sql, params).fetchall()
        finally:
            conn.close()

        # One undecodable row is logged and left out; the rest are still returned.
        records: List[ResponseRecord] = []
        for r in rows:
            try:
                records.append(self._row_to_record(r))
            except RepositoryError as e:
                logger.warning("Skipping undecodable response row", extra={"response_id": r["response_id"], "reason": str(e)})
        return records

    def get_response(self, response_id: str) -> Optional[ResponseRecord]:
        conn = connect(self.db_path)
        try:
            row = conn.execute("SELECT * FROM responses WHERE response_id = ?", (response_id,)).fetchone()
            return self._row_to_record(row) if row else None
        finally:
            conn.close()

    def count_responses(self) -> Dict[str, int]:
        conn = connect(self.db_path)
        try:
            row = conn.execute(
                "SELECT COUNT(*) AS total, COUNT(completed_at) AS completed FROM responses"
            ).fetchone()
            return {"total": int(row["total"]), "completed": int(row["completed"])}
        finally:
            conn.close()

    def _row_to_record(self, r: sqlite3.Row) -> ResponseRecord:
        return ResponseRecord(
            response_id=r["response_id"],
            assessment_id=r["assessment_id"],
            respondent_name=r["respondent_name"],
            respondent_email=r["respondent_email"],
            respondent_company=r["respondent_company"],
            respondent_department=r["respondent_department"],
            respondent_role=r["respondent_role"],
            company_size=r["company_size"],
            answers=_loads(r["answers"], {}),
            open_responses=_loads(r["open_responses"], {}),
            section_scores=_loads(r["section_scores"], {}),
            overall_score=r["overall_score"],
            created_at=parse_timestamp(r["created_at"]),
            completed_at=parse_timestamp(r["completed_at"]),
        )
