# commhealth/db/importer.py
from __future__ import annotations

import json
import re
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, Optional
from uuid import UUID, uuid5

import pandas as pd

from commhealth.app.errors import AppError, ImporterError
from commhealth.app.logging import get_logger
from .models import Question, ResponseRecord
from .repository import SQLiteRepository, parse_timestamp


logger = get_logger(__name__)

_UUID_NAMESPACE = UUID("6ba7b811-9dad-11d1-80b4-00c04fd430c8")  # stable namespace

# Export headers that differ from the stored column names.
_RESPONSE_ALIASES = {
    "id": "response_id",
    "department": "respondent_department",
    "role": "respondent_role",
    "company": "respondent_company",
    "name": "respondent_name",
    "email": "respondent_email",
}


@dataclass(frozen=True)
class ImportResult:
    inserted: int
    skipped_rows: int


def read_table(file_path: str, sheet_name: Optional[str] = None, encoding: Optional[str] = None) -> pd.DataFrame:
    try:
        if str(file_path).lower().endswith((".xlsx", ".xls")):
            df = pd.read_excel(file_path, sheet_name=sheet_name or 0)
        else:
            df = pd.read_csv(file_path, encoding=encoding)
    except Exception as e:
        raise ImporterError(f"Failed to read {file_path}: {e}") from e

    if df is None or df.empty:
        raise ImporterError("Input dataset is empty.")

    df = df.copy()
    df.columns = [normalize_column_name(c) for c in df.columns]
    # NaN -> None so optional fields stay absent.
    return df.astype(object).where(pd.notnull(df), None)


def normalize_column_name(raw: Any) -> str:
    s = str(raw).strip().lower()
    s = re.sub(r"\s+", "_", s)
    s = re.sub(r"[^\w_]+", "", s)
    s = re.sub(r"_+", "_", s).strip("_")
    return s or "col"


def _json_cell(value: Any, default: Any) -> Any:
    if value is None:
        return default
    if isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(str(value))
    except json.JSONDecodeError as e:
        raise ImporterError(f"Cell is not valid JSON: {str(value)[:80]!r}") from e


def _json_mapping(value: Any, column: str) -> Dict[str, Any]:
    parsed = _json_cell(value, {})
    if not isinstance(parsed, dict):
        raise ImporterError(f"{column} must be a JSON object, got {parsed!r}")
    return parsed


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _as_bool(value: Any, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return bool(value)


class QuestionBankImporter:
    # Question bank rows: section_key, section_name, question_text, [question_id, question_type,
    # weight, question_number, sort_order, is_active, options (JSON)].
    required = ("section_key", "section_name", "question_text")

    def __init__(self, repo: SQLiteRepository):
        self.repo = repo

    def import_file(self, file_path: str, sheet_name: Optional[str] = None) -> ImportResult:
        df = read_table(file_path, sheet_name=sheet_name)
        missing = [c for c in self.required if c not in df.columns]
        if missing:
            raise ImporterError(f"Question bank is missing columns: {missing}")

        inserted = 0
        for order_index, row in enumerate(df.to_dict(orient="records"), start=1):
            self.repo.upsert_question(self._row_to_question(row, order_index))
            inserted += 1

        logger.info("Question bank imported", extra={"questions": inserted, "source": str(file_path)})
        return ImportResult(inserted=inserted, skipped_rows=0)

    def _row_to_question(self, row: Dict[str, Any], order_index: int) -> Question:
        section_key = str(row["section_key"]).strip()
        number = int(row.get("question_number") or order_index)
        qid = _text(row.get("question_id")) or str(uuid5(_UUID_NAMESPACE, f"{section_key}:{number}"))
        options = _json_cell(row.get("options"), [])
        try:
            return Question(
                question_id=qid,
                section_key=section_key,
                section_name=str(row["section_name"]).strip(),
                question_number=number,
                question_text=str(row["question_text"]).strip(),
                question_type=(_text(row.get("question_type")) or "scale").lower(),
                weight=float(row.get("weight") or 1.0),
                options=tuple(options),
                sort_order=int(row.get("sort_order") or order_index),
                is_active=_as_bool(row.get("is_active")),
            )
        except (TypeError, ValueError) as e:
            raise ImporterError(f"Question row {order_index} is malformed: {e}") from e


class ResponseImporter:
    """
    Imports a historical response export.

    Scores are written exactly as exported (bare 1-4 numbers or
    {score, max, percentage} records); canonicalization happens at analysis
    time. Rows without an id are skipped.
    """

    def __init__(self, repo: SQLiteRepository):
        self.repo = repo

    def import_file(self, file_path: str, sheet_name: Optional[str] = None) -> ImportResult:
        df = read_table(file_path, sheet_name=sheet_name)
        df = df.rename(columns={k: v for k, v in _RESPONSE_ALIASES.items() if k in df.columns})
        if "response_id" not in df.columns:
            raise ImporterError("Response export has no 'response_id' (or 'id') column.")

        inserted = 0
        skipped = 0
        for row in df.to_dict(orient="records"):
            if _text(row.get("response_id")) is None:
                skipped += 1
                continue
            try:
                self.repo.insert_response(self._row_to_record(row))
            except (AppError, sqlite3.IntegrityError) as e:
                logger.warning("Skipping response row", extra={"response_id": row.get("response_id"), "reason": str(e)})
                skipped += 1
                continue
            inserted += 1

        logger.info(
            "Responses imported",
            extra={"inserted": inserted, "skipped": skipped, "source": str(file_path)},
        )
        return ImportResult(inserted=inserted, skipped_rows=skipped)

    def _row_to_record(self, row: Dict[str, Any]) -> ResponseRecord:
        overall = row.get("overall_score")
        try:
            overall = None if overall is None else float(overall)
        except (TypeError, ValueError) as e:
            raise ImporterError(f"overall_score is not numeric: {overall!r}") from e

        return ResponseRecord(
            response_id=str(row["response_id"]).strip(),
            assessment_id=_text(row.get("assessment_id")),
            respondent_name=_text(row.get("respondent_name")),
            respondent_email=_text(row.get("respondent_email")),
            respondent_company=_text(row.get("respondent_company")),
            respondent_department=_text(row.get("respondent_department")),
            respondent_role=_text(row.get("respondent_role")),
            company_size=_text(row.get("company_size")),
            section_scores=_json_mapping(row.get("section_scores"), "section_scores"),
            overall_score=overall,
            answers=_json_mapping(row.get("answers"), "answers"),
            open_responses=_json_mapping(row.get("open_responses"), "open_responses"),
            created_at=parse_timestamp(_text(row.get("created_at"))),
            completed_at=parse_timestamp(_text(row.get("completed_at"))),
        )
