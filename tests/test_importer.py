from datetime import datetime, timezone

import pytest

from commhealth.analytics.snapshot import compute_analytics
from commhealth.app.errors import ImporterError
from commhealth.db.importer import QuestionBankImporter, ResponseImporter, normalize_column_name
from commhealth.db.repository import SQLiteRepository


@pytest.fixture
def repo(tmp_path):
    r = SQLiteRepository(str(tmp_path / "import.db"))
    r.init_schema()
    return r


def test_normalize_column_name():
    assert normalize_column_name(" Section Key ") == "section_key"
    assert normalize_column_name("Overall Score (%)") == "overall_score"
    assert normalize_column_name("???") == "col"


def test_question_bank_import(repo, tmp_path):
    path = tmp_path / "questions.csv"
    path.write_text(
        "Section Key,Section Name,Question Text,Question Type,Weight\n"
        "speaking_up,Speaking Up,I can raise concerns.,scale,1\n"
        "speaking_up,Speaking Up,Feedback leads to action.,,2\n"
        "culture,Everyday Communication,Anything else?,open,\n",
        encoding="utf-8",
    )

    result = QuestionBankImporter(repo).import_file(str(path))
    sections = repo.load_sections()

    assert result.inserted == 3
    assert [s.key for s in sections] == ["speaking_up", "culture"]
    assert [q.weight for q in sections[0].questions] == [1.0, 2.0]
    assert sections[1].questions[0].question_type == "open"


def test_question_bank_requires_columns(repo, tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("section_key,question_text\nspeaking_up,Hi\n", encoding="utf-8")

    with pytest.raises(ImporterError):
        QuestionBankImporter(repo).import_file(str(path))


def test_response_import_keeps_both_score_shapes(repo, tmp_path):
    path = tmp_path / "responses.csv"
    path.write_text(
        "id,company,department,role,section_scores,overall_score,created_at,completed_at\n"
        'r1,Acme,Sales,,"{""speaking_up"": 3}",3,2025-03-01T10:00:00Z,2025-03-01T10:05:00Z\n'
        'r2,Acme,Sales,,"{""speaking_up"": {""score"": 4, ""max"": 8, ""percentage"": 50}}",50,2025-03-02T10:00:00Z,2025-03-02T10:05:00Z\n'
        ',Acme,Sales,,"{}",,,\n'
        'r3,Acme,Legal,,"{""speaking_up"": 2}",,2025-03-03T10:00:00Z,\n',
        encoding="utf-8",
    )

    result = ResponseImporter(repo).import_file(str(path))

    assert (result.inserted, result.skipped_rows) == (3, 1)
    r1 = repo.get_response("r1")
    assert r1.section_scores == {"speaking_up": 3}
    assert r1.respondent_role is None
    assert r1.completed_at == datetime(2025, 3, 1, 10, 5, tzinfo=timezone.utc)
    assert repo.get_response("r3").completed_at is None

    snapshot = compute_analytics(repo.fetch_responses(company="Acme"))
    assert snapshot.completed_responses == 2
    assert snapshot.department_section == {"Sales": {"speaking_up": 63}}
    # 3 on the 1-4 scale is 75%.
    assert snapshot.overall_average == 63


def test_response_import_skips_duplicates(repo, tmp_path):
    path = tmp_path / "dupes.csv"
    path.write_text(
        "response_id,overall_score,completed_at\n"
        "r1,80,2025-03-01T10:00:00Z\n"
        "r1,70,2025-03-01T11:00:00Z\n",
        encoding="utf-8",
    )

    result = ResponseImporter(repo).import_file(str(path))

    assert (result.inserted, result.skipped_rows) == (1, 1)
    assert repo.get_response("r1").overall_score == 80


def test_response_import_needs_id_column(repo, tmp_path):
    path = tmp_path / "noid.csv"
    path.write_text("company,overall_score\nAcme,80\n", encoding="utf-8")

    with pytest.raises(ImporterError):
        ResponseImporter(repo).import_file(str(path))


def test_unreadable_file(repo, tmp_path):
    with pytest.raises(ImporterError):
        ResponseImporter(repo).import_file(str(tmp_path / "missing.csv"))


def test_response_import_skips_non_object_json_cells(repo, tmp_path):
    path = tmp_path / "shapes.csv"
    path.write_text(
        "response_id,section_scores,answers,completed_at\n"
        'r1,"{""speaking_up"": 3}",,2025-03-01T10:00:00Z\n'
        "r2,5,,2025-03-01T10:00:00Z\n"
        'r3,"{""speaking_up"": 4}","[1, 2]",2025-03-01T10:00:00Z\n'
        'r4,"{""speaking_up"": 2}",,2025-03-01T10:00:00Z\n',
        encoding="utf-8",
    )

    result = ResponseImporter(repo).import_file(str(path))

    assert (result.inserted, result.skipped_rows) == (2, 2)
    assert repo.get_response("r2") is None
    assert repo.get_response("r3") is None
    assert repo.get_response("r4").section_scores == {"speaking_up": 2}
