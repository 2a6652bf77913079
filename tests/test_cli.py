import json

import pytest

from commhealth.app.cli import build_parser, main


@pytest.fixture
def db(tmp_path, monkeypatch):
    monkeypatch.setenv("APP_LOG_JSON", "false")
    monkeypatch.setenv("APP_LOG_LEVEL", "WARNING")
    path = tmp_path / "cli.db"
    monkeypatch.setenv("APP_DB_PATH", str(path))
    return str(path)


def test_parser_rejects_bad_date():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["analytics", "--from", "last week"])


def test_import_then_analytics(db, tmp_path, capsys):
    responses = tmp_path / "responses.csv"
    responses.write_text(
        "id,company,department,section_scores,overall_score,completed_at\n"
        'r1,Acme,Sales,"{""speaking_up"": {""percentage"": 40}}",40,2025-03-01T10:00:00Z\n'
        'r2,Acme,Legal,"{""speaking_up"": {""percentage"": 90}}",90,2025-03-02T10:00:00Z\n'
        'r3,Globex,Legal,"{""speaking_up"": {""percentage"": 10}}",10,2025-03-02T10:00:00Z\n',
        encoding="utf-8",
    )

    assert main(["init-db"]) == 0
    assert main(["import-responses", str(responses)]) == 0
    assert json.loads(capsys.readouterr().out) == {"inserted": 3, "skipped": 0}

    assert main(["analytics", "--company", "Acme"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["completed_responses"] == 2
    assert data["department_gaps"][0]["gap"] == 50
    assert data["alerts"] == [{"group": "Sales", "score": 40}]

    assert main(["report-data", "--company", "Acme", "--to", "2025-03-02"]) == 0
    out = capsys.readouterr().out
    assert "- Company: Acme" in out
    assert "- Total Responses: 1" in out


def test_import_error_returns_nonzero(db, tmp_path, capsys):
    main(["init-db"])

    assert main(["import-questions", str(tmp_path / "nope.csv")]) == 1
    assert "error:" in capsys.readouterr().err


def test_unknown_department_filter_reaches_missing_rows(db, tmp_path, capsys):
    responses = tmp_path / "responses.csv"
    responses.write_text(
        "id,company,department,overall_score,completed_at\n"
        "r1,Acme,,40,2025-03-01T10:00:00Z\n"
        "r2,Acme,Sales,90,2025-03-01T10:00:00Z\n",
        encoding="utf-8",
    )
    main(["init-db"])
    main(["import-responses", str(responses)])
    capsys.readouterr()

    assert main(["analytics", "--department", "Unknown"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["completed_responses"] == 1
    assert data["overall_average"] == 40
