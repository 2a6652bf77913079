import pytest

from commhealth.app.errors import InsufficientAnswers, InvalidAnswer
from commhealth.db.models import Question, Section
from commhealth.scoring.normalizer import round_half_up
from commhealth.scoring.scorer import require_complete, score_response, score_section


def test_section_score_example(two_sections):
    scored = score_response({"q1": 4, "q2": 2}, two_sections)

    s = scored.section_scores["speaking_up"]
    assert s.score == 6
    assert s.max == 8
    assert s.percentage == 75


def test_unanswered_section_is_omitted_not_zero(two_sections):
    scored = score_response({"q1": 4, "q2": 2}, two_sections)

    assert "leadership" not in scored.section_scores
    assert scored.overall_score == 75


def test_open_questions_do_not_count(two_sections):
    scored = score_response({"q3": 3, "q4": "More town halls please"}, two_sections)

    s = scored.section_scores["leadership"]
    assert (s.score, s.max, s.percentage) == (6.0, 8.0, 75)


def test_partial_section_uses_answered_questions_only(two_sections):
    scored = score_response({"q1": 3}, two_sections)
    assert scored.section_scores["speaking_up"].max == 4


def test_overall_is_summed_ratio_not_mean_of_percentages():
    heavy = Section(
        key="leadership",
        name="Leadership",
        questions=(Question("h1", "leadership", "Leadership", "Heavy", weight=3.0),),
    )
    light = Section(
        key="overload",
        name="Overload",
        questions=(Question("l1", "overload", "Overload", "Light", weight=1.0),),
    )

    scored = score_response({"h1": 4, "l1": 1}, [heavy, light])

    percentages = [s.percentage for s in scored.section_scores.values()]
    assert percentages == [100, 25]
    # 13 / 16 = 81.25
    assert scored.overall_score == 81
    assert scored.overall_score != round_half_up(sum(percentages) / len(percentages))


def test_weighted_percentage_formula():
    section = Section(
        key="culture",
        name="Culture",
        questions=(
            Question("c1", "culture", "Culture", "a", weight=1.5),
            Question("c2", "culture", "Culture", "b", weight=0.5),
            Question("c3", "culture", "Culture", "c", weight=2.0),
        ),
    )
    answers = {"c1": 1, "c2": 4, "c3": 3}

    s = score_section(section, answers)

    total = 1 * 1.5 + 4 * 0.5 + 3 * 2.0
    assert s.score == total
    assert s.max == 16.0
    assert s.percentage == round_half_up(100 * total / 16.0)
    assert 0 <= s.percentage <= 100


def test_no_answers_leaves_overall_undefined(two_sections):
    scored = score_response({}, two_sections)

    assert scored.section_scores == {}
    assert scored.overall_score is None
    with pytest.raises(InsufficientAnswers):
        require_complete(scored)


@pytest.mark.parametrize("bad", [0, 5, True, "3", 2.5])
def test_invalid_answers_rejected(two_sections, bad):
    with pytest.raises(InvalidAnswer):
        score_response({"q1": bad}, two_sections)


def test_to_storage_shape(two_sections):
    stored = score_response({"q1": 4, "q2": 2, "q3": 1}, two_sections).to_storage()

    assert stored["section_scores"]["speaking_up"] == {"score": 6.0, "max": 8.0, "percentage": 75}
    assert stored["section_scores"]["leadership"] == {"score": 2.0, "max": 8.0, "percentage": 25}
    # (6 + 2) / (8 + 8)
    assert stored["overall_score"] == 50
