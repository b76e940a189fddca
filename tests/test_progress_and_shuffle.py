import copy
import random

from pymongo.errors import DuplicateKeyError

from hireit.main import _create_indexes
from hireit.models import AnswerInput, User
from hireit.services.randomizer import fisher_yates

from conftest import make_draft, mcq, run


OPTIONS = ["alpha", "bravo", "charlie", "delta", "echo", "foxtrot"]


def _draft():
    return make_draft(questions=[
        mcq("q1", answer="alpha", options=OPTIONS),
        mcq("q2", answer="bravo", options=OPTIONS),
        {"id": "q3", "text": "Explain", "type": "SUBJECTIVE", "points": 5},
    ])


def _in_progress(db):
    return [d for d in db.submissions.docs if d["status"] == "in_progress"]


def test_fisher_yates_is_a_permutation_and_leaves_input_alone():
    original = list(OPTIONS)
    shuffled = fisher_yates(original, random.Random(7))
    assert sorted(shuffled) == sorted(OPTIONS)
    assert original == OPTIONS


def test_fisher_yates_reaches_every_position():
    rng = random.Random(1234)
    first_positions = {fisher_yates(["a", "b", "c"], rng)[0] for _ in range(200)}
    assert first_positions == {"a", "b", "c"}


def test_resume_replays_the_same_option_order(service, db, interviewer, candidate):
    assessment_id = run(service.create_assessment(interviewer, _draft()))

    first = run(service.get_phase_view(candidate, assessment_id))
    second = run(service.get_phase_view(candidate, assessment_id))

    first_orders = {q["id"]: q["options"] for q in first["assessment"]["questions"]}
    second_orders = {q["id"]: q["options"] for q in second["assessment"]["questions"]}
    assert first_orders["q1"] == second_orders["q1"]
    assert first_orders["q2"] == second_orders["q2"]
    assert sorted(first_orders["q1"]) == sorted(OPTIONS)

    attempts = _in_progress(db)
    assert len(attempts) == 1
    assert attempts[0]["shuffled_options"]["q1"] == first_orders["q1"]
    assert "q3" not in attempts[0]["shuffled_options"]


def test_view_survives_progress_save_between_loads(service, interviewer, candidate):
    assessment_id = run(service.create_assessment(interviewer, _draft()))

    first = run(service.get_phase_view(candidate, assessment_id))
    run(service.save_progress(candidate, assessment_id, [AnswerInput(question_id="q1", value="delta")]))
    second = run(service.get_phase_view(candidate, assessment_id))

    assert first["assessment"]["questions"][0]["options"] == second["assessment"]["questions"][0]["options"]
    assert second["saved_answers"] == {"q1": "delta"}


def test_stale_order_is_replaced_when_options_change(service, db, interviewer, candidate):
    assessment_id = run(service.create_assessment(interviewer, _draft()))
    run(service.get_phase_view(candidate, assessment_id))

    new_options = ["one", "two", "three"]
    run(service.update_assessment(interviewer, assessment_id, make_draft(
        questions=[mcq("q1", answer="one", options=new_options)],
    )))
    view = run(service.get_phase_view(candidate, assessment_id))

    assert sorted(view["assessment"]["questions"][0]["options"]) == sorted(new_options)
    assert sorted(_in_progress(db)[0]["shuffled_options"]["q1"]) == sorted(new_options)


def test_candidate_view_never_carries_answer_key(service, interviewer, candidate):
    assessment_id = run(service.create_assessment(interviewer, _draft()))
    view = run(service.get_phase_view(candidate, assessment_id))
    for question in view["assessment"]["questions"]:
        assert not question.get("correct_answer")


def test_save_progress_upserts_one_in_progress_record(service, db, interviewer, candidate):
    assessment_id = run(service.create_assessment(interviewer, _draft()))

    run(service.save_progress(candidate, assessment_id, [AnswerInput(question_id="q1", value="alpha")]))
    started_at = _in_progress(db)[0]["started_at"]
    run(service.save_progress(candidate, assessment_id, [
        AnswerInput(question_id="q1", value="bravo"),
        AnswerInput(question_id="q3", value="Because"),
    ]))

    attempts = _in_progress(db)
    assert len(attempts) == 1
    assert [a["value"] for a in attempts[0]["answers"]] == ["bravo", "Because"]
    assert attempts[0]["started_at"] == started_at
    assert attempts[0]["updated_at"] >= started_at


def test_save_progress_never_touches_submitted_records(service, db, interviewer, candidate):
    assessment_id = run(service.create_assessment(interviewer, _draft()))
    run(service.submit(candidate, assessment_id, [AnswerInput(question_id="q1", value="alpha")]))
    submitted_before = [copy.deepcopy(d) for d in db.submissions.docs if d["status"] == "submitted"]

    run(service.save_progress(candidate, assessment_id, [AnswerInput(question_id="q1", value="echo")]))

    submitted_after = [d for d in db.submissions.docs if d["status"] == "submitted"]
    assert submitted_after == submitted_before
    assert len(_in_progress(db)) == 1


def test_progress_is_per_candidate(service, db, interviewer, candidate):
    other = User(user_id="user_cand2", email="cand2@example.com", role="candidate")
    assessment_id = run(service.create_assessment(interviewer, _draft()))

    run(service.save_progress(candidate, assessment_id, [AnswerInput(question_id="q1", value="alpha")]))
    run(service.save_progress(other, assessment_id, [AnswerInput(question_id="q1", value="bravo")]))

    assert len(_in_progress(db)) == 2
    view = run(service.get_phase_view(other, assessment_id))
    assert view["saved_answers"] == {"q1": "bravo"}


def test_open_attempts_are_unique_per_candidate_in_the_index(db):
    run(_create_indexes(db))
    partial = [
        (keys, options) for keys, options in db.submissions.indexes
        if options.get("partialFilterExpression") == {"status": "in_progress"}
    ]
    assert partial == [(
        [("assessment_id", 1), ("candidate_id", 1)],
        {"name": "one_in_progress_attempt", "unique": True,
         "partialFilterExpression": {"status": "in_progress"}},
    )]


def test_first_view_racing_another_tab_keeps_one_attempt(service, db, interviewer, candidate, monkeypatch):
    assessment_id = run(service.create_assessment(interviewer, _draft()))
    real_upsert = db.submissions.find_one_and_update
    calls = []

    async def lose_insert_race(query, update, **kwargs):
        calls.append(query)
        if len(calls) == 1:
            # The other tab inserts its attempt first
            db.submissions.docs.append({
                "submission_id": "sub_aaaaaaaaaaaa",
                "assessment_id": assessment_id,
                "candidate_id": candidate.user_id,
                "status": "in_progress",
                "answers": [],
                "shuffled_options": {},
            })
            raise DuplicateKeyError("E11000 duplicate key error")
        return await real_upsert(query, update, **kwargs)

    monkeypatch.setattr(db.submissions, "find_one_and_update", lose_insert_race)
    view = run(service.get_phase_view(candidate, assessment_id))

    attempts = _in_progress(db)
    assert len(calls) == 2
    assert len(attempts) == 1
    assert attempts[0]["submission_id"] == "sub_aaaaaaaaaaaa"
    shown = {q["id"]: q["options"] for q in view["assessment"]["questions"]}
    assert attempts[0]["shuffled_options"]["q1"] == shown["q1"]
