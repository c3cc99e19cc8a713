from workout_state import metrics
from workout_state.models import LoggedSet, Session, SessionExercise


def _set(weight, reps, completed=True, **extra):
    return LoggedSet(weight=weight, reps=reps, completed=completed, timestamp="2024-01-01T10:00:00", **extra)


def _session():
    bench = SessionExercise("Bench Press", target_sets=2, sets=[_set(100, 5), _set(105, 3)])
    row = SessionExercise("Row", target_sets=3, sets=[_set(60, 10), _set(70, 8, completed=False)])
    curl = SessionExercise("Curl", target_sets=2)
    return Session(
        id="2024-01-01-10-00-00-push",
        date="2024-01-01",
        start_time="2024-01-01T10:00:00",
        exercises=[bench, row, curl],
        workout_ref="Push",
    )


def test_exercise_figures():
    session = _session()
    bench = session.exercises[0]
    assert metrics.count_completed_sets(session, 0) == 2
    assert metrics.count_completed_sets(session, 1) == 1
    assert metrics.count_completed_sets(session, 7) == 0
    assert metrics.is_exercise_complete(session, 0)
    assert not metrics.is_exercise_complete(session, 1)
    assert metrics.calculate_exercise_progress(session.exercises[1]) == 1 / 3
    assert metrics.count_total_reps(bench) == 8
    assert metrics.find_max_weight(bench) == 105
    assert metrics.find_max_weight(session.exercises[2]) == 0
    assert metrics.calculate_exercise_volume(bench) == 815


def test_session_figures():
    session = _session()
    assert metrics.count_total_completed_sets(session) == 3
    assert metrics.count_total_target_sets(session) == 7
    assert metrics.calculate_session_progress(session) == 3 / 7
    assert metrics.calculate_total_volume(session) == 1415
    assert metrics.has_completed_work(session)
    assert metrics.count_completed_exercises(session) == 1
    assert metrics.find_first_unfinished_exercise_index(session) == 1
    assert not metrics.is_session_fully_complete(session)


def test_exercise_completion():
    session = _session()
    assert metrics.exercise_completion(session, 0) == metrics.ExerciseCompletion(2, 2, True, False)
    assert metrics.exercise_completion(session, 1) == metrics.ExerciseCompletion(1, 3, False, False)
    assert metrics.exercise_completion(session, 9) == metrics.ExerciseCompletion(0, 0, False, False)


def test_empty_session():
    session = Session(id="x", date="2024-01-01", start_time="2024-01-01T10:00:00")
    assert not metrics.has_completed_work(session)
    assert metrics.calculate_session_progress(session) == 0.0
    assert metrics.find_first_unfinished_exercise_index(session) == -1
    assert not metrics.is_session_fully_complete(session)


def test_should_auto_start_rest_timer():
    assert metrics.should_auto_start_rest_timer(True, 1, 3)
    assert not metrics.should_auto_start_rest_timer(True, 3, 3)
    assert not metrics.should_auto_start_rest_timer(False, 1, 3)


def test_format_set_annotations():
    assert metrics.format_set(_set(80, 10)) == "80kg × 10"
    logged = _set(100, 5, rpe=8, extra_rest_seconds=30, avg_rep_duration=2.0)
    assert metrics.format_set(logged, "lbs") == "100lbs × 5 (RPE 8, +30s rest, 2.0s/rep)"


def test_summary_lists_completed_sets():
    session = _session()
    session.end_time = "2024-01-01T11:05:30"
    text = metrics.summary(session)
    assert text.startswith("Workout: Push")
    assert "Duration: 65m 30s" in text
    assert "Sets: 3" in text
    assert "  Set 2: 105kg × 3" in text
    assert "70kg" not in text
