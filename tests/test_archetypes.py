"""Tests for the archetype classifier and its history stores."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import Update, create_engine, event
from sqlalchemy.exc import IntegrityError

from devflow_analytics.archetypes import (
    ARCHETYPE_KEYS,
    ARCHETYPES,
    _population_stddev,
    assign_archetype,
    classify,
    extract_features,
    reveal_status,
    score_archetypes,
    select_archetype,
)
from devflow_analytics.history import (
    ArchetypeConflictError,
    InMemoryArchetypeStore,
    SQLArchetypeStore,
    archetype_history,
)
from devflow_analytics.models import ArchetypeFeatureVector, DailyAggregate

# ── Helpers ─────────────────────────────────────────────────────────────────

TODAY = date(2024, 1, 19)  # Friday


def _features(**overrides) -> ArchetypeFeatureVector:
    values = dict(
        total_commits=50,
        total_prs=5,
        active_days=8,
        weekend_commits=0,
        weekday_commits=50,
        late_night_commits=0,
        max_daily_commits=8,
        variance=25.0,
        avg_hours=2.0,
        current_streak=0,
    )
    values.update(overrides)
    return ArchetypeFeatureVector(**values)


def _steady_fortnight() -> list[DailyAggregate]:
    """Ten weekdays, the last two idle, four merged PRs."""
    weekdays = [date(2024, 1, d) for d in (8, 9, 10, 11, 12, 15, 16, 17, 18, 19)]
    days = []
    for i, d in enumerate(weekdays):
        active = i < 8
        days.append(DailyAggregate(
            date=d,
            total_commits=5 if active else 0,
            prs_merged=1 if i < 4 else 0,
            commits_by_hour={10: 5} if active else {},
            coding_duration_minutes=120 if active else 0,
        ))
    return days


# ── Features ────────────────────────────────────────────────────────────────


def test_population_stddev() -> None:
    assert _population_stddev([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)
    assert _population_stddev([]) == 0.0


def test_extract_features() -> None:
    days = [
        DailyAggregate(date(2024, 1, 6), total_commits=4, commits_by_hour={3: 2, 12: 2},
                       coding_duration_minutes=180),
        DailyAggregate(date(2024, 1, 8), total_commits=6, prs_merged=2,
                       commits_by_hour={23: 1, 11: 5}, coding_duration_minutes=60),
        DailyAggregate(date(2024, 1, 9)),
    ]
    f = extract_features(days, current_streak=3)
    assert f.total_commits == 10
    assert f.total_prs == 2
    assert f.active_days == 2
    assert f.weekend_commits == 4
    assert f.weekday_commits == 6
    assert f.late_night_commits == 3  # 03:00 counts for archetypes
    assert f.max_daily_commits == 6
    assert f.avg_hours == pytest.approx(4 / 3)
    assert f.current_streak == 3
    assert f.late_night_ratio == pytest.approx(0.3)
    assert f.weekend_ratio == pytest.approx(0.4)


def test_ratios_without_commits() -> None:
    f = _features(total_commits=0, weekday_commits=0)
    assert f.late_night_ratio == 0
    assert f.weekend_ratio == 0


# ── Scoring & selection ─────────────────────────────────────────────────────


def test_momentum_machine_scores_both_rules() -> None:
    f = _features(current_streak=7, total_prs=3, active_days=10, variance=10.0)
    scores = score_archetypes(f)
    assert scores["momentum_machine"] == 80
    assert scores["consistent_operator"] == 60
    assert scores["silent_builder"] == 40
    assert select_archetype(scores) == ("momentum_machine", 80)


@pytest.mark.parametrize(
    ("late", "expected"),
    [(3, 0), (4, 30), (5, 30), (6, 60)],
)
def test_late_night_tiers_are_exclusive(late: int, expected: int) -> None:
    f = _features(total_commits=10, weekday_commits=10, late_night_commits=late)
    assert score_archetypes(f)["overnight_architect"] == expected


def test_tie_goes_to_earlier_archetype() -> None:
    f = _features(
        total_commits=10,
        weekend_commits=6,
        weekday_commits=4,
        late_night_commits=6,
        active_days=4,
        total_prs=5,
    )
    scores = score_archetypes(f)
    assert scores["overnight_architect"] == scores["weekend_warrior"] == 60
    assert select_archetype(scores) == ("overnight_architect", 60)


def test_low_winning_score_falls_back() -> None:
    scores = {key: 0 for key in ARCHETYPE_KEYS}
    scores["chaos_coder"] = 20
    assert select_archetype(scores) == ("silent_builder", 20)


def test_every_key_has_definition() -> None:
    assert set(ARCHETYPE_KEYS) == set(ARCHETYPES)
    for key, definition in ARCHETYPES.items():
        assert definition.key == key
        assert len(definition.strengths) == 3
        assert len(definition.weaknesses) == 3


# ── Classification ──────────────────────────────────────────────────────────


def test_steady_weekday_coder_gets_fallback() -> None:
    result = classify(_steady_fortnight(), current_streak=0, today=TODAY)
    assert result is not None
    assert result.scores["consistent_operator"] == 20
    assert result.scores["burnout_sprinter"] == 0
    assert result.scores["chaos_coder"] == 0
    assert result.archetype_key == "silent_builder"
    assert result.confidence_score == pytest.approx(0.2)
    assert result.features.variance == pytest.approx(2.0)


def test_classify_needs_five_days() -> None:
    days = _steady_fortnight()[-4:]
    assert classify(days, current_streak=0, today=TODAY) is None


def test_classify_ignores_days_outside_window() -> None:
    days = _steady_fortnight()
    assert classify(days, current_streak=0, today=TODAY + timedelta(days=30)) is None


# ── History ─────────────────────────────────────────────────────────────────


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        yield InMemoryArchetypeStore()
        return
    sql_store = _sql_store()
    yield sql_store
    sql_store.close()


def test_reassignment_supersedes_previous(store) -> None:
    first_at = datetime(2024, 1, 19, 8, 0, tzinfo=timezone.utc)
    second_at = datetime(2024, 1, 20, 8, 0, tzinfo=timezone.utc)
    days = _steady_fortnight()

    first = assign_archetype(store, "u1", days, current_streak=0, now=first_at)
    second = assign_archetype(store, "u1", days, current_streak=0, now=second_at)
    assert first is not None and second is not None

    history = store.history("u1")
    assert len(history) == 2
    assert [h.is_current for h in history] == [False, True]
    assert history[0].valid_until == second_at
    assert history[1].assigned_at == second_at
    assert history[1].trigger_metrics["total_commits"] == 40

    current = store.current("u1")
    assert current is not None
    assert current.id == second.id
    assert current.archetype_key == "silent_builder"


def test_users_have_independent_histories(store) -> None:
    now = datetime(2024, 1, 19, 8, 0, tzinfo=timezone.utc)
    assign_archetype(store, "u1", _steady_fortnight(), 0, now)
    assign_archetype(store, "u2", _steady_fortnight(), 0, now)
    assert store.current("u1").is_current
    assert store.current("u2").is_current
    assert len(store.history("u1")) == 1


def test_assign_without_data_leaves_store_untouched(store) -> None:
    now = datetime(2024, 1, 19, 8, 0, tzinfo=timezone.utc)
    assert assign_archetype(store, "u1", _steady_fortnight()[:3], 0, now) is None
    assert store.history("u1") == []
    assert store.current("u1") is None


def test_out_of_order_reassignment_keeps_interval_non_negative(store) -> None:
    later = datetime(2024, 1, 20, 8, 0, tzinfo=timezone.utc)
    earlier = datetime(2024, 1, 19, 8, 0, tzinfo=timezone.utc)
    assign_archetype(store, "u1", _steady_fortnight(), 0, later)
    assign_archetype(store, "u1", _steady_fortnight(), 0, earlier)

    closed = [h for h in store.history("u1") if not h.is_current]
    assert len(closed) == 1
    assert closed[0].valid_until >= closed[0].assigned_at
    assert closed[0].valid_until == later


def test_returned_assignments_do_not_alias_history(store) -> None:
    now = datetime(2024, 1, 19, 8, 0, tzinfo=timezone.utc)
    inserted = assign_archetype(store, "u1", _steady_fortnight(), 0, now)
    inserted.trigger_metrics["total_commits"] = -1
    inserted.scores["chaos_coder"] = 999

    fetched = store.current("u1")
    fetched.trigger_metrics["total_commits"] = -2

    again = store.current("u1")
    assert again.trigger_metrics["total_commits"] == 40
    assert again.scores["chaos_coder"] == 0
    assert store.history("u1")[0].trigger_metrics["total_commits"] == 40


def _sql_store() -> SQLArchetypeStore:
    sql_store = SQLArchetypeStore(engine=create_engine("sqlite://"))
    sql_store.ensure_tables()
    return sql_store


def _current_row(user_id: str, at: datetime) -> dict:
    return dict(
        user_id=user_id,
        archetype="chaos_coder",
        confidence_score=0.4,
        trigger_metrics={},
        scores={},
        assigned_at=at.replace(tzinfo=None),
        valid_until=None,
    )


def test_index_rejects_second_current_row() -> None:
    sql_store = _sql_store()
    at = datetime(2024, 1, 19, 8, 0)
    with pytest.raises(IntegrityError):
        with sql_store.engine.begin() as conn:
            conn.execute(archetype_history.insert().values(**_current_row("u1", at)))
            conn.execute(archetype_history.insert().values(**_current_row("u1", at)))
    assert sql_store.history("u1") == []
    sql_store.close()


def test_competing_writer_raises_conflict() -> None:
    sql_store = _sql_store()
    first_at = datetime(2024, 1, 19, 8, 0, tzinfo=timezone.utc)
    assign_archetype(sql_store, "u1", _steady_fortnight(), 0, first_at)

    # Another writer lands a current row between our UPDATE and INSERT.
    @event.listens_for(sql_store.engine, "after_execute")
    def _race(conn, clauseelement, multiparams, params, execution_options, result):
        if isinstance(clauseelement, Update):
            conn.execute(archetype_history.insert().values(**_current_row("u1", first_at)))

    with pytest.raises(ArchetypeConflictError):
        assign_archetype(
            sql_store, "u1", _steady_fortnight(), 0, first_at + timedelta(days=1)
        )
    event.remove(sql_store.engine, "after_execute", _race)

    history = sql_store.history("u1")
    assert len(history) == 1
    assert history[0].is_current
    assert history[0].assigned_at == first_at
    sql_store.close()


def test_reveal_status_counts_down() -> None:
    store = InMemoryArchetypeStore()
    pending = reveal_status(store, "u1", aggregate_count=3)
    assert pending.can_reveal is False
    assert pending.days_until_reveal == 2
    assert reveal_status(store, "u1", aggregate_count=5).can_reveal is True


def test_reveal_status_returns_current() -> None:
    store = InMemoryArchetypeStore()
    now = datetime(2024, 1, 19, 8, 0, tzinfo=timezone.utc)
    assign_archetype(store, "u1", _steady_fortnight(), 0, now)

    status = reveal_status(store, "u1", aggregate_count=10)
    assert status.can_reveal is False
    assert status.assignment is not None
    assert status.definition is not None
    assert status.definition.name == "Silent Builder"


def test_sql_store_requires_url() -> None:
    with pytest.raises(ValueError):
        SQLArchetypeStore()
