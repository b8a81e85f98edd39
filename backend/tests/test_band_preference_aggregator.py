"""
Tests for the band preference aggregator

Covers membership indexing, penalty exclusion (explicit False only),
newest-submission selection, contribution rules, name ordering, and the
differentiated failure policy of the database loader.
"""

import json
from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from app.models.band import Band
from app.models.band_member import BandMember
from app.models.member import Member
from app.models.member_preference import MemberPreference
from app.services import band_preference_aggregator
from app.services.band_preference_aggregator import (
    BandMemberRow,
    BandPreferenceSourceError,
    BandRow,
    MemberRow,
    PreferenceRow,
    aggregate_band_preferences,
    band_name_sort_key,
    build_band_prefer_scores,
    load_band_preference_source,
)
from app.services.preference_matrix import zero_matrix


def _matrix(cells):
    matrix = zero_matrix()
    for (day, hour), score in cells.items():
        matrix[day][hour] = score
    return matrix


def _pref(member_id, cells, updated_at=None, as_json=True):
    matrix = _matrix(cells)
    return PreferenceRow(
        member_id=member_id,
        priority=json.dumps(matrix) if as_json else matrix,
        updated_at=updated_at,
    )


# ============================================================================
# Pure aggregation
# ============================================================================


def test_sums_member_matrices_per_band():
    bands = [BandRow(1, "Rock")]
    edges = [BandMemberRow(1, 10), BandMemberRow(1, 11)]
    prefs = [_pref(10, {(0, 0): 2, (1, 1): 1}), _pref(11, {(0, 0): 3})]

    result = aggregate_band_preferences(bands, edges, [], prefs)

    assert len(result) == 1
    name, matrix = result[0]
    assert name == "Rock"
    assert matrix[0][0] == 5
    assert matrix[1][1] == 1


def test_member_in_two_bands_contributes_to_both():
    bands = [BandRow(1, "A"), BandRow(2, "B")]
    edges = [BandMemberRow(1, 10), BandMemberRow(2, 10)]
    prefs = [_pref(10, {(2, 3): 4})]

    result = dict(aggregate_band_preferences(bands, edges, [], prefs))

    assert result["A"][2][3] == 4
    assert result["B"][2][3] == 4


def test_edges_to_unknown_bands_are_discarded():
    bands = [BandRow(1, "Known")]
    edges = [BandMemberRow(1, 10), BandMemberRow(99, 10)]
    prefs = [_pref(10, {(0, 0): 1})]

    result = aggregate_band_preferences(bands, edges, [], prefs)

    assert [name for name, _ in result] == ["Known"]


def test_penalized_member_excludes_whole_band():
    bands = [BandRow(1, "Clean"), BandRow(2, "Tainted")]
    edges = [BandMemberRow(1, 10), BandMemberRow(2, 10), BandMemberRow(2, 11)]
    members = [MemberRow(10, True), MemberRow(11, False)]
    # Penalized member submitted nothing; band is still excluded.
    prefs = [_pref(10, {(0, 0): 9})]

    result = aggregate_band_preferences(bands, edges, members, prefs)

    assert [name for name, _ in result] == ["Clean"]


def test_penalized_member_excludes_band_even_with_high_scores():
    bands = [BandRow(1, "Loud")]
    edges = [BandMemberRow(1, 10), BandMemberRow(1, 11)]
    members = [MemberRow(10, False), MemberRow(11, True)]
    prefs = [_pref(10, {(0, 0): 100}), _pref(11, {(0, 1): 100})]

    assert aggregate_band_preferences(bands, edges, members, prefs) == []


def test_unset_eligibility_is_not_a_penalty():
    bands = [BandRow(1, "Unknown Status")]
    edges = [BandMemberRow(1, 10), BandMemberRow(1, 11)]
    members = [MemberRow(10, None)]  # 11 has no member row at all
    prefs = [_pref(10, {(0, 0): 1})]

    result = aggregate_band_preferences(bands, edges, members, prefs)

    assert [name for name, _ in result] == ["Unknown Status"]


def test_missing_submission_does_not_exclude_band():
    bands = [BandRow(1, "Partial")]
    edges = [BandMemberRow(1, 10), BandMemberRow(1, 11), BandMemberRow(1, 12)]
    prefs = [_pref(11, {(4, 4): 2})]

    result = aggregate_band_preferences(bands, edges, [], prefs)

    assert result[0][1][4][4] == 2


def test_band_without_any_submission_is_dropped():
    bands = [BandRow(1, "Silent"), BandRow(2, "Loud")]
    edges = [BandMemberRow(1, 10), BandMemberRow(2, 11)]
    prefs = [_pref(11, {(0, 0): 1}), _pref(10, {})]

    result = aggregate_band_preferences(bands, edges, [], prefs)

    assert [name for name, _ in result] == ["Loud"]


def test_band_without_members_is_dropped():
    bands = [BandRow(1, "Empty")]
    assert aggregate_band_preferences(bands, [], [], [_pref(10, {(0, 0): 1})]) == []


def test_duplicate_membership_edges_count_once():
    bands = [BandRow(1, "Dup")]
    edges = [BandMemberRow(1, 10), BandMemberRow(1, 10)]
    prefs = [_pref(10, {(0, 0): 3})]

    result = aggregate_band_preferences(bands, edges, [], prefs)

    assert result[0][1][0][0] == 3


def test_newest_submission_wins():
    bands = [BandRow(1, "B")]
    edges = [BandMemberRow(1, 10)]
    prefs = [
        _pref(10, {(0, 0): 1}, updated_at=datetime(2025, 5, 2)),
        _pref(10, {(0, 1): 1}, updated_at=datetime(2025, 5, 3)),
        _pref(10, {(0, 2): 1}, updated_at=datetime(2025, 5, 1)),
    ]

    matrix = aggregate_band_preferences(bands, edges, [], prefs)[0][1]

    assert matrix[0][1] == 1
    assert matrix[0][0] == 0
    assert matrix[0][2] == 0


def test_equal_timestamps_latter_row_wins():
    stamp = datetime(2025, 5, 2, 12, 0)
    bands = [BandRow(1, "B")]
    edges = [BandMemberRow(1, 10)]
    prefs = [_pref(10, {(0, 0): 1}, updated_at=stamp), _pref(10, {(0, 5): 1}, updated_at=stamp)]

    matrix = aggregate_band_preferences(bands, edges, [], prefs)[0][1]

    assert matrix[0][5] == 1
    assert matrix[0][0] == 0


def test_timestamped_submission_beats_undated_one():
    bands = [BandRow(1, "B")]
    edges = [BandMemberRow(1, 10)]
    prefs = [_pref(10, {(0, 0): 1}, updated_at=datetime(2025, 1, 1)), _pref(10, {(0, 5): 1})]

    matrix = aggregate_band_preferences(bands, edges, [], prefs)[0][1]

    assert matrix[0][0] == 1
    assert matrix[0][5] == 0


def test_unusable_newer_submission_does_not_erase_older_one():
    bands = [BandRow(1, "B")]
    edges = [BandMemberRow(1, 10)]
    prefs = [
        _pref(10, {(0, 0): 1}, updated_at=datetime(2025, 1, 1)),
        PreferenceRow(member_id=10, priority="{not json", updated_at=datetime(2025, 2, 1)),
        PreferenceRow(member_id=10, priority=None, updated_at=datetime(2025, 3, 1)),
    ]

    matrix = aggregate_band_preferences(bands, edges, [], prefs)[0][1]

    assert matrix[0][0] == 1


def test_malformed_priority_is_skipped_without_error():
    bands = [BandRow(1, "A"), BandRow(2, "B")]
    edges = [BandMemberRow(1, 10), BandMemberRow(2, 11)]
    prefs = [PreferenceRow(member_id=10, priority="[[1,2"), _pref(11, {(0, 0): 1})]

    result = aggregate_band_preferences(bands, edges, [], prefs)

    assert [name for name, _ in result] == ["B"]


def test_native_list_priority_is_accepted():
    bands = [BandRow(1, "A")]
    edges = [BandMemberRow(1, 10)]
    prefs = [_pref(10, {(5, 11): 7}, as_json=False)]

    result = aggregate_band_preferences(bands, edges, [], prefs)

    assert result[0][1][5][11] == 7


def test_output_sorted_by_band_name_naturally():
    names = ["zeta", "Alpha", "band 10", "band 2", "Beta"]
    bands = [BandRow(i, name) for i, name in enumerate(names, start=1)]
    edges = [BandMemberRow(i, 100 + i) for i in range(1, len(names) + 1)]
    prefs = [_pref(100 + i, {(0, 0): 1}) for i in range(1, len(names) + 1)]

    result = aggregate_band_preferences(bands, edges, [], prefs)

    assert [name for name, _ in result] == ["Alpha", "band 2", "band 10", "Beta", "zeta"]


def test_band_name_sort_key_is_case_insensitive_and_total():
    assert band_name_sort_key("alpha") < band_name_sort_key("Beta")
    assert band_name_sort_key("Track 9") < band_name_sort_key("Track 10")
    assert band_name_sort_key("ABC") != band_name_sort_key("abc")
    # full-width digits fold to ASCII
    assert band_name_sort_key("Ｂａｎｄ２") < band_name_sort_key("band 10")


# ============================================================================
# Database loading
# ============================================================================


def _seed_roster(session: Session, week_id: int = 1):
    session.add(Band(band_id=1, band_name="Keys"))
    session.add(Band(band_id=2, band_name="Drums"))
    session.add(Member(member_id=10, name="Aki", practice_available=True))
    session.add(Member(member_id=11, name="Ren", practice_available=False))
    session.add(Member(member_id=12, name="Sora"))
    session.add(BandMember(band_id=1, member_id=10))
    session.add(BandMember(band_id=1, member_id=12))
    session.add(BandMember(band_id=2, member_id=11))
    session.add(BandMember(band_id=3, member_id=12))  # band 3 does not exist
    session.add(
        MemberPreference(member_id=10, week_id=week_id, priority=json.dumps(_matrix({(0, 0): 3})), updated_at=datetime(2025, 1, 1))
    )
    session.add(
        MemberPreference(member_id=12, week_id=week_id, priority=json.dumps(_matrix({(0, 0): 2})), updated_at=datetime(2025, 1, 1))
    )
    session.add(
        MemberPreference(member_id=11, week_id=week_id, priority=json.dumps(_matrix({(1, 1): 9})), updated_at=datetime(2025, 1, 1))
    )
    # Another week must not leak in
    session.add(MemberPreference(member_id=10, week_id=week_id + 1, priority=json.dumps(_matrix({(2, 2): 50}))))
    session.commit()


def test_load_band_preference_source_reads_week_rows(session: Session):
    _seed_roster(session)

    source = load_band_preference_source(session, 1)

    assert {b.band_name for b in source.bands} == {"Keys", "Drums"}
    assert len(source.band_members) == 4
    assert {m.member_id for m in source.members} == {10, 11, 12}
    assert len(source.preferences) == 3


def test_build_band_prefer_scores_end_to_end(session: Session):
    _seed_roster(session)

    result = build_band_prefer_scores(session, 1)

    assert [name for name, _ in result] == ["Keys"]
    assert result[0][1][0][0] == 5
    assert result[0][1][2][2] == 0


def test_build_band_prefer_scores_without_week_is_empty(session: Session):
    _seed_roster(session)
    assert build_band_prefer_scores(session, None) == []


def test_member_read_failure_degrades_to_no_penalties(session: Session, monkeypatch):
    _seed_roster(session)
    real_exec = session.exec

    def failing_exec(statement, *args, **kwargs):
        if "members." in str(statement) and "band_members" not in str(statement):
            raise OperationalError("SELECT members", {}, Exception("members unavailable"))
        return real_exec(statement, *args, **kwargs)

    monkeypatch.setattr(session, "exec", failing_exec)

    result = build_band_prefer_scores(session, 1)

    # Without eligibility data the penalized member's band is scored too
    assert [name for name, _ in result] == ["Drums", "Keys"]


def test_roster_read_failure_is_fatal(session: Session, monkeypatch):
    _seed_roster(session)

    def failing_exec(statement, *args, **kwargs):
        raise OperationalError("SELECT bands", {}, Exception("db down"))

    monkeypatch.setattr(session, "exec", failing_exec)

    with pytest.raises(BandPreferenceSourceError):
        build_band_prefer_scores(session, 1)


def test_module_exposes_error_hierarchy():
    assert issubclass(band_preference_aggregator.BandPreferenceSourceError, band_preference_aggregator.BandPreferenceError)
