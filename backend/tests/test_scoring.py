import pytest

from gaterace.core.errors import ValidationError
from gaterace.domain.enums import ResultStatus, RiderStatus
from gaterace.domain.scoring import (
    BatchAggregator,
    HeatEntry,
    HeatSheet,
    heat_point,
    validate_submission,
)

FINISH = ResultStatus.FINISH
DNF = ResultStatus.DNF
DNS = ResultStatus.DNS


def sheet(heat_index, field_size, *entries):
    return HeatSheet(heat_index=heat_index, field_size=field_size, results={e.rider_id: e for e in entries})


def test_heat_point():
    assert heat_point(HeatEntry(1, FINISH, 3), 6) == 3
    assert heat_point(HeatEntry(1, DNF), 6) == 6
    assert heat_point(HeatEntry(1, DNS), 6) == 9
    assert heat_point(HeatEntry(1, DNS), 6, dns_point=12) == 12
    assert heat_point(None, 6) is None


def test_tied_totals_broken_by_last_heat():
    # A, B, C, D: старт 1 прямой, старт 2 обратный, всё поровну
    a, b, c, d = 1, 2, 3, 4
    heats = [
        sheet(1, 4, HeatEntry(a, FINISH, 1), HeatEntry(b, FINISH, 2), HeatEntry(c, FINISH, 3), HeatEntry(d, FINISH, 4)),
        sheet(2, 4, HeatEntry(d, FINISH, 1), HeatEntry(c, FINISH, 2), HeatEntry(b, FINISH, 3), HeatEntry(a, FINISH, 4)),
    ]
    rows = BatchAggregator().aggregate([a, b, c, d], heats)

    assert [r.total_point for r in rows] == [5, 5, 5, 5]
    assert [r.rider_id for r in rows] == [d, c, b, a]
    assert [r.rank for r in rows] == [1, 2, 3, 4]
    assert all(r.status == RiderStatus.FINISHED for r in rows)
    assert rows[0].display_class == "QUARTER FINAL"


def test_total_includes_approved_penalty():
    heats = [
        sheet(1, 2, HeatEntry(1, FINISH, 1), HeatEntry(2, FINISH, 2)),
        sheet(2, 2, HeatEntry(1, FINISH, 1), HeatEntry(2, FINISH, 2)),
    ]
    rows = BatchAggregator().aggregate([1, 2], heats, penalties={1: 3})
    by_rider = {r.rider_id: r for r in rows}

    assert by_rider[1].total_point == 5
    assert by_rider[1].penalty == 3
    assert by_rider[2].total_point == 4
    assert by_rider[2].rank == 1


def test_dns_in_any_heat_gives_dns_status():
    heats = [
        sheet(1, 3, HeatEntry(1, FINISH, 1), HeatEntry(2, FINISH, 2), HeatEntry(3, DNF)),
        sheet(2, 3, HeatEntry(1, DNS), HeatEntry(2, FINISH, 1), HeatEntry(3, FINISH, 2)),
    ]
    rows = {r.rider_id: r for r in BatchAggregator().aggregate([1, 2, 3], heats)}

    assert rows[1].status == RiderStatus.DNS
    assert rows[1].total_point == 1 + 9
    assert rows[3].status == RiderStatus.DNF
    assert rows[3].points == {1: 3, 2: 2}


def test_penalty_over_threshold_is_dq():
    heats = [sheet(1, 2, HeatEntry(1, FINISH, 1), HeatEntry(2, FINISH, 2))]
    rows = {r.rider_id: r for r in BatchAggregator().aggregate([1, 2], heats, penalties={1: 7})}
    assert rows[1].status == RiderStatus.DQ
    assert rows[2].status == RiderStatus.FINISHED


def test_dq_threshold_is_configurable():
    heats = [sheet(1, 2, HeatEntry(1, FINISH, 1), HeatEntry(2, FINISH, 2))]
    rows = {r.rider_id: r for r in BatchAggregator(dq_threshold=10).aggregate([1, 2], heats, penalties={1: 7})}
    assert rows[1].status == RiderStatus.FINISHED


def test_absent_rider_is_dns():
    heats = [sheet(1, 2, HeatEntry(1, FINISH, 1), HeatEntry(2, FINISH, 2))]
    rows = {r.rider_id: r for r in BatchAggregator().aggregate([1, 2], heats, absent=[2])}
    assert rows[2].status == RiderStatus.DNS


def test_rider_without_results_is_unranked():
    heats = [sheet(1, 3, HeatEntry(1, FINISH, 1), HeatEntry(2, FINISH, 2))]
    rows = BatchAggregator().aggregate([3, 1, 2], heats)

    assert [r.rider_id for r in rows] == [1, 2, 3]
    assert rows[-1].total_point is None
    assert rows[-1].penalty is None
    assert rows[-1].rank is None
    assert rows[-1].display_class is None


def test_missing_heat_counts_as_zero():
    heats = [
        sheet(1, 2, HeatEntry(1, FINISH, 2), HeatEntry(2, FINISH, 1)),
        sheet(2, 2, HeatEntry(2, FINISH, 1)),
    ]
    rows = {r.rider_id: r for r in BatchAggregator().aggregate([1, 2], heats)}
    assert rows[1].total_point == 2
    assert rows[1].rank == 2


class TestValidateSubmission:
    roster = [1, 2, 3]

    def test_accepts_consecutive_orders(self):
        merged = validate_submission(
            [HeatEntry(1, FINISH, 2), HeatEntry(2, FINISH, 1), HeatEntry(3, DNF)],
            self.roster,
        )
        assert set(merged) == {1, 2, 3}

    def test_merges_with_stored_rows(self):
        stored = {1: HeatEntry(1, FINISH, 1)}
        merged = validate_submission([HeatEntry(2, FINISH, 2)], self.roster, stored)
        assert merged[1].finish_order == 1
        assert merged[2].finish_order == 2

    @pytest.mark.parametrize(
        "entries",
        [
            [],
            [HeatEntry(9, FINISH, 1)],
            [HeatEntry(1, FINISH, 1), HeatEntry(1, FINISH, 2)],
            [HeatEntry(1, FINISH, None)],
            [HeatEntry(1, FINISH, 0)],
            [HeatEntry(1, DNF, 2)],
            [HeatEntry(1, FINISH, 1), HeatEntry(2, FINISH, 1)],
            [HeatEntry(1, FINISH, 2)],
        ],
    )
    def test_rejects(self, entries):
        with pytest.raises(ValidationError):
            validate_submission(entries, self.roster)

    def test_rejects_order_clashing_with_stored(self):
        stored = {1: HeatEntry(1, FINISH, 1)}
        with pytest.raises(ValidationError):
            validate_submission([HeatEntry(2, FINISH, 1)], self.roster, stored)

    def test_rejects_empty_roster(self):
        with pytest.raises(ValidationError):
            validate_submission([HeatEntry(1, FINISH, 1)], [])
