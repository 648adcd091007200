import pytest
from conftest import finish_in_order

from gaterace.domain.enums import HeatStatus, PenaltyStage, ResultStatus
from gaterace.domain.identifiers import HeatKey
from gaterace.domain.lifecycle import LOCKED_MESSAGE, PROTEST_MESSAGE
from gaterace.domain.scoring import HeatEntry
from gaterace.services import lifecycle, lineup, penalties, results


def draw(repo, category, riders, rng, batch_size=8):
    outcome = lineup.live_draw(repo, category.id, riders, batch_size, rng)
    assert outcome.ok, outcome.message
    return repo.list_heats(category.id)


def lock(repo, heat_id):
    assert lifecycle.progress(repo, heat_id).ok
    assert lifecycle.progress(repo, heat_id).ok
    assert lifecycle.change_status(repo, heat_id, HeatStatus.LOCKED).ok


class TestLiveDraw:
    def test_creates_batches_heats_and_gates(self, repo, make_category, make_riders, rng):
        category = make_category()
        riders = make_riders(8)
        heats = draw(repo, category, riders, rng)

        assert [h.name for h in heats] == ["Moto 1 - Batch 1", "Moto 2 - Batch 1", "Moto 3 - Batch 1"]
        gates = repo.gates([h.id for h in heats])
        assert gates[heats[0].id] == {rid: pos for pos, rid in enumerate(riders, start=1)}
        assert gates[heats[1].id] == {rid: pos for pos, rid in enumerate(reversed(riders), start=1)}
        assert sorted(gates[heats[2].id].values()) == list(range(1, 9))

    def test_large_field_gets_two_motos_per_batch(self, repo, make_category, make_riders, rng):
        category = make_category()
        riders = make_riders(12)
        heats = draw(repo, category, riders, rng, batch_size=6)

        assert [h.name for h in heats] == [
            "Moto 1 - Batch 1",
            "Moto 2 - Batch 1",
            "Moto 1 - Batch 2",
            "Moto 2 - Batch 2",
        ]
        assert [h.order for h in heats] == [1, 2, 3, 4]

    def test_second_draw_is_refused(self, repo, make_category, make_riders, rng):
        category = make_category()
        riders = make_riders(4)
        draw(repo, category, riders, rng)

        outcome = lineup.live_draw(repo, category.id, riders, rng=rng)
        assert outcome.status == "rejected"
        assert "already exist" in outcome.message
        assert len(repo.list_heats(category.id)) == 3

    def test_ineligible_rider_is_refused(self, repo, make_category, make_riders):
        category = make_category()
        riders = make_riders(4)
        older = make_riders(1, birth_year=2009, start_plate=90)

        outcome = lineup.live_draw(repo, category.id, riders + older)
        assert outcome.status == "rejected"
        assert outcome.message == "rider_ids contains invalid rider"
        assert repo.list_heats(category.id) == []

    def test_gate_order_view(self, repo, make_category, make_riders, rng):
        category = make_category()
        riders = make_riders(4)
        draw(repo, category, riders, rng)

        view = lineup.gate_order(repo, category.id)
        assert [h["name"] for h in view] == ["Moto 1 - Batch 1", "Moto 2 - Batch 1", "Moto 3 - Batch 1"]
        assert [g["rider_id"] for g in view[1]["gates"]] == list(reversed(riders))
        assert view[0]["gates"][0]["plate"] == "1"

    def test_heats_without_gates_are_filled_once(self, repo, make_category, make_riders, rng):
        category = make_category()
        riders = make_riders(4)
        heat = repo.create_heat(category.id, HeatKey.moto(2, 1), 1, riders)
        repo.commit()

        assert lineup.fill_missing_gates(repo, category.id, rng) == 1
        assert repo.gates([heat.id])[heat.id] == {rid: pos for pos, rid in enumerate(reversed(riders), start=1)}
        assert lineup.fill_missing_gates(repo, category.id, rng) == 0


class TestResults:
    def test_submit_and_clear(self, repo, make_category, make_riders, rng):
        category = make_category()
        riders = make_riders(4)
        heat = draw(repo, category, riders, rng)[0]

        outcome = results.submit_results(repo, heat.id, finish_in_order(riders))
        assert outcome.ok
        assert outcome.data == {"saved": 4}

        # исправление одного гонщика поверх сохранённых
        fix = [HeatEntry(riders[3], ResultStatus.DNF), HeatEntry(riders[2], ResultStatus.FINISH, 3)]
        assert results.submit_results(repo, heat.id, fix).ok
        stored = repo.results([heat.id])[heat.id]
        assert stored[riders[3]].status == ResultStatus.DNF
        assert stored[riders[3]].finish_order is None

        assert results.clear_results(repo, heat.id).data == {"deleted": 4}
        assert repo.results([heat.id])[heat.id] == {}

    def test_rejected_batch_leaves_stored_rows(self, repo, make_category, make_riders, rng):
        category = make_category()
        riders = make_riders(4)
        outsider = make_riders(1, start_plate=77)[0]
        heat = draw(repo, category, riders, rng)[0]
        assert results.submit_results(repo, heat.id, finish_in_order(riders[:2])).ok

        bad = [HeatEntry(riders[2], ResultStatus.FINISH, 3), HeatEntry(outsider, ResultStatus.FINISH, 4)]
        outcome = results.submit_results(repo, heat.id, bad)
        assert outcome.status == "rejected"
        assert outcome.status_code == 400

        duplicate = [HeatEntry(riders[2], ResultStatus.FINISH, 2)]
        assert results.submit_results(repo, heat.id, duplicate).status == "rejected"

        stored = repo.results([heat.id])[heat.id]
        assert {rid: e.finish_order for rid, e in stored.items()} == {riders[0]: 1, riders[1]: 2}

    def test_unknown_heat(self, repo):
        outcome = results.submit_results(repo, 999, [HeatEntry(1, ResultStatus.FINISH, 1)])
        assert outcome.status_code == 404


class TestLifecycleGuards:
    def test_locked_heat_rejects_mutations(self, repo, event, make_category, make_riders, rng):
        category = make_category()
        riders = make_riders(4)
        heat = draw(repo, category, riders, rng)[0]
        assert results.submit_results(repo, heat.id, finish_in_order(riders)).ok
        lock(repo, heat.id)

        outcome = results.submit_results(repo, heat.id, [HeatEntry(riders[0], ResultStatus.DNF)])
        assert outcome.status == "rejected"
        assert outcome.message == LOCKED_MESSAGE
        assert outcome.status_code == 409

        assert results.clear_results(repo, heat.id).message == LOCKED_MESSAGE
        outcome = penalties.add_penalty(repo, event.id, riders[0], "CONDUCT_FALSE_START", heat_id=heat.id)
        assert outcome.message == LOCKED_MESSAGE
        assert repo.results([heat.id])[heat.id][riders[0]].finish_order == 1

    def test_protest_review_freezes_heat(self, repo, make_category, make_riders, rng):
        category = make_category()
        riders = make_riders(4)
        heat = draw(repo, category, riders, rng)[0]
        lifecycle.progress(repo, heat.id)
        lifecycle.progress(repo, heat.id)
        assert lifecycle.change_status(repo, heat.id, "PROTEST_REVIEW").ok

        outcome = results.submit_results(repo, heat.id, finish_in_order(riders))
        assert outcome.message == PROTEST_MESSAGE

    def test_live_heat_cannot_be_locked(self, repo, make_category, make_riders, rng):
        category = make_category()
        heat = draw(repo, category, make_riders(4), rng)[0]
        lifecycle.progress(repo, heat.id)

        outcome = lifecycle.change_status(repo, heat.id, HeatStatus.LOCKED)
        assert outcome.status == "rejected"
        assert repo.get_heat(heat.id).status == HeatStatus.LIVE

    @pytest.mark.filterwarnings("error:datetime.datetime.utcnow:DeprecationWarning")
    def test_publish(self, repo, make_category, make_riders, rng):
        category = make_category()
        heat = draw(repo, category, make_riders(4), rng)[0]
        assert lifecycle.publish(repo, heat.id).status == "rejected"

        lock(repo, heat.id)
        assert lifecycle.publish(repo, heat.id).ok
        assert repo.get_heat(heat.id).published_at is not None
        assert lifecycle.publish(repo, heat.id).message == "Heat already published."


class TestPenalties:
    def test_catalog_points_and_approval(self, repo, event, make_category, make_riders, rng):
        category = make_category()
        riders = make_riders(4)
        heat = draw(repo, category, riders, rng)[0]

        outcome = penalties.add_penalty(repo, event.id, riders[0], "SAFETY_HELM_STRAP", heat_id=heat.id)
        assert outcome.ok
        assert outcome.data["penalty_point"] == 3
        assert repo.approved_penalty_sums(event.id, riders) == {}

        assert penalties.approve_penalty(repo, outcome.data["penalty_id"]).ok
        assert repo.approved_penalty_sums(event.id, riders) == {riders[0]: 3}

    def test_all_stage_penalty_counts_for_moto(self, repo, event, make_riders):
        rider = make_riders(1)[0]
        first = penalties.add_penalty(repo, event.id, rider, "CUSTOM", stage=PenaltyStage.ALL, penalty_point=2)
        second = penalties.add_penalty(repo, event.id, rider, "CUSTOM", stage=PenaltyStage.FINAL, penalty_point=4)
        penalties.approve_penalty(repo, first.data["penalty_id"])
        penalties.approve_penalty(repo, second.data["penalty_id"])

        assert repo.approved_penalty_sums(event.id, [rider]) == {rider: 2}
        assert repo.approved_penalty_sums(event.id, [rider], PenaltyStage.FINAL) == {rider: 6}

    def test_unknown_code_needs_points(self, repo, event, make_riders):
        rider = make_riders(1)[0]
        outcome = penalties.add_penalty(repo, event.id, rider, "NOT_A_CODE")
        assert outcome.status == "rejected"
        assert "Unknown penalty code" in outcome.message
